from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from staff.permissions import IsStaffRole, bearer_token, permission_snapshot
from staff.services import backend
from staff.services.access import resolve_gate, submodule_matcher
from staff.services.navigation import load_sidebar


@api_view(['GET'])
@permission_classes([IsStaffRole])
def module_permissions(request):
    """CRUD gate for one module (and optionally one submodule).
    Query params:
      - moduleKey: module key, with or without its admin_/clinic_/doctor_ prefix
      - subModule: submodule name
      - path: submodule path
    """
    module_key = (request.query_params.get('moduleKey') or '').strip()
    if not module_key:
        return Response({'ok': False, 'error': {'code': 'bad_request', 'message': 'moduleKey is required'}}, status=400)
    sub_name = (request.query_params.get('subModule') or '').strip()
    sub_path = (request.query_params.get('path') or '').strip()
    matcher = submodule_matcher(sub_name, sub_path) if (sub_name or sub_path) else None

    snapshot = permission_snapshot(request)
    gate = resolve_gate(snapshot.permissions, module_key, matcher)
    return Response({
        'ok': True,
        'data': gate.as_dict(),
        'loaded': snapshot.loaded,
        'error': snapshot.error,
    })


@api_view(['GET'])
@permission_classes([IsStaffRole])
def sidebar(request):
    snapshot, items = load_sidebar(backend.get_client(), bearer_token(request))
    return Response({
        'ok': True,
        'data': [item.as_dict() for item in items],
        'permissionsLoaded': snapshot.loaded,
    })
