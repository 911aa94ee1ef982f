from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from staff.permissions import IsStaffRole, bearer_token
from staff.serializers.desk import CatalogEntrySerializer
from staff.services import backend
from staff.services.finance import format_money


@api_view(['GET', 'POST'])
@permission_classes([IsStaffRole])
def treatments(request):
    """Package/treatment price list; POST with an ``id`` updates that entry."""
    client = backend.get_client()
    token = bearer_token(request)
    if request.method == 'GET':
        return Response({'ok': True, 'data': client.list_treatments(token)})

    s = CatalogEntrySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    payload = {k: v[k] for k in ('id', 'package', 'treatment') if v.get(k)}
    for k in ('packagePrice', 'treatmentPrice'):
        if v.get(k) is not None:
            payload[k] = format_money(v[k])
    saved = client.save_treatment(token, payload)
    return Response({'ok': True, 'data': saved}, status=200 if payload.get('id') else 201)


@api_view(['DELETE'])
@permission_classes([IsStaffRole])
def treatment_detail(request, treatment_id: str):
    backend.get_client().delete_treatment(bearer_token(request), treatment_id)
    return Response({'ok': True})
