from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from staff.permissions import IsStaffRole, bearer_token, requires_module
from staff.serializers.desk import EodNoteQuerySerializer, EodNoteSerializer
from staff.services import backend
from staff.services.access import STAFF_MANAGEMENT_MODULE, SUB_EOD_TASK


@api_view(['GET', 'POST'])
@permission_classes([IsStaffRole, requires_module(STAFF_MANAGEMENT_MODULE, SUB_EOD_TASK)])
def eod_notes(request):
    """End-of-day notes of the current staff member.
    Query params (GET):
      - date: YYYY-MM-DD, defaults to every day
    """
    client = backend.get_client()
    token = bearer_token(request)
    if request.method == 'GET':
        q = EodNoteQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        day = q.validated_data.get('date')
        notes = client.list_eod_notes(token, day.isoformat() if day else None)
        return Response({'ok': True, 'data': notes})

    s = EodNoteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    note = client.add_eod_note(token, s.validated_data['note'])
    return Response({'ok': True, 'data': note}, status=201)
