from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from staff.permissions import IsStaffRole, bearer_token
from staff.services import backend


@api_view(['GET'])
@permission_classes([IsStaffRole])
def contracts(request):
    return Response({'ok': True, 'data': backend.get_client().list_contracts(bearer_token(request))})
