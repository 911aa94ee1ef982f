import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from staff.permissions import IsDoctorStaff, bearer_token
from staff.serializers.desk import ClaimStatusSerializer
from staff.services import backend
from staff.services.claims import apply_claim_status, cancelled_claims as only_cancelled

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsDoctorStaff])
def cancelled_claims(request):
    rows = only_cancelled(backend.get_client().list_cancelled_claims(bearer_token(request)))
    return Response({'ok': True, 'data': rows, 'count': len(rows)})


@api_view(['POST'])
@permission_classes([IsDoctorStaff])
def claim_status(request, invoice_id: str):
    s = ClaimStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    client = backend.get_client()
    token = bearer_token(request)

    claim = client.get_invoice(token, invoice_id)
    body = apply_claim_status(claim, s.validated_data['status'], request.user.name, s.validated_data.get('remark'))
    updated = client.update_claim(token, invoice_id, body)
    logger.info('claim %s set to %s by %s', invoice_id, body['advanceClaimStatus'], request.user.id)
    return Response({'ok': True, 'data': updated, 'update': body})
