"""
Patient registration and invoice payments.

Derived figures are always recomputed here from the submitted form
values; whatever the client calculated is ignored.
"""
import logging

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from staff.permissions import IsStaffRole, bearer_token
from staff.serializers.registration import InvoiceCreateSerializer, PaymentSerializer
from staff.services import backend
from staff.services.claims import PENDING
from staff.services.finance import derive_invoice, format_money, preview_payment, to_amount

logger = logging.getLogger(__name__)

PATIENT_FIELDS = (
    'invoiceNumber', 'emrNumber', 'firstName', 'lastName', 'email', 'mobileNumber',
    'gender', 'patientType', 'referredBy', 'insurance', 'insuranceType',
    'advanceGivenAmount', 'coPayPercent', 'membership',
)


@api_view(['GET'])
@permission_classes([IsStaffRole])
def patient_by_emr(request, emr_number: str):
    """Prior patient record for an EMR number and the advance it carries."""
    patient = backend.get_client().get_patient_by_emr(bearer_token(request), emr_number)
    if patient is None:
        return Response({'ok': False, 'error': {'code': 'not_found', 'message': 'No patient with this EMR number'}}, status=404)
    return Response({'ok': True, 'data': patient, 'advanceBase': format_money(to_amount(patient.get('advance')))})


@api_view(['POST'])
@permission_classes([IsStaffRole])
def register_patient(request):
    s = InvoiceCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data

    derived = derive_invoice(v)
    payload = {k: v.get(k) for k in PATIENT_FIELDS if v.get(k) is not None}
    payload.update({
        'amount': format_money(derived.amount),
        'paid': format_money(derived.paid),
        'advance': format_money(derived.advance),
        'pending': format_money(derived.pending),
        'needToPay': format_money(derived.need_to_pay),
        'invoicedBy': request.user.name,
        'invoicedDate': timezone.now().isoformat(),
        'userId': request.user.id,
    })
    if v['membership'] == 'Yes':
        payload['membershipStartDate'] = v['membershipStartDate'].isoformat()
        payload['membershipEndDate'] = v['membershipEndDate'].isoformat()
    if v['insuranceAdvance']:
        payload['advanceClaimStatus'] = PENDING
        payload['advanceClaimReleaseDate'] = None
        payload['advanceClaimReleasedBy'] = None

    created = backend.get_client().create_invoice(bearer_token(request), payload)
    logger.info('invoice %s registered by %s', payload['invoiceNumber'], request.user.id)
    return Response({'ok': True, 'data': created, 'derived': derived.as_dict()}, status=201)


@api_view(['POST'])
@permission_classes([IsStaffRole])
def record_payment(request, invoice_id: str):
    """Add a payment to an existing invoice."""
    s = PaymentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    client = backend.get_client()
    token = bearer_token(request)

    invoice = client.get_invoice(token, invoice_id)
    preview = preview_payment(invoice.get('amount'), invoice.get('paid'), s.validated_data['paying'])
    update = {
        'paid': format_money(preview.total_paid),
        'advance': format_money(preview.advance),
        'pending': format_money(preview.pending),
    }
    if s.validated_data.get('paymentMethod'):
        update['paymentMethod'] = s.validated_data['paymentMethod']
    updated = client.update_invoice(token, invoice_id, update)
    return Response({'ok': True, 'data': updated, 'preview': preview.as_dict()})
