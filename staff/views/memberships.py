import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from staff.permissions import IsStaffRole, bearer_token
from staff.serializers.membership import AddTreatmentsSerializer, MembershipCreateSerializer, TransferSerializer
from staff.services import backend
from staff.services.finance import format_money
from staff.services.membership import (
    Membership,
    add_treatments,
    membership_from_payload,
    membership_to_payload,
    transfer,
)

logger = logging.getLogger(__name__)


def _upstream_body(m: Membership) -> dict:
    body = membership_to_payload(m)
    body.pop('expiry', None)
    if not body['_id']:
        body.pop('_id')
    return body


@api_view(['GET', 'POST'])
@permission_classes([IsStaffRole])
def memberships(request):
    client = backend.get_client()
    token = bearer_token(request)
    if request.method == 'GET':
        emr = (request.query_params.get('emrNumber') or '').strip() or None
        rows = client.list_memberships(token, emr)
        data = [membership_to_payload(membership_from_payload(r)) for r in rows if isinstance(r, dict)]
        return Response({'ok': True, 'data': data})

    s = MembershipCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    m = Membership(
        emr_number=v['emrNumber'],
        package_name=v['packageName'],
        package_amount=v['packageAmount'],
        start_date=v.get('packageStartDate'),
        end_date=v.get('packageEndDate'),
    )
    add_treatments(m, v.get('treatments') or (), v.get('paidAmount'), v.get('paymentMethod'))
    created = client.create_membership(token, _upstream_body(m))
    if created:
        m = membership_from_payload(created)
    return Response({'ok': True, 'data': membership_to_payload(m)}, status=201)


@api_view(['POST'])
@permission_classes([IsStaffRole])
def membership_treatments(request, membership_id: str):
    """Book treatment lines against a membership package."""
    s = AddTreatmentsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    client = backend.get_client()
    token = bearer_token(request)

    m = membership_from_payload(client.get_membership(token, membership_id))
    added = add_treatments(m, s.validated_data['treatments'],
                           s.validated_data.get('paidAmount'), s.validated_data.get('paymentMethod'))
    client.update_membership(token, _upstream_body(m))
    return Response({
        'ok': True,
        'data': membership_to_payload(m),
        'added': [line.as_dict() for line in added],
    })


@api_view(['POST'])
@permission_classes([IsStaffRole])
def membership_transfer(request, membership_id: str):
    """Transfer part or all of the remaining balance to another EMR.
    An amount of 0 transfers the whole membership.
    """
    s = TransferSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    client = backend.get_client()
    token = bearer_token(request)

    m = membership_from_payload(client.get_membership(token, membership_id))
    from_emr = m.emr_number
    record = transfer(m, v['toEmr'], v['amount'], v.get('toName', ''), v.get('note', ''))
    client.transfer_membership(token, {
        'id': membership_id,
        'toEmr': record.to_emr,
        'toName': record.to_name,
        'transferAmount': format_money(record.transferred_amount),
        'note': record.note,
    })
    logger.info('membership %s transfer %s -> %s (%s)', membership_id, from_emr, record.to_emr,
                format_money(record.transferred_amount))
    return Response({'ok': True, 'data': membership_to_payload(m), 'transfer': record.as_dict()})
