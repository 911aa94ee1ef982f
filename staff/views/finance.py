"""
Derived invoice and membership figures for the staff forms.

These endpoints never reject numeric input: whatever the form currently
holds is coerced and the derived values come back formatted to 2 places.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from staff.permissions import IsStaffRole
from staff.services.finance import (
    compute_membership_balance,
    derive_invoice,
    format_money,
    overdraw_after,
    preview_payment,
    remaining_after,
    sum_lines,
)


def _payload(request) -> dict:
    return request.data if isinstance(request.data, dict) else {}


@api_view(['POST'])
@permission_classes([IsStaffRole])
def invoice_derive(request):
    return Response({'ok': True, 'data': derive_invoice(_payload(request)).as_dict()})


@api_view(['POST'])
@permission_classes([IsStaffRole])
def payment_preview(request):
    data = _payload(request)
    preview = preview_payment(data.get('amount'), data.get('paid'), data.get('paying'))
    return Response({'ok': True, 'data': preview.as_dict()})


@api_view(['POST'])
@permission_classes([IsStaffRole])
def membership_balance(request):
    """Balance of a package; ``addedTreatments`` previews lines not yet booked."""
    data = _payload(request)
    lines = data.get('treatments') or []
    balance = compute_membership_balance(data.get('packageAmount'), lines)
    body = balance.as_dict()
    added = data.get('addedTreatments')
    if added:
        body['addedTotal'] = format_money(sum_lines(added))
        body['remainingAfter'] = format_money(remaining_after(balance.package_amount, balance.consumed, added))
        body['overdrawAfter'] = format_money(overdraw_after(balance.package_amount, balance.consumed, added))
    return Response({'ok': True, 'data': body})
