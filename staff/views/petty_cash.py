from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from staff.permissions import IsStaffRole, bearer_token, requires_module
from staff.serializers.desk import ExpenseSerializer
from staff.services import backend
from staff.services.access import STAFF_MANAGEMENT_MODULE, SUB_ADD_EXPENSE
from staff.services.finance import format_money
from staff.services.pettycash import PettyCashRecord, global_summary, totals


@api_view(['GET'])
@permission_classes([IsStaffRole])
def petty_cash(request):
    search = (request.query_params.get('search') or '').strip() or None
    rows = [r for r in backend.get_client().list_petty_cash(bearer_token(request), search) if isinstance(r, dict)]
    records = [PettyCashRecord.from_raw(r) for r in rows]
    data = [{**row, **totals(record).as_dict()} for row, record in zip(rows, records)]
    summary = global_summary(records)
    return Response({
        'ok': True,
        'data': data,
        'globalAmounts': {
            'globalTotalAmount': format_money(summary.total_allocated),
            'globalSpentAmount': format_money(summary.total_spent),
            'globalRemainingAmount': format_money(max(summary.remaining, 0)),
        },
    })


@api_view(['POST'])
@permission_classes([IsStaffRole, requires_module(STAFF_MANAGEMENT_MODULE, SUB_ADD_EXPENSE)])
def add_expense(request):
    s = ExpenseSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    payload = {
        'description': v['description'],
        'spentAmount': format_money(v['spentAmount']),
        'vendorName': v.get('vendorName', ''),
    }
    if v.get('pettyCashId'):
        payload['pettyCashId'] = v['pettyCashId']
    expense = backend.get_client().add_expense(bearer_token(request), payload)
    return Response({'ok': True, 'data': expense}, status=201)
