from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from staff.services import claims
from staff.services.pettycash import PettyCashRecord, global_summary, totals, validate_expense

RECORD = {
    '_id': 'p1', 'staffId': 's1', 'patientName': 'Ravi',
    'allocatedAmounts': [{'amount': 500}, {'amount': '250.50'}],
    'expenses': [{'description': 'Cab', 'spentAmount': 120, 'vendorName': 'Ola'}],
}


def test_record_totals():
    t = totals(PettyCashRecord.from_raw(RECORD))
    assert t.total_allocated == Decimal('750.50')
    assert t.total_spent == Decimal('120')
    assert t.remaining == Decimal('630.50')
    assert t.as_dict() == {'totalAllocated': '750.50', 'totalSpent': '120.00', 'totalAmount': '630.50'}


def test_overspent_record_shows_negative_remaining():
    record = PettyCashRecord.from_raw({'staffId': 's1', 'allocatedAmounts': [{'amount': 10}],
                                       'expenses': [{'description': 'x', 'spentAmount': 25}]})
    assert totals(record).as_dict()['totalAmount'] == '-15.00'


def test_global_summary_skips_records_without_staff():
    records = [
        PettyCashRecord.from_raw(RECORD),
        PettyCashRecord.from_raw({**RECORD, '_id': 'p2', 'staffId': 's2'}),
        PettyCashRecord.from_raw({**RECORD, '_id': 'p3', 'staffId': None}),
    ]
    summary = global_summary(records)
    assert summary.total_allocated == Decimal('1501.00')
    assert summary.total_spent == Decimal('240')


@pytest.mark.parametrize('description, amount, errors', [
    ('Cab', '120', []),
    ('  ', '120', ['description is required']),
    ('Cab', '0', ['spent amount must be greater than 0']),
    ('', None, ['description is required', 'spent amount must be greater than 0']),
])
def test_validate_expense(description, amount, errors):
    assert validate_expense(description, amount) == errors


NOW = datetime(2026, 2, 3, 12, 0, tzinfo=dt_timezone.utc)


@pytest.mark.parametrize('status', [claims.RELEASED, claims.APPROVED])
def test_release_and_approval_are_stamped(status):
    body = claims.apply_claim_status({'advanceClaimCancellationRemark': 'old'}, status, 'Dr. Rao', remark='ignored', now=NOW)
    assert body['advanceClaimStatus'] == status
    assert body['advanceClaimReleaseDate'] == NOW.isoformat()
    assert body['advanceClaimReleasedBy'] == 'Dr. Rao'
    assert body['advanceClaimCancellationRemark'] is None


def test_cancellation_keeps_only_the_remark():
    claim = {'advanceClaimReleaseDate': None, 'advanceClaimReleasedBy': None}
    body = claims.apply_claim_status(claim, claims.CANCELLED, 'Dr. Rao', remark='duplicate', now=NOW)
    assert body['advanceClaimCancellationRemark'] == 'duplicate'
    assert body['advanceClaimReleaseDate'] is None
    assert body['advanceClaimReleasedBy'] is None


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        claims.apply_claim_status({}, 'Lost', 'x')


def test_cancelled_claims_filter():
    rows = [{'advanceClaimStatus': 'Cancelled'}, {'advanceClaimStatus': 'Pending'}, 'junk']
    assert claims.cancelled_claims(rows) == [{'advanceClaimStatus': 'Cancelled'}]
