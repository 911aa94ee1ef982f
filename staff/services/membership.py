"""
Membership packages: treatment consumption and balance transfers.

A membership is created with a package amount and consumed through
treatment lines.  Transfers move part (or all) of the remaining balance
to another EMR and are recorded in an append-only history.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from staff.exceptions import TransferError
from staff.services.finance import (
    ZERO,
    MembershipBalance,
    compute_membership_balance,
    format_money,
    line_total,
    to_amount,
)


@dataclass(frozen=True)
class TreatmentLine:
    treatment_name: str
    unit_count: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return line_total(self.unit_count, self.unit_price)

    @classmethod
    def from_raw(cls, raw: dict) -> 'TreatmentLine':
        count = int(to_amount(raw.get('unitCount')))
        return cls(
            treatment_name=(raw.get('treatmentName') or '').strip(),
            unit_count=max(1, count),
            unit_price=to_amount(raw.get('unitPrice')),
        )

    def as_dict(self) -> dict:
        return {
            'treatmentName': self.treatment_name,
            'unitCount': self.unit_count,
            'unitPrice': format_money(self.unit_price),
            'lineTotal': format_money(self.line_total),
        }


@dataclass(frozen=True)
class TransferRecord:
    from_emr: str
    to_emr: str
    transferred_amount: Decimal
    transferred_at: datetime
    to_name: str = ''
    note: str = ''

    @classmethod
    def from_raw(cls, raw: dict) -> 'TransferRecord':
        at = raw.get('transferredAt')
        return cls(
            from_emr=raw.get('fromEmr') or '',
            to_emr=raw.get('toEmr') or '',
            transferred_amount=to_amount(raw.get('transferredAmount')),
            transferred_at=(parse_datetime(at) if isinstance(at, str) else at) or timezone.now(),
            to_name=raw.get('toName') or '',
            note=raw.get('note') or '',
        )

    def as_dict(self) -> dict:
        return {
            'fromEmr': self.from_emr,
            'toEmr': self.to_emr,
            'toName': self.to_name,
            'transferredAmount': format_money(self.transferred_amount),
            'note': self.note,
            'transferredAt': self.transferred_at.isoformat(),
        }


@dataclass
class Membership:
    emr_number: str
    package_name: str
    package_amount: Decimal
    id: str = ''
    treatments: list = field(default_factory=list)
    transfer_history: list = field(default_factory=list)
    paid_amount: Decimal = ZERO
    payment_method: str = ''
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def balance(self) -> MembershipBalance:
        return compute_membership_balance(self.package_amount, self.treatments)

    @property
    def remaining_balance(self) -> Decimal:
        """Package minus consumption; negative once the package is overdrawn."""
        b = self.balance()
        return b.package_amount - b.consumed


def add_treatments(
    membership: Membership,
    lines: Iterable[Any],
    paid_amount: Any = None,
    payment_method: Optional[str] = None,
) -> list[TreatmentLine]:
    """Append treatment lines; only positive payment top-ups are counted."""
    added = []
    for raw in lines or ():
        line = raw if isinstance(raw, TreatmentLine) else TreatmentLine.from_raw(raw)
        if not line.treatment_name:
            continue
        membership.treatments.append(line)
        added.append(line)
    top_up = to_amount(paid_amount)
    if top_up > ZERO:
        membership.paid_amount = to_amount(membership.paid_amount) + top_up
    if payment_method:
        membership.payment_method = payment_method
    return added


def transfer_label(to_emr: str, to_name: str = '') -> str:
    return f'Transfer to {to_emr}' + (f' ({to_name})' if to_name else '')


def transfer(
    membership: Membership,
    to_emr: str,
    amount: Any = None,
    to_name: str = '',
    note: str = '',
    at: Optional[datetime] = None,
) -> TransferRecord:
    """Move ``amount`` of the remaining balance to ``to_emr``.

    An amount of 0 (or the full remaining balance) is a full transfer: the
    membership itself is reassigned to the target EMR.
    """
    to_emr = (to_emr or '').strip()
    if not to_emr:
        raise TransferError('target EMR number is required')
    if to_emr == membership.emr_number:
        raise TransferError('cannot transfer to the same EMR number')
    remaining = max(ZERO, membership.remaining_balance)
    value = to_amount(amount)
    if value > remaining:
        raise TransferError(
            f'transfer amount ({format_money(value)}) cannot exceed remaining balance ({format_money(remaining)})'
        )
    record = TransferRecord(
        from_emr=membership.emr_number,
        to_emr=to_emr,
        transferred_amount=value,
        transferred_at=at or timezone.now(),
        to_name=to_name or '',
        note=note or '',
    )
    membership.transfer_history.append(record)
    if value > ZERO:
        membership.treatments.append(TreatmentLine(
            treatment_name=transfer_label(to_emr, to_name),
            unit_count=1,
            unit_price=value,
        ))
    if value == ZERO or value == remaining:
        membership.emr_number = to_emr
    return record


def expiry_status(end_date: Optional[date], today: Optional[date] = None) -> dict:
    if end_date is None:
        return {'state': 'unknown', 'daysLeft': None}
    today = today or timezone.localdate()
    days = (end_date - today).days
    if days < 0:
        state = 'expired'
    elif days <= 7:
        state = 'expiring'
    elif days <= 30:
        state = 'ending_soon'
    else:
        state = 'active'
    return {'state': state, 'daysLeft': days}


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return parse_date(value[:10])
    return None


def membership_from_payload(data: dict) -> Membership:
    return Membership(
        id=str(data.get('_id') or data.get('id') or ''),
        emr_number=data.get('emrNumber') or '',
        package_name=data.get('packageName') or '',
        package_amount=to_amount(data.get('packageAmount')),
        treatments=[TreatmentLine.from_raw(t) for t in data.get('treatments') or () if isinstance(t, dict)],
        transfer_history=[TransferRecord.from_raw(t) for t in data.get('transferHistory') or () if isinstance(t, dict)],
        paid_amount=to_amount(data.get('paidAmount')),
        payment_method=data.get('paymentMethod') or '',
        start_date=_as_date(data.get('packageStartDate')),
        end_date=_as_date(data.get('packageEndDate')),
    )


def membership_to_payload(m: Membership, today: Optional[date] = None) -> dict:
    b = m.balance()
    remaining = m.remaining_balance
    return {
        '_id': m.id,
        'emrNumber': m.emr_number,
        'packageName': m.package_name,
        'packageAmount': format_money(m.package_amount),
        'paidAmount': format_money(m.paid_amount),
        'paymentMethod': m.payment_method,
        'packageStartDate': m.start_date.isoformat() if m.start_date else None,
        'packageEndDate': m.end_date.isoformat() if m.end_date else None,
        'treatments': [t.as_dict() for t in m.treatments],
        'transferHistory': [t.as_dict() for t in m.transfer_history],
        'totalConsumedAmount': format_money(b.consumed),
        'remainingBalance': format_money(b.remaining),
        'pendingAmount': format_money(-remaining) if remaining < ZERO else '0.00',
        'utilizationPercent': f'{b.utilization:.0f}',
        'expiry': expiry_status(m.end_date, today),
    }
