"""
Petty cash totals.

A staff member's petty cash record holds allocations (cash handed over)
and expenses paid out of it; the remaining cash is derived, never stored.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from staff.services.finance import ZERO, format_money, to_amount


@dataclass(frozen=True)
class Expense:
    description: str
    spent_amount: Decimal
    vendor_name: str = ''
    receipts: tuple = ()


@dataclass
class PettyCashRecord:
    id: str = ''
    staff_id: str = ''
    patient_name: str = ''
    note: str = ''
    allocated_amounts: list = field(default_factory=list)
    expenses: list = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: dict) -> 'PettyCashRecord':
        return cls(
            id=str(raw.get('_id') or ''),
            staff_id=str(raw.get('staffId') or ''),
            patient_name=raw.get('patientName') or '',
            note=raw.get('note') or '',
            allocated_amounts=[to_amount(a.get('amount')) for a in raw.get('allocatedAmounts') or () if isinstance(a, dict)],
            expenses=[
                Expense(
                    description=e.get('description') or '',
                    spent_amount=to_amount(e.get('spentAmount')),
                    vendor_name=e.get('vendorName') or '',
                    receipts=tuple(e.get('receipts') or ()),
                )
                for e in raw.get('expenses') or () if isinstance(e, dict)
            ],
        )


@dataclass(frozen=True)
class PettyCashTotals:
    total_allocated: Decimal
    total_spent: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.total_allocated - self.total_spent

    def as_dict(self) -> dict:
        remaining = self.remaining
        return {
            'totalAllocated': format_money(self.total_allocated),
            'totalSpent': format_money(self.total_spent),
            'totalAmount': ('-' if remaining < ZERO else '') + format_money(abs(remaining)),
        }


def totals(record: PettyCashRecord) -> PettyCashTotals:
    return PettyCashTotals(
        total_allocated=sum(record.allocated_amounts, ZERO),
        total_spent=sum((e.spent_amount for e in record.expenses), ZERO),
    )


def global_summary(records: Iterable[PettyCashRecord]) -> PettyCashTotals:
    """Totals across every staff record (records without a staff id are skipped)."""
    allocated = spent = ZERO
    for record in records:
        if not record.staff_id:
            continue
        t = totals(record)
        allocated += t.total_allocated
        spent += t.total_spent
    return PettyCashTotals(total_allocated=allocated, total_spent=spent)


def validate_expense(description: str, spent_amount) -> list[str]:
    errors = []
    if not (description or '').strip():
        errors.append('description is required')
    if to_amount(spent_amount) <= ZERO:
        errors.append('spent amount must be greater than 0')
    return errors
