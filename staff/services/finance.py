"""
Derived financial state for invoices, payments and membership packages.

Every function here is a pure computation over the values currently held
by a form.  Numeric input is coerced leniently (``parseFloat(x) || 0``
semantics, negatives clamp to zero) so that a half-typed form never
raises; the result simply degrades to zero.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Iterable, Mapping, Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWOPLACES = Decimal("0.01")

INSURANCE_YES = "Yes"
INSURANCE_TYPE_ADVANCE = "Advance"

_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_number(value: Any) -> Optional[Decimal]:
    """Return the leading number in ``value`` or None when there is none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    else:
        match = _NUMBER_PREFIX.match(str(value))
        if not match:
            return None
        try:
            number = Decimal(match.group(0).strip())
        except InvalidOperation:
            return None
    if not number.is_finite():
        return None
    return number


def to_amount(value: Any) -> Decimal:
    """Coerce a form value to a non-negative Decimal (invalid -> 0)."""
    number = parse_number(value)
    if number is None or number < 0:
        return ZERO
    return number


def parse_percent(value: Any) -> Optional[Decimal]:
    """Parse a percentage; None when the value is not a number at all."""
    number = parse_number(value)
    if number is None:
        return None
    return max(ZERO, number)


def money(value: Any) -> Decimal:
    """Round to 2 decimal places."""
    amount = to_amount(value)
    with localcontext() as ctx:
        # quantize needs every integer digit plus the two decimals
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        return amount.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def format_money(value: Any) -> str:
    return f"{money(value):.2f}"


def compute_advance(amount: Any, paid: Any, manual_override: Any = None) -> Decimal:
    """Surplus carried forward as advance.

    A manual or EMR-loaded advance (``manual_override`` not None) is returned
    unchanged and auto-calculation is skipped.
    """
    if manual_override is not None:
        return to_amount(manual_override)
    amount = to_amount(amount)
    paid = to_amount(paid)
    if paid > amount:
        return money(paid - amount)
    return money(ZERO)


@dataclass(frozen=True)
class EmrAdvance:
    base: Decimal
    used_from_advance: Decimal
    remaining_advance: Decimal
    pending: Decimal


def compute_emr_advance(amount: Any, paid: Any, advance_base: Any) -> EmrAdvance:
    base = to_amount(advance_base)
    paid = to_amount(paid)
    used = min(paid, base)
    return EmrAdvance(
        base=base,
        used_from_advance=used,
        remaining_advance=money(max(ZERO, base - paid)),
        pending=money(max(ZERO, to_amount(amount) - used)),
    )


def compute_pending(amount: Any, paid: Any, advance: Any, advance_base: Any = None) -> Decimal:
    """Outstanding balance after paid and advance are applied.

    In EMR-advance mode (``advance_base`` given) the amount drawn from the
    prior advance, ``min(paid, advance_base)``, stands in for ``paid``.
    """
    if advance_base is not None:
        return compute_emr_advance(amount, paid, advance_base).pending
    amount = to_amount(amount)
    covered = to_amount(paid) + to_amount(advance)
    return money(max(ZERO, amount - covered))


def is_insurance_advance(insurance: Any, insurance_type: Any, co_pay_percent: Any) -> bool:
    return (
        insurance == INSURANCE_YES
        and insurance_type == INSURANCE_TYPE_ADVANCE
        and parse_percent(co_pay_percent) is not None
    )


@dataclass(frozen=True)
class NeedToPay:
    need_to_pay: Decimal
    # Set in insurance-advance mode: the value written back into ``amount``.
    amount_override: Optional[Decimal] = None


def compute_need_to_pay(
    amount: Any,
    paid: Any = None,
    advance: Any = None,
    advance_given_amount: Any = None,
    co_pay_percent: Any = None,
    insurance: Any = None,
    insurance_type: Any = None,
) -> NeedToPay:
    if is_insurance_advance(insurance, insurance_type, co_pay_percent):
        co_pay = parse_percent(co_pay_percent)
        given = to_amount(advance_given_amount)
        value = max(ZERO, given * (HUNDRED - co_pay) / HUNDRED)
        return NeedToPay(need_to_pay=value, amount_override=value)
    return NeedToPay(need_to_pay=compute_pending(amount, paid, advance))


def line_total(unit_count: Any, unit_price: Any) -> Decimal:
    return to_amount(unit_count) * to_amount(unit_price)


def _line_value(line: Any) -> Decimal:
    if isinstance(line, Mapping):
        if line.get("lineTotal") is not None:
            return to_amount(line.get("lineTotal"))
        return line_total(line.get("unitCount"), line.get("unitPrice"))
    total = getattr(line, "line_total", None)
    if total is not None:
        return to_amount(total)
    return line_total(getattr(line, "unit_count", 0), getattr(line, "unit_price", 0))


def sum_lines(lines: Iterable[Any]) -> Decimal:
    return sum((_line_value(line) for line in lines or ()), ZERO)


@dataclass(frozen=True)
class MembershipBalance:
    package_amount: Decimal
    consumed: Decimal
    remaining: Decimal
    overdrawn: Decimal
    utilization: Decimal

    def as_dict(self) -> dict:
        return {
            'packageAmount': format_money(self.package_amount),
            'totalConsumedAmount': format_money(self.consumed),
            'remainingBalance': format_money(self.remaining),
            'overdrawnAmount': format_money(self.overdrawn),
            'utilizationPercent': f"{self.utilization:.0f}",
        }


def utilization_percent(package_amount: Any, consumed: Any) -> Decimal:
    package_amount = to_amount(package_amount)
    if package_amount == ZERO:
        return ZERO
    return min(HUNDRED, to_amount(consumed) / package_amount * HUNDRED)


def compute_membership_balance(package_amount: Any, lines: Iterable[Any]) -> MembershipBalance:
    package = to_amount(package_amount)
    consumed = sum_lines(lines)
    return MembershipBalance(
        package_amount=package,
        consumed=consumed,
        remaining=max(ZERO, package - consumed),
        overdrawn=max(ZERO, consumed - package),
        utilization=utilization_percent(package, consumed),
    )


def remaining_after(package_amount: Any, consumed: Any, added_lines: Iterable[Any]) -> Decimal:
    """Balance left once ``added_lines`` are booked on top of ``consumed``."""
    added = sum_lines(added_lines)
    return max(ZERO, to_amount(package_amount) - to_amount(consumed) - added)


def overdraw_after(package_amount: Any, consumed: Any, added_lines: Iterable[Any]) -> Decimal:
    added = sum_lines(added_lines)
    return max(ZERO, to_amount(consumed) + added - to_amount(package_amount))


@dataclass(frozen=True)
class PaymentPreview:
    total_paid: Decimal
    advance: Decimal
    pending: Decimal

    def as_dict(self) -> dict:
        return {
            'totalPaid': format_money(self.total_paid),
            'advance': format_money(self.advance),
            'pending': format_money(self.pending),
        }


def preview_payment(amount: Any, paid: Any, paying: Any) -> PaymentPreview:
    """What an invoice looks like once ``paying`` is added to ``paid``."""
    amount = to_amount(amount)
    total_paid = to_amount(paid) + to_amount(paying)
    return PaymentPreview(
        total_paid=total_paid,
        advance=money(max(ZERO, total_paid - amount)),
        pending=money(max(ZERO, amount - total_paid)),
    )


@dataclass(frozen=True)
class InvoiceDerivation:
    amount: Decimal
    paid: Decimal
    advance: Decimal
    pending: Decimal
    need_to_pay: Decimal
    amount_overridden: bool = False
    emr_advance: Optional[EmrAdvance] = None

    def as_dict(self) -> dict:
        data = {
            'amount': format_money(self.amount),
            'paid': format_money(self.paid),
            'advance': format_money(self.advance),
            'pending': format_money(self.pending),
            'needToPay': format_money(self.need_to_pay),
            'amountOverridden': self.amount_overridden,
        }
        if self.emr_advance is not None:
            data['usedFromAdvance'] = format_money(self.emr_advance.used_from_advance)
            data['remainingAdvance'] = format_money(self.emr_advance.remaining_advance)
        return data


def derive_invoice(snapshot: Mapping[str, Any]) -> InvoiceDerivation:
    """Compute every derived field of an invoice form snapshot.

    Recognised keys: ``amount``, ``paid``, ``advance`` together with
    ``manualAdvance`` (a hand-entered advance that disables auto-calc),
    ``advanceBase`` (a pre-existing advance balance loaded from a prior
    record, which switches on EMR-advance mode), ``insurance``,
    ``insuranceType``, ``advanceGivenAmount`` and ``coPayPercent``.

    In insurance-advance mode the need-to-pay value replaces ``amount`` and
    the remaining fields are derived from the replaced amount.
    """
    amount = to_amount(snapshot.get('amount'))
    paid = to_amount(snapshot.get('paid'))
    advance_base = snapshot.get('advanceBase')
    if advance_base == '':
        advance_base = None
    manual_advance = snapshot.get('advance') if snapshot.get('manualAdvance') else None

    override = None
    if is_insurance_advance(snapshot.get('insurance'), snapshot.get('insuranceType'),
                            snapshot.get('coPayPercent')):
        override = compute_need_to_pay(
            amount,
            advance_given_amount=snapshot.get('advanceGivenAmount'),
            co_pay_percent=snapshot.get('coPayPercent'),
            insurance=snapshot.get('insurance'),
            insurance_type=snapshot.get('insuranceType'),
        ).amount_override
        amount = override

    emr = None
    if advance_base is not None:
        emr = compute_emr_advance(amount, paid, advance_base)
        advance = emr.remaining_advance
        pending = emr.pending
    else:
        advance = compute_advance(amount, paid, manual_advance)
        pending = compute_pending(amount, paid, advance)

    return InvoiceDerivation(
        amount=amount,
        paid=paid,
        advance=advance,
        pending=pending,
        need_to_pay=override if override is not None else pending,
        amount_overridden=override is not None,
        emr_advance=emr,
    )
