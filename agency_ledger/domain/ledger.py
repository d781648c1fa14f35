"""Policy ledger - paid amount and remaining debt bookkeeping"""

import uuid
from datetime import date, datetime
from typing import Iterable, Optional, Tuple

from agency_ledger.domain.exceptions import ValidationError
from agency_ledger.domain.models import LedgerBalance, PaymentMethod, PolicyStatus
from agency_ledger.utils.date_utils import add_years


def recalculate(insurance_amount_cents: int, payment_amounts: Iterable[int]) -> LedgerBalance:
    """
    Derive the ledger fields of a policy from its payments.

    paid = sum of payment amounts
    remaining = insurance amount - paid, floored at 0
    """
    paid = sum(payment_amounts)
    remaining = max(insurance_amount_cents - paid, 0)
    return LedgerBalance(paid_amount_cents=paid, remaining_debt_cents=remaining)


def is_balanced(
    insurance_amount_cents: int,
    paid_amount_cents: int,
    remaining_debt_cents: int,
    status: str = PolicyStatus.ACTIVE.value,
) -> bool:
    """Ledger invariant; cancelled policies are exempt (refunds bypass it)"""
    if status == PolicyStatus.CANCELLED.value:
        return True
    return (
        remaining_debt_cents >= 0
        and paid_amount_cents + remaining_debt_cents == insurance_amount_cents
    )


def parse_payment_method(method: str) -> PaymentMethod:
    try:
        return PaymentMethod(method)
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError(f"Payment method must be one of: {allowed}", field="method")


def validate_payment_input(
    amount_cents: int,
    method: str,
    cheque_number: Optional[str] = None,
    cheque_date: Optional[date] = None,
) -> PaymentMethod:
    """
    Check the request fields of a payment before any lookup happens.

    Cheque payments need both the cheque number and the cheque date since a
    Cheque record is created alongside the payment.
    """
    if amount_cents is None or amount_cents <= 0:
        raise ValidationError("Amount must be greater than 0", field="amount_cents")

    payment_method = parse_payment_method(method)

    if payment_method == PaymentMethod.CHEQUE:
        if not cheque_number or not cheque_number.strip():
            raise ValidationError(
                "Cheque number and cheque date are required for cheque payments",
                field="cheque_number",
            )
        if cheque_date is None:
            raise ValidationError(
                "Cheque number and cheque date are required for cheque payments",
                field="cheque_date",
            )

    return payment_method


def check_against_debt(remaining_debt_cents: int, amount_cents: int) -> None:
    """A payment may settle the remaining debt but never exceed it"""
    if remaining_debt_cents <= 0:
        raise ValidationError("Insurance is already fully paid", field="amount_cents")
    if amount_cents > remaining_debt_cents:
        raise ValidationError(
            f"Payment amount ({amount_cents}) exceeds remaining debt ({remaining_debt_cents})",
            field="amount_cents",
        )


def validate_insurance_amount(insurance_amount_cents: Optional[int]) -> int:
    if insurance_amount_cents is None or insurance_amount_cents <= 0:
        raise ValidationError(
            "Insurance amount is required and must be greater than 0",
            field="insurance_amount_cents",
        )
    return insurance_amount_cents


def default_policy_period(
    previous_end: Optional[datetime],
    start: Optional[datetime],
    end: Optional[datetime],
    now: datetime,
    years: int = 1,
) -> Tuple[datetime, datetime]:
    """
    Resolve coverage dates of a new policy.

    - start: explicit value, else the end of the vehicle's previous policy,
      else now
    - end: explicit value, else start + `years` years
    """
    final_start = start or previous_end or now
    final_end = end or add_years(final_start, years)
    if final_end <= final_start:
        raise ValidationError("Insurance end date must be after its start date", field="insurance_end")
    return final_start, final_end


def generate_receipt_number(prefix: str, now: datetime) -> str:
    """Receipt numbers look like REC-1717171717171-9F2A1C"""
    millis = int(now.timestamp() * 1000)
    return f"{prefix}-{millis}-{uuid.uuid4().hex[:6].upper()}"


def revenue_method(method: PaymentMethod) -> str:
    """Revenue records spell cheque payments as 'check'"""
    return "check" if method == PaymentMethod.CHEQUE else method.value
