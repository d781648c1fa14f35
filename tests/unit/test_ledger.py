"""Unit tests for policy ledger arithmetic and payment validation"""

import pytest
from datetime import date, datetime, timezone
from agency_ledger.domain.exceptions import ValidationError
from agency_ledger.domain.ledger import (
    check_against_debt,
    default_policy_period,
    generate_receipt_number,
    is_balanced,
    recalculate,
    revenue_method,
    validate_insurance_amount,
    validate_payment_input,
)
from agency_ledger.domain.models import PaymentMethod


def test_recalculate_sums_payments():
    balance = recalculate(1200, [400, 800])
    assert balance.paid_amount_cents == 1200
    assert balance.remaining_debt_cents == 0


def test_recalculate_without_payments():
    balance = recalculate(1000, [])
    assert balance.paid_amount_cents == 0
    assert balance.remaining_debt_cents == 1000


def test_recalculate_floors_remaining_at_zero():
    """Overpayment never shows up as negative debt"""
    balance = recalculate(100, [150])
    assert balance.remaining_debt_cents == 0


def test_is_balanced():
    assert is_balanced(1000, 800, 200)
    assert not is_balanced(1000, 800, 100)
    assert not is_balanced(1000, 1100, -100)


def test_cancelled_policy_is_exempt_from_balance_check():
    assert is_balanced(1000, 800, 0, status="cancelled")


@pytest.mark.parametrize("amount", [0, -5, None])
def test_payment_amount_must_be_positive(amount):
    with pytest.raises(ValidationError) as exc:
        validate_payment_input(amount, "cash")
    assert exc.value.field == "amount_cents"


def test_unknown_payment_method_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_payment_input(100, "bitcoin")
    assert exc.value.field == "method"


def test_cheque_payment_requires_number_and_date():
    with pytest.raises(ValidationError) as exc:
        validate_payment_input(100, "cheque", cheque_date=date(2024, 6, 1))
    assert exc.value.field == "cheque_number"

    with pytest.raises(ValidationError) as exc:
        validate_payment_input(100, "cheque", cheque_number="C1")
    assert exc.value.field == "cheque_date"


def test_valid_cheque_payment_returns_method():
    method = validate_payment_input(100, "cheque", cheque_number="C1", cheque_date=date(2024, 6, 1))
    assert method == PaymentMethod.CHEQUE


def test_payment_may_settle_remaining_debt_exactly():
    """remaining 200: 300 is rejected, 200 is accepted"""
    with pytest.raises(ValidationError, match="exceeds remaining debt"):
        check_against_debt(200, 300)

    check_against_debt(200, 200)


def test_fully_paid_policy_rejects_payment():
    with pytest.raises(ValidationError, match="already fully paid") as exc:
        check_against_debt(0, 1)
    assert exc.value.field == "amount_cents"


@pytest.mark.parametrize("amount", [0, -1200, None])
def test_insurance_amount_must_be_positive(amount):
    with pytest.raises(ValidationError) as exc:
        validate_insurance_amount(amount)
    assert exc.value.field == "insurance_amount_cents"


def test_policy_period_defaults_to_now_plus_one_year():
    now = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)
    start, end = default_policy_period(None, None, None, now)
    assert start == now
    assert end == datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)


def test_policy_period_continues_previous_policy():
    previous_end = datetime(2025, 1, 1, tzinfo=timezone.utc)
    start, end = default_policy_period(previous_end, None, None, datetime(2024, 6, 1, tzinfo=timezone.utc))
    assert start == previous_end
    assert end == datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_policy_period_keeps_explicit_dates():
    start_in = datetime(2024, 1, 1, tzinfo=timezone.utc)
    end_in = datetime(2024, 7, 1, tzinfo=timezone.utc)
    start, end = default_policy_period(datetime(2023, 5, 5, tzinfo=timezone.utc), start_in, end_in, start_in)
    assert (start, end) == (start_in, end_in)


def test_policy_period_leap_day():
    leap = datetime(2024, 2, 29, tzinfo=timezone.utc)
    _, end = default_policy_period(None, leap, None, leap)
    assert end == datetime(2025, 2, 28, tzinfo=timezone.utc)


def test_policy_period_rejects_end_before_start():
    start = datetime(2024, 6, 1, tzinfo=timezone.utc)
    with pytest.raises(ValidationError) as exc:
        default_policy_period(None, start, datetime(2024, 1, 1, tzinfo=timezone.utc), start)
    assert exc.value.field == "insurance_end"


def test_receipt_number_format():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    receipt = generate_receipt_number("REC", now)
    prefix, millis, suffix = receipt.split("-")
    assert prefix == "REC"
    assert millis == str(int(now.timestamp() * 1000))
    assert len(suffix) == 6
    assert suffix == suffix.upper()


def test_revenue_method_spells_cheque_as_check():
    assert revenue_method(PaymentMethod.CHEQUE) == "check"
    assert revenue_method(PaymentMethod.CASH) == "cash"
