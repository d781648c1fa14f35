"""Unit tests for report folds"""

import uuid
import pytest
from datetime import date
from agency_ledger.domain.exceptions import ValidationError
from agency_ledger.domain.models import ChequeRow, PaymentRow, PolicyRow
from agency_ledger.domain.reporting import (
    classify_due,
    debts_by_customer,
    due_items,
    income_by_method,
    net_profit,
    normalize_income_method,
    paginate,
    payments_and_debts_by_agent,
    policy_summary,
    summarize_due_items,
    summarize_payments,
)

DANA = uuid.uuid4()
OMER = uuid.uuid4()


def make_policy(
    customer_id=DANA,
    name="Dana Levi",
    amount=1200,
    paid=400,
    end=date(2025, 1, 1),
    agent="Noa",
    start=date(2024, 1, 1),
    status="active",
):
    return PolicyRow(
        policy_id=uuid.uuid4(),
        customer_id=customer_id,
        customer_name=name,
        vehicle_id=uuid.uuid4(),
        plate_number="12-345-67",
        insurance_type="comprehensive",
        insurance_company="Harel",
        agent_name=agent,
        insurance_amount_cents=amount,
        paid_amount_cents=paid,
        remaining_debt_cents=amount - paid,
        insurance_end=end,
        status=status,
        insurance_start=start,
    )


def make_cheque(customer_id=DANA, status="pending", day=date(2024, 6, 1), amount=500):
    return ChequeRow(
        cheque_id=uuid.uuid4(),
        customer_id=customer_id,
        customer_name="Dana Levi",
        cheque_number="C1",
        cheque_date=day,
        amount_cents=amount,
        status=status,
    )


def test_debts_by_customer_sums_and_sorts():
    rows = [
        make_policy(paid=1000),  # owes 200
        make_policy(paid=900),  # owes 300
        make_policy(customer_id=OMER, name="Omer Cohen", paid=0),  # owes 1200
    ]
    debts = debts_by_customer(rows)

    assert [d.customer_id for d in debts] == [OMER, DANA]
    assert debts[0].total_debt_cents == 1200
    assert debts[1].total_debt_cents == 500


def test_debts_by_customer_filters():
    rows = [
        make_policy(paid=1000),  # Noa, owes 200, started 2024-01-01
        make_policy(paid=0, agent="Gil", start=date(2024, 6, 1)),  # owes 1200
        make_policy(customer_id=OMER, name="Omer Cohen", paid=0, status="cancelled"),
        make_policy(customer_id=OMER, name="Omer Cohen", paid=1200),  # settled
    ]

    by_agent = debts_by_customer(rows, agent_name="Gil")
    assert [(d.customer_id, d.total_debt_cents) for d in by_agent] == [(DANA, 1200)]

    started = debts_by_customer(rows, start=date(2024, 3, 1), end=date(2024, 12, 31))
    assert [(d.customer_id, d.total_debt_cents) for d in started] == [(DANA, 1200)]

    active = debts_by_customer(rows, active_only=True)
    assert [(d.customer_id, d.total_debt_cents) for d in active] == [(DANA, 1400)]

    assert {d.customer_id for d in debts_by_customer(rows)} == {DANA, OMER}


def test_summarize_payments_fills_every_method():
    summary = summarize_payments({"cash": (2, 700), "cheque": (1, 300), "paypal": (1, 50)})

    assert summary.total_payments == 4
    assert summary.total_amount_cents == 1050
    assert summary.by_method == {"cash": 700, "card": 0, "cheque": 300, "bank_transfer": 0, "paypal": 50}
    assert summary.method_counts["cash"] == 2
    assert summary.method_counts["card"] == 0

    empty = summarize_payments({})
    assert empty.total_payments == 0
    assert sum(empty.by_method.values()) == 0


@pytest.mark.parametrize(
    "raw,expected",
    [("card", "visa"), ("visa", "visa"), ("cash", "cash"), ("cheque", "check"), ("check", "check"),
     ("bank_transfer", "bank_transfer"), ("Paypal", "paypal")],
)
def test_normalize_income_method(raw, expected):
    assert normalize_income_method(raw) == expected


def test_income_by_method_sums_to_total():
    payments = [
        PaymentRow(amount_cents=400, method="cash"),
        PaymentRow(amount_cents=800, method="cheque"),
        PaymentRow(amount_cents=150, method="card"),
        PaymentRow(amount_cents=50, method="paypal"),
    ]
    buckets = income_by_method(payments)

    assert buckets["cash"] == 400
    assert buckets["check"] == 800
    assert buckets["visa"] == 150
    assert buckets["bank_transfer"] == 0
    assert sum(buckets.values()) == sum(p.amount_cents for p in payments)


def test_classify_due():
    assert classify_due(date(2025, 1, 1), date(2024, 12, 1)) == ("upcoming", 31)
    assert classify_due(date(2024, 11, 1), date(2024, 12, 1)) == ("overdue", -30)
    assert classify_due(date(2024, 12, 1), date(2024, 12, 1)) == ("upcoming", 0)


def test_due_policy_upcoming_and_overdue():
    today = date(2024, 12, 1)
    upcoming = due_items([make_policy(end=date(2025, 1, 1))], [], today)
    overdue = due_items([make_policy(end=date(2024, 11, 1))], [], today)

    assert upcoming[0].status == "upcoming"
    assert upcoming[0].amount_cents == 800
    assert overdue[0].status == "overdue"


def test_due_items_skip_paid_policies_and_settled_cheques():
    items = due_items(
        [make_policy(paid=1200), make_policy(paid=0)],
        [make_cheque(status="cleared"), make_cheque(status="cancelled"), make_cheque(status="returned")],
        date(2024, 12, 1),
    )
    kinds = sorted(item.kind for item in items)
    assert kinds == ["cheque", "insurance"]


def test_due_items_filters():
    policies = [make_policy(), make_policy(customer_id=OMER, name="Omer Cohen")]
    cheques = [make_cheque(day=date(2024, 3, 1)), make_cheque(day=date(2024, 9, 1))]
    today = date(2024, 12, 1)

    assert {i.kind for i in due_items(policies, cheques, today, kind="cheques")} == {"cheque"}
    assert len(due_items(policies, cheques, today, customer_id=OMER)) == 1
    in_range = due_items(policies, cheques, today, kind="cheques", start=date(2024, 8, 1), end=date(2024, 12, 31))
    assert [i.due_date for i in in_range] == [date(2024, 9, 1)]


def test_due_items_sorting():
    policies = [make_policy(paid=1000, end=date(2025, 1, 1)), make_policy(paid=0, end=date(2024, 10, 1))]
    cheques = [make_cheque(amount=500, day=date(2024, 12, 15))]
    today = date(2024, 12, 1)

    by_date = due_items(policies, cheques, today)
    assert [i.due_date for i in by_date] == [date(2024, 10, 1), date(2024, 12, 15), date(2025, 1, 1)]

    by_amount = due_items(policies, cheques, today, sort_by="amount", sort_order="desc")
    assert [i.amount_cents for i in by_amount] == [1200, 500, 200]

    by_status = due_items(policies, cheques, today, sort_by="status")
    assert by_status[0].status == "overdue"
    assert {i.status for i in by_status[1:]} == {"upcoming"}


@pytest.mark.parametrize(
    "kwargs,field",
    [({"kind": "loans"}, "type"), ({"sort_by": "name"}, "sort_by"), ({"sort_order": "up"}, "sort_order")],
)
def test_due_items_rejects_bad_options(kwargs, field):
    with pytest.raises(ValidationError) as exc:
        due_items([], [], date(2024, 12, 1), **kwargs)
    assert exc.value.field == field


def test_summarize_due_items():
    items = due_items(
        [make_policy(paid=400, end=date(2024, 11, 1))],
        [make_cheque(status="pending", amount=300), make_cheque(status="returned", amount=200, day=date(2025, 2, 1))],
        date(2024, 12, 1),
    )
    summary = summarize_due_items(items)

    assert summary.total_items == 3
    assert summary.total_due_cents == 800 + 300 + 200
    assert summary.insurances.count == 1
    assert summary.insurances.overdue == 1
    assert summary.cheques.amount_cents == 500
    assert summary.cheques_pending == 1
    assert summary.cheques_returned == 1
    assert summary.by_status["overdue"].count == 2
    assert summary.by_status["upcoming"].amount_cents == 200


def test_paginate():
    page_items, total, pages = paginate(list(range(7)), page=2, limit=3)
    assert page_items == [3, 4, 5]
    assert (total, pages) == (7, 3)

    empty, total, pages = paginate([], page=1, limit=3)
    assert (empty, total, pages) == ([], 0, 0)


def test_paginate_rejects_page_zero():
    with pytest.raises(ValidationError):
        paginate([1], page=0, limit=10)


def test_policy_summary_counts():
    summary = policy_summary([make_policy(paid=1200), make_policy(paid=600), make_policy(paid=0)])
    assert summary["total_amount_cents"] == 3600
    assert summary["total_paid_cents"] == 1800
    assert summary["total_remaining_cents"] == 1800
    assert (summary["fully_paid"], summary["partially_paid"], summary["unpaid"]) == (1, 1, 1)


def test_payments_and_debts_by_agent():
    rows = [make_policy(paid=1000), make_policy(paid=200), make_policy(agent="Yossi", paid=0)]
    ledger = payments_and_debts_by_agent(rows, "Noa")
    assert ledger.total_paid_cents == 1200
    assert ledger.total_debt_cents == 200 + 1000
    assert len(ledger.policies) == 2


def test_net_profit():
    assert net_profit(1200, 300, 500) == 1000
