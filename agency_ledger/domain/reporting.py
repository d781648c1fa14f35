"""Read-side folds over customer / vehicle / policy / payment / cheque snapshots"""

import math
import uuid
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from agency_ledger.domain.exceptions import ValidationError
from agency_ledger.domain.models import (
    AgentLedger,
    ChequeRow,
    ChequeStatus,
    CustomerDebt,
    DueBucket,
    DueItem,
    DueItemsSummary,
    PaymentMethod,
    PaymentRow,
    PaymentsSummary,
    PolicyRow,
    PolicyStatus,
)

DUE_KINDS = ("all", "insurances", "cheques")
DUE_SORT_KEYS = ("due_date", "amount", "status")
DUE_CHEQUE_STATUSES = {ChequeStatus.PENDING.value, ChequeStatus.RETURNED.value}

_METHOD_SYNONYMS = {
    "card": "visa",
    "visa": "visa",
    "cash": "cash",
    "cheque": "check",
    "check": "check",
    "bank_transfer": "bank_transfer",
}

_STATUS_ORDER = {"overdue": 0, "upcoming": 1}


def debts_by_customer(
    policies: Iterable[PolicyRow],
    agent_name: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    active_only: bool = False,
) -> List[CustomerDebt]:
    """
    Outstanding debt per customer, largest first.

    `start` / `end` bound the policy start date. With `active_only` only
    active policies that still owe something are counted, so customers who
    owe nothing drop out of the report.
    """
    totals: Dict[uuid.UUID, int] = defaultdict(int)
    names: Dict[uuid.UUID, str] = {}
    for row in policies:
        if agent_name and row.agent_name != agent_name:
            continue
        if (start or end) and (row.insurance_start is None or not _in_range(row.insurance_start, start, end)):
            continue
        if active_only and (row.status != PolicyStatus.ACTIVE.value or row.remaining_debt_cents <= 0):
            continue
        totals[row.customer_id] += row.remaining_debt_cents
        names[row.customer_id] = row.customer_name

    debts = [
        CustomerDebt(customer_id=cid, customer_name=names[cid], total_debt_cents=total)
        for cid, total in totals.items()
    ]
    return sorted(debts, key=lambda d: d.total_debt_cents, reverse=True)


def normalize_income_method(method: Optional[str]) -> str:
    """card/visa -> visa, cash -> cash, cheque/check -> check"""
    key = (method or "").strip().lower()
    return _METHOD_SYNONYMS.get(key, key)


def income_by_method(payments: Iterable[PaymentRow]) -> Dict[str, int]:
    """
    Sum payment amounts per normalized method.

    Unknown methods keep their own bucket so that the buckets always add up
    to the total of all payments.
    """
    buckets: Dict[str, int] = {"visa": 0, "cash": 0, "check": 0, "bank_transfer": 0}
    for payment in payments:
        method = normalize_income_method(payment.method)
        buckets[method] = buckets.get(method, 0) + payment.amount_cents
    return buckets


def summarize_payments(totals: Dict[str, Tuple[int, int]]) -> PaymentsSummary:
    """
    Fold {method: (count, amount)} into a payments summary.

    Every known method gets a bucket, zero when unused; stored methods
    outside the enum keep their own bucket.
    """
    by_method = {method.value: 0 for method in PaymentMethod}
    method_counts = {method.value: 0 for method in PaymentMethod}
    for method, (count, amount) in totals.items():
        by_method[method] = by_method.get(method, 0) + amount
        method_counts[method] = method_counts.get(method, 0) + count
    return PaymentsSummary(
        total_payments=sum(method_counts.values()),
        total_amount_cents=sum(by_method.values()),
        by_method=by_method,
        method_counts=method_counts,
    )


def classify_due(due_date: date, today: date) -> Tuple[str, int]:
    """Return ("overdue" | "upcoming", days until due)"""
    status = "overdue" if due_date < today else "upcoming"
    return status, (due_date - today).days


def _in_range(day: date, start: Optional[date], end: Optional[date]) -> bool:
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


def due_items(
    policies: Iterable[PolicyRow],
    cheques: Iterable[ChequeRow],
    today: date,
    kind: str = "all",
    customer_id: Optional[uuid.UUID] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    sort_by: str = "due_date",
    sort_order: str = "asc",
) -> List[DueItem]:
    """
    Policies with remaining debt and cheques still awaiting collection.

    - insurance items fall due at the policy end date for the remaining debt
    - cheque items (pending or returned) fall due at the cheque date
    - anything due before today is overdue, the rest upcoming
    """
    if kind not in DUE_KINDS:
        raise ValidationError(f"type must be one of: {', '.join(DUE_KINDS)}", field="type")
    if sort_by not in DUE_SORT_KEYS:
        raise ValidationError(f"sort_by must be one of: {', '.join(DUE_SORT_KEYS)}", field="sort_by")
    if sort_order not in ("asc", "desc"):
        raise ValidationError("sort_order must be 'asc' or 'desc'", field="sort_order")

    items: List[DueItem] = []

    if kind in ("all", "insurances"):
        for row in policies:
            if row.remaining_debt_cents <= 0:
                continue
            if customer_id and row.customer_id != customer_id:
                continue
            if not _in_range(row.insurance_end, start, end):
                continue
            status, days = classify_due(row.insurance_end, today)
            items.append(
                DueItem(
                    kind="insurance",
                    item_id=row.policy_id,
                    due_date=row.insurance_end,
                    amount_cents=row.remaining_debt_cents,
                    total_amount_cents=row.insurance_amount_cents,
                    paid_amount_cents=row.paid_amount_cents,
                    status=status,
                    days_until_due=days,
                    customer_id=row.customer_id,
                    customer_name=row.customer_name,
                    description=f"Insurance debt for {row.insurance_type} - {row.plate_number}",
                    policy_id=row.policy_id,
                )
            )

    if kind in ("all", "cheques"):
        for cheque in cheques:
            if cheque.status not in DUE_CHEQUE_STATUSES:
                continue
            if customer_id and cheque.customer_id != customer_id:
                continue
            if not _in_range(cheque.cheque_date, start, end):
                continue
            status, days = classify_due(cheque.cheque_date, today)
            items.append(
                DueItem(
                    kind="cheque",
                    item_id=cheque.cheque_id,
                    due_date=cheque.cheque_date,
                    amount_cents=cheque.amount_cents,
                    total_amount_cents=cheque.amount_cents,
                    paid_amount_cents=0,
                    status=status,
                    days_until_due=days,
                    customer_id=cheque.customer_id,
                    customer_name=cheque.customer_name,
                    description=f"Cheque {cheque.cheque_number} - {cheque.status}",
                    policy_id=cheque.policy_id,
                    cheque_status=cheque.status,
                )
            )

    if sort_by == "due_date":
        key = lambda item: item.due_date
    elif sort_by == "amount":
        key = lambda item: item.amount_cents
    else:
        key = lambda item: _STATUS_ORDER.get(item.status, 2)

    return sorted(items, key=key, reverse=(sort_order == "desc"))


def summarize_due_items(items: List[DueItem]) -> DueItemsSummary:
    insurances = DueBucket()
    cheques = DueBucket()
    by_status = {"overdue": DueBucket(), "upcoming": DueBucket()}
    pending = returned = 0

    for item in items:
        bucket = insurances if item.kind == "insurance" else cheques
        bucket.count += 1
        bucket.amount_cents += item.amount_cents
        if item.status == "overdue":
            bucket.overdue += 1
        else:
            bucket.upcoming += 1

        status_bucket = by_status[item.status]
        status_bucket.count += 1
        status_bucket.amount_cents += item.amount_cents

        if item.cheque_status == ChequeStatus.PENDING.value:
            pending += 1
        elif item.cheque_status == ChequeStatus.RETURNED.value:
            returned += 1

    return DueItemsSummary(
        total_items=len(items),
        total_due_cents=sum(item.amount_cents for item in items),
        insurances=insurances,
        cheques=cheques,
        cheques_pending=pending,
        cheques_returned=returned,
        by_status=by_status,
    )


def paginate(items: List, page: int, limit: int) -> Tuple[List, int, int]:
    """Return (page items, total, total pages); pages start at 1"""
    if page < 1:
        raise ValidationError("page must be at least 1", field="page")
    if limit < 1:
        raise ValidationError("limit must be at least 1", field="limit")
    total = len(items)
    total_pages = math.ceil(total / limit)
    offset = (page - 1) * limit
    return items[offset:offset + limit], total, total_pages


def policy_summary(policies: Iterable) -> Dict[str, int]:
    """Counts and totals of a vehicle's policies (anything with ledger fields)"""
    rows = list(policies)
    return {
        "total_amount_cents": sum(p.insurance_amount_cents for p in rows),
        "total_paid_cents": sum(p.paid_amount_cents for p in rows),
        "total_remaining_cents": sum(p.remaining_debt_cents for p in rows),
        "fully_paid": sum(1 for p in rows if p.remaining_debt_cents == 0),
        "partially_paid": sum(1 for p in rows if p.remaining_debt_cents > 0 and p.paid_amount_cents > 0),
        "unpaid": sum(1 for p in rows if p.paid_amount_cents == 0),
    }


def payments_and_debts_by_agent(policies: Iterable[PolicyRow], agent_name: str) -> AgentLedger:
    sold = [row for row in policies if row.agent_name == agent_name]
    return AgentLedger(
        agent_name=agent_name,
        total_paid_cents=sum(row.paid_amount_cents for row in sold),
        total_debt_cents=sum(row.remaining_debt_cents for row in sold),
        policies=sold,
    )


def net_profit(policy_paid_cents: int, revenue_cents: int, expense_cents: int) -> int:
    """Dashboard profit: policy income plus other revenue minus expenses"""
    return policy_paid_cents + revenue_cents - expense_cents
