"""Read-only reports over the whole customer tree"""

import math
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from agency_ledger.config import settings
from agency_ledger.domain import reporting
from agency_ledger.domain.exceptions import ValidationError
from agency_ledger.domain.ledger import parse_payment_method
from agency_ledger.domain.models import AgentLedger, AgentTransactionType, ChequeStatus, CustomerDebt
from agency_ledger.infrastructure.database.repositories import (
    ChequeRepository,
    CustomerRepository,
    FinanceRepository,
    PolicyRepository,
)
from agency_ledger.services.base import BaseService
from agency_ledger.utils.date_utils import end_of_day, start_of_day, utcnow

PAYMENT_SORT_KEYS = ("paid_at", "amount")


class ReportService(BaseService):
    """
    Point-in-time folds over policies, payments, cheques and finance records.

    Each report reads a fresh snapshot and holds no locks; figures computed
    by two separate calls may reflect different moments.
    """

    def debts_by_customer(
        self,
        agent_name: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        active_only: bool = False,
    ) -> List[CustomerDebt]:
        if start and end and start > end:
            raise ValidationError("start_date must not be after end_date", field="start_date")
        return reporting.debts_by_customer(
            PolicyRepository(self.db).policy_rows(agent_name=agent_name),
            agent_name=agent_name,
            start=start,
            end=end,
            active_only=active_only,
        )

    def list_payments(
        self,
        customer_id: Optional[uuid.UUID] = None,
        method: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        sort_by: str = "paid_at",
        sort_order: str = "desc",
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Payments across all policies; the summary covers every match, not only the page"""
        limit = limit or settings.payments_page_size
        if page < 1:
            raise ValidationError("page must be at least 1", field="page")
        if limit < 1 or limit > settings.max_page_size:
            raise ValidationError(f"limit must be between 1 and {settings.max_page_size}", field="limit")
        if sort_by not in PAYMENT_SORT_KEYS:
            raise ValidationError(f"sort_by must be one of: {', '.join(PAYMENT_SORT_KEYS)}", field="sort_by")
        if sort_order not in ("asc", "desc"):
            raise ValidationError("sort_order must be asc or desc", field="sort_order")
        if method:
            method = parse_payment_method(method).value

        filters = dict(
            customer_id=customer_id,
            method=method,
            start=start_of_day(start) if start else None,
            end=end_of_day(end) if end else None,
        )
        repo = PolicyRepository(self.db)
        lines, total = repo.payment_search(
            sort_by=sort_by,
            descending=sort_order == "desc",
            offset=(page - 1) * limit,
            limit=limit,
            **filters,
        )
        return {
            "payments": lines,
            "summary": reporting.summarize_payments(repo.payment_totals_by_method(**filters)),
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit),
        }

    def income_by_method(self) -> Dict[str, int]:
        return reporting.income_by_method(PolicyRepository(self.db).payment_rows())

    def due_items(
        self,
        kind: str = "all",
        customer_id: Optional[uuid.UUID] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        sort_by: str = "due_date",
        sort_order: str = "asc",
        page: int = 1,
        limit: Optional[int] = None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Filtered, sorted and paged due items; the summary covers every match"""
        limit = limit or settings.due_items_page_size
        if limit > settings.max_page_size:
            raise ValidationError(f"limit must not exceed {settings.max_page_size}", field="limit")

        items = reporting.due_items(
            PolicyRepository(self.db).policy_rows(),
            ChequeRepository(self.db).cheque_rows(),
            today or utcnow().date(),
            kind=kind,
            customer_id=customer_id,
            start=start,
            end=end,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        page_items, total, total_pages = reporting.paginate(items, page, limit)
        return {
            "items": page_items,
            "summary": reporting.summarize_due_items(items),
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
        }

    def dashboard(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        policies = PolicyRepository(self.db)
        finance = FinanceRepository(self.db)
        customers = CustomerRepository(self.db)
        cheque_totals = ChequeRepository(self.db).totals_by_status()

        total_paid = policies.total_paid()
        total_revenue = finance.total_revenue()
        total_expenses = finance.total_expenses()
        active, expired = policies.count_by_period(now)

        return {
            "total_policy_paid_cents": total_paid,
            "total_revenue_cents": total_revenue,
            "total_expenses_cents": total_expenses,
            "net_profit_cents": reporting.net_profit(total_paid, total_revenue, total_expenses),
            "customers": customers.count(),
            "vehicles": customers.count_vehicles(),
            "active_policies": active,
            "expired_policies": expired,
            "cheques": sum(count for count, _ in cheque_totals.values()),
            "cheques_amount_cents": sum(amount for _, amount in cheque_totals.values()),
            "returned_cheques_amount_cents": cheque_totals.get(ChequeStatus.RETURNED.value, (0, 0))[1],
            "income_by_method": reporting.income_by_method(policies.payment_rows()),
        }

    def agent_report(self, agent_name: str) -> Dict[str, Any]:
        """What an agent's customers paid and still owe, and the agent's commission balance"""
        if not agent_name or not agent_name.strip():
            raise ValidationError("agent_name is required", field="agent_name")
        agent_name = agent_name.strip()

        ledger: AgentLedger = reporting.payments_and_debts_by_agent(
            PolicyRepository(self.db).policy_rows(agent_name=agent_name), agent_name
        )
        transactions = FinanceRepository(self.db).agent_transactions_for_agent(agent_name)
        credits = sum(
            t.amount_cents for t in transactions if t.transaction_type == AgentTransactionType.CREDIT.value
        )
        debits = sum(
            t.amount_cents for t in transactions if t.transaction_type == AgentTransactionType.DEBIT.value
        )
        return {
            "ledger": ledger,
            "commission_credit_cents": credits,
            "commission_debit_cents": debits,
            "commission_balance_cents": credits - debits,
        }
