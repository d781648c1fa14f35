"""Expenses and the profit figure of the finance page"""

from datetime import date
from typing import Any, Dict, List, Optional

from agency_ledger.config import settings
from agency_ledger.domain.exceptions import ValidationError
from agency_ledger.domain.ledger import generate_receipt_number
from agency_ledger.infrastructure.database.models import Expense
from agency_ledger.infrastructure.database.repositories import FinanceRepository, PolicyRepository
from agency_ledger.services.base import BaseService, snapshot
from agency_ledger.utils.date_utils import end_of_day, ensure_utc, start_of_day, utcnow

EXPENSE_STATUSES = ("paid", "pending")


class FinanceService(BaseService):
    def record_expense(
        self,
        title: str,
        amount_cents: int,
        paid_by: str,
        method: Optional[str] = None,
        status: str = "paid",
        description: Optional[str] = None,
        spent_at=None,
    ) -> Expense:
        with self._transaction():
            if not title or not title.strip():
                raise ValidationError("Title is required", field="title")
            if amount_cents is None or amount_cents <= 0:
                raise ValidationError("Amount must be greater than 0", field="amount_cents")
            if not paid_by or not paid_by.strip():
                raise ValidationError("paid_by is required", field="paid_by")
            if status not in EXPENSE_STATUSES:
                raise ValidationError(f"status must be one of: {', '.join(EXPENSE_STATUSES)}", field="status")

            now = utcnow()
            expense = FinanceRepository(self.db).add_expense(
                Expense(
                    title=title.strip(),
                    amount_cents=amount_cents,
                    paid_by=paid_by.strip(),
                    method=method,
                    status=status,
                    description=description,
                    receipt_number=generate_receipt_number(settings.expense_receipt_prefix, now),
                    spent_at=ensure_utc(spent_at) or now,
                )
            )
            self.db.flush()
            self.audit.record("CREATE", "expense", expense.id, new_value=snapshot(expense))

        return expense

    def list_expenses(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[str] = None,
        method: Optional[str] = None,
        paid_by: Optional[str] = None,
    ) -> List[Expense]:
        return FinanceRepository(self.db).list_expenses(
            start=start_of_day(start) if start else None,
            end=end_of_day(end) if end else None,
            status=status,
            method=method,
            paid_by=paid_by,
        )

    def net_profit(self, start: Optional[date] = None, end: Optional[date] = None) -> Dict[str, Any]:
        """Policy income minus expenses; the date range narrows the expenses only"""
        total_paid = PolicyRepository(self.db).total_paid()
        total_expenses = FinanceRepository(self.db).total_expenses(
            start=start_of_day(start) if start else None,
            end=end_of_day(end) if end else None,
        )
        return {
            "total_policy_paid_cents": total_paid,
            "total_expenses_cents": total_expenses,
            "net_profit_cents": total_paid - total_expenses,
        }
