"""Cheque use cases: free-standing cheques, status changes, deletion and listings"""

import uuid
from datetime import date
from typing import Any, Dict, Optional, Tuple

from agency_ledger.domain.cheques import apply_status_change, parse_cheque_status
from agency_ledger.domain.exceptions import NotFoundError, ValidationError
from agency_ledger.domain.models import ChequeStatus
from agency_ledger.infrastructure.database.models import Cheque
from agency_ledger.infrastructure.database.repositories import ChequeRepository
from agency_ledger.infrastructure.observability.logging import log_ledger_event
from agency_ledger.infrastructure.observability.metrics import record_cheque_transition
from agency_ledger.services.base import BaseService, snapshot
from agency_ledger.services.ledger_service import reverse_payment
from agency_ledger.utils.date_utils import utcnow


def _status_breakdown(totals: Dict[str, Tuple[int, int]]) -> Dict[str, Dict[str, int]]:
    return {
        status.value: {
            "count": totals.get(status.value, (0, 0))[0],
            "amount_cents": totals.get(status.value, (0, 0))[1],
        }
        for status in ChequeStatus
    }


class ChequeService(BaseService):
    """Cheques a customer handed over, with or without a policy behind them"""

    def create_customer_cheque(
        self,
        customer_id: uuid.UUID,
        cheque_number: str,
        cheque_date: date,
        amount_cents: int,
        bank_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Cheque:
        """Record a cheque that is not tied to any policy; no ledger effect"""
        with self._transaction():
            customer = self._get_customer(customer_id)
            if not cheque_number or not cheque_number.strip():
                raise ValidationError("Cheque number is required", field="cheque_number")
            if cheque_date is None:
                raise ValidationError("Cheque date is required", field="cheque_date")
            if amount_cents is None or amount_cents <= 0:
                raise ValidationError("Amount must be greater than 0", field="amount_cents")

            cheque = Cheque(
                cheque_number=cheque_number.strip(),
                cheque_date=cheque_date,
                amount_cents=amount_cents,
                bank_name=bank_name,
                status=ChequeStatus.PENDING.value,
                notes=notes,
                created_by=self.actor,
            )
            customer.cheques.append(cheque)
            self.db.flush()
            self.audit.record("CREATE", "cheque", cheque.id, new_value=snapshot(cheque))

        return cheque

    def get_cheque(self, cheque_id: uuid.UUID) -> Cheque:
        cheque = ChequeRepository(self.db).get(cheque_id)
        if cheque is None:
            raise NotFoundError("Cheque")
        return cheque

    def update_status(
        self,
        cheque_id: uuid.UUID,
        status: str,
        notes: Optional[str] = None,
        returned_reason: Optional[str] = None,
    ) -> Cheque:
        """Move a cheque through its lifecycle; the policy ledger is left as is"""
        with self._transaction():
            cheque = self.get_cheque(cheque_id)
            old_value = snapshot(cheque)
            old_status = apply_status_change(cheque, status, utcnow(), notes=notes, returned_reason=returned_reason)
            self.db.flush()
            self.audit.record("UPDATE", "cheque", cheque.id, old_value=old_value, new_value=snapshot(cheque))

        record_cheque_transition(old_status, cheque.status)
        log_ledger_event(
            "cheque_status_changed",
            request_id=self.request_id,
            cheque_id=cheque_id,
            from_status=old_status,
            to_status=cheque.status,
        )
        return cheque

    def delete_cheque(self, cheque_id: uuid.UUID) -> None:
        """
        Delete a cheque.

        A cheque still linked to a policy takes its backing payment with it,
        so the policy's paid amount drops by exactly the cheque amount.
        """
        with self._transaction():
            cheque = self.get_cheque(cheque_id)
            old_value = snapshot(cheque)
            policy = cheque.policy
            payment = cheque.payment

            if policy is not None and payment is not None and payment.policy_id == policy.id:
                payment.cheque = None
                reverse_payment(self.db, policy, payment)
                log_ledger_event(
                    "payment_removed",
                    request_id=self.request_id,
                    policy_id=policy.id,
                    payment_id=payment.id,
                    amount_cents=payment.amount_cents,
                    paid_amount_cents=policy.paid_amount_cents,
                    remaining_debt_cents=policy.remaining_debt_cents,
                )

            self.db.delete(cheque)
            self.audit.record("DELETE", "cheque", cheque_id, old_value=old_value)

    def list_cheques(
        self,
        status: Optional[str] = None,
        customer_id: Optional[uuid.UUID] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Dict[str, Any]:
        """Page of cheques plus totals over everything the filters match"""
        if status and status != "all":
            parse_cheque_status(status)
        if page < 1:
            raise ValidationError("page must be at least 1", field="page")
        if limit < 1:
            raise ValidationError("limit must be at least 1", field="limit")

        repo = ChequeRepository(self.db)
        cheques, total = repo.search(status, customer_id, start, end, offset=(page - 1) * limit, limit=limit)
        totals = repo.totals_by_status(status, customer_id, start, end)
        return {
            "cheques": cheques,
            "total": total,
            "page": page,
            "limit": limit,
            "summary": {
                "total_cheques": sum(count for count, _ in totals.values()),
                "total_amount_cents": sum(amount for _, amount in totals.values()),
                "by_status": _status_breakdown(totals),
            },
        }

    def statistics(self) -> Dict[str, Any]:
        totals = ChequeRepository(self.db).totals_by_status()
        return {
            "total_cheques": sum(count for count, _ in totals.values()),
            "total_amount_cents": sum(amount for _, amount in totals.values()),
            "by_status": _status_breakdown(totals),
        }

