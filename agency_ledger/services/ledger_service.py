"""Policy ledger use cases: policies, payments, policy cheques, cancellation"""

import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from agency_ledger.config import settings
from agency_ledger.domain.exceptions import ConflictError, InternalError, NotFoundError, ValidationError
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
from agency_ledger.domain.models import (
    AgentFlow,
    AgentTransactionType,
    ChequeStatus,
    NewPayment,
    PaymentMethod,
    PolicyStatus,
)
from agency_ledger.domain.reporting import policy_summary
from agency_ledger.infrastructure.database.models import (
    AgentTransaction,
    Cheque,
    Customer,
    Expense,
    Payment,
    Policy,
    Revenue,
    Vehicle,
)
from agency_ledger.infrastructure.database.repositories import FinanceRepository, PolicyRepository
from agency_ledger.infrastructure.observability.logging import log_ledger_event
from agency_ledger.infrastructure.observability.metrics import record_payment
from agency_ledger.services.base import BaseService, snapshot
from agency_ledger.utils.date_utils import ensure_utc, utcnow

POLICY_FILTERS = ("all", "unpaid", "paid")


def rebalance(policy: Policy) -> None:
    """Recompute paid / remaining from the payments and assert the invariant"""
    balance = recalculate(policy.insurance_amount_cents, (p.amount_cents for p in policy.payments))
    policy.paid_amount_cents = balance.paid_amount_cents
    policy.remaining_debt_cents = balance.remaining_debt_cents

    if not is_balanced(
        policy.insurance_amount_cents,
        policy.paid_amount_cents,
        policy.remaining_debt_cents,
        policy.status,
    ):
        raise InternalError(f"Ledger of policy {policy.id} is out of balance")


def reverse_payment(db: Session, policy: Policy, payment: Payment) -> None:
    """Take a payment off a policy together with the revenue it produced"""
    finance = FinanceRepository(db)
    revenue = finance.revenue_for_payment(payment.id)
    if revenue is not None:
        finance.delete_revenue(revenue)
    policy.payments.remove(payment)
    rebalance(policy)


def drop_revenue(db: Session, policies: Iterable[Policy]) -> None:
    """Delete the revenue of every payment on policies about to be deleted"""
    payment_ids = [payment.id for policy in policies for payment in policy.payments]
    FinanceRepository(db).delete_revenues_for_payments(payment_ids)


def _required_text(value: Optional[str], field: str, label: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{label} is required", field=field)
    return value.strip()


def _parse_agent_flow(agent_flow: Optional[str]) -> AgentFlow:
    try:
        return AgentFlow(agent_flow or AgentFlow.NONE.value)
    except ValueError:
        allowed = ", ".join(f.value for f in AgentFlow)
        raise ValidationError(f"agent_flow must be one of: {allowed}", field="agent_flow")


class LedgerService(BaseService):
    """Keeps every policy's paid amount and remaining debt in step with its payments"""

    def create_policy(
        self,
        customer_id: uuid.UUID,
        vehicle_id: uuid.UUID,
        insurance_type: str,
        insurance_company: str,
        insurance_amount_cents: int,
        insurance_start: Optional[datetime] = None,
        insurance_end: Optional[datetime] = None,
        agent_name: Optional[str] = None,
        agent_flow: str = "none",
        agent_amount_cents: int = 0,
        is_under_24: bool = False,
        price_on_customer: bool = True,
        payments: Sequence[NewPayment] = (),
    ) -> Policy:
        """
        Open a policy on a vehicle, optionally with initial payments.

        Coverage starts where the vehicle's latest policy ended (else now) and
        runs for the configured term unless explicit dates are given. Initial
        payments go through the same rules as AddPayment, in the same
        transaction.
        """
        with self._transaction():
            vehicle = self._get_vehicle(customer_id, vehicle_id)
            customer = vehicle.customer

            insurance_type = _required_text(insurance_type, "insurance_type", "Insurance type")
            insurance_company = _required_text(insurance_company, "insurance_company", "Insurance company")
            amount = validate_insurance_amount(insurance_amount_cents)
            flow = _parse_agent_flow(agent_flow)
            if agent_amount_cents is not None and agent_amount_cents < 0:
                raise ValidationError("Agent amount cannot be negative", field="agent_amount_cents")

            now = utcnow()
            previous = PolicyRepository(self.db).latest_for_vehicle(vehicle.id)
            start, end = default_policy_period(
                ensure_utc(previous.insurance_end) if previous else None,
                ensure_utc(insurance_start),
                ensure_utc(insurance_end),
                now,
                settings.policy_term_years,
            )

            policy = Policy(
                insurance_type=insurance_type,
                insurance_company=insurance_company,
                agent_name=agent_name,
                agent_flow=flow.value,
                agent_amount_cents=agent_amount_cents or 0,
                is_under_24=is_under_24,
                price_on_customer=price_on_customer,
                insurance_start=start,
                insurance_end=end,
                insurance_amount_cents=amount,
                paid_amount_cents=0,
                remaining_debt_cents=amount,
                status=PolicyStatus.ACTIVE.value,
            )
            vehicle.policies.append(policy)
            self.db.flush()

            for new_payment in payments:
                self._apply_payment(customer, vehicle, policy, new_payment)

            if flow != AgentFlow.NONE and agent_name and (agent_amount_cents or 0) > 0:
                FinanceRepository(self.db).add_agent_transaction(
                    AgentTransaction(
                        agent_name=agent_name,
                        transaction_type=(
                            AgentTransactionType.CREDIT.value
                            if flow == AgentFlow.FROM_AGENT
                            else AgentTransactionType.DEBIT.value
                        ),
                        amount_cents=agent_amount_cents,
                        description=f"{insurance_type} insurance for {vehicle.plate_number}",
                        insurance_company=insurance_company,
                        policy_id=policy.id,
                        customer_id=customer.id,
                        vehicle_id=vehicle.id,
                        recorded_by=self.actor,
                    )
                )

            rebalance(policy)
            self.audit.record("CREATE", "policy", policy.id, new_value=snapshot(policy))

        log_ledger_event(
            "policy_created",
            request_id=self.request_id,
            policy_id=policy.id,
            insurance_amount_cents=policy.insurance_amount_cents,
            paid_amount_cents=policy.paid_amount_cents,
            remaining_debt_cents=policy.remaining_debt_cents,
        )
        return policy

    def add_payment(
        self,
        customer_id: uuid.UUID,
        vehicle_id: uuid.UUID,
        policy_id: uuid.UUID,
        new_payment: NewPayment,
    ) -> Payment:
        with self._transaction():
            policy = self._get_policy(customer_id, vehicle_id, policy_id)
            vehicle = policy.vehicle
            payment = self._apply_payment(vehicle.customer, vehicle, policy, new_payment)
            self.audit.record("CREATE", "payment", payment.id, new_value=snapshot(payment))

        return payment

    def add_cheque_to_policy(
        self,
        policy_id: uuid.UUID,
        cheque_number: str,
        cheque_date,
        amount_cents: int,
        bank_name: Optional[str] = None,
        notes: Optional[str] = None,
        receipt_number: Optional[str] = None,
    ) -> Payment:
        """A cheque handed over for a policy is a cheque payment on that policy"""
        with self._transaction():
            policy = PolicyRepository(self.db).get(policy_id)
            if policy is None:
                raise NotFoundError("Policy")
            vehicle = policy.vehicle
            payment = self._apply_payment(
                vehicle.customer,
                vehicle,
                policy,
                NewPayment(
                    amount_cents=amount_cents,
                    method=PaymentMethod.CHEQUE.value,
                    cheque_number=cheque_number,
                    cheque_date=cheque_date,
                    bank_name=bank_name,
                    notes=notes,
                    receipt_number=receipt_number,
                ),
            )
            self.audit.record("CREATE", "cheque", payment.cheque.id, new_value=snapshot(payment.cheque))

        return payment

    def _apply_payment(self, customer: Customer, vehicle: Vehicle, policy: Policy, new_payment: NewPayment) -> Payment:
        method = validate_payment_input(
            new_payment.amount_cents,
            new_payment.method,
            new_payment.cheque_number,
            new_payment.cheque_date,
        )
        if policy.status == PolicyStatus.CANCELLED.value:
            raise ValidationError("Cannot add payments to a cancelled insurance", field="status")
        check_against_debt(policy.remaining_debt_cents, new_payment.amount_cents)

        now = utcnow()
        receipt_number = (new_payment.receipt_number or "").strip()
        if not receipt_number:
            receipt_number = generate_receipt_number(settings.receipt_prefix, now)
        if PolicyRepository(self.db).receipt_exists(receipt_number):
            raise ConflictError(f"Receipt number {receipt_number} already exists")
        paid_at = ensure_utc(new_payment.paid_at) or now

        cheque = None
        if method == PaymentMethod.CHEQUE:
            cheque = Cheque(
                customer=customer,
                vehicle=vehicle,
                policy=policy,
                cheque_number=new_payment.cheque_number.strip(),
                cheque_date=new_payment.cheque_date,
                amount_cents=new_payment.amount_cents,
                bank_name=new_payment.bank_name,
                status=ChequeStatus.PENDING.value,
                notes=new_payment.notes or f"Payment for {policy.insurance_type} insurance",
                created_by=self.actor,
            )
            self.db.add(cheque)

        payment = Payment(
            amount_cents=new_payment.amount_cents,
            method=method.value,
            paid_at=paid_at,
            receipt_number=receipt_number,
            notes=new_payment.notes,
            recorded_by=self.actor,
            cheque=cheque,
        )
        policy.payments.append(payment)
        rebalance(policy)
        self.db.flush()

        FinanceRepository(self.db).add_revenue(
            Revenue(
                title=f"Insurance Payment - {policy.insurance_type}",
                amount_cents=payment.amount_cents,
                received_from=customer.full_name,
                method=revenue_method(method),
                received_at=paid_at,
                description=new_payment.notes or f"{method.value} payment for {policy.insurance_company} insurance",
                category="Insurance Payment",
                payment_id=payment.id,
                policy_id=policy.id,
                customer_id=customer.id,
            )
        )

        record_payment(method.value, payment.amount_cents)
        log_ledger_event(
            "payment_added",
            request_id=self.request_id,
            policy_id=policy.id,
            payment_id=payment.id,
            method=method.value,
            amount_cents=payment.amount_cents,
            paid_amount_cents=policy.paid_amount_cents,
            remaining_debt_cents=policy.remaining_debt_cents,
        )
        return payment

    def remove_payment(
        self,
        customer_id: uuid.UUID,
        vehicle_id: uuid.UUID,
        policy_id: uuid.UUID,
        payment_id: uuid.UUID,
    ) -> Policy:
        """
        Undo a payment.

        A cheque behind the payment stays on file as a plain customer cheque,
        detached from the policy, so deleting it later leaves the ledger alone.
        """
        with self._transaction():
            policy = self._get_policy(customer_id, vehicle_id, policy_id)
            payment = PolicyRepository(self.db).get_payment(policy.id, payment_id)
            if payment is None:
                raise NotFoundError("Payment")
            old_value = snapshot(payment)

            cheque = payment.cheque
            if cheque is not None:
                cheque.policy = None
                cheque.vehicle = None
                payment.cheque = None

            reverse_payment(self.db, policy, payment)
            self.audit.record("DELETE", "payment", payment_id, old_value=old_value)

        log_ledger_event(
            "payment_removed",
            request_id=self.request_id,
            policy_id=policy.id,
            payment_id=payment_id,
            amount_cents=old_value["amount_cents"],
            paid_amount_cents=policy.paid_amount_cents,
            remaining_debt_cents=policy.remaining_debt_cents,
        )
        return policy

    def cancel_policy(
        self,
        customer_id: uuid.UUID,
        vehicle_id: uuid.UUID,
        policy_id: uuid.UUID,
        refund_amount_cents: int = 0,
        paid_by: Optional[str] = None,
        method: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Policy:
        """Cancel a policy; a positive refund is booked as an expense"""
        with self._transaction():
            policy = self._get_policy(customer_id, vehicle_id, policy_id)
            if refund_amount_cents is None or refund_amount_cents < 0:
                raise ValidationError("Refund amount cannot be negative", field="refund_amount_cents")
            if policy.status == PolicyStatus.CANCELLED.value:
                raise ConflictError("Insurance is already cancelled")

            old_value = snapshot(policy)
            now = utcnow()
            policy.status = PolicyStatus.CANCELLED.value
            policy.refund_amount_cents = refund_amount_cents
            policy.cancelled_at = now

            if refund_amount_cents > 0:
                FinanceRepository(self.db).add_expense(
                    Expense(
                        title=f"Refund for cancelled insurance ({policy.insurance_company})",
                        amount_cents=refund_amount_cents,
                        paid_by=paid_by or self.actor,
                        method=method,
                        status="paid",
                        description=description,
                        receipt_number=generate_receipt_number(settings.expense_receipt_prefix, now),
                        spent_at=now,
                        policy_id=policy.id,
                    )
                )

            self.db.flush()
            self.audit.record("UPDATE", "policy", policy.id, old_value=old_value, new_value=snapshot(policy))

        log_ledger_event(
            "policy_cancelled",
            request_id=self.request_id,
            policy_id=policy.id,
            refund_amount_cents=refund_amount_cents,
        )
        return policy

    def delete_policy(self, customer_id: uuid.UUID, vehicle_id: uuid.UUID, policy_id: uuid.UUID) -> None:
        """Delete a policy and its payments; its cheques stay with the customer"""
        with self._transaction():
            policy = self._get_policy(customer_id, vehicle_id, policy_id)
            old_value = snapshot(policy)

            for cheque in list(policy.cheques):
                cheque.policy = None
            drop_revenue(self.db, [policy])
            self.db.delete(policy)
            self.audit.record("DELETE", "policy", policy_id, old_value=old_value)

        log_ledger_event("policy_deleted", request_id=self.request_id, policy_id=policy_id)

    def get_policy(self, customer_id: uuid.UUID, vehicle_id: uuid.UUID, policy_id: uuid.UUID) -> Policy:
        return self._get_policy(customer_id, vehicle_id, policy_id)

    def list_policies(
        self,
        customer_id: uuid.UUID,
        vehicle_id: uuid.UUID,
        status_filter: str = "all",
    ) -> Tuple[List[Policy], Dict[str, int]]:
        """Policies of a vehicle (all / unpaid / paid) with totals over the whole vehicle"""
        if status_filter not in POLICY_FILTERS:
            raise ValidationError(f"filter must be one of: {', '.join(POLICY_FILTERS)}", field="filter")
        vehicle = self._get_vehicle(customer_id, vehicle_id)
        policies = PolicyRepository(self.db).list_for_vehicle(vehicle.id)
        summary = policy_summary(policies)

        if status_filter == "unpaid":
            policies = [p for p in policies if p.remaining_debt_cents > 0]
        elif status_filter == "paid":
            policies = [p for p in policies if p.remaining_debt_cents == 0]
        return policies, summary
