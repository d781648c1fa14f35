"""Data access layer for the customer tree, finance records and audit logs"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from agency_ledger.domain.models import ChequeRow, PaymentLine, PaymentRow, PolicyRow
from agency_ledger.infrastructure.database.models import (
    AgentTransaction,
    AuditLog,
    Cheque,
    Customer,
    Expense,
    Payment,
    Policy,
    PricingConfig,
    Revenue,
    Vehicle,
)
from agency_ledger.utils.date_utils import as_date


class CustomerRepository:
    """Repository for customers and their vehicles"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, customer: Customer) -> Customer:
        self.db.add(customer)
        self.db.flush()
        return customer

    def get(self, customer_id: uuid.UUID) -> Optional[Customer]:
        return self.db.get(Customer, customer_id)

    def get_by_national_id(self, national_id: str) -> Optional[Customer]:
        return (
            self.db.query(Customer)
            .filter(Customer.national_id == national_id)
            .first()
        )

    def search(self, text: Optional[str], offset: int, limit: int) -> Tuple[List[Customer], int]:
        """Page through customers, optionally matching name, national ID or phone"""
        query = self.db.query(Customer)
        if text:
            pattern = f"%{text.strip()}%"
            query = query.filter(
                or_(
                    Customer.first_name.ilike(pattern),
                    Customer.last_name.ilike(pattern),
                    Customer.national_id.ilike(pattern),
                    Customer.phone_number.ilike(pattern),
                )
            )
        total = query.count()
        customers = (
            query.order_by(Customer.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return customers, total

    def delete(self, customer: Customer) -> None:
        self.db.delete(customer)

    def count(self) -> int:
        return self.db.query(func.count(Customer.id)).scalar() or 0

    def get_vehicle(self, customer_id: uuid.UUID, vehicle_id: uuid.UUID) -> Optional[Vehicle]:
        return (
            self.db.query(Vehicle)
            .filter(Vehicle.id == vehicle_id, Vehicle.customer_id == customer_id)
            .first()
        )

    def count_vehicles(self) -> int:
        return self.db.query(func.count(Vehicle.id)).scalar() or 0


class PolicyRepository:
    """Repository for policies and their payments"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, policy_id: uuid.UUID) -> Optional[Policy]:
        return self.db.get(Policy, policy_id)

    def get_for_vehicle(self, vehicle_id: uuid.UUID, policy_id: uuid.UUID) -> Optional[Policy]:
        return (
            self.db.query(Policy)
            .filter(Policy.id == policy_id, Policy.vehicle_id == vehicle_id)
            .first()
        )

    def latest_for_vehicle(self, vehicle_id: uuid.UUID) -> Optional[Policy]:
        """Most recently created policy of a vehicle"""
        return (
            self.db.query(Policy)
            .filter(Policy.vehicle_id == vehicle_id)
            .order_by(Policy.created_at.desc())
            .first()
        )

    def list_for_vehicle(self, vehicle_id: uuid.UUID) -> List[Policy]:
        return (
            self.db.query(Policy)
            .filter(Policy.vehicle_id == vehicle_id)
            .order_by(Policy.created_at)
            .all()
        )

    def get_payment(self, policy_id: uuid.UUID, payment_id: uuid.UUID) -> Optional[Payment]:
        return (
            self.db.query(Payment)
            .filter(Payment.id == payment_id, Payment.policy_id == policy_id)
            .first()
        )

    def receipt_exists(self, receipt_number: str) -> bool:
        return (
            self.db.query(Payment.id)
            .filter(Payment.receipt_number == receipt_number)
            .first()
            is not None
        )

    def policy_rows(self, agent_name: Optional[str] = None) -> List[PolicyRow]:
        """Flattened snapshot of every policy with its vehicle and customer"""
        query = (
            self.db.query(Policy, Vehicle, Customer)
            .join(Vehicle, Policy.vehicle_id == Vehicle.id)
            .join(Customer, Vehicle.customer_id == Customer.id)
        )
        if agent_name:
            query = query.filter(Policy.agent_name == agent_name)

        return [
            PolicyRow(
                policy_id=policy.id,
                customer_id=customer.id,
                customer_name=customer.full_name,
                vehicle_id=vehicle.id,
                plate_number=vehicle.plate_number,
                insurance_type=policy.insurance_type,
                insurance_company=policy.insurance_company,
                agent_name=policy.agent_name,
                insurance_amount_cents=policy.insurance_amount_cents,
                paid_amount_cents=policy.paid_amount_cents,
                remaining_debt_cents=policy.remaining_debt_cents,
                insurance_end=as_date(policy.insurance_end),
                status=policy.status,
                insurance_start=as_date(policy.insurance_start),
            )
            for policy, vehicle, customer in query.all()
        ]

    def payment_rows(self) -> List[PaymentRow]:
        rows = self.db.query(Payment.amount_cents, Payment.method).all()
        return [PaymentRow(amount_cents=amount, method=method) for amount, method in rows]

    def _payments_filtered(self, customer_id, method, start, end):
        query = (
            self.db.query(Payment, Policy, Vehicle, Customer, Cheque)
            .join(Policy, Payment.policy_id == Policy.id)
            .join(Vehicle, Policy.vehicle_id == Vehicle.id)
            .join(Customer, Vehicle.customer_id == Customer.id)
            .outerjoin(Cheque, Payment.cheque_id == Cheque.id)
        )
        if customer_id:
            query = query.filter(Customer.id == customer_id)
        if method:
            query = query.filter(Payment.method == method)
        if start:
            query = query.filter(Payment.paid_at >= start)
        if end:
            query = query.filter(Payment.paid_at <= end)
        return query

    def payment_search(
        self,
        customer_id: Optional[uuid.UUID] = None,
        method: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        sort_by: str = "paid_at",
        descending: bool = True,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[PaymentLine], int]:
        """Page through payments across all policies, newest first by default"""
        query = self._payments_filtered(customer_id, method, start, end)
        total = query.count()

        column = Payment.amount_cents if sort_by == "amount" else Payment.paid_at
        rows = (
            query.order_by(column.desc() if descending else column.asc(), Payment.receipt_number)
            .offset(offset)
            .limit(limit)
            .all()
        )
        lines = [
            PaymentLine(
                payment_id=payment.id,
                amount_cents=payment.amount_cents,
                method=payment.method,
                paid_at=payment.paid_at,
                receipt_number=payment.receipt_number,
                customer_id=customer.id,
                customer_name=customer.full_name,
                vehicle_id=vehicle.id,
                plate_number=vehicle.plate_number,
                policy_id=policy.id,
                insurance_type=policy.insurance_type,
                insurance_company=policy.insurance_company,
                notes=payment.notes,
                recorded_by=payment.recorded_by,
                cheque_id=cheque.id if cheque else None,
                cheque_number=cheque.cheque_number if cheque else None,
                cheque_date=cheque.cheque_date if cheque else None,
            )
            for payment, policy, vehicle, customer, cheque in rows
        ]
        return lines, total

    def payment_totals_by_method(
        self,
        customer_id: Optional[uuid.UUID] = None,
        method: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, Tuple[int, int]]:
        """{method: (count, amount)} over the filtered payments"""
        query = (
            self._payments_filtered(customer_id, method, start, end)
            .with_entities(Payment.method, func.count(Payment.id), func.coalesce(func.sum(Payment.amount_cents), 0))
            .group_by(Payment.method)
        )
        return {row_method: (count, amount) for row_method, count, amount in query.all()}

    def total_paid(self) -> int:
        return self.db.query(func.coalesce(func.sum(Policy.paid_amount_cents), 0)).scalar() or 0

    def count_by_period(self, now: datetime) -> Tuple[int, int]:
        """(active, expired) policy counts; cancelled policies count as neither"""
        base = self.db.query(func.count(Policy.id)).filter(Policy.status != "cancelled")
        active = base.filter(Policy.insurance_end >= now).scalar() or 0
        expired = base.filter(Policy.insurance_end < now).scalar() or 0
        return active, expired


class ChequeRepository:
    """Repository for cheques"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, cheque_id: uuid.UUID) -> Optional[Cheque]:
        return self.db.get(Cheque, cheque_id)

    def _filtered(self, status, customer_id, start, end):
        query = self.db.query(Cheque)
        if status and status != "all":
            query = query.filter(Cheque.status == status)
        if customer_id:
            query = query.filter(Cheque.customer_id == customer_id)
        if start:
            query = query.filter(Cheque.cheque_date >= start)
        if end:
            query = query.filter(Cheque.cheque_date <= end)
        return query

    def search(
        self,
        status: Optional[str] = None,
        customer_id: Optional[uuid.UUID] = None,
        start=None,
        end=None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Cheque], int]:
        query = self._filtered(status, customer_id, start, end)
        total = query.count()
        cheques = (
            query.order_by(Cheque.cheque_date.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return cheques, total

    def totals_by_status(
        self,
        status: Optional[str] = None,
        customer_id: Optional[uuid.UUID] = None,
        start=None,
        end=None,
    ) -> Dict[str, Tuple[int, int]]:
        """{status: (count, amount)} over the filtered cheques"""
        query = (
            self._filtered(status, customer_id, start, end)
            .with_entities(Cheque.status, func.count(Cheque.id), func.coalesce(func.sum(Cheque.amount_cents), 0))
            .group_by(Cheque.status)
        )
        return {row_status: (count, amount) for row_status, count, amount in query.all()}

    def cheque_rows(self) -> List[ChequeRow]:
        query = self.db.query(Cheque, Customer).join(Customer, Cheque.customer_id == Customer.id)
        return [
            ChequeRow(
                cheque_id=cheque.id,
                customer_id=customer.id,
                customer_name=customer.full_name,
                cheque_number=cheque.cheque_number,
                cheque_date=cheque.cheque_date,
                amount_cents=cheque.amount_cents,
                status=cheque.status,
                policy_id=cheque.policy_id,
            )
            for cheque, customer in query.all()
        ]


class FinanceRepository:
    """Repository for revenue, expense and agent commission records"""

    def __init__(self, db: Session):
        self.db = db

    def add_revenue(self, revenue: Revenue) -> Revenue:
        self.db.add(revenue)
        return revenue

    def add_expense(self, expense: Expense) -> Expense:
        self.db.add(expense)
        return expense

    def add_agent_transaction(self, transaction: AgentTransaction) -> AgentTransaction:
        self.db.add(transaction)
        return transaction

    def list_expenses(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
        method: Optional[str] = None,
        paid_by: Optional[str] = None,
    ) -> List[Expense]:
        query = self.db.query(Expense)
        if start:
            query = query.filter(Expense.spent_at >= start)
        if end:
            query = query.filter(Expense.spent_at <= end)
        if status and status != "all":
            query = query.filter(Expense.status == status)
        if method:
            query = query.filter(Expense.method == method)
        if paid_by:
            query = query.filter(Expense.paid_by == paid_by)
        return query.order_by(Expense.spent_at.desc()).all()

    def total_revenue(self) -> int:
        return self.db.query(func.coalesce(func.sum(Revenue.amount_cents), 0)).scalar() or 0

    def total_expenses(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> int:
        query = self.db.query(func.coalesce(func.sum(Expense.amount_cents), 0))
        if start:
            query = query.filter(Expense.spent_at >= start)
        if end:
            query = query.filter(Expense.spent_at <= end)
        return query.scalar() or 0

    def revenue_for_payment(self, payment_id: uuid.UUID) -> Optional[Revenue]:
        return self.db.query(Revenue).filter(Revenue.payment_id == payment_id).first()

    def delete_revenue(self, revenue: Revenue) -> None:
        self.db.delete(revenue)

    def delete_revenues_for_payments(self, payment_ids: List[uuid.UUID]) -> int:
        """Bulk delete the revenue records emitted for the given payments"""
        if not payment_ids:
            return 0
        return (
            self.db.query(Revenue)
            .filter(Revenue.payment_id.in_(payment_ids))
            .delete(synchronize_session="fetch")
        )

    def agent_transactions_for_agent(self, agent_name: str) -> List[AgentTransaction]:
        return (
            self.db.query(AgentTransaction)
            .filter(AgentTransaction.agent_name == agent_name)
            .order_by(AgentTransaction.created_at)
            .all()
        )


class AuditRepository:
    """Persists audit log records"""

    def __init__(self, db: Session):
        self.db = db

    def add_log(
        self,
        actor: str,
        action: str,
        entity: str,
        entity_id: Optional[str],
        old_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        log = AuditLog(
            actor=actor,
            action=action,
            entity=entity,
            entity_id=entity_id,
            old_value=old_value,
            new_value=new_value,
        )
        self.db.add(log)
        return log


class PricingRepository:
    """Repository for company pricing configurations"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, company: str, pricing_type: str) -> Optional[PricingConfig]:
        return (
            self.db.query(PricingConfig)
            .filter(PricingConfig.company == company, PricingConfig.pricing_type == pricing_type)
            .first()
        )

    def list_for_company(self, company: str) -> List[PricingConfig]:
        return (
            self.db.query(PricingConfig)
            .filter(PricingConfig.company == company)
            .order_by(PricingConfig.pricing_type)
            .all()
        )

    def add(self, config: PricingConfig) -> PricingConfig:
        self.db.add(config)
        return config
