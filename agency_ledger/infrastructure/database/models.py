"""SQLAlchemy ORM models for the customer / vehicle / policy tree and finance records"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Customer(Base):
    """Insured person; owns vehicles and cheques"""

    __tablename__ = "customer"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    national_id = Column(Text, nullable=False, unique=True, index=True)
    phone_number = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    city = Column(Text, nullable=True)
    agent_name = Column(Text, nullable=True, index=True)
    birth_date = Column(Date, nullable=True)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    vehicles = relationship(
        "Vehicle",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="Vehicle.created_at",
    )
    cheques = relationship("Cheque", back_populates="customer", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Vehicle(Base):
    """Vehicle owned by exactly one customer; plate numbers may repeat"""

    __tablename__ = "vehicle"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customer.id", ondelete="CASCADE"), nullable=False, index=True)
    plate_number = Column(Text, nullable=False, default="unknown", index=True)
    model = Column(Text, nullable=True)
    vehicle_type = Column(Text, nullable=True)
    color = Column(Text, nullable=True)
    ownership = Column(Text, nullable=True)
    model_year = Column(Integer, nullable=True)
    license_expiry = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    customer = relationship("Customer", back_populates="vehicles")
    policies = relationship(
        "Policy",
        back_populates="vehicle",
        cascade="all, delete-orphan",
        order_by="Policy.created_at",
    )
    # No delete cascade: removing a vehicle nulls vehicle_id on its cheques
    cheques = relationship("Cheque", back_populates="vehicle")


class Policy(Base):
    """Insurance policy; the unit the ledger balances"""

    __tablename__ = "policy"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    vehicle_id = Column(Uuid, ForeignKey("vehicle.id", ondelete="CASCADE"), nullable=False, index=True)
    insurance_type = Column(Text, nullable=False)
    insurance_company = Column(Text, nullable=False)
    agent_name = Column(Text, nullable=True, index=True)
    agent_flow = Column(Text, nullable=False, default="none")
    agent_amount_cents = Column(BigInteger, nullable=False, default=0)
    is_under_24 = Column(Boolean, nullable=False, default=False)
    price_on_customer = Column(Boolean, nullable=False, default=True)
    insurance_start = Column(DateTime(timezone=True), nullable=False)
    insurance_end = Column(DateTime(timezone=True), nullable=False, index=True)
    insurance_amount_cents = Column(BigInteger, nullable=False)
    paid_amount_cents = Column(BigInteger, nullable=False, default=0)
    remaining_debt_cents = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, default="active")
    refund_amount_cents = Column(BigInteger, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # UPDATEs carry "WHERE version = <read version>"; a stale write raises StaleDataError
    __mapper_args__ = {"version_id_col": version}

    vehicle = relationship("Vehicle", back_populates="policies")
    payments = relationship(
        "Payment",
        back_populates="policy",
        cascade="all, delete-orphan",
        order_by="Payment.paid_at",
    )
    # No delete cascade: removing a policy detaches its cheques
    cheques = relationship("Cheque", back_populates="policy")


class Payment(Base):
    """Single payment towards a policy"""

    __tablename__ = "payment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    policy_id = Column(Uuid, ForeignKey("policy.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    method = Column(Text, nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    receipt_number = Column(Text, nullable=False, unique=True)
    notes = Column(Text, nullable=True)
    recorded_by = Column(Text, nullable=True)
    cheque_id = Column(Uuid, ForeignKey("cheque.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    policy = relationship("Policy", back_populates="payments")
    cheque = relationship("Cheque", back_populates="payment")


class Cheque(Base):
    """Deferred-payment instrument; optionally the backing record of a cheque payment"""

    __tablename__ = "cheque"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customer.id", ondelete="CASCADE"), nullable=False, index=True)
    policy_id = Column(Uuid, ForeignKey("policy.id", ondelete="SET NULL"), nullable=True, index=True)
    vehicle_id = Column(Uuid, ForeignKey("vehicle.id", ondelete="SET NULL"), nullable=True)
    cheque_number = Column(Text, nullable=False)
    cheque_date = Column(Date, nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    bank_name = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending", index=True)
    notes = Column(Text, nullable=True)
    returned_reason = Column(Text, nullable=True)
    returned_at = Column(DateTime(timezone=True), nullable=True)
    cleared_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    customer = relationship("Customer", back_populates="cheques")
    policy = relationship("Policy", back_populates="cheques")
    vehicle = relationship("Vehicle", back_populates="cheques")
    payment = relationship("Payment", back_populates="cheque", uselist=False)


class Revenue(Base):
    """Income record emitted for every policy payment"""

    __tablename__ = "revenue"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    received_from = Column(Text, nullable=True)
    method = Column(Text, nullable=False)
    received_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    description = Column(Text, nullable=True)
    category = Column(Text, nullable=True)
    payment_id = Column(Uuid, nullable=True, index=True)
    policy_id = Column(Uuid, nullable=True, index=True)
    customer_id = Column(Uuid, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Expense(Base):
    """Money paid out by the agency, including refunds of cancelled policies"""

    __tablename__ = "expense"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    paid_by = Column(Text, nullable=True)
    method = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="paid")
    description = Column(Text, nullable=True)
    receipt_number = Column(Text, nullable=False, unique=True)
    spent_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    policy_id = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class AgentTransaction(Base):
    """Commission owed to or by the agent who sold a policy"""

    __tablename__ = "agent_transaction"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    agent_name = Column(Text, nullable=False, index=True)
    transaction_type = Column(Text, nullable=False)  # AgentTransactionType
    amount_cents = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=True)
    insurance_company = Column(Text, nullable=True)
    policy_id = Column(Uuid, nullable=True)
    customer_id = Column(Uuid, nullable=True)
    vehicle_id = Column(Uuid, nullable=True)
    recorded_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class AuditLog(Base):
    """Who changed what; written best-effort after the change commits"""

    __tablename__ = "audit_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    actor = Column(Text, nullable=False)
    action = Column(Text, nullable=False)
    entity = Column(Text, nullable=False, index=True)
    entity_id = Column(Text, nullable=True)
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class PricingConfig(Base):
    """Pricing rules of one company for one pricing type"""

    __tablename__ = "pricing_config"
    __table_args__ = (UniqueConstraint("company", "pricing_type", name="uq_pricing_company_type"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company = Column(Text, nullable=False)
    pricing_type = Column(Text, nullable=False)
    rules = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
