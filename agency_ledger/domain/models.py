"""Domain models - enums and plain dataclasses shared by the ledger and reports"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    CHEQUE = "cheque"
    BANK_TRANSFER = "bank_transfer"


class ChequeStatus(str, Enum):
    PENDING = "pending"
    CLEARED = "cleared"
    RETURNED = "returned"
    CANCELLED = "cancelled"


TERMINAL_CHEQUE_STATUSES = {ChequeStatus.CLEARED, ChequeStatus.RETURNED, ChequeStatus.CANCELLED}


class PolicyStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class AgentFlow(str, Enum):
    NONE = "none"
    FROM_AGENT = "from_agent"  # agency owes the agent a commission
    TO_AGENT = "to_agent"  # agent collected and owes the agency


class AgentTransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


@dataclass
class LedgerBalance:
    """Derived ledger fields of a policy"""

    paid_amount_cents: int
    remaining_debt_cents: int


@dataclass
class PolicyRow:
    """Flattened policy snapshot used by report folds"""

    policy_id: uuid.UUID
    customer_id: uuid.UUID
    customer_name: str
    vehicle_id: uuid.UUID
    plate_number: str
    insurance_type: str
    insurance_company: str
    agent_name: Optional[str]
    insurance_amount_cents: int
    paid_amount_cents: int
    remaining_debt_cents: int
    insurance_end: date
    status: str
    insurance_start: Optional[date] = None


@dataclass
class PaymentRow:
    """Payment amount and method, the only fields income reports need"""

    amount_cents: int
    method: str


@dataclass
class ChequeRow:
    """Flattened cheque snapshot used by report folds"""

    cheque_id: uuid.UUID
    customer_id: uuid.UUID
    customer_name: str
    cheque_number: str
    cheque_date: date
    amount_cents: int
    status: str
    policy_id: Optional[uuid.UUID] = None


@dataclass
class CustomerDebt:
    customer_id: uuid.UUID
    customer_name: str
    total_debt_cents: int


@dataclass
class DueItem:
    """A policy or cheque awaiting collection"""

    kind: str  # "insurance" or "cheque"
    item_id: uuid.UUID
    due_date: date
    amount_cents: int
    total_amount_cents: int
    paid_amount_cents: int
    status: str  # "overdue" or "upcoming"
    days_until_due: int
    customer_id: uuid.UUID
    customer_name: str
    description: str
    policy_id: Optional[uuid.UUID] = None
    cheque_status: Optional[str] = None


@dataclass
class DueBucket:
    count: int = 0
    amount_cents: int = 0
    overdue: int = 0
    upcoming: int = 0


@dataclass
class DueItemsSummary:
    total_items: int
    total_due_cents: int
    insurances: DueBucket
    cheques: DueBucket
    cheques_pending: int
    cheques_returned: int
    by_status: Dict[str, DueBucket] = field(default_factory=dict)


@dataclass
class AgentLedger:
    """Payments and debts of the policies one agent sold"""

    agent_name: str
    total_paid_cents: int
    total_debt_cents: int
    policies: List[PolicyRow]


@dataclass
class NewPayment:
    """Payment request as received from a caller, before validation"""

    amount_cents: int
    method: str
    paid_at: Optional[datetime] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    cheque_number: Optional[str] = None
    cheque_date: Optional[date] = None
    bank_name: Optional[str] = None


@dataclass
class PaymentLine:
    """One payment with the customer, vehicle and policy it was made for"""

    payment_id: uuid.UUID
    amount_cents: int
    method: str
    paid_at: datetime
    receipt_number: str
    customer_id: uuid.UUID
    customer_name: str
    vehicle_id: uuid.UUID
    plate_number: str
    policy_id: uuid.UUID
    insurance_type: str
    insurance_company: str
    notes: Optional[str] = None
    recorded_by: Optional[str] = None
    cheque_id: Optional[uuid.UUID] = None
    cheque_number: Optional[str] = None
    cheque_date: Optional[date] = None


@dataclass
class PaymentsSummary:
    total_payments: int
    total_amount_cents: int
    by_method: Dict[str, int]
    method_counts: Dict[str, int]
