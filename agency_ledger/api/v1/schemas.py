"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Customers and vehicles

class VehicleCreate(BaseModel):
    """Request body for POST /v1/customers/{customer_id}/vehicles"""

    plate_number: Optional[str] = None
    model: Optional[str] = None
    vehicle_type: Optional[str] = None
    color: Optional[str] = None
    ownership: Optional[str] = None
    model_year: Optional[int] = None
    license_expiry: Optional[date] = None


class VehicleUpdate(VehicleCreate):
    pass


class VehicleResponse(ORMModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    plate_number: str
    model: Optional[str] = None
    vehicle_type: Optional[str] = None
    color: Optional[str] = None
    ownership: Optional[str] = None
    model_year: Optional[int] = None
    license_expiry: Optional[date] = None
    created_at: datetime


class CustomerCreate(BaseModel):
    """Request body for POST /v1/customers"""

    first_name: str
    last_name: str
    national_id: str
    phone_number: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    agent_name: Optional[str] = None
    birth_date: Optional[date] = None
    joined_at: Optional[datetime] = None
    notes: Optional[str] = None
    vehicles: List[VehicleCreate] = Field(default_factory=list)


class CustomerUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    national_id: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    agent_name: Optional[str] = None
    birth_date: Optional[date] = None
    joined_at: Optional[datetime] = None
    notes: Optional[str] = None


class CustomerResponse(ORMModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    national_id: str
    phone_number: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    agent_name: Optional[str] = None
    birth_date: Optional[date] = None
    joined_at: datetime
    notes: Optional[str] = None
    created_at: datetime
    vehicles: List[VehicleResponse] = Field(default_factory=list)


class CustomerListResponse(BaseModel):
    customers: List[CustomerResponse]
    total: int
    page: int
    limit: int


# Policies and payments

class PaymentCreate(BaseModel):
    """Request body for POST .../policies/{policy_id}/payments"""

    amount_cents: int = Field(..., description="Payment amount in cents")
    method: str = Field(..., description="cash | card | cheque | bank_transfer")
    paid_at: Optional[datetime] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    cheque_number: Optional[str] = None
    cheque_date: Optional[date] = None
    bank_name: Optional[str] = None


class PaymentResponse(ORMModel):
    id: uuid.UUID
    policy_id: uuid.UUID
    amount_cents: int
    method: str
    paid_at: datetime
    receipt_number: str
    notes: Optional[str] = None
    recorded_by: Optional[str] = None
    cheque_id: Optional[uuid.UUID] = None


class PolicyCreate(BaseModel):
    """Request body for POST .../vehicles/{vehicle_id}/policies"""

    insurance_type: str
    insurance_company: str
    insurance_amount_cents: int = Field(..., description="Policy price in cents")
    insurance_start: Optional[datetime] = None
    insurance_end: Optional[datetime] = None
    agent_name: Optional[str] = None
    agent_flow: str = "none"
    agent_amount_cents: int = 0
    is_under_24: bool = False
    price_on_customer: bool = True
    payments: List[PaymentCreate] = Field(default_factory=list)


class PolicyResponse(ORMModel):
    id: uuid.UUID
    vehicle_id: uuid.UUID
    insurance_type: str
    insurance_company: str
    agent_name: Optional[str] = None
    agent_flow: str
    agent_amount_cents: int
    is_under_24: bool
    price_on_customer: bool
    insurance_start: datetime
    insurance_end: datetime
    insurance_amount_cents: int
    paid_amount_cents: int
    remaining_debt_cents: int
    status: str
    refund_amount_cents: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    version: int
    created_at: datetime
    payments: List[PaymentResponse] = Field(default_factory=list)


class PolicySummary(BaseModel):
    total_amount_cents: int
    total_paid_cents: int
    total_remaining_cents: int
    fully_paid: int
    partially_paid: int
    unpaid: int


class PolicyListResponse(BaseModel):
    policies: List[PolicyResponse]
    summary: PolicySummary


class PolicyCancelRequest(BaseModel):
    refund_amount_cents: int = 0
    paid_by: Optional[str] = None
    method: Optional[str] = None
    description: Optional[str] = None


class PaymentResult(BaseModel):
    """Response for a recorded payment: the payment and the updated policy"""

    payment: PaymentResponse
    policy: PolicyResponse


# Cheques

class ChequeCreate(BaseModel):
    cheque_number: str
    cheque_date: date
    amount_cents: int
    bank_name: Optional[str] = None
    notes: Optional[str] = None


class PolicyChequeCreate(ChequeCreate):
    """Request body for POST /v1/policies/{policy_id}/cheques"""

    receipt_number: Optional[str] = None


class ChequeStatusUpdate(BaseModel):
    status: str = Field(..., description="pending | cleared | returned | cancelled")
    notes: Optional[str] = None
    returned_reason: Optional[str] = None


class ChequeResponse(ORMModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    policy_id: Optional[uuid.UUID] = None
    vehicle_id: Optional[uuid.UUID] = None
    cheque_number: str
    cheque_date: date
    amount_cents: int
    bank_name: Optional[str] = None
    status: str
    notes: Optional[str] = None
    returned_reason: Optional[str] = None
    returned_at: Optional[datetime] = None
    cleared_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime


class ChequeDetailResponse(ChequeResponse):
    """Cheque with the customer, vehicle and policy it belongs to"""

    customer_name: str
    plate_number: Optional[str] = None
    insurance_type: Optional[str] = None
    insurance_company: Optional[str] = None


class StatusTotal(BaseModel):
    count: int
    amount_cents: int


class ChequeSummary(BaseModel):
    total_cheques: int
    total_amount_cents: int
    by_status: Dict[str, StatusTotal]


class ChequeListResponse(BaseModel):
    cheques: List[ChequeResponse]
    total: int
    page: int
    limit: int
    summary: ChequeSummary


# Reports

class CustomerDebtResponse(ORMModel):
    customer_id: uuid.UUID
    customer_name: str
    total_debt_cents: int


class PaymentLineResponse(ORMModel):
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


class PaymentsSummaryResponse(ORMModel):
    total_payments: int
    total_amount_cents: int
    by_method: Dict[str, int]
    method_counts: Dict[str, int]


class PaymentListResponse(BaseModel):
    payments: List[PaymentLineResponse]
    summary: PaymentsSummaryResponse
    page: int
    limit: int
    total: int
    total_pages: int


class DueItemResponse(ORMModel):
    kind: str
    item_id: uuid.UUID
    due_date: date
    amount_cents: int
    total_amount_cents: int
    paid_amount_cents: int
    status: str
    days_until_due: int
    customer_id: uuid.UUID
    customer_name: str
    description: str
    policy_id: Optional[uuid.UUID] = None
    cheque_status: Optional[str] = None


class DueBucketResponse(ORMModel):
    count: int
    amount_cents: int
    overdue: int
    upcoming: int


class DueItemsSummaryResponse(ORMModel):
    total_items: int
    total_due_cents: int
    insurances: DueBucketResponse
    cheques: DueBucketResponse
    cheques_pending: int
    cheques_returned: int
    by_status: Dict[str, DueBucketResponse]


class DueItemsResponse(BaseModel):
    items: List[DueItemResponse]
    summary: DueItemsSummaryResponse
    page: int
    limit: int
    total: int
    total_pages: int


class DashboardResponse(BaseModel):
    total_policy_paid_cents: int
    total_revenue_cents: int
    total_expenses_cents: int
    net_profit_cents: int
    customers: int
    vehicles: int
    active_policies: int
    expired_policies: int
    cheques: int
    cheques_amount_cents: int
    returned_cheques_amount_cents: int
    income_by_method: Dict[str, int]


class AgentPolicyLine(ORMModel):
    policy_id: uuid.UUID
    customer_name: str
    plate_number: str
    insurance_type: str
    insurance_company: str
    insurance_amount_cents: int
    paid_amount_cents: int
    remaining_debt_cents: int


class AgentReportResponse(BaseModel):
    agent_name: str
    total_paid_cents: int
    total_debt_cents: int
    commission_credit_cents: int
    commission_debit_cents: int
    commission_balance_cents: int
    policies: List[AgentPolicyLine]


# Finance

class ExpenseCreate(BaseModel):
    title: str
    amount_cents: int
    paid_by: str
    method: Optional[str] = None
    status: str = "paid"
    description: Optional[str] = None
    spent_at: Optional[datetime] = None


class ExpenseResponse(ORMModel):
    id: uuid.UUID
    title: str
    amount_cents: int
    paid_by: Optional[str] = None
    method: Optional[str] = None
    status: str
    description: Optional[str] = None
    receipt_number: str
    spent_at: datetime
    policy_id: Optional[uuid.UUID] = None


class NetProfitResponse(BaseModel):
    total_policy_paid_cents: int
    total_expenses_cents: int
    net_profit_cents: int


# Pricing

class PricingUpsert(BaseModel):
    rules: Dict[str, Any] = Field(default_factory=dict)


class PricingResponse(ORMModel):
    id: uuid.UUID
    company: str
    pricing_type: str
    rules: Dict[str, Any]
    updated_at: datetime


class QuoteResponse(BaseModel):
    company: str
    pricing_type: str
    price_cents: Optional[int] = None
    automatic: bool
