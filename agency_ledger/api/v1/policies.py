"""/v1/.../policies - policy ledger: policies, payments, policy cheques"""

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from agency_ledger.api.dependencies import get_ledger_service, get_notification_client
from agency_ledger.api.v1.schemas import (
    PaymentCreate,
    PaymentResponse,
    PaymentResult,
    PolicyCancelRequest,
    PolicyChequeCreate,
    PolicyCreate,
    PolicyListResponse,
    PolicyResponse,
    PolicySummary,
)
from agency_ledger.domain.models import NewPayment
from agency_ledger.infrastructure.clients.notifications import NotificationClient, dispatch_notification
from agency_ledger.infrastructure.database.models import Payment
from agency_ledger.services.ledger_service import LedgerService

router = APIRouter()

POLICY_PATH = "/customers/{customer_id}/vehicles/{vehicle_id}/policies"


def _payment_event(payment: Payment) -> dict:
    policy = payment.policy
    return {
        "event": "PAYMENT_RECORDED",
        "policy_id": str(policy.id),
        "payment_id": str(payment.id),
        "method": payment.method,
        "amount_cents": payment.amount_cents,
        "remaining_debt_cents": policy.remaining_debt_cents,
    }


def _payment_result(payment: Payment) -> PaymentResult:
    return PaymentResult(
        payment=PaymentResponse.model_validate(payment),
        policy=PolicyResponse.model_validate(payment.policy),
    )


@router.post(POLICY_PATH, response_model=PolicyResponse, status_code=201)
def create_policy(
    customer_id: uuid.UUID,
    vehicle_id: uuid.UUID,
    body: PolicyCreate,
    service: LedgerService = Depends(get_ledger_service),
):
    """
    Open a policy on a vehicle.

    Without explicit dates coverage starts at the end of the vehicle's latest
    policy (or now) and lasts one term. Initial payments are validated like
    any other payment and stored in the same transaction.
    """
    return service.create_policy(
        customer_id,
        vehicle_id,
        insurance_type=body.insurance_type,
        insurance_company=body.insurance_company,
        insurance_amount_cents=body.insurance_amount_cents,
        insurance_start=body.insurance_start,
        insurance_end=body.insurance_end,
        agent_name=body.agent_name,
        agent_flow=body.agent_flow,
        agent_amount_cents=body.agent_amount_cents,
        is_under_24=body.is_under_24,
        price_on_customer=body.price_on_customer,
        payments=[NewPayment(**p.model_dump()) for p in body.payments],
    )


@router.get(POLICY_PATH, response_model=PolicyListResponse)
def list_policies(
    customer_id: uuid.UUID,
    vehicle_id: uuid.UUID,
    filter: str = Query("all", description="all | unpaid | paid"),
    service: LedgerService = Depends(get_ledger_service),
):
    policies, summary = service.list_policies(customer_id, vehicle_id, filter)
    return PolicyListResponse(
        policies=[PolicyResponse.model_validate(p) for p in policies],
        summary=PolicySummary(**summary),
    )


@router.get(POLICY_PATH + "/{policy_id}", response_model=PolicyResponse)
def get_policy(
    customer_id: uuid.UUID,
    vehicle_id: uuid.UUID,
    policy_id: uuid.UUID,
    service: LedgerService = Depends(get_ledger_service),
):
    return service.get_policy(customer_id, vehicle_id, policy_id)


@router.delete(POLICY_PATH + "/{policy_id}", status_code=204)
def delete_policy(
    customer_id: uuid.UUID,
    vehicle_id: uuid.UUID,
    policy_id: uuid.UUID,
    service: LedgerService = Depends(get_ledger_service),
):
    service.delete_policy(customer_id, vehicle_id, policy_id)


@router.post(POLICY_PATH + "/{policy_id}/cancel", response_model=PolicyResponse)
def cancel_policy(
    customer_id: uuid.UUID,
    vehicle_id: uuid.UUID,
    policy_id: uuid.UUID,
    body: PolicyCancelRequest,
    background_tasks: BackgroundTasks,
    service: LedgerService = Depends(get_ledger_service),
    notifications: NotificationClient = Depends(get_notification_client),
):
    policy = service.cancel_policy(
        customer_id,
        vehicle_id,
        policy_id,
        refund_amount_cents=body.refund_amount_cents,
        paid_by=body.paid_by,
        method=body.method,
        description=body.description,
    )
    background_tasks.add_task(
        dispatch_notification,
        notifications,
        {
            "event": "POLICY_CANCELLED",
            "policy_id": str(policy.id),
            "refund_amount_cents": policy.refund_amount_cents,
        },
    )
    return policy


@router.post(POLICY_PATH + "/{policy_id}/payments", response_model=PaymentResult, status_code=201)
def add_payment(
    customer_id: uuid.UUID,
    vehicle_id: uuid.UUID,
    policy_id: uuid.UUID,
    body: PaymentCreate,
    background_tasks: BackgroundTasks,
    service: LedgerService = Depends(get_ledger_service),
    notifications: NotificationClient = Depends(get_notification_client),
):
    """Record a payment; cheque payments also put a pending cheque on file"""
    payment = service.add_payment(customer_id, vehicle_id, policy_id, NewPayment(**body.model_dump()))
    background_tasks.add_task(dispatch_notification, notifications, _payment_event(payment))
    return _payment_result(payment)


@router.delete(POLICY_PATH + "/{policy_id}/payments/{payment_id}", response_model=PolicyResponse)
def remove_payment(
    customer_id: uuid.UUID,
    vehicle_id: uuid.UUID,
    policy_id: uuid.UUID,
    payment_id: uuid.UUID,
    service: LedgerService = Depends(get_ledger_service),
):
    """Undo a payment and return the rebalanced policy"""
    return service.remove_payment(customer_id, vehicle_id, policy_id, payment_id)


@router.post("/policies/{policy_id}/cheques", response_model=PaymentResult, status_code=201)
def add_cheque_to_policy(
    policy_id: uuid.UUID,
    body: PolicyChequeCreate,
    background_tasks: BackgroundTasks,
    service: LedgerService = Depends(get_ledger_service),
    notifications: NotificationClient = Depends(get_notification_client),
):
    payment = service.add_cheque_to_policy(
        policy_id,
        cheque_number=body.cheque_number,
        cheque_date=body.cheque_date,
        amount_cents=body.amount_cents,
        bank_name=body.bank_name,
        notes=body.notes,
        receipt_number=body.receipt_number,
    )
    background_tasks.add_task(dispatch_notification, notifications, _payment_event(payment))
    return _payment_result(payment)
