"""/v1/cheques - cheque lifecycle"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from agency_ledger.api.dependencies import get_cheque_service, get_notification_client
from agency_ledger.api.v1.schemas import (
    ChequeCreate,
    ChequeDetailResponse,
    ChequeListResponse,
    ChequeResponse,
    ChequeStatusUpdate,
    ChequeSummary,
)
from agency_ledger.config import settings
from agency_ledger.domain.models import ChequeStatus
from agency_ledger.infrastructure.clients.notifications import NotificationClient, dispatch_notification
from agency_ledger.services.cheque_service import ChequeService

router = APIRouter()


@router.post("/customers/{customer_id}/cheques", response_model=ChequeResponse, status_code=201)
def create_customer_cheque(
    customer_id: uuid.UUID,
    body: ChequeCreate,
    service: ChequeService = Depends(get_cheque_service),
):
    """Put a cheque on file for a customer without paying any policy with it"""
    return service.create_customer_cheque(
        customer_id,
        cheque_number=body.cheque_number,
        cheque_date=body.cheque_date,
        amount_cents=body.amount_cents,
        bank_name=body.bank_name,
        notes=body.notes,
    )


@router.get("/cheques", response_model=ChequeListResponse)
def list_cheques(
    status: Optional[str] = Query(None, description="pending | cleared | returned | cancelled | all"),
    customer_id: Optional[uuid.UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=settings.max_page_size),
    service: ChequeService = Depends(get_cheque_service),
):
    result = service.list_cheques(status, customer_id, start_date, end_date, page, limit)
    return ChequeListResponse(
        cheques=[ChequeResponse.model_validate(c) for c in result["cheques"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        summary=ChequeSummary(**result["summary"]),
    )


@router.get("/cheques/statistics", response_model=ChequeSummary)
def cheque_statistics(service: ChequeService = Depends(get_cheque_service)):
    return ChequeSummary(**service.statistics())


@router.get("/cheques/{cheque_id}", response_model=ChequeDetailResponse)
def get_cheque(cheque_id: uuid.UUID, service: ChequeService = Depends(get_cheque_service)):
    cheque = service.get_cheque(cheque_id)
    base = ChequeResponse.model_validate(cheque).model_dump()
    return ChequeDetailResponse(
        **base,
        customer_name=cheque.customer.full_name,
        plate_number=cheque.vehicle.plate_number if cheque.vehicle else None,
        insurance_type=cheque.policy.insurance_type if cheque.policy else None,
        insurance_company=cheque.policy.insurance_company if cheque.policy else None,
    )


@router.patch("/cheques/{cheque_id}/status", response_model=ChequeResponse)
def update_cheque_status(
    cheque_id: uuid.UUID,
    body: ChequeStatusUpdate,
    background_tasks: BackgroundTasks,
    service: ChequeService = Depends(get_cheque_service),
    notifications: NotificationClient = Depends(get_notification_client),
):
    """Change a cheque's status; the paid amount of its policy is not affected"""
    cheque = service.update_status(cheque_id, body.status, notes=body.notes, returned_reason=body.returned_reason)
    if cheque.status == ChequeStatus.RETURNED.value:
        background_tasks.add_task(
            dispatch_notification,
            notifications,
            {
                "event": "CHEQUE_RETURNED",
                "cheque_id": str(cheque.id),
                "customer_id": str(cheque.customer_id),
                "amount_cents": cheque.amount_cents,
                "returned_reason": cheque.returned_reason,
            },
        )
    return cheque


@router.delete("/cheques/{cheque_id}", status_code=204)
def delete_cheque(cheque_id: uuid.UUID, service: ChequeService = Depends(get_cheque_service)):
    """Delete a cheque; a policy cheque takes its payment with it"""
    service.delete_cheque(cheque_id)
