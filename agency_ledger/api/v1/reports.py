"""/v1/reports and /v1/payments - debts, income, payments, due items, dashboard, agents"""

import uuid
from dataclasses import asdict
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from agency_ledger.api.dependencies import get_report_service
from agency_ledger.api.v1.schemas import (
    AgentPolicyLine,
    AgentReportResponse,
    CustomerDebtResponse,
    DashboardResponse,
    DueItemResponse,
    DueItemsResponse,
    DueItemsSummaryResponse,
    PaymentLineResponse,
    PaymentListResponse,
    PaymentsSummaryResponse,
)
from agency_ledger.config import settings
from agency_ledger.services.report_service import ReportService

router = APIRouter()


@router.get("/reports/debts", response_model=List[CustomerDebtResponse])
def debts_by_customer(
    agent_name: Optional[str] = None,
    start_date: Optional[date] = Query(None, description="Earliest policy start date"),
    end_date: Optional[date] = Query(None, description="Latest policy start date"),
    active_only: bool = Query(False, description="Only active policies that still owe"),
    service: ReportService = Depends(get_report_service),
):
    """Outstanding debt per customer, largest first"""
    debts = service.debts_by_customer(agent_name=agent_name, start=start_date, end=end_date, active_only=active_only)
    return [CustomerDebtResponse(**asdict(debt)) for debt in debts]


@router.get("/payments", response_model=PaymentListResponse)
def list_payments(
    customer_id: Optional[uuid.UUID] = None,
    method: Optional[str] = Query(None, description="cash | card | cheque | bank_transfer"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    sort_by: str = Query("paid_at", description="paid_at | amount"),
    sort_order: str = Query("desc", description="asc | desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.payments_page_size, ge=1, le=settings.max_page_size),
    service: ReportService = Depends(get_report_service),
):
    """Payments across every policy, with totals per method over all matches"""
    result = service.list_payments(
        customer_id=customer_id,
        method=method,
        start=start_date,
        end=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return PaymentListResponse(
        payments=[PaymentLineResponse(**asdict(line)) for line in result["payments"]],
        summary=PaymentsSummaryResponse(**asdict(result["summary"])),
        page=result["page"],
        limit=result["limit"],
        total=result["total"],
        total_pages=result["total_pages"],
    )



@router.get("/reports/income", response_model=Dict[str, int])
def income_by_method(service: ReportService = Depends(get_report_service)):
    return service.income_by_method()


@router.get("/reports/due-items", response_model=DueItemsResponse)
def due_items(
    type: str = Query("all", description="all | insurances | cheques"),
    customer_id: Optional[uuid.UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    sort_by: str = Query("due_date", description="due_date | amount | status"),
    sort_order: str = Query("asc", description="asc | desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.due_items_page_size, ge=1, le=settings.max_page_size),
    service: ReportService = Depends(get_report_service),
):
    """
    Unpaid policy debt and uncollected cheques.

    The summary is computed over every item matching the filters, not only
    the returned page.
    """
    result = service.due_items(
        kind=type,
        customer_id=customer_id,
        start=start_date,
        end=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return DueItemsResponse(
        items=[DueItemResponse(**asdict(item)) for item in result["items"]],
        summary=DueItemsSummaryResponse(**asdict(result["summary"])),
        page=result["page"],
        limit=result["limit"],
        total=result["total"],
        total_pages=result["total_pages"],
    )


@router.get("/reports/dashboard", response_model=DashboardResponse)
def dashboard(service: ReportService = Depends(get_report_service)):
    return DashboardResponse(**service.dashboard())


@router.get("/reports/agents/{agent_name}", response_model=AgentReportResponse)
def agent_report(agent_name: str, service: ReportService = Depends(get_report_service)):
    report = service.agent_report(agent_name)
    ledger = report["ledger"]
    return AgentReportResponse(
        agent_name=ledger.agent_name,
        total_paid_cents=ledger.total_paid_cents,
        total_debt_cents=ledger.total_debt_cents,
        commission_credit_cents=report["commission_credit_cents"],
        commission_debit_cents=report["commission_debit_cents"],
        commission_balance_cents=report["commission_balance_cents"],
        policies=[AgentPolicyLine.model_validate(asdict(row)) for row in ledger.policies],
    )
