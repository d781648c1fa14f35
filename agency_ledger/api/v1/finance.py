"""/v1/expenses and /v1/finance - expenses and net profit"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends

from agency_ledger.api.dependencies import get_finance_service
from agency_ledger.api.v1.schemas import ExpenseCreate, ExpenseResponse, NetProfitResponse
from agency_ledger.services.finance_service import FinanceService

router = APIRouter()


@router.post("/expenses", response_model=ExpenseResponse, status_code=201)
def record_expense(body: ExpenseCreate, service: FinanceService = Depends(get_finance_service)):
    return service.record_expense(**body.model_dump())


@router.get("/expenses", response_model=List[ExpenseResponse])
def list_expenses(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    method: Optional[str] = None,
    paid_by: Optional[str] = None,
    service: FinanceService = Depends(get_finance_service),
):
    return service.list_expenses(start_date, end_date, status, method, paid_by)


@router.get("/finance/net-profit", response_model=NetProfitResponse)
def net_profit(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    service: FinanceService = Depends(get_finance_service),
):
    """Total policy income minus expenses; the dates filter expenses"""
    return NetProfitResponse(**service.net_profit(start_date, end_date))
