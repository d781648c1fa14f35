"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from agency_ledger.infrastructure.clients.notifications import NotificationClient
from agency_ledger.infrastructure.database.session import get_db
from agency_ledger.services.cheque_service import ChequeService
from agency_ledger.services.customer_service import CustomerService
from agency_ledger.services.finance_service import FinanceService
from agency_ledger.services.ledger_service import LedgerService
from agency_ledger.services.pricing_service import PricingService
from agency_ledger.services.report_service import ReportService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_actor(x_actor: str | None = Header(default=None)) -> str:
    """Acting user as announced by the caller; recorded in audit logs and payments"""
    return (x_actor or "").strip() or "system"


def get_notification_client() -> NotificationClient:
    """Provide notification webhook client instance"""
    return NotificationClient()


def get_customer_service(request: Request, db: Session = Depends(get_db), actor: str = Depends(get_actor)) -> CustomerService:
    return CustomerService(db, actor=actor, request_id=get_request_id(request))


def get_ledger_service(request: Request, db: Session = Depends(get_db), actor: str = Depends(get_actor)) -> LedgerService:
    return LedgerService(db, actor=actor, request_id=get_request_id(request))


def get_cheque_service(request: Request, db: Session = Depends(get_db), actor: str = Depends(get_actor)) -> ChequeService:
    return ChequeService(db, actor=actor, request_id=get_request_id(request))


def get_report_service(request: Request, db: Session = Depends(get_db)) -> ReportService:
    return ReportService(db, request_id=get_request_id(request))


def get_finance_service(request: Request, db: Session = Depends(get_db), actor: str = Depends(get_actor)) -> FinanceService:
    return FinanceService(db, actor=actor, request_id=get_request_id(request))


def get_pricing_service(request: Request, db: Session = Depends(get_db), actor: str = Depends(get_actor)) -> PricingService:
    return PricingService(db, actor=actor, request_id=get_request_id(request))
