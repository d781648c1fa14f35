"""/v1/pricing - company pricing configurations"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from agency_ledger.api.dependencies import get_pricing_service
from agency_ledger.api.v1.schemas import PricingResponse, PricingUpsert, QuoteResponse
from agency_ledger.services.pricing_service import PricingService

router = APIRouter()


@router.put("/pricing/{company}/{pricing_type}", response_model=PricingResponse)
def upsert_pricing(
    company: str,
    pricing_type: str,
    body: PricingUpsert,
    response: Response,
    service: PricingService = Depends(get_pricing_service),
):
    """Create or replace the rules of one pricing type; 201 when newly created"""
    config, created = service.upsert(company, pricing_type, body.rules)
    response.status_code = 201 if created else 200
    return config


@router.get("/pricing/{company}", response_model=List[PricingResponse])
def list_company_pricing(company: str, service: PricingService = Depends(get_pricing_service)):
    return service.list_for_company(company)


@router.get("/pricing/{company}/{pricing_type}", response_model=PricingResponse)
def get_pricing(company: str, pricing_type: str, service: PricingService = Depends(get_pricing_service)):
    return service.get(company, pricing_type)


@router.get("/pricing/{company}/{pricing_type}/quote", response_model=QuoteResponse)
def quote_price(
    company: str,
    pricing_type: str,
    vehicle_type: Optional[str] = None,
    driver_age_group: Optional[str] = None,
    offer_amount: int = Query(0, ge=0),
    service: PricingService = Depends(get_pricing_service),
):
    price = service.quote(company, pricing_type, vehicle_type, driver_age_group, offer_amount)
    return QuoteResponse(company=company, pricing_type=pricing_type, price_cents=price, automatic=price is not None)
