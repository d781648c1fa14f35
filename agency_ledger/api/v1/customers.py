"""/v1/customers - customers and their vehicles"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from agency_ledger.api.dependencies import get_customer_service
from agency_ledger.api.v1.schemas import (
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
    CustomerUpdate,
    VehicleCreate,
    VehicleResponse,
    VehicleUpdate,
)
from agency_ledger.config import settings
from agency_ledger.services.customer_service import CustomerService

router = APIRouter()


@router.post("/customers", response_model=CustomerResponse, status_code=201)
def register_customer(body: CustomerCreate, service: CustomerService = Depends(get_customer_service)):
    """Register a customer, optionally with vehicles; national ID must be unique"""
    values = body.model_dump(exclude={"vehicles"})
    vehicles = [vehicle.model_dump() for vehicle in body.vehicles]
    return service.register(values, vehicles)


@router.get("/customers", response_model=CustomerListResponse)
def list_customers(
    search: Optional[str] = Query(None, description="Matches name, national ID or phone"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=settings.max_page_size),
    service: CustomerService = Depends(get_customer_service),
):
    customers, total = service.search(search, page, limit)
    return CustomerListResponse(
        customers=[CustomerResponse.model_validate(c) for c in customers],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: uuid.UUID, service: CustomerService = Depends(get_customer_service)):
    return service.get(customer_id)


@router.patch("/customers/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: uuid.UUID,
    body: CustomerUpdate,
    service: CustomerService = Depends(get_customer_service),
):
    return service.update(customer_id, body.model_dump(exclude_unset=True))


@router.delete("/customers/{customer_id}", status_code=204)
def delete_customer(customer_id: uuid.UUID, service: CustomerService = Depends(get_customer_service)):
    """Delete a customer together with vehicles, policies, payments and cheques"""
    service.delete(customer_id)


@router.post("/customers/{customer_id}/vehicles", response_model=VehicleResponse, status_code=201)
def add_vehicle(
    customer_id: uuid.UUID,
    body: VehicleCreate,
    service: CustomerService = Depends(get_customer_service),
):
    return service.add_vehicle(customer_id, body.model_dump())


@router.get("/customers/{customer_id}/vehicles", response_model=List[VehicleResponse])
def list_vehicles(customer_id: uuid.UUID, service: CustomerService = Depends(get_customer_service)):
    return service.list_vehicles(customer_id)


@router.get("/customers/{customer_id}/vehicles/{vehicle_id}", response_model=VehicleResponse)
def get_vehicle(
    customer_id: uuid.UUID,
    vehicle_id: uuid.UUID,
    service: CustomerService = Depends(get_customer_service),
):
    return service.get_vehicle(customer_id, vehicle_id)


@router.patch("/customers/{customer_id}/vehicles/{vehicle_id}", response_model=VehicleResponse)
def update_vehicle(
    customer_id: uuid.UUID,
    vehicle_id: uuid.UUID,
    body: VehicleUpdate,
    service: CustomerService = Depends(get_customer_service),
):
    return service.update_vehicle(customer_id, vehicle_id, body.model_dump(exclude_unset=True))


@router.delete("/customers/{customer_id}/vehicles/{vehicle_id}", status_code=204)
def delete_vehicle(
    customer_id: uuid.UUID,
    vehicle_id: uuid.UUID,
    service: CustomerService = Depends(get_customer_service),
):
    """Delete a vehicle and its policies; its cheques stay with the customer"""
    service.delete_vehicle(customer_id, vehicle_id)
