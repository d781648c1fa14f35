"""Customer and vehicle use cases"""

import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

from agency_ledger.domain.exceptions import ConflictError, ValidationError
from agency_ledger.infrastructure.database.models import Customer, Vehicle
from agency_ledger.infrastructure.database.repositories import CustomerRepository
from agency_ledger.services.base import BaseService, snapshot
from agency_ledger.services.ledger_service import drop_revenue

CUSTOMER_FIELDS = (
    "first_name",
    "last_name",
    "national_id",
    "phone_number",
    "email",
    "city",
    "agent_name",
    "birth_date",
    "joined_at",
    "notes",
)

VEHICLE_FIELDS = (
    "plate_number",
    "model",
    "vehicle_type",
    "color",
    "ownership",
    "model_year",
    "license_expiry",
)


def _required(values: Dict[str, Any], field: str) -> str:
    value = values.get(field)
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    return str(value).strip()


def _new_vehicle(values: Dict[str, Any]) -> Vehicle:
    data = {key: values[key] for key in VEHICLE_FIELDS if values.get(key) is not None}
    data["plate_number"] = (str(data.get("plate_number") or "").strip()) or "unknown"
    return Vehicle(**data)


class CustomerService(BaseService):
    """Registers customers and keeps their vehicles"""

    def register(self, values: Dict[str, Any], vehicles: Iterable[Dict[str, Any]] = ()) -> Customer:
        with self._transaction():
            first_name = _required(values, "first_name")
            last_name = _required(values, "last_name")
            national_id = _required(values, "national_id")

            repo = CustomerRepository(self.db)
            if repo.get_by_national_id(national_id) is not None:
                raise ConflictError(f"Customer with national ID {national_id} already exists")

            data = {key: values[key] for key in CUSTOMER_FIELDS if values.get(key) is not None}
            data.update(first_name=first_name, last_name=last_name, national_id=national_id)
            customer = Customer(**data)
            for vehicle_values in vehicles:
                customer.vehicles.append(_new_vehicle(vehicle_values))

            repo.add(customer)
            self.audit.record("CREATE", "customer", customer.id, new_value=snapshot(customer))

        return customer

    def get(self, customer_id: uuid.UUID) -> Customer:
        return self._get_customer(customer_id)

    def search(self, text: Optional[str] = None, page: int = 1, limit: int = 50) -> Tuple[List[Customer], int]:
        if page < 1:
            raise ValidationError("page must be at least 1", field="page")
        if limit < 1:
            raise ValidationError("limit must be at least 1", field="limit")
        return CustomerRepository(self.db).search(text, offset=(page - 1) * limit, limit=limit)

    def update(self, customer_id: uuid.UUID, values: Dict[str, Any]) -> Customer:
        """Apply the given fields; a changed national ID must stay unique"""
        with self._transaction():
            customer = self._get_customer(customer_id)
            old_value = snapshot(customer)
            values = dict(values)

            for field in ("first_name", "last_name", "national_id"):
                if field in values:
                    values[field] = _required(values, field)

            national_id = values.get("national_id")
            if national_id and national_id != customer.national_id:
                if CustomerRepository(self.db).get_by_national_id(national_id) is not None:
                    raise ConflictError(f"Customer with national ID {national_id} already exists")

            for key in CUSTOMER_FIELDS:
                if key in values:
                    setattr(customer, key, values[key])

            self.db.flush()
            self.audit.record("UPDATE", "customer", customer.id, old_value=old_value, new_value=snapshot(customer))

        return customer

    def delete(self, customer_id: uuid.UUID) -> None:
        """Remove a customer with all vehicles, policies, payments and cheques"""
        with self._transaction():
            customer = self._get_customer(customer_id)
            old_value = snapshot(customer)
            drop_revenue(self.db, [policy for vehicle in customer.vehicles for policy in vehicle.policies])
            CustomerRepository(self.db).delete(customer)
            self.audit.record("DELETE", "customer", customer_id, old_value=old_value)

    def add_vehicle(self, customer_id: uuid.UUID, values: Dict[str, Any]) -> Vehicle:
        with self._transaction():
            customer = self._get_customer(customer_id)
            vehicle = _new_vehicle(values)
            customer.vehicles.append(vehicle)
            self.db.flush()
            self.audit.record("CREATE", "vehicle", vehicle.id, new_value=snapshot(vehicle))

        return vehicle

    def get_vehicle(self, customer_id: uuid.UUID, vehicle_id: uuid.UUID) -> Vehicle:
        return self._get_vehicle(customer_id, vehicle_id)

    def list_vehicles(self, customer_id: uuid.UUID) -> List[Vehicle]:
        return list(self._get_customer(customer_id).vehicles)

    def update_vehicle(self, customer_id: uuid.UUID, vehicle_id: uuid.UUID, values: Dict[str, Any]) -> Vehicle:
        with self._transaction():
            vehicle = self._get_vehicle(customer_id, vehicle_id)
            old_value = snapshot(vehicle)
            for key in VEHICLE_FIELDS:
                if key in values:
                    setattr(vehicle, key, values[key])
            if not (vehicle.plate_number or "").strip():
                vehicle.plate_number = "unknown"

            self.db.flush()
            self.audit.record("UPDATE", "vehicle", vehicle.id, old_value=old_value, new_value=snapshot(vehicle))

        return vehicle

    def delete_vehicle(self, customer_id: uuid.UUID, vehicle_id: uuid.UUID) -> None:
        """Remove a vehicle and its policies; cheques on file are detached, not deleted"""
        with self._transaction():
            vehicle = self._get_vehicle(customer_id, vehicle_id)
            old_value = snapshot(vehicle)

            for cheque in list(vehicle.cheques):
                cheque.vehicle = None
                cheque.policy = None
            for policy in vehicle.policies:
                for cheque in list(policy.cheques):
                    cheque.policy = None

            drop_revenue(self.db, vehicle.policies)
            vehicle.customer.vehicles.remove(vehicle)
            self.audit.record("DELETE", "vehicle", vehicle_id, old_value=old_value)
