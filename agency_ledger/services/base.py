"""Shared plumbing of the service layer: transactions, lookups and the audit trail"""

import logging
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from agency_ledger.domain.exceptions import (
    ConcurrencyConflictError,
    ConflictError,
    DomainException,
    InternalError,
    NotFoundError,
    ValidationError,
)
from agency_ledger.infrastructure.database.models import Customer, Policy, Vehicle
from agency_ledger.infrastructure.database.repositories import (
    AuditRepository,
    CustomerRepository,
    PolicyRepository,
)
from agency_ledger.infrastructure.observability.metrics import (
    audit_failure_counter,
    concurrency_conflict_counter,
    record_rejection,
)

logger = logging.getLogger(__name__)


def _json_safe(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def snapshot(instance: Any) -> Dict[str, Any]:
    """Column values of an ORM object as a JSON-serializable dict"""
    mapper = sa_inspect(instance).mapper
    return {attr.key: _json_safe(getattr(instance, attr.key)) for attr in mapper.column_attrs}


class AuditTrail:
    """
    Best-effort audit log writer.

    Entries are queued while an operation runs and written in their own
    commit once the operation's transaction has committed. A failed audit
    write is logged and counted, never raised.
    """

    def __init__(self, db: Session, actor: str):
        self.db = db
        self.actor = actor
        self._pending: List[Dict[str, Any]] = []

    def record(
        self,
        action: str,
        entity: str,
        entity_id: Any,
        old_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._pending.append(
            {
                "action": action,
                "entity": entity,
                "entity_id": str(entity_id) if entity_id is not None else None,
                "old_value": old_value,
                "new_value": new_value,
            }
        )

    def discard(self) -> None:
        self._pending.clear()

    def flush(self, request_id: Optional[str] = None) -> None:
        if not self._pending:
            return
        entries, self._pending = self._pending, []
        try:
            repo = AuditRepository(self.db)
            for entry in entries:
                repo.add_log(actor=self.actor, **entry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            audit_failure_counter.inc()
            logger.error(
                f"Audit log write failed: {e}",
                extra={"request_id": request_id or "unknown", "entries": len(entries)},
            )


class BaseService:
    """Holds the session, the acting user and the request id of one call"""

    def __init__(self, db: Session, actor: str = "system", request_id: Optional[str] = None):
        self.db = db
        self.actor = actor
        self.request_id = request_id
        self.audit = AuditTrail(db, actor)

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """
        One database transaction per mutation.

        Commits when the block finishes, rolls back on any error. Persistence
        errors are translated into domain errors; the audit trail is written
        only after a successful commit.
        """
        try:
            yield
            self.db.commit()
        except DomainException as e:
            self.db.rollback()
            self.audit.discard()
            if isinstance(e, ValidationError):
                record_rejection(e.field)
            raise
        except StaleDataError as e:
            self.db.rollback()
            self.audit.discard()
            concurrency_conflict_counter.inc()
            logger.warning(f"Concurrent policy update: {e}", extra={"request_id": self.request_id or "unknown"})
            raise ConcurrencyConflictError(
                "Policy was modified by another request; reload it and retry"
            ) from e
        except IntegrityError as e:
            self.db.rollback()
            self.audit.discard()
            raise ConflictError("Record conflicts with existing data") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            self.audit.discard()
            logger.error(f"Database error: {e}", extra={"request_id": self.request_id or "unknown"})
            raise InternalError("Database operation failed") from e

        self.audit.flush(self.request_id)

    def _get_customer(self, customer_id: uuid.UUID) -> Customer:
        customer = CustomerRepository(self.db).get(customer_id)
        if customer is None:
            raise NotFoundError("Customer")
        return customer

    def _get_vehicle(self, customer_id: uuid.UUID, vehicle_id: uuid.UUID) -> Vehicle:
        self._get_customer(customer_id)
        vehicle = CustomerRepository(self.db).get_vehicle(customer_id, vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle")
        return vehicle

    def _get_policy(self, customer_id: uuid.UUID, vehicle_id: uuid.UUID, policy_id: uuid.UUID) -> Policy:
        self._get_vehicle(customer_id, vehicle_id)
        policy = PolicyRepository(self.db).get_for_vehicle(vehicle_id, policy_id)
        if policy is None:
            raise NotFoundError("Policy")
        return policy
