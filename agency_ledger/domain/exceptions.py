"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input rejected by a business rule; carries the offending field"""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(DomainException):
    """Referenced customer, vehicle, policy, payment or cheque does not exist"""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"{resource} not found")


class ConflictError(DomainException):
    """Unique key already taken (national ID, receipt number, ...)"""

    pass


class ConcurrencyConflictError(ConflictError):
    """Row was modified by another writer since it was read"""

    pass


class InternalError(DomainException):
    """Persistence failure or broken ledger invariant"""

    pass
