"""
Typed failures raised by the services.

Every error names the operation that failed and the entity it was acting on,
so the HTTP layer (or any other caller) can report it without parsing text.
"""
from typing import Optional


class FinShareError(Exception):
    """Base class for caller-visible failures."""
    code = "error"
    status_code = 400

    def __init__(self, message: str, operation: Optional[str] = None, entity: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.entity = entity

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "error": self.code,
            "operation": self.operation,
            "entity": self.entity,
        }


class PermissionDenied(FinShareError):
    code = "permission_denied"
    status_code = 403


class NotFound(FinShareError):
    code = "not_found"
    status_code = 404


class AmountMismatch(FinShareError):
    code = "amount_mismatch"
    status_code = 422


class InvalidStateTransition(FinShareError):
    code = "invalid_state_transition"
    status_code = 409


class ValidationError(FinShareError):
    code = "validation_error"
    status_code = 422


class StoreUnavailable(FinShareError):
    """Persistence failure or timeout.

    ``needs_reconciliation`` is set when a rollback could not be confirmed and
    the store may hold a partial write.
    """
    code = "store_unavailable"
    status_code = 503

    def __init__(self, message: str, operation: Optional[str] = None, entity: Optional[str] = None,
                 needs_reconciliation: bool = False):
        super().__init__(message, operation=operation, entity=entity)
        self.needs_reconciliation = needs_reconciliation

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["needs_reconciliation"] = self.needs_reconciliation
        return data
