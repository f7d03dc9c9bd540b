"""
Error taxonomy shared by every service.

Operations raise these at their own boundary; nothing below the service layer
retries them. The only internal retry is the idempotent refund, which reuses
the gateway correlation token as its idempotency key.
"""
from typing import Any, Optional


class OrderManagementError(Exception):
    """Base class for all errors surfaced to callers of the core."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class NotFoundError(OrderManagementError):
    """Requested entity id does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(OrderManagementError):
    """Required field missing or invalid. Carries field -> messages."""

    def __init__(self, errors: dict[str, list[str]]):
        summary = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in errors.items())
        super().__init__(f"Validation failed: {summary}", {"errors": errors})
        self.errors = errors


class InvalidTransitionError(OrderManagementError):
    pass


class MissingShipmentInfoError(OrderManagementError):
    pass


class EmptyCartError(OrderManagementError):
    pass


class PersistenceError(OrderManagementError):
    """Commit failed at the store boundary. The staged change set is gone."""


class ConflictError(OrderManagementError):
    """The order was modified since the caller read it."""


class GatewayError(OrderManagementError):
    pass


class AuthorizationError(OrderManagementError):
    pass
