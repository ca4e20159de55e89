"""Typed exceptions raised by the stock engine.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer answers with, so callers can tell bad input, missing referents and
state conflicts apart without parsing messages:

    StockOpsError
    +-- InvalidInputError            400
    +-- NotFoundError                404
    +-- ConflictError                409
    |   +-- OrderAlreadyProcessedError
    |   +-- PurchaseOrderStateError
    |   +-- DuplicateMappingError
    +-- CredentialsNotConfiguredError 400
    +-- OrderFeedError               502

Orphaned mappings and single failed deductions are not errors; they are
reported inside the command results.
"""

from datetime import datetime
from typing import Any


class StockOpsError(Exception):
    """Base class for all domain errors."""

    code: str = "STOCKOPS_ERROR"
    status_code: int = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.extra}


class InvalidInputError(StockOpsError):
    code = "INVALID_INPUT"
    status_code = 400


class NotFoundError(StockOpsError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(StockOpsError):
    code = "CONFLICT"
    status_code = 409


class OrderAlreadyProcessedError(ConflictError):
    code = "ORDER_ALREADY_PROCESSED"

    def __init__(self, order_id: int, processed_at: datetime | None = None):
        super().__init__(
            "This order has already been processed for inventory",
            order_id=order_id,
            processed_at=processed_at.isoformat() if processed_at else None,
        )
        self.order_id = order_id
        self.processed_at = processed_at


class PurchaseOrderStateError(ConflictError):
    code = "PURCHASE_ORDER_STATE"

    def __init__(self, message: str, status: str):
        super().__init__(message, status=status)
        self.status = status


class DuplicateMappingError(ConflictError):
    code = "DUPLICATE_MAPPING"


class CredentialsNotConfiguredError(StockOpsError):
    code = "CREDENTIALS_NOT_CONFIGURED"
    status_code = 400

    def __init__(self):
        super().__init__(
            "Store credentials not configured. Please set up credentials in Settings."
        )


class OrderFeedError(StockOpsError):
    code = "ORDER_FEED_ERROR"
    status_code = 502
