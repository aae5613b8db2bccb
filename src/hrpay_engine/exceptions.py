"""Error taxonomy shared by services and the API layer.

Every error carries an HTTP status so the API can map it without
knowing about individual services:

- ValidationError (422): malformed input, no side effects
- ConflictError (409): duplicate period, overlapping leave or assignment
- NotFoundError (404): unknown id
- AuthorizationError (403): wrong acting approver
- ComputationError (500): internal invariant violated
"""

from __future__ import annotations

from typing import Any


class HRPayError(Exception):
    """Base class for all engine errors."""

    status_code = 500
    code = "HRPAY_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an API error body."""
        body: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            body["context"] = self.details
        return body


class ValidationError(HRPayError):
    """Malformed input (bad date range, missing field)."""

    status_code = 422
    code = "VALIDATION_ERROR"


class ConflictError(HRPayError):
    """Operation collides with an existing record.

    `details` identifies the conflicting record.
    """

    status_code = 409
    code = "CONFLICT"


class NotFoundError(HRPayError):
    """Referenced entity does not exist."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} {entity_id} not found",
            {"entity": entity, "id": str(entity_id)},
        )


class AuthorizationError(HRPayError):
    """Actor is not allowed to act on the resource."""

    status_code = 403
    code = "FORBIDDEN"


class ComputationError(HRPayError):
    """An internal invariant was violated during computation."""

    status_code = 500
    code = "COMPUTATION_ERROR"
