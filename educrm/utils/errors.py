"""
Error Taxonomy

Every failure a workflow can raise maps to one of these classes. Workflows
raise them; only the HTTP boundary (educrm.api) and batch runners catch them.
Each class carries the HTTP status code the API returns for it.
"""

from typing import Any, Optional


class CRMError(Exception):
    """Base class for all educrm errors."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class UnauthenticatedError(CRMError):
    """No user session is attached to the request."""

    status_code = 401
    public_message = "Unauthorized"


class UnauthorizedError(CRMError):
    """The user is authenticated but lacks the required role."""

    status_code = 403
    public_message = "Forbidden"


class InvalidInputError(CRMError):
    """Request payload is missing fields or carries unsupported values."""

    status_code = 400
    public_message = "Invalid input"


class NotFoundError(CRMError):
    """A referenced entity does not exist in the store."""

    status_code = 404
    public_message = "Not found"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} not found: {entity_id}",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class InvalidTransitionError(CRMError):
    """A lifecycle status change is not in the transition table."""

    status_code = 409
    public_message = "Invalid status transition"

    def __init__(self, lifecycle: str, current: str, target: str):
        super().__init__(
            f"{lifecycle}: cannot move from '{current}' to '{target}'",
            details={"lifecycle": lifecycle, "from": current, "to": target},
        )
        self.lifecycle = lifecycle
        self.current = current
        self.target = target


class UpstreamError(CRMError):
    """The store or the reasoning backend failed after all retries."""

    status_code = 500
    public_message = "Internal server error"


class ReasoningValidationError(UpstreamError):
    """Reasoning output could not be parsed or does not match its schema."""

    status_code = 502
    public_message = "Reasoning output failed validation"

    def __init__(self, schema_name: str, errors: list[str], raw: str = ""):
        super().__init__(
            f"Reasoning output for '{schema_name}' failed validation: "
            + "; ".join(errors),
            details={"schema": schema_name, "errors": errors},
        )
        self.schema_name = schema_name
        self.errors = errors
        self.raw = raw
