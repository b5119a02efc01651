"""
Conecta-wide exception hierarchy.

Services raise these types; blueprints register one handler per type and
map them to HTTP status codes:

    NotFoundError     → 404
    ValidationError   → 422 (well-formed input that breaks a business rule)
    ConflictError     → 409
    PersistenceError  → 500 (write failed, session already rolled back)

Malformed input (missing JSON body, non-numeric id) is rejected with 400 in
the blueprint before a service is ever called.

Usage:
    from conecta.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="ProjectRequest", resource_id=42)
    raise ValidationError("client_price must be greater than 0",
                          details={"client_price": "must be > 0"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist (or is soft-deleted).

    Args:
        resource: Human-readable entity name (e.g. "Project", "ClientQuotation").
        resource_id: The PK that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
        code: Optional machine-readable code (e.g. ``missing_decision``);
              blueprints fall back to the generic validation code.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        code: str | None = None,
    ) -> None:
        self.details = details or {}
        self.code = code
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class PersistenceError(Exception):
    """Raised when a database write fails after validation passed.

    The service has already rolled the session back when this is raised.
    """

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Database error during {operation}")
