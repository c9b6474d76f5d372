"""
Service-layer exception hierarchy.

Services raise these; blueprints never catch them individually. The app
factory registers one handler per type, so every route gets the same
HTTP status and JSON body shape.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("Invalid form", details={"name": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable model/entity name (e.g. "Project", "Document").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
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

    Distinct from HTTP 400 (malformed input, caught in blueprint): the data
    was well-formed but violated a business rule (missing wizard field,
    out-of-range coordinate, unknown role).

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would create a duplicate unique constraint violation.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value (truncated in HTTP response; full in logs).
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class TransitionError(Exception):
    """Raised when a status change is not allowed from the current status.

    Maps to HTTP 409 with the current status and allowed targets in details.
    """

    def __init__(
        self,
        resource: str,
        current: str | None,
        target: str | None,
        allowed=None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.current = current
        self.target = target
        self.allowed = sorted(allowed or [])
        super().__init__(
            message or f"{resource} cannot move from '{current}' to '{target}'"
        )

    @property
    def details(self) -> dict:
        return {"current": self.current, "target": self.target, "allowed": self.allowed}


class PermissionDenied(Exception):
    """Raised when the acting profile may not perform an operation on a resource.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(message)
