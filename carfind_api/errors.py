"""Domain-level exceptions for the AI service layer."""

from datetime import datetime, timezone
from typing import Any


class APIError(Exception):
    """Base for structured errors that carry a code and a creation timestamp."""

    code = "API_ERROR"
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}
        self.timestamp = timestamp or datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat(),
        }


class ValidationError(APIError):
    """Raised when a single field fails precondition checking. Never retryable."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        field: str,
        value: Any,
        constraint: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message or f"Invalid value for {field}: {value!r} (expected {constraint})",
            **kwargs,
        )
        self.field = field
        self.value = value
        self.constraint = constraint

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"field": self.field, "constraint": self.constraint})
        return payload


class ServiceError(APIError):
    """Raised when a provider, the factory, or the container cannot complete an operation."""

    code = "SERVICE_ERROR"

    def __init__(
        self,
        service_name: str,
        operation: str,
        message: str,
        retryable: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.service_name = service_name
        self.operation = operation
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"service": self.service_name, "operation": self.operation})
        return payload
