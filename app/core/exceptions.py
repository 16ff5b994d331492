"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception.

    ``extra`` keys are merged into the JSON error body next to ``error``.
    """

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.extra = extra
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", extra: dict[str, Any] | None = None) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail, extra=extra)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(
        self,
        resource: str = "Resource",
        identifier: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail, extra=extra)


class AuthorizationError(AppException):
    """Authorization denied exception."""

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ConflictError(AppException):
    """The record changed between read and conditional write."""

    def __init__(self, detail: str = "The resource was modified by another request") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class WebhookRejected(AppException):
    """Permanent webhook failure.

    Reported as 400 so the gateway does not keep retrying the delivery.
    """

    def __init__(self, detail: str = "Callback rejected") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ExternalServiceError(AppException):
    """External service error."""

    def __init__(self, service: str, detail: str | None = None) -> None:
        message = f"External service '{service}' is unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)
