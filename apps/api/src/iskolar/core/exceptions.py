"""
Service Error Taxonomy

Every business failure raised by the service layer derives from ServiceError.
Each error carries a machine-readable error_code, the HTTP status the API
layer should answer with, and optional structured extra data (for example
the failed eligibility checks) so clients can render specific guidance.
"""

from typing import Any

from fastapi import HTTPException, status


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 400,
        extra: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.extra = extra or {}
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        return {"error": self.error_code, "message": self.message, **self.extra}


class ValidationError(ServiceError):
    """Raised for malformed or missing input. Never touches storage."""

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=422,
            extra={"fields": fields} if fields else None,
        )


class EligibilityError(ServiceError):
    """Raised when an applicant fails one or more eligibility criteria."""

    def __init__(self, reasons: list[str], checks: dict[str, bool]):
        self.reasons = reasons
        self.checks = checks
        super().__init__(
            message="Applicant is not eligible",
            error_code="NOT_ELIGIBLE",
            status_code=422,
            extra={"reasons": reasons, "checks": checks},
        )


class NotFoundError(ServiceError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: Any | None = None):
        message = f"{entity} {entity_id} not found" if entity_id is not None else f"{entity} not found"
        super().__init__(message=message, error_code="NOT_FOUND", status_code=404)


class ConflictError(ServiceError):
    """Raised for illegal state changes and uniqueness violations."""

    def __init__(
        self,
        message: str,
        error_code: str = "CONFLICT",
        extra: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, error_code=error_code, status_code=409, extra=extra)


class DuplicateApplicationError(ConflictError):
    """Raised when the applicant already has an active application for the scholarship."""

    def __init__(self, applicant_id: int, scholarship_id: int):
        super().__init__(
            message=(
                f"Applicant {applicant_id} already has an application "
                f"for scholarship {scholarship_id}"
            ),
            error_code="DUPLICATE_APPLICATION",
        )


class UnauthenticatedError(ServiceError):
    """Raised when the caller identity is missing or malformed."""

    def __init__(self, message: str = "Unauthenticated"):
        super().__init__(message=message, error_code="UNAUTHENTICATED", status_code=401)


class StorageError(ServiceError):
    """Raised for transient backend failures. Callers may retry the whole operation."""

    def __init__(self, operation: str):
        super().__init__(
            message=f"Storage unavailable while trying to {operation}. Please retry.",
            error_code="STORAGE_UNAVAILABLE",
            status_code=503,
            extra={"retryable": True},
        )


def service_error_to_http(e: ServiceError) -> HTTPException:
    """Convert a service error to an HTTPException with a structured detail."""
    headers = {"Retry-After": "1"} if isinstance(e, StorageError) else None
    return HTTPException(status_code=e.status_code, detail=e.to_detail(), headers=headers)


def internal_error() -> HTTPException:
    """Generic 500 for unexpected failures. Details stay in the logs."""
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
