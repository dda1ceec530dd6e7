"""
Consolidated exception system with error codes, context, and correlation support.

Every error a caller can observe from the token subsystem is a subclass of
BaseError. Each subclass carries a stable ``kind`` which is the value placed on
the wire, so clients can tell "try again" apart from "this link no longer works".
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


_thread_local = threading.local()


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONNECTION_ERROR = "1002"
    CONFIGURATION_ERROR = "1003"
    TIMEOUT_ERROR = "1004"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"
    CONSTRAINT_VIOLATION = "2004"

    # Resource errors (3xxx)
    NOT_FOUND = "3000"
    DUPLICATE = "3001"
    CONFLICT = "3002"
    EXPIRED = "3004"
    LIMIT_EXCEEDED = "3005"
    REVOKED = "3006"

    # Business logic errors (4xxx)
    PERMISSION_DENIED = "4003"
    PRECONDITION_FAILED = "4004"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    kind = "Internal"

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize base error with rich context.

        Args:
            message: Human-readable error message
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP status code for API responses
            cause: Original exception that caused this error
            **context: Additional context information
        """
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_id = str(uuid.uuid4())
        self.context = context

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        self.context["error_id"] = self.error_id

        if cause:
            self.context["cause"] = {
                "type": type(cause).__name__,
                "message": str(cause),
                "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
            }

        self._log_error()

        super().__init__(message)

    def _log_error(self) -> None:
        """Log error with appropriate level based on status code."""
        # Import logger here to avoid circular dependency at module load time
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_kind": self.kind,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "context": {k: v for k, v in self.context.items() if k not in ["cause", "traceback"]},
        }

        if "correlation_id" in self.context:
            log_data["correlation_id"] = self.context["correlation_id"]

        if self.status_code >= 500:
            logger.error(f"Error {self.kind}: {self.message}", extra=log_data)
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.kind}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.kind}: {self.message}", extra=log_data)

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """
        Convert to dict for API responses.

        Context stays out of the public body; it may hold identifiers a
        token holder must not learn.

        Args:
            include_cause: Include cause information (useful for debugging)

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "kind": self.kind,
                "code": self.error_code.value,
                "message": self.message,
                "id": self.error_id,
                "timestamp": self.timestamp,
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        if include_cause and "cause" in self.context:
            result["error"]["cause"] = {
                "type": self.context["cause"]["type"],
                "message": self.context["cause"]["message"],
            }

        return result

    def add_context(self, **kwargs: Any) -> "BaseError":
        """
        Add additional context to the error (fluent interface).

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self


class InvalidArgumentError(BaseError):
    """Request arguments failed validation before touching the store."""

    kind = "InvalidArgument"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class TokenRejectedError(BaseError):
    """
    Base class for terminal validation rejections.

    Messages are fixed per subclass so a rejection never reveals more than
    its kind.
    """

    default_message = "Token rejected"
    default_error_code = ErrorCode.PRECONDITION_FAILED
    default_status_code = 403

    def __init__(self, message: Optional[str] = None, cause: Optional[Exception] = None, **context):
        super().__init__(
            message or self.default_message,
            self.default_error_code,
            self.default_status_code,
            cause,
            **context,
        )


class TokenNotFoundError(TokenRejectedError):
    kind = "NotFound"
    default_message = "Token not found"
    default_error_code = ErrorCode.NOT_FOUND
    default_status_code = 404


class TokenExpiredError(TokenRejectedError):
    kind = "Expired"
    default_message = "Token has expired"
    default_error_code = ErrorCode.EXPIRED
    default_status_code = 410


class TokenRevokedError(TokenRejectedError):
    kind = "Revoked"
    default_message = "Token has been revoked"
    default_error_code = ErrorCode.REVOKED
    default_status_code = 410


class TokenExhaustedError(TokenRejectedError):
    kind = "ExhaustedUses"
    default_message = "Token has no remaining uses"
    default_error_code = ErrorCode.LIMIT_EXCEEDED
    default_status_code = 410


class SubjectMismatchError(TokenRejectedError):
    kind = "SubjectMismatch"
    default_message = "Token does not belong to the expected subject"
    default_error_code = ErrorCode.PRECONDITION_FAILED
    default_status_code = 403


class PermissionDeniedError(BaseError):
    """Caller is not allowed to perform the action on the resource."""

    kind = "PermissionDenied"

    def __init__(self, action: str, resource: str, cause: Optional[Exception] = None, **context):
        super().__init__(
            f"Permission denied: {action} on {resource}",
            error_code=ErrorCode.PERMISSION_DENIED,
            status_code=403,
            cause=cause,
            action=action,
            resource=resource,
            **context,
        )


class RecordNotFoundError(BaseError):
    """A record-store row referenced by a valid grant is missing."""

    kind = "NotFound"

    def __init__(self, resource_type: str, cause: Optional[Exception] = None, **identifiers):
        super().__init__(
            f"{resource_type} not found",
            error_code=ErrorCode.NOT_FOUND,
            status_code=404,
            cause=cause,
            resource_type=resource_type,
            **identifiers,
        )


class RetryableConflictError(BaseError):
    """
    A write lost a race (identifier collision, row changed underneath).

    Always handled by the component that raised it; never returned to callers.
    """

    kind = "RetryableConflict"

    def __init__(self, message: str = "Conflicting write, retry", cause: Optional[Exception] = None, **context):
        super().__init__(message, ErrorCode.CONFLICT, 409, cause, **context)


class StorageUnavailableError(BaseError):
    """Token or record store did not answer within its bounds after retries."""

    kind = "Unavailable"

    def __init__(
        self,
        message: str = "Storage temporarily unavailable",
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        if operation:
            context["operation"] = operation
        super().__init__(message, ErrorCode.TIMEOUT_ERROR, 503, cause, **context)


class ConfigurationError(BaseError):
    """Invalid or missing runtime configuration."""

    kind = "Internal"

    def __init__(self, message: str, cause: Optional[Exception] = None, **context):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, 500, cause, **context)


# Factory functions for common error patterns
def validation_failed(
    field: str, value: Any, reason: str, cause: Optional[Exception] = None
) -> InvalidArgumentError:
    """
    Factory for validation errors.

    Args:
        field: Field that failed validation
        value: The invalid value
        reason: Why validation failed
        cause: Original exception if any

    Returns:
        Configured InvalidArgumentError instance
    """
    return InvalidArgumentError(
        f"Validation failed for {field}: {reason}",
        field=field,
        cause=cause,
        value=str(value),
        reason=reason,
    )


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")
