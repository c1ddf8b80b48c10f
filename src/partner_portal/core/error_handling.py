"""Error taxonomy and centralized error handling."""

from typing import Any, Dict, Optional
from datetime import datetime
from enum import Enum
from dataclasses import dataclass, asdict

from .logging import get_logger

logger = get_logger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels for classification and handling."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification and routing."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    DATABASE = "database"
    EXTERNAL_SERVICE = "external_service"
    UPSTREAM = "upstream"
    TIMEOUT = "timeout"
    BUSINESS_LOGIC = "business_logic"
    SYSTEM = "system"


class UpstreamErrorKind(str, Enum):
    """User-meaningful buckets for error payloads returned by external APIs."""
    UNAUTHORIZED = "unauthorized"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    GENERIC = "generic"

    @classmethod
    def from_status(cls, status_code: Optional[int]) -> "UpstreamErrorKind":
        if status_code == 401:
            return cls.UNAUTHORIZED
        if status_code == 403:
            return cls.ACCESS_DENIED
        if status_code == 404:
            return cls.NOT_FOUND
        return cls.GENERIC


@dataclass
class ErrorContext:
    """Context information for error handling and logging."""
    operation: str
    component: str
    user_id: Optional[str] = None
    request_id: Optional[str] = None
    additional_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PortalError(Exception):
    """Base exception class for portal errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context
        self.original_error = original_error
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging and API responses."""
        return {
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
            "original_error": str(self.original_error) if self.original_error else None,
            "original_error_type": type(self.original_error).__name__ if self.original_error else None,
        }


class ValidationError(PortalError):
    """Missing or malformed input, raised before any network call."""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        super().__init__(
            message,
            ErrorCategory.VALIDATION,
            ErrorSeverity.LOW,
            **kwargs
        )
        self.field = field
        self.value = value


class AuthenticationError(PortalError):
    """Error for operations that need an authenticated user."""

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(
            message,
            ErrorCategory.AUTHENTICATION,
            ErrorSeverity.HIGH,
            **kwargs
        )


class StoreError(PortalError):
    """Error for canonical store operations."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            ErrorCategory.DATABASE,
            ErrorSeverity.HIGH,
            **kwargs
        )


class ExternalServiceError(PortalError):
    """Transport-level failure talking to an external service."""

    def __init__(self, message: str, service_name: str = None, status_code: Optional[int] = None, **kwargs):
        super().__init__(
            message,
            ErrorCategory.EXTERNAL_SERVICE,
            ErrorSeverity.MEDIUM,
            **kwargs
        )
        self.service_name = service_name
        self.status_code = status_code


class UpstreamError(PortalError):
    """External API answered with an error payload or an error-range status."""

    def __init__(
        self,
        message: str,
        kind: UpstreamErrorKind = UpstreamErrorKind.GENERIC,
        status_code: Optional[int] = None,
        service_name: str = None,
        **kwargs
    ):
        super().__init__(
            message,
            ErrorCategory.UPSTREAM,
            ErrorSeverity.MEDIUM,
            **kwargs
        )
        self.kind = kind
        self.status_code = status_code
        self.service_name = service_name


class PollingTimeoutError(PortalError):
    """Enrichment poll budget exhausted without a terminal status."""

    def __init__(self, message: str = "Polling timed out before completion.", attempts: int = 0, **kwargs):
        super().__init__(
            message,
            ErrorCategory.TIMEOUT,
            ErrorSeverity.MEDIUM,
            **kwargs
        )
        self.attempts = attempts


class LookupFailedError(PortalError):
    """Enrichment provider reported that it gave up on the lookup."""

    def __init__(self, message: str = "Lookup failed to resolve data.", **kwargs):
        super().__init__(
            message,
            ErrorCategory.BUSINESS_LOGIC,
            ErrorSeverity.LOW,
            **kwargs
        )


class LookupIncompleteError(PortalError):
    """Lookup stopped in a non-terminal status without any contact data."""

    def __init__(self, status: str, **kwargs):
        super().__init__(
            f"Lookup incomplete (Status: {status}). Try again later.",
            ErrorCategory.BUSINESS_LOGIC,
            ErrorSeverity.LOW,
            **kwargs
        )
        self.status = status


class ErrorHandler:
    """Centralized error classification with logging."""

    def __init__(self):
        self.logger = get_logger("error_handler")

    def handle_error(
        self,
        error: Exception,
        context: Optional[ErrorContext] = None
    ) -> PortalError:
        """Classify and log an error.

        Args:
            error: The original exception
            context: Error context information

        Returns:
            Classified portal error
        """
        if isinstance(error, PortalError):
            portal_error = error
            if context and portal_error.context is None:
                portal_error.context = context
        else:
            portal_error = self._classify_error(error, context)

        self._log_error(portal_error)
        return portal_error

    def _classify_error(self, error: Exception, context: Optional[ErrorContext]) -> PortalError:
        """Classify generic exceptions into portal errors."""
        error_message = str(error)
        lowered = error_message.lower()

        if "database" in lowered or "sql" in lowered:
            return StoreError(
                f"Database operation failed: {error_message}",
                context=context,
                original_error=error
            )

        if isinstance(error, (ConnectionError, TimeoutError)) or any(
            keyword in lowered for keyword in ["connection", "timeout", "network"]
        ):
            return ExternalServiceError(
                f"Network operation failed: {error_message}",
                context=context,
                original_error=error
            )

        if isinstance(error, (ValueError, TypeError)):
            return ValidationError(
                f"Validation failed: {error_message}",
                context=context,
                original_error=error
            )

        return PortalError(
            f"Unexpected error: {error_message}",
            ErrorCategory.SYSTEM,
            ErrorSeverity.MEDIUM,
            context=context,
            original_error=error
        )

    def _log_error(self, error: PortalError):
        """Log error with a level matching its severity."""
        log_data = error.to_dict()

        if error.severity == ErrorSeverity.CRITICAL:
            self.logger.critical("Critical error occurred", **log_data)
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error("High severity error occurred", **log_data)
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning("Medium severity error occurred", **log_data)
        else:
            self.logger.info("Low severity error occurred", **log_data)


# Global error handler instance
error_handler = ErrorHandler()
