"""Structured logging configuration."""

import logging
import sys
import time
from typing import Any, Optional
from datetime import datetime
from contextlib import contextmanager

import structlog
from structlog.stdlib import LoggerFactory

from .config import settings


def configure_logging() -> None:
    """Configure structured logging for the application."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.environment == "production"
            else structlog.dev.ConsoleRenderer(colors=True),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.log_level == "DEBUG" else logging.WARNING
    )
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("audit").setLevel(logging.INFO)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return structlog.get_logger(name)


class PerformanceLogger:
    """Logger for tracking performance metrics."""

    def __init__(self, logger_name: str = "performance"):
        self.logger = get_logger(logger_name)

    @contextmanager
    def log_operation_time(
        self,
        operation: str,
        **context: Any
    ):
        """Context manager to log operation execution time.

        Args:
            operation: Name of the operation being timed
            **context: Additional context for logging
        """
        start_time = time.time()
        start_timestamp = datetime.utcnow()

        self.logger.debug(
            "Operation started",
            operation=operation,
            start_time=start_timestamp.isoformat(),
            **context
        )

        try:
            yield

            duration = time.time() - start_time
            self.logger.info(
                "Operation completed",
                operation=operation,
                duration_seconds=round(duration, 3),
                **context
            )

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(
                "Operation failed",
                operation=operation,
                duration_seconds=round(duration, 3),
                error=str(e),
                error_type=type(e).__name__,
                **context
            )
            raise

    def log_processing_metrics(
        self,
        operation: str,
        items_processed: int,
        duration_seconds: float,
        success_count: Optional[int] = None,
        error_count: Optional[int] = None,
        **context: Any
    ):
        """Log processing metrics for batch operations.

        Args:
            operation: Name of the operation
            items_processed: Total number of items processed
            duration_seconds: Total processing time
            success_count: Number of successful items (optional)
            error_count: Number of failed items (optional)
            **context: Additional context
        """
        throughput = items_processed / duration_seconds if duration_seconds > 0 else 0

        self.logger.info(
            "Processing metrics",
            operation=operation,
            items_processed=items_processed,
            duration_seconds=round(duration_seconds, 3),
            throughput_per_second=round(throughput, 2),
            success_count=success_count,
            error_count=error_count,
            **context
        )


class ErrorLogger:
    """Logger for detailed error tracking and debugging."""

    def __init__(self, logger_name: str = "error"):
        self.logger = get_logger(logger_name)

    def log_validation_error(
        self,
        field: str,
        value: Any,
        error_message: str,
        **context: Any
    ):
        """Log validation errors with field details."""
        self.logger.warning(
            "Validation error",
            field=field,
            value=str(value)[:100],  # Truncate long values
            error_message=error_message,
            **context
        )


# Global logger instances
performance_logger = PerformanceLogger()
error_logger = ErrorLogger()
