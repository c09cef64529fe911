"""Logging helpers for knowledge ingestion and search."""

import time
from functools import wraps
from typing import Any, Callable

from src.utils.logging import LoggerMixin


class RetrievalLoggerMixin(LoggerMixin):
    """Logger tagged ``pipeline=retrieval`` with success/failure helpers."""

    log_context = {"pipeline": "retrieval"}

    def log_operation_success(self, operation: str, duration_ms: float, **fields: Any) -> None:
        self.logger.info(
            f"{operation} finished in {duration_ms:.2f}ms",
            extra={"extra_fields": {"operation": operation, "duration_ms": duration_ms, **fields}}
        )

    def log_operation_error(
        self, operation: str, error: Exception, duration_ms: float, **fields: Any
    ) -> None:
        self.logger.error(
            f"{operation} failed after {duration_ms:.2f}ms: {error}",
            extra={"extra_fields": {
                "operation": operation,
                "duration_ms": duration_ms,
                "error_type": type(error).__name__,
                **fields,
            }}
        )


def log_retrieval_operation(operation: str) -> Callable:
    """Decorator for ``RetrievalLoggerMixin`` methods."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(self, *args, **kwargs)
            except Exception as e:
                self.log_operation_error(operation, e, (time.perf_counter() - start) * 1000)
                raise
            self.log_operation_success(operation, (time.perf_counter() - start) * 1000)
            return result
        return wrapper
    return decorator
