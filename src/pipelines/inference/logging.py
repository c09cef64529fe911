"""Inference pipeline loggers and metric records.

Every record from this package carries ``pipeline=inference`` so advisor,
tool bridge and orchestrator output can be filtered together.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional

from src.utils.logging import LoggerMixin, get_logger

INFERENCE_CONTEXT = {"pipeline": "inference"}


def get_inference_logger(name: str) -> logging.Logger:
    return get_logger(name, INFERENCE_CONTEXT)


class InferenceLoggerMixin(LoggerMixin):
    log_context = INFERENCE_CONTEXT


def _metric(logger: logging.Logger, message: str, metric_type: str, fields: Dict[str, Any]) -> None:
    logger.info(message, extra={"extra_fields": {"metric_type": metric_type, **fields}})


def log_token_usage(logger: logging.Logger, model: str, input_tokens: int, output_tokens: int) -> None:
    total = input_tokens + output_tokens
    _metric(logger, f"Token usage: {total} ({input_tokens} in / {output_tokens} out)", "token_usage", {
        "model": model,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": total,
    })


def log_latency(
    logger: logging.Logger,
    operation: str,
    latency_ms: float,
    metadata: Optional[Dict[str, Any]] = None
) -> None:
    _metric(logger, f"{operation} took {latency_ms:.2f}ms", "latency", {
        "operation": operation,
        "latency_ms": latency_ms,
        **(metadata or {}),
    })


def log_async_inference_operation(operation: str, logger: logging.Logger) -> Callable:
    """Decorator timing an async call; failures are logged and re-raised."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"{operation} failed: {e}",
                    extra={"extra_fields": {
                        "operation": operation,
                        "latency_ms": (time.perf_counter() - start) * 1000,
                        "error_type": type(e).__name__,
                    }}
                )
                raise
            log_latency(logger, operation, (time.perf_counter() - start) * 1000)
            return result
        return wrapper
    return decorator
