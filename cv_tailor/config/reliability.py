"""
Global configuration for inference calls with robust error handling.

Provides centralized timeout, retry, and structured logging settings for all
calls to the inference provider.
"""

import inspect
import logging
import time
from functools import wraps
from typing import Callable, Any, Optional, TypeVar
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)
import httpx
import structlog

# Configure structured logging
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
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

# Global timeout settings (in seconds)
TIMEOUTS = {
    "total": 120.0,       # Total request timeout; long generations (tailoring) need it
}

# Global retry settings
RETRY_CONFIG = {
    "max_attempts": 3,
    "min_wait": 1.0,
    "max_wait": 10.0,
    "multiplier": 2.0,
}

# Transport-level failures worth another attempt. Parse failures are handled
# by the stages themselves.
RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    ConnectionError,
    TimeoutError,
)

F = TypeVar('F', bound=Callable[..., Any])


class OperationTimer:
    """Context manager for timing operations with structured logging."""

    def __init__(self, operation_name: str, **context):
        self.operation_name = operation_name
        self.context = context
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        logger.info(
            "Operation started",
            operation=self.operation_name,
            **self.context
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time

        if exc_type is None:
            logger.info(
                "Operation completed",
                operation=self.operation_name,
                duration_seconds=round(duration, 3),
                **self.context
            )
        else:
            logger.error(
                "Operation failed",
                operation=self.operation_name,
                duration_seconds=round(duration, 3),
                error_type=exc_type.__name__,
                error_message=str(exc_val),
                **self.context
            )


def with_retries(
    max_attempts: Optional[int] = None,
    min_wait: Optional[float] = None,
    max_wait: Optional[float] = None,
    exceptions: Optional[tuple] = None,
    operation_name: Optional[str] = None
) -> Callable[[F], F]:
    """
    Decorator that adds retry logic to functions making external calls.

    Works for plain functions and coroutine functions alike. After the last
    attempt the original exception is re-raised.

    Args:
        max_attempts: Maximum retry attempts (default: global config)
        min_wait: Minimum wait between retries in seconds
        max_wait: Maximum wait between retries in seconds
        exceptions: Tuple of exception types to retry on
        operation_name: Human-readable operation name for logging

    Returns:
        Decorated function with retry logic
    """
    attempts = max_attempts or RETRY_CONFIG["max_attempts"]
    min_wait_time = min_wait or RETRY_CONFIG["min_wait"]
    max_wait_time = max_wait or RETRY_CONFIG["max_wait"]
    retry_exceptions = exceptions or RETRYABLE_EXCEPTIONS

    def decorator(func: F) -> F:
        op_name = operation_name or f"{func.__module__}.{func.__name__}"
        retrying = retry(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(
                multiplier=RETRY_CONFIG["multiplier"],
                min=min_wait_time,
                max=max_wait_time
            ),
            retry=retry_if_exception_type(retry_exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        if inspect.iscoroutinefunction(func):
            @retrying
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                with OperationTimer(op_name):
                    return await func(*args, **kwargs)

            return async_wrapper

        @retrying
        @wraps(func)
        def wrapper(*args, **kwargs):
            with OperationTimer(op_name):
                return func(*args, **kwargs)

        return wrapper
    return decorator


# Pre-configured decorator for inference calls
inference_retry = with_retries(operation_name="Inference Call")


def log_api_call(
    provider: str,
    endpoint: str,
    request_size: Optional[int] = None,
    **context
) -> OperationTimer:
    """
    Create an operation timer specifically for API calls with provider context.

    Args:
        provider: API provider name (e.g., "ChatAnthropic")
        endpoint: API endpoint being called
        request_size: Size of request data (e.g., prompt length)
        **context: Additional context for logging

    Returns:
        OperationTimer context manager
    """
    timer_context = {
        "provider": provider,
        "endpoint": endpoint,
        **context
    }

    if request_size is not None:
        timer_context["request_size"] = request_size

    return OperationTimer(f"{provider} API Call", **timer_context)


__all__ = [
    "TIMEOUTS",
    "RETRY_CONFIG",
    "RETRYABLE_EXCEPTIONS",
    "with_retries",
    "inference_retry",
    "OperationTimer",
    "log_api_call",
    "logger"
]
