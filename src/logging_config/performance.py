"""Performance Logging.

Timing helpers for batch reconciliation: a decorator for sync and async
callables and a context manager for timing arbitrary blocks.
"""

import inspect
import functools
import logging
import time
from typing import Any, Callable, Optional

from src.logging_config.config import DEFAULT_LOGGING_CONFIG

logger = logging.getLogger(__name__)


def _emit(_logger: logging.Logger, name: str, duration_ms: float, threshold_ms: float,
          failed: Optional[BaseException] = None) -> None:
    extra = {"duration_ms": round(duration_ms, 2)}
    if failed is not None:
        _logger.error(
            f"{name} failed after {duration_ms:.1f}ms: {type(failed).__name__}", extra=extra
        )
    elif duration_ms >= threshold_ms:
        _logger.warning(f"Slow operation: {name} took {duration_ms:.1f}ms", extra=extra)
    else:
        _logger.debug(f"{name} completed in {duration_ms:.1f}ms", extra=extra)


def log_performance(threshold_ms: Optional[float] = None,
                    logger_name: Optional[str] = None) -> Callable:
    """Decorator that logs how long a function took.

    Calls log at DEBUG, calls slower than ``threshold_ms`` at WARNING and
    failures at ERROR (the exception is re-raised).

    Example:
        @log_performance(threshold_ms=500)
        def run(self, trades):
            ...
    """
    if threshold_ms is None:
        threshold_ms = DEFAULT_LOGGING_CONFIG.slow_threshold_ms

    def decorator(func: Callable) -> Callable:
        _logger = logging.getLogger(logger_name or func.__module__)
        name = func.__qualname__

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    _emit(_logger, name, (time.perf_counter() - start) * 1000, threshold_ms, exc)
                    raise
                _emit(_logger, name, (time.perf_counter() - start) * 1000, threshold_ms)
                return result
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _emit(_logger, name, (time.perf_counter() - start) * 1000, threshold_ms, exc)
                raise
            _emit(_logger, name, (time.perf_counter() - start) * 1000, threshold_ms)
            return result
        return sync_wrapper

    return decorator


class PerformanceTimer:
    """Context manager for timing a block.

    Example:
        with PerformanceTimer("chunk 3") as timer:
            ...
        timer.duration_ms
    """

    def __init__(self, operation_name: str, threshold_ms: Optional[float] = None):
        self.operation_name = operation_name
        self.threshold_ms = threshold_ms or DEFAULT_LOGGING_CONFIG.slow_threshold_ms
        self.start_time: float = 0
        self.duration_ms: float = 0

    def __enter__(self) -> "PerformanceTimer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        _emit(logger, self.operation_name, self.duration_ms, self.threshold_ms, exc_val)
