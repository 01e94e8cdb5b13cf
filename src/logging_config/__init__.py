"""Structured logging for the reconciliation services.

JSON or console log output, run-scoped context binding and
performance timing.
"""

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import RunContext, generate_run_id, get_run_id
from src.logging_config.performance import PerformanceTimer, log_performance
from src.logging_config.setup import configure_logging

__all__ = [
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "PerformanceTimer",
    "RunContext",
    "configure_logging",
    "generate_run_id",
    "get_run_id",
    "log_performance",
]
