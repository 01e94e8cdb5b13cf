"""Logging Setup.

One-call configuration for reconciliation logging: JSON lines for
batch jobs and log shipping, colored console output for local runs.
"""

import json
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, TextIO

from src.logging_config.config import DEFAULT_LOGGING_CONFIG, LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import get_context_dict

# Record attributes copied into JSON output when a caller passes them via ``extra``.
EXTRA_FIELDS = ("duration_ms", "run_id", "trade_id", "chunk", "progress", "extra_data")


class StructuredFormatter(logging.Formatter):
    """One JSON object per log line.

    Always carries timestamp, level, logger, message and service, plus
    the bound run context and any known extra fields.
    """

    def __init__(self, service_name: str = "trade-billing", include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        if self.include_caller:
            entry["module"] = record.module
            entry["function"] = record.funcName
            entry["line"] = record.lineno

        entry.update(get_context_dict())

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable, color-coded log lines for development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]

        ctx = get_context_dict()
        ctx_str = ""
        if ctx:
            ctx_str = " [" + ", ".join(f"{k}={v}" for k, v in ctx.items()) + "]"

        line = (
            f"{color}{timestamp} {record.levelname:8s}{self.RESET} "
            f"{record.name}: {record.getMessage()}{ctx_str}"
        )
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _apply_env_overrides(config: LoggingConfig) -> LoggingConfig:
    env_level = os.environ.get("TRADEBILL_LOG_LEVEL", "").upper()
    if env_level in LogLevel.__members__:
        config = replace(config, level=LogLevel(env_level))

    env_format = os.environ.get("TRADEBILL_LOG_FORMAT", "").lower()
    if env_format in {f.value for f in LogFormat}:
        config = replace(config, format=LogFormat(env_format))
    return config


def configure_logging(
    config: Optional[LoggingConfig] = None, stream: Optional[TextIO] = None
) -> None:
    """Configure the root logger. Call once at startup.

    Args:
        config: Logging configuration. Uses defaults if not provided.
                TRADEBILL_LOG_LEVEL and TRADEBILL_LOG_FORMAT override
                the level and format.
        stream: Where log lines go. Defaults to stdout.
    """
    config = _apply_env_overrides(config or DEFAULT_LOGGING_CONFIG)

    if config.format == LogFormat.JSON:
        formatter: logging.Formatter = StructuredFormatter(
            service_name=config.service_name,
            include_caller=config.include_caller,
        )
    else:
        formatter = ConsoleFormatter()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.level.value))

    # pandas/numpy chatter is not useful in reconciliation logs
    for noisy in ("asyncio", "numexpr"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
