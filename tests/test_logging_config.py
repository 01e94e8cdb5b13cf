"""Tests for structured logging and run context."""

import asyncio
import io
import json
import logging
import sys
import time

import pytest

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import (
    RunContext,
    generate_run_id,
    get_context_dict,
    get_run_id,
)
from src.logging_config.performance import PerformanceTimer, log_performance
from src.logging_config.setup import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
)
from src.settings import Settings


def _record(msg: str = "test", level: int = logging.INFO, name: str = "test", **kwargs):
    return logging.LogRecord(
        name=name, level=level, pathname="test.py",
        lineno=kwargs.pop("lineno", 1), msg=msg, args=(), exc_info=kwargs.pop("exc_info", None),
    )


class TestLoggingConfig:
    """Tests for logging configuration dataclasses."""

    def test_default_config_values(self):
        config = LoggingConfig()
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.JSON
        assert config.include_caller is True
        assert config.slow_threshold_ms == 1000.0
        assert config.service_name == "trade-billing"

    def test_from_settings(self):
        settings = Settings(log_level="debug", log_format="CONSOLE", service_name="recon")
        config = LoggingConfig.from_settings(settings)
        assert config.level == LogLevel.DEBUG
        assert config.format == LogFormat.CONSOLE
        assert config.service_name == "recon"

    def test_from_settings_falls_back_on_bad_values(self):
        settings = Settings(log_level="chatty", log_format="xml")
        config = LoggingConfig.from_settings(settings)
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.JSON


class TestRunContext:
    """Tests for run context management."""

    def test_generate_run_id_unique(self):
        ids = {generate_run_id() for _ in range(100)}
        assert len(ids) == 100

    def test_run_id_length(self):
        assert len(generate_run_id()) == 16

    def test_context_sets_run_id(self):
        with RunContext(run_id="run-123"):
            assert get_run_id() == "run-123"
        assert get_run_id() == ""

    def test_auto_generates_run_id(self):
        with RunContext() as ctx:
            assert ctx.run_id != ""
            assert get_run_id() == ctx.run_id

    def test_get_context_dict(self):
        with RunContext(run_id="r1", extra={"trades": 10}):
            ctx = get_context_dict()
            assert ctx["run_id"] == "r1"
            assert ctx["trades"] == 10

    def test_context_dict_empty_outside(self):
        assert get_context_dict() == {}

    def test_bind_extra_context(self):
        with RunContext(run_id="r1") as ctx:
            ctx.bind(chunk=3, source="fx")
            d = get_context_dict()
            assert d["chunk"] == 3
            assert d["source"] == "fx"
        assert get_context_dict() == {}

    def test_elapsed_ms(self):
        with RunContext() as ctx:
            time.sleep(0.01)
            assert ctx.elapsed_ms >= 10

    def test_nested_contexts_restore_outer(self):
        with RunContext(run_id="outer"):
            with RunContext(run_id="inner"):
                assert get_run_id() == "inner"
            assert get_run_id() == "outer"
        assert get_run_id() == ""


class TestStructuredFormatter:
    """Tests for JSON structured log formatting."""

    def test_formats_as_json(self):
        parsed = json.loads(StructuredFormatter().format(_record("hello world")))
        assert parsed["message"] == "hello world"
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "test"
        assert "timestamp" in parsed

    def test_includes_service_name(self):
        parsed = json.loads(StructuredFormatter(service_name="recon").format(_record()))
        assert parsed["service"] == "recon"

    def test_includes_caller_info(self):
        parsed = json.loads(StructuredFormatter(include_caller=True).format(_record(lineno=42)))
        assert parsed["line"] == 42
        assert "module" in parsed
        assert "function" in parsed

    def test_excludes_caller_when_disabled(self):
        parsed = json.loads(StructuredFormatter(include_caller=False).format(_record(lineno=42)))
        assert "line" not in parsed
        assert "function" not in parsed

    def test_includes_run_context(self):
        with RunContext(run_id="ctx-test", extra={"trades": 5}):
            parsed = json.loads(StructuredFormatter().format(_record()))
        assert parsed["run_id"] == "ctx-test"
        assert parsed["trades"] == 5

    def test_formats_exception(self):
        try:
            raise ValueError("test error")
        except ValueError:
            record = _record("failed", level=logging.ERROR, exc_info=sys.exc_info())
            parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["exception"]["type"] == "ValueError"
        assert "test error" in parsed["exception"]["message"]

    def test_includes_known_extra_fields(self):
        record = _record()
        record.duration_ms = 42.5
        record.chunk = 2
        record.progress = 40.0
        record.unrelated = "ignored"
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["duration_ms"] == 42.5
        assert parsed["chunk"] == 2
        assert parsed["progress"] == 40.0
        assert "unrelated" not in parsed


class TestConsoleFormatter:
    """Tests for colored console log formatting."""

    def test_formats_readable_output(self):
        output = ConsoleFormatter().format(_record("hello", name="recon.batch"))
        assert "recon.batch" in output
        assert "hello" in output

    def test_includes_level_name(self):
        assert "WARNING" in ConsoleFormatter().format(_record(level=logging.WARNING))

    def test_includes_context_info(self):
        with RunContext(run_id="abc"):
            output = ConsoleFormatter().format(_record())
        assert "run_id=abc" in output

    def test_has_color_codes(self):
        output = ConsoleFormatter().format(_record(level=logging.ERROR))
        assert "\033[31m" in output  # Red for ERROR


class TestConfigureLogging:
    """Tests for the configure_logging setup function."""

    def test_configures_root_logger(self):
        configure_logging(LoggingConfig(format=LogFormat.CONSOLE))
        assert len(logging.getLogger().handlers) == 1

    def test_json_format(self):
        configure_logging(LoggingConfig(format=LogFormat.JSON))
        assert isinstance(logging.getLogger().handlers[0].formatter, StructuredFormatter)

    def test_console_format(self):
        configure_logging(LoggingConfig(format=LogFormat.CONSOLE))
        assert isinstance(logging.getLogger().handlers[0].formatter, ConsoleFormatter)

    def test_sets_log_level(self):
        configure_logging(LoggingConfig(level=LogLevel.DEBUG))
        assert logging.getLogger().level == logging.DEBUG

    def test_writes_to_given_stream(self):
        stream = io.StringIO()
        configure_logging(LoggingConfig(format=LogFormat.JSON), stream=stream)
        logging.getLogger("recon.stream").warning("to stderr")
        parsed = json.loads(stream.getvalue().splitlines()[-1])
        assert parsed["message"] == "to stderr"

    def test_quiets_noisy_loggers(self):
        configure_logging()
        assert logging.getLogger("asyncio").level >= logging.WARNING

    def test_env_var_override_level(self, monkeypatch):
        monkeypatch.setenv("TRADEBILL_LOG_LEVEL", "DEBUG")
        configure_logging(LoggingConfig(level=LogLevel.ERROR))
        assert logging.getLogger().level == logging.DEBUG

    def test_env_var_override_format(self, monkeypatch):
        monkeypatch.setenv("TRADEBILL_LOG_FORMAT", "CONSOLE")
        configure_logging(LoggingConfig(format=LogFormat.JSON))
        assert isinstance(logging.getLogger().handlers[0].formatter, ConsoleFormatter)


class TestPerformanceLogging:
    """Tests for performance timing decorator and context manager."""

    def test_log_performance_sync(self):
        @log_performance(threshold_ms=10000)
        def fast_func():
            return 42

        assert fast_func() == 42

    def test_log_performance_async(self):
        @log_performance(threshold_ms=10000)
        async def async_func():
            return "ok"

        assert asyncio.run(async_func()) == "ok"

    def test_log_performance_preserves_name(self):
        @log_performance()
        def my_function():
            """My docstring."""

        assert my_function.__name__ == "my_function"
        assert my_function.__doc__ == "My docstring."

    def test_log_performance_with_exception(self):
        @log_performance(threshold_ms=10000)
        def failing_func():
            raise ValueError("test error")

        with pytest.raises(ValueError, match="test error"):
            failing_func()

    def test_log_performance_async_exception(self):
        @log_performance(threshold_ms=10000)
        async def async_failing():
            raise RuntimeError("async fail")

        with pytest.raises(RuntimeError, match="async fail"):
            asyncio.run(async_failing())

    def test_slow_call_logs_warning(self, caplog):
        @log_performance(threshold_ms=0, logger_name="recon.slow")
        def slow():
            return None

        with caplog.at_level(logging.DEBUG, logger="recon.slow"):
            slow()
        assert any(r.levelno == logging.WARNING and "Slow operation" in r.getMessage()
                   for r in caplog.records)

    def test_performance_timer_context_manager(self):
        with PerformanceTimer("test_op") as timer:
            time.sleep(0.01)
        assert timer.duration_ms >= 10

    def test_performance_timer_with_exception(self):
        with pytest.raises(ValueError):
            with PerformanceTimer("failing_op") as timer:
                raise ValueError("oops")
        assert timer.duration_ms >= 0
