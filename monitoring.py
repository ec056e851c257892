"""
Logging setup and stage timing for pipeline runs.

This module provides:
- Structured JSON logging for machine-readable run logs
- Colored console logging for interactive use
- A stage timer that feeds the pipeline diagnostics
"""

import contextlib
import json
import logging
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator


# =============================================================================
# Structured JSON Logging
# =============================================================================


class JSONFormatter(logging.Formatter):
    """
    Format log records as JSON for structured logging.

    Extra fields passed through ``logger.info(..., extra={...})`` are
    copied into the output object.
    """

    def __init__(self, include_extras: bool = True):
        super().__init__()
        self.include_extras = include_extras
        self._skip_fields = {
            "name",
            "msg",
            "args",
            "created",
            "filename",
            "funcName",
            "levelname",
            "levelno",
            "lineno",
            "module",
            "msecs",
            "pathname",
            "process",
            "processName",
            "relativeCreated",
            "stack_info",
            "exc_info",
            "exc_text",
            "thread",
            "threadName",
            "taskName",
            "message",
        }

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_extras:
            for key, value in record.__dict__.items():
                if key not in self._skip_fields and not key.startswith("_"):
                    try:
                        json.dumps(value)
                        log_data[key] = value
                    except (TypeError, ValueError):
                        log_data[key] = str(value)

        return json.dumps(log_data)


class ColoredFormatter(logging.Formatter):
    """Colored console formatter using ANSI codes per level."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        formatted = super().format(record)
        return f"{color}{formatted}{self.RESET}"


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    log_file: Path | None = None,
    console_colors: bool = True,
) -> None:
    """
    Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON structured logging on the console
        log_file: Optional file path; file output is always JSON
        console_colors: Use colored output when not in JSON mode
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    # Console goes to stderr so that --json output on stdout stays parseable
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)

    if json_format:
        console_handler.setFormatter(JSONFormatter())
    elif console_colors and sys.stderr.isatty():
        console_handler.setFormatter(ColoredFormatter(LOG_FORMAT))
    else:
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)


# =============================================================================
# Stage Timing
# =============================================================================


@dataclass
class StageTimings:
    """Wall-clock durations of named pipeline stages, in milliseconds."""

    durations_ms: dict[str, float] = field(default_factory=dict)

    @property
    def total_ms(self) -> float:
        return sum(self.durations_ms.values())

    def to_dict(self) -> dict[str, float]:
        return {name: round(ms, 2) for name, ms in self.durations_ms.items()}


@contextlib.contextmanager
def timed_stage(
    name: str, timings: StageTimings, logger: logging.Logger | None = None
) -> Generator[None, None, None]:
    """Record how long the enclosed block takes under ``name``."""
    log = logger or logging.getLogger(__name__)
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        timings.durations_ms[name] = elapsed_ms
        log.debug("Stage %s took %.1fms", name, elapsed_ms)


# ============================================================================
# Unit Tests
# ============================================================================
def _create_module_tests():
    """Create unit tests for monitoring module."""
    from test_framework import TestSuite

    suite = TestSuite("Monitoring Tests")

    def test_json_formatter_extras():
        record = logging.LogRecord(
            "tally", logging.INFO, __file__, 1, "resolved %d", (3,), None
        )
        record.cache_hits = 2
        payload = json.loads(JSONFormatter().format(record))
        assert payload["message"] == "resolved 3"
        assert payload["cache_hits"] == 2

    def test_timed_stage_records_duration():
        timings = StageTimings()
        with timed_stage("phase1", timings):
            pass
        assert "phase1" in timings.durations_ms
        assert timings.total_ms >= 0

    suite.add_test("JSONFormatter extras", test_json_formatter_extras)
    suite.add_test("timed_stage records", test_timed_stage_records_duration)

    return suite
