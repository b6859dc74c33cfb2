"""Logging Setup.

One-call configuration for structured logging. JSON lines for
machine consumption, colored console output for local runs. Logs go
to stderr by default so report JSON on stdout stays clean.
"""

import json
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from src.logging_config.config import DEFAULT_LOGGING_CONFIG, LogFormat, LoggingConfig, LogLevel

# Extra attributes copied from LogRecord into the JSON payload
EXTRA_FIELDS = ("duration_ms", "operation", "records", "spot", "extra_data")


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter.

    One JSON object per line: timestamp, level, logger, message,
    service, plus any known extra fields bound to the record.
    """

    def __init__(self, service_name: str = "gex", include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        if self.include_caller:
            log_entry["module"] = record.module
            log_entry["function"] = record.funcName
            log_entry["line"] = record.lineno

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter with color-coded levels."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        if self.use_color:
            color = self.COLORS.get(record.levelname, self.RESET)
            level = f"{color}{record.levelname:8s}{self.RESET}"
        else:
            level = f"{record.levelname:8s}"

        line = f"{timestamp} {level} {record.name}: {record.getMessage()}"
        if hasattr(record, "duration_ms"):
            line += f" ({record.duration_ms}ms)"

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)

        return line


def apply_env_overrides(config: LoggingConfig) -> LoggingConfig:
    """Apply GEX_LOG_LEVEL / GEX_LOG_FORMAT on top of ``config``.

    Unrecognized values are ignored.
    """
    env_level = os.environ.get("GEX_LOG_LEVEL", "").upper()
    if env_level in LogLevel.__members__:
        config = replace(config, level=LogLevel(env_level))

    env_format = os.environ.get("GEX_LOG_FORMAT", "").lower()
    if env_format in [f.value for f in LogFormat]:
        config = replace(config, format=LogFormat(env_format))

    return config


def configure_logging(config: Optional[LoggingConfig] = None) -> LoggingConfig:
    """Configure the root logger for the analytics process.

    Call once at startup.

    Args:
        config: Logging configuration. Uses defaults if not provided.
                Level and format can be overridden with GEX_LOG_LEVEL
                and GEX_LOG_FORMAT.

    Returns:
        The effective configuration after environment overrides.
    """
    config = apply_env_overrides(config or DEFAULT_LOGGING_CONFIG)

    if config.format == LogFormat.JSON:
        formatter = StructuredFormatter(
            service_name=config.service_name,
            include_caller=config.include_caller,
        )
    else:
        formatter = ConsoleFormatter()

    handler = logging.StreamHandler(sys.stdout if config.stream == "stdout" else sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.level.value))

    for noisy in config.quiet_loggers:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return config


def get_logger(name: str) -> logging.Logger:
    """Standard library logger; formatted by whatever configure_logging installed."""
    return logging.getLogger(name)
