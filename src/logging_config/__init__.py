"""Structured Logging & Performance Timing.

JSON or console log output for the GEX analytics process, plus
timing helpers for slow analytics steps.
"""

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.performance import PerformanceTimer, log_performance
from src.logging_config.setup import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "ConsoleFormatter",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "PerformanceTimer",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "log_performance",
]
