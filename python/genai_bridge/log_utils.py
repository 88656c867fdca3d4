"""
Logging utilities - Benchmark-aware loggers for the bridge

Benchmark mode (GENAI_BRIDGE_BENCHMARK_MODE=1) disables non-critical log output
so that timing comparisons measure the engine rather than the bridge:
- info/debug calls become no-ops
- warning/error calls still go through
"""

import logging
import os
from typing import Any, Optional

from .config_loader import get_config


# Global benchmark mode flag (cached on import)
_BENCHMARK_MODE = os.getenv("GENAI_BRIDGE_BENCHMARK_MODE", "").strip() == "1"

LOGGER_NAMESPACE = "genai_bridge"


def is_benchmark_mode() -> bool:
    """
    Check if running in benchmark mode

    Returns:
        True if GENAI_BRIDGE_BENCHMARK_MODE=1 is set
    """
    return _BENCHMARK_MODE


class BenchmarkAwareLogger:
    """
    Logger that respects benchmark mode

    Wraps a standard library logger under the genai_bridge namespace and
    renders keyword context as key=value pairs.

    Usage:
        logger = BenchmarkAwareLogger("generation")
        logger.info("generate finished", elapsed_ms=12.5)
    """

    def __init__(self, name: str):
        self.name = name
        self.benchmark_mode = _BENCHMARK_MODE
        self._logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")

    @staticmethod
    def _format_message(msg: str, **kwargs: Any) -> str:
        """Format log message with context"""
        if kwargs:
            ctx = " ".join(f"{k}={v}" for k, v in kwargs.items())
            return f"{msg} ({ctx})"
        return msg

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log debug message (disabled in benchmark mode)"""
        if not self.benchmark_mode and self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug(self._format_message(msg, **kwargs))

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log info message (disabled in benchmark mode)"""
        if not self.benchmark_mode and self._logger.isEnabledFor(logging.INFO):
            self._logger.info(self._format_message(msg, **kwargs))

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log warning message (always enabled)"""
        self._logger.warning(self._format_message(msg, **kwargs))

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log error message (always enabled)"""
        self._logger.error(self._format_message(msg, **kwargs))


def configure_logging(level: Optional[str] = None) -> None:
    """
    Attach a stderr handler to the genai_bridge logger namespace

    Args:
        level: Level name (defaults to logging.level from runtime.yaml,
            or DEBUG when development.debug is set)

    Safe to call more than once; the handler is only added the first time.
    """
    if level is None:
        config = get_config()
        level = "DEBUG" if config.debug else config.log_level
    root = logging.getLogger(LOGGER_NAMESPACE)
    root.setLevel(level)
    if not any(getattr(h, "_genai_bridge", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handler._genai_bridge = True  # type: ignore[attr-defined]
        root.addHandler(handler)
