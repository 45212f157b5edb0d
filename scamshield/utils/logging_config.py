"""
Structured logging configuration for ScamShield.

JSON logs in production (one object per line, ready for log aggregation),
plain text in development.
"""

import asyncio
import json
import logging
import sys
import time
import traceback
from contextvars import ContextVar
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any, Dict, Optional

from scamshield.config import settings


# Context variables for request tracking
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
analysis_id_var: ContextVar[Optional[str]] = ContextVar("analysis_id", default=None)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if request_id_var.get():
            log_data["request_id"] = request_id_var.get()
        if analysis_id_var.get():
            log_data["analysis_id"] = analysis_id_var.get()

        if hasattr(record, "extra_data"):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        log_data["environment"] = settings.environment

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """
    Wrapper for structured logging with keyword fields.

    Usage:
        logger = StructuredLogger("scamshield.pipeline")
        logger.info("Analysis completed", analysis_id=record.id, score=72)
        logger.error("Pipeline failed", exc_info=True, analysis_id=record.id)
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs):
        if not self._logger.isEnabledFor(level):
            return
        extra = {"extra_data": kwargs} if kwargs else None
        self._logger.log(level, message, exc_info=exc_info, extra=extra, stacklevel=3)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs):
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
):
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (True for prod, False for dev)
        log_file: Optional file path for file logging
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        console_handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
        )
        console_handler.setFormatter(formatter)

    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, level.upper()))
        file_handler.setFormatter(JSONFormatter())  # Always JSON for files
        root_logger.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)


# ============== METRICS ==============


class MetricsCollector:
    """
    Collects and aggregates in-process metrics.

    Usage:
        metrics.increment("analysis.status.completed")
        metrics.timing("analysis.latency", 0.125)
    """

    def __init__(self):
        self._counters: Dict[str, int] = {}
        self._timings: Dict[str, list] = {}
        self._start_time = time.time()

    def increment(self, name: str, value: int = 1):
        self._counters[name] = self._counters.get(name, 0) + value

    def timing(self, name: str, value: float):
        values = self._timings.setdefault(name, [])
        values.append(value)
        # Keep only last 1000 values
        if len(values) > 1000:
            self._timings[name] = values[-1000:]

    def get_stats(self) -> Dict[str, Any]:
        timing_stats = {}
        for name, values in self._timings.items():
            if values:
                sorted_vals = sorted(values)
                timing_stats[name] = {
                    "count": len(values),
                    "min": sorted_vals[0],
                    "max": sorted_vals[-1],
                    "avg": sum(values) / len(values),
                    "p50": sorted_vals[len(sorted_vals) // 2],
                    "p95": sorted_vals[int(len(sorted_vals) * 0.95)] if len(sorted_vals) >= 20 else None,
                }

        return {
            "uptime_seconds": time.time() - self._start_time,
            "counters": self._counters.copy(),
            "timings": timing_stats,
        }

    def reset(self):
        self._counters.clear()
        self._timings.clear()


# Global metrics instance
metrics = MetricsCollector()


# ============== DECORATORS ==============


def track_analysis(name: str = "analysis"):
    """
    Decorator counting pipeline runs by outcome.

    The wrapped coroutine must return an object with ``risk_level`` and
    ``cached`` attributes.
    """
    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            metrics.increment(f"{name}.total")
            start = time.time()
            try:
                result = await func(*args, **kwargs)
            except Exception:
                metrics.increment(f"{name}.status.failed")
                raise
            metrics.timing(f"{name}.latency", time.time() - start)
            metrics.increment(f"{name}.status.{'cached' if result.cached else 'completed'}")
            metrics.increment(f"{name}.risk.{str(result.risk_level.value).lower()}")
            return result

        if not asyncio.iscoroutinefunction(func):
            raise TypeError("track_analysis only wraps coroutine functions")
        return async_wrapper

    return decorator


def init_logging():
    """Initialize logging based on environment settings."""
    is_prod = settings.is_production
    setup_logging(
        level="INFO" if is_prod else "DEBUG",
        json_format=is_prod,
        log_file="logs/scamshield.log" if is_prod else None,
    )
