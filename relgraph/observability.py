"""Observability - Structured logging and metrics"""

import asyncio
import inspect
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import wraps
from typing import Callable, Optional


# ============ Structured Logging ============

class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields
        if hasattr(record, "extra"):
            log_data.update(record.extra)

        # Add exception info
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


def setup_logging(level: Optional[str] = None, json_format: Optional[bool] = None) -> logging.Logger:
    """
    Setup structured logging for the library.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to settings.
        json_format: Use JSON format for logs. Defaults to settings.

    Returns:
        Configured logger
    """
    from .db.config import settings

    level = level or settings.log_level
    json_format = settings.log_json if json_format is None else json_format

    logger = logging.getLogger("relgraph")
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    logger.addHandler(handler)
    return logger


# Global logger
logger = setup_logging()


def log_with_context(**context):
    """Create a log record with extra context"""
    class ContextAdapter(logging.LoggerAdapter):
        def process(self, msg, kwargs):
            kwargs.setdefault("extra", {})
            kwargs["extra"]["extra"] = {**self.extra, **kwargs["extra"].get("extra", {})}
            return msg, kwargs

    return ContextAdapter(logger, context)


# ============ Metrics ============

@dataclass
class Metrics:
    """In-memory metrics collector"""

    # Counters
    load_count: int = 0
    mutation_count: int = 0
    notification_count: int = 0
    notification_rejected_count: int = 0
    bootstrap_count: int = 0
    error_count: int = 0

    # Latency histograms (simplified as lists)
    load_latencies: list[float] = field(default_factory=list)
    mutation_latencies: list[float] = field(default_factory=list)

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a counter"""
        if hasattr(self, name):
            setattr(self, name, getattr(self, name) + value)

    def record_latency(self, name: str, latency_ms: float) -> None:
        """Record a latency measurement"""
        latency_list = getattr(self, f"{name}_latencies", None)
        if latency_list is not None:
            latency_list.append(latency_ms)
            # Keep last 1000 measurements
            if len(latency_list) > 1000:
                latency_list.pop(0)

    def get_percentile(self, name: str, percentile: float) -> Optional[float]:
        """Get percentile from latency histogram"""
        latencies = getattr(self, f"{name}_latencies", [])
        if not latencies:
            return None
        sorted_latencies = sorted(latencies)
        idx = int(len(sorted_latencies) * percentile / 100)
        return sorted_latencies[min(idx, len(sorted_latencies) - 1)]

    def to_dict(self) -> dict:
        """Export metrics as dictionary"""
        return {
            "counters": {
                "load_count": self.load_count,
                "mutation_count": self.mutation_count,
                "notification_count": self.notification_count,
                "notification_rejected_count": self.notification_rejected_count,
                "bootstrap_count": self.bootstrap_count,
                "error_count": self.error_count,
            },
            "latencies": {
                "load_p50": self.get_percentile("load", 50),
                "load_p95": self.get_percentile("load", 95),
                "mutation_p50": self.get_percentile("mutation", 50),
                "mutation_p95": self.get_percentile("mutation", 95),
                "mutation_p99": self.get_percentile("mutation", 99),
            },
        }

    def reset(self) -> None:
        """Reset all metrics"""
        self.load_count = 0
        self.mutation_count = 0
        self.notification_count = 0
        self.notification_rejected_count = 0
        self.bootstrap_count = 0
        self.error_count = 0
        self.load_latencies.clear()
        self.mutation_latencies.clear()


# Global metrics instance
metrics = Metrics()


# ============ Decorators ============

def track_latency(operation: str):
    """Decorator to track operation latency"""
    def decorator(func: Callable):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                metrics.record_latency(operation, elapsed_ms)
                metrics.increment(f"{operation}_count")

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                metrics.record_latency(operation, elapsed_ms)
                metrics.increment(f"{operation}_count")

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def track_errors(func: Callable):
    """Decorator to count and log errors, then re-raise them"""
    @wraps(func)
    async def async_wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            metrics.increment("error_count")
            logger.error(f"Error in {func.__name__}: {e}", exc_info=True)
            raise

    @wraps(func)
    def sync_wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            metrics.increment("error_count")
            logger.error(f"Error in {func.__name__}: {e}", exc_info=True)
            raise

    if inspect.iscoroutinefunction(func):
        return async_wrapper
    return sync_wrapper


# ============ Status ============

def get_sync_status(controller) -> dict:
    """
    Snapshot of the sync controller for diagnostics.

    Args:
        controller: SyncController

    Returns:
        Status dict with per-kind load state, counts and metrics
    """
    from .db.entities import SYNCED_KINDS

    kinds = {}
    for kind in SYNCED_KINDS:
        kinds[kind.value] = {
            "state": controller.state(kind).value,
            "error": controller.error(kind),
            "count": controller.store.count(kind),
        }

    healthy = all(info["state"] != "error" for info in kinds.values())
    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "subscribed": controller.is_subscribed,
        "kinds": kinds,
        "metrics": metrics.to_dict(),
    }
