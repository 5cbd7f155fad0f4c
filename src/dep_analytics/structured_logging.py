"""
Structured logging configuration for dep-analytics.

Emits one JSON object per event so that collection and analysis runs can be
followed by log tooling.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_ATTRIBUTES = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
        }
        message = record.getMessage()
        if message:
            log_entry["message"] = message

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRIBUTES and key != "message":
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class EventLogger:
    """Structured logger; every call records an ``event_type`` plus fields."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"dep_analytics.{name}")
        self._setup_logger()
        self.manifest_context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.propagate = False

    def set_manifest_context(
        self, manifest: Optional[str] = None, ecosystem: Optional[str] = None
    ) -> None:
        self.manifest_context = {}
        if manifest:
            self.manifest_context["manifest"] = manifest
        if ecosystem:
            self.manifest_context["ecosystem"] = ecosystem

    def clear_manifest_context(self) -> None:
        self.manifest_context.clear()

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.manifest_context, **kwargs}
        self.logger.log(level, "", extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        self._log(logging.INFO, event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        self._log(logging.WARNING, event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        self._log(logging.ERROR, event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        self._log(logging.DEBUG, event_type, **kwargs)


_collector_logger = EventLogger("collector")
_analysis_logger = EventLogger("analysis")
_diagnostics_logger = EventLogger("diagnostics")

_ALL_LOGGERS = [_collector_logger, _analysis_logger, _diagnostics_logger]


def get_collector_logger() -> EventLogger:
    """Get manifest collection logger."""
    return _collector_logger


def get_analysis_logger() -> EventLogger:
    """Get analysis backend logger."""
    return _analysis_logger


def get_diagnostics_logger() -> EventLogger:
    """Get diagnostics pipeline logger."""
    return _diagnostics_logger


def log_collect_complete(
    manifest: str, ecosystem: str, dependency_count: int, duration_ms: float
) -> None:
    """Log a finished manifest collection."""
    _collector_logger.info(
        "collect_completed",
        manifest=manifest,
        ecosystem=ecosystem,
        dependency_count=dependency_count,
        duration_ms=round(duration_ms, 3),
    )


def log_analysis_complete(
    manifest: str,
    dependency_count: int,
    vulnerable_count: int,
    failed_providers: Optional[list] = None,
) -> None:
    """Log a finished analysis request."""
    log_data: Dict[str, Any] = {
        "manifest": manifest,
        "dependency_count": dependency_count,
        "vulnerable_count": vulnerable_count,
    }
    if failed_providers:
        log_data["failed_providers"] = failed_providers
        _analysis_logger.warning("analysis_completed", **log_data)
    else:
        _analysis_logger.info("analysis_completed", **log_data)


def set_manifest_context(
    manifest: Optional[str] = None, ecosystem: Optional[str] = None
) -> None:
    """Set manifest context on all loggers."""
    for logger in _ALL_LOGGERS:
        logger.set_manifest_context(manifest, ecosystem)


def clear_manifest_context() -> None:
    for logger in _ALL_LOGGERS:
        logger.clear_manifest_context()


def configure_logging(log_level: str = "WARNING", enable_json: bool = True) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Level name applied to every structured logger
        enable_json: Emit JSON records; plain text otherwise
    """
    level = getattr(logging, log_level.upper(), logging.WARNING)
    formatter = (
        StructuredFormatter()
        if enable_json
        else logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(event_type)s")
    )

    for logger in _ALL_LOGGERS:
        logger.logger.setLevel(level)
        for handler in logger.logger.handlers:
            handler.setFormatter(formatter)


configure_logging()
