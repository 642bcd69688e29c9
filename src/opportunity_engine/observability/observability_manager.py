"""
Observability Manager.

structlog-backed audit trail for batch runs. Every batch gets a correlation
id held in a ContextVar and bound into structlog's contextvars, so log lines
emitted anywhere during the run carry it.

The manager satisfies both AuditLogger and MetricsCollector; the factory in
``opportunity_engine.create_orchestrator`` hands one instance to both slots.
Events and metric samples are also kept in memory for inspection.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from opportunity_engine.config.models import LoggingConfig

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# audit event -> log level
EVENT_LEVELS: Dict[str, str] = {
    "batch_start": "info",
    "record_created": "debug",
    "record_failed": "warning",
    "batch_end": "info",
}

TIMING = "histogram"
COUNTER = "counter"


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _build_processors(use_json: bool) -> List[Any]:
    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        renderer,
    ]


class ObservabilityManager:
    """Audit events and metric samples for batch runs."""

    def __init__(
        self,
        service_name: str = "opportunity_engine",
        use_json: bool = True,
        log_level: int = logging.INFO,
    ) -> None:
        self.service_name = service_name
        self.use_json = use_json
        self.log_level = log_level
        self._events: List[Dict[str, Any]] = []
        self._samples: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = threading.Lock()

        structlog.configure(
            processors=_build_processors(use_json),
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(),
            cache_logger_on_first_use=False,
        )
        self._logger = structlog.get_logger(service_name).bind(service=service_name)

    @classmethod
    def from_config(cls, config: LoggingConfig) -> "ObservabilityManager":
        """Build from the ``logging`` section of EngineConfig."""
        return cls(
            service_name=config.service_name,
            use_json=config.use_json,
            log_level=logging.getLevelName(config.level),
        )

    # -- correlation ---------------------------------------------------------

    def set_correlation_id(self, correlation_id: str) -> None:
        """Start a new log context keyed by ``correlation_id``."""
        set_correlation_id(correlation_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

    def generate_correlation_id(self) -> str:
        correlation_id = str(uuid.uuid4())
        self.set_correlation_id(correlation_id)
        return correlation_id

    def get_trace_context(self) -> Dict[str, Any]:
        return {
            "correlation_id": get_correlation_id(),
            "service_name": self.service_name,
            "timestamp": _now(),
        }

    # -- events and samples --------------------------------------------------

    def log_event(
        self,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
        level: Optional[str] = None,
    ) -> None:
        """
        Store an audit event and emit it through structlog.

        Args:
            event_type: Event name, e.g. ``batch_start``
            data: Event fields
            level: Overrides the level from EVENT_LEVELS
        """
        fields = dict(data or {})
        entry = {
            "event_type": event_type,
            "timestamp": _now(),
            "correlation_id": get_correlation_id(),
            **fields,
        }
        with self._lock:
            self._events.append(entry)

        level = level or EVENT_LEVELS.get(event_type, "info")
        emit = getattr(self._logger, level, self._logger.info)
        # correlation_id arrives via merge_contextvars
        emit(event_type, **fields)

    def record_metric(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None,
        metric_type: str = "gauge",
    ) -> None:
        sample = {
            "value": value,
            "type": metric_type,
            "tags": dict(tags or {}),
            "timestamp": _now(),
            "correlation_id": get_correlation_id(),
        }
        with self._lock:
            self._samples.setdefault(name, []).append(sample)

    def get_events(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._events)

    def get_metrics(self) -> Dict[str, List[Dict[str, Any]]]:
        """Samples per metric name, oldest first."""
        with self._lock:
            return {name: list(samples) for name, samples in self._samples.items()}

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
            self._samples.clear()

    # -- AuditLogger ---------------------------------------------------------

    def log_batch_start(
        self,
        organization_id: str,
        principal_count: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.log_event(
            "batch_start",
            {"organization_id": organization_id, "principal_count": principal_count, **(metadata or {})},
        )

    def log_record_created(self, principal_id: str, record_id: str, name: str) -> None:
        self.log_event(
            "record_created",
            {"principal_id": principal_id, "record_id": record_id, "name": name},
        )

    def log_record_failed(self, principal_id: str, principal_name: str, error: str) -> None:
        self.log_event(
            "record_failed",
            {"principal_id": principal_id, "principal_name": principal_name, "error": error},
        )

    def log_batch_end(
        self,
        total_created: int,
        total_failed: int,
        duration_seconds: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        # A batch that created nothing is reported as an error.
        self.log_event(
            "batch_end",
            {
                "total_created": total_created,
                "total_failed": total_failed,
                "duration_seconds": round(duration_seconds, 4),
                **(metadata or {}),
            },
            level=None if total_created else "error",
        )

    # -- MetricsCollector ----------------------------------------------------

    def record_timing(
        self,
        name: str,
        duration_seconds: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        self.record_metric(name, duration_seconds, tags, metric_type=TIMING)

    def record_count(
        self,
        name: str,
        value: int,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        self.record_metric(name, float(value), tags, metric_type=COUNTER)
