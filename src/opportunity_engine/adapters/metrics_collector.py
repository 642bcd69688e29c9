"""
In-Memory Metrics Collector.

Keeps every sample per metric name and reports a summary. Counts are
summed; timings report min/max/mean alongside the total.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional


@dataclass
class MetricSeries:
    """All samples recorded under one metric name."""

    kind: str
    values: List[float] = field(default_factory=list)
    tags: List[Dict[str, str]] = field(default_factory=list)

    def summary(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "count": len(self.values),
            "total": sum(self.values),
            "last": self.values[-1],
        }
        if self.kind == "timing":
            result["min"] = min(self.values)
            result["max"] = max(self.values)
            result["mean"] = result["total"] / len(self.values)
        return result


class InMemoryMetricsCollector:
    """Simple in-memory metrics collector."""

    def __init__(self) -> None:
        self._series: Dict[str, MetricSeries] = {}
        self._lock = Lock()

    def record_timing(
        self,
        name: str,
        duration_seconds: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        self._record(name, "timing", duration_seconds, tags)

    def record_count(
        self,
        name: str,
        value: int,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        self._record(name, "count", value, tags)

    def get_metrics(self) -> Dict[str, Any]:
        """Summary per metric name."""
        with self._lock:
            return {name: series.summary() for name, series in self._series.items()}

    def series(self, name: str) -> Optional[MetricSeries]:
        """Raw samples for one metric, or None if never recorded."""
        with self._lock:
            return self._series.get(name)

    def clear(self) -> None:
        with self._lock:
            self._series.clear()

    def _record(
        self,
        name: str,
        kind: str,
        value: float,
        tags: Optional[Dict[str, str]],
    ) -> None:
        with self._lock:
            series = self._series.get(name)
            if series is None:
                series = self._series[name] = MetricSeries(kind=kind)
            elif series.kind != kind:
                raise ValueError(f"Metric {name!r} is a {series.kind}, not a {kind}")
            series.values.append(value)
            series.tags.append(dict(tags or {}))
