"""
Observability Layer

RESPONSIBILITY: Metrics for operators
ALLOWED INPUTS: Metric points from any layer
OUTPUTS: Bounded metric series, lifetime aggregates

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Filter or interpret the points it records
- Block the caller

Infrastructure failures that the core swallows (audit writes, probe
timeouts, report writes) surface here and in the logs; the immediate caller
never sees them.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple
import math
import threading

from ..clock import Clock, default_clock
from ..contracts.base import Timestamp, TimeRange


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: Timestamp
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


class MetricType(Enum):
    """Types of metrics collected."""
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    TIMING = "timing"


@dataclass(frozen=True)
class MetricDefinition:
    """Definition of a metric to collect."""
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


DEFAULT_METRICS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name="decisions_total",
        metric_type=MetricType.COUNTER,
        description="Operations evaluated by the policy engine",
        labels=("approved", "kind"),
    ),
    MetricDefinition(
        name="decision_evaluation_ms",
        metric_type=MetricType.TIMING,
        description="Policy evaluation time in milliseconds",
    ),
    MetricDefinition(
        name="audit_write_failures_total",
        metric_type=MetricType.COUNTER,
        description="Audit record writes that failed and were swallowed",
        labels=("record_type",),
    ),
    MetricDefinition(
        name="integrity_probe_failures_total",
        metric_type=MetricType.COUNTER,
        description="Integrity probes that raised or timed out",
        labels=("component", "reason"),
    ),
    MetricDefinition(
        name="integrity_overall_score",
        metric_type=MetricType.GAUGE,
        description="Overall integrity score of the latest report",
    ),
    MetricDefinition(
        name="integrity_report_write_failures_total",
        metric_type=MetricType.COUNTER,
        description="Integrity reports that could not be persisted",
    ),
)


# Points retained per metric series; aggregates cover the full lifetime.
DEFAULT_MAX_POINTS = 10_000


@dataclass
class _RunningAggregate:
    count: int = 0
    sum: float = 0.0
    min: float = math.inf
    max: float = -math.inf

    def add(self, value: float):
        self.count += 1
        self.sum += value
        self.min = min(self.min, value)
        self.max = max(self.max, value)

    def merge(self, other: _RunningAggregate):
        self.count += other.count
        self.sum += other.sum
        self.min = min(self.min, other.min)
        self.max = max(self.max, other.max)

    def as_dict(self) -> Dict[str, float]:
        if not self.count:
            return {}
        return {
            'count': self.count,
            'sum': self.sum,
            'min': self.min,
            'max': self.max,
            'avg': self.sum / self.count,
        }


class MetricsCollector:
    """
    Collect and aggregate metrics from all layers.

    Each series keeps its most recent ``max_points`` points; lifetime
    count/sum/min/max are kept per label set, so counters and the snapshot
    stay exact after old points are dropped. Safe to share between threads.
    """

    def __init__(self, clock: Optional[Clock] = None, max_points: int = DEFAULT_MAX_POINTS):
        if max_points <= 0:
            raise ValueError("max_points must be positive")
        self._clock = default_clock(clock)
        self._max_points = max_points
        self._metrics: Dict[str, Deque[MetricPoint]] = {}
        self._running: Dict[str, Dict[Tuple[Tuple[str, str], ...], _RunningAggregate]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        self._lock = threading.Lock()
        for definition in DEFAULT_METRICS:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        """Register a new metric definition."""
        with self._lock:
            self._definitions[definition.name] = definition
            self._series(definition.name)

    def _series(self, metric_name: str) -> Deque[MetricPoint]:
        series = self._metrics.get(metric_name)
        if series is None:
            series = self._metrics[metric_name] = deque(maxlen=self._max_points)
            self._running[metric_name] = {}
        return series

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Record a metric data point."""
        label_tuple = tuple(sorted(labels.items())) if labels else ()
        point = MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=self._clock.now(),
            labels=label_tuple,
        )
        with self._lock:
            self._series(metric_name).append(point)
            groups = self._running[metric_name]
            groups.setdefault(label_tuple, _RunningAggregate()).add(value)

    def increment(self, metric_name: str, labels: Optional[Dict[str, str]] = None):
        self.record(metric_name, 1.0, labels)

    def get_metric(
        self,
        metric_name: str,
        time_range: Optional[TimeRange] = None,
        labels: Optional[Dict[str, str]] = None
    ) -> List[MetricPoint]:
        """Retained data points, optionally filtered by time range and labels."""
        with self._lock:
            points = list(self._metrics.get(metric_name, ()))

        if time_range:
            points = [p for p in points if time_range.contains(p.timestamp)]
        if labels:
            wanted = set(labels.items())
            points = [p for p in points if wanted.issubset(set(p.labels))]
        return points

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        """Get the latest value for a metric."""
        with self._lock:
            points = self._metrics.get(metric_name)
            return points[-1] if points else None

    def total(self, metric_name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Lifetime sum of a counter, over label sets that include ``labels``."""
        return self._lifetime(metric_name, labels).sum

    def compute_aggregates(
        self,
        metric_name: str,
        time_range: Optional[TimeRange] = None
    ) -> Dict[str, float]:
        """
        Aggregate statistics for a metric.

        Without a time range the aggregates cover every point ever recorded;
        with one they cover the retained points inside it.
        """
        if time_range is None:
            return self._lifetime(metric_name).as_dict()

        aggregate = _RunningAggregate()
        for point in self.get_metric(metric_name, time_range):
            aggregate.add(point.value)
        return aggregate.as_dict()

    def _lifetime(
        self,
        metric_name: str,
        labels: Optional[Dict[str, str]] = None
    ) -> _RunningAggregate:
        wanted = set(labels.items()) if labels else set()
        result = _RunningAggregate()
        with self._lock:
            for label_tuple, aggregate in self._running.get(metric_name, {}).items():
                if wanted.issubset(set(label_tuple)):
                    result.merge(aggregate)
        return result

    def snapshot(self) -> Dict[str, Dict[str, float]]:
        """Lifetime aggregates for every metric that has points."""
        with self._lock:
            names = list(self._metrics.keys())
        result = {}
        for name in names:
            aggregates = self.compute_aggregates(name)
            if aggregates:
                result[name] = aggregates
        return result

    def definitions(self) -> List[MetricDefinition]:
        with self._lock:
            return list(self._definitions.values())
