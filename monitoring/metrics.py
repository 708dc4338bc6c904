"""
Metrics Collection - Monitoring Layer

In-process Prometheus-compatible metrics for the gateway:
- Counters (monotonically increasing)
- Gauges (can go up or down)
- Histograms (distribution of values)

Exposed in Prometheus text format at GET /metrics.

@.architecture
Incoming: core/hue/queue.py, core/hue/client.py, stream/*.py, api/rest/*.py, app.py --- {str metric_name, float value, Dict[str, str] labels}
Processing: inc(), set(), observe(), collect_all(), export_prometheus() --- {4 jobs: metric_creation, recording, aggregation, export}
Outgoing: app.py /metrics, tests --- {Counter/Gauge/Histogram instances, Dict[str, Any] collected metrics, str Prometheus format}
"""

import threading
from collections import defaultdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class MetricType(str, Enum):
    """Metric types following Prometheus conventions."""
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


class _LabelledMetric:
    """Shared label handling for all metric kinds."""

    metric_type: MetricType

    def __init__(self, name: str, help_text: str, labels: Optional[List[str]] = None):
        self.name = name
        self.help_text = help_text
        self.label_names = labels or []
        self._lock = threading.Lock()

    def _label_key(self, labels: Dict[str, str]) -> Tuple[str, ...]:
        if set(labels.keys()) != set(self.label_names):
            raise ValueError(f"{self.name}: expected labels {self.label_names}, got {list(labels.keys())}")
        return tuple(str(labels[name]) for name in self.label_names)

    def _label_dict(self, key: Tuple[str, ...]) -> Dict[str, str]:
        return dict(zip(self.label_names, key))


class Counter(_LabelledMetric):
    """
    Counter metric - monotonically increasing value.

    Use for: hub calls, protocol errors, sessions opened.
    """

    metric_type = MetricType.COUNTER

    def __init__(self, name: str, help_text: str, labels: Optional[List[str]] = None):
        super().__init__(name, help_text, labels)
        self._values: Dict[Tuple[str, ...], float] = defaultdict(float)

    def inc(self, value: float = 1.0, **labels: str) -> None:
        """
        Increment counter.

        Args:
            value: Amount to increment (must be >= 0)
            **labels: Label values
        """
        if value < 0:
            raise ValueError("Counter can only be incremented by non-negative values")
        key = self._label_key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, **labels: str) -> float:
        key = self._label_key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def collect(self) -> List[Tuple[Dict[str, str], float]]:
        with self._lock:
            return [(self._label_dict(key), value) for key, value in self._values.items()]


class Gauge(Counter):
    """
    Gauge metric - can go up or down.

    Use for: active sessions, serializer queue depth.
    """

    metric_type = MetricType.GAUGE

    def set(self, value: float, **labels: str) -> None:
        key = self._label_key(labels)
        with self._lock:
            self._values[key] = value

    def inc(self, value: float = 1.0, **labels: str) -> None:
        key = self._label_key(labels)
        with self._lock:
            self._values[key] += value

    def dec(self, value: float = 1.0, **labels: str) -> None:
        self.inc(-value, **labels)


class Histogram(_LabelledMetric):
    """
    Histogram metric - distribution of values into buckets.

    Use for: hub call latency, serializer hold time.
    """

    metric_type = MetricType.HISTOGRAM

    # Hub round trips on a LAN sit well under a second; 10s is the call timeout
    DEFAULT_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]

    def __init__(
        self,
        name: str,
        help_text: str,
        labels: Optional[List[str]] = None,
        buckets: Optional[List[float]] = None
    ):
        super().__init__(name, help_text, labels)
        self.buckets = sorted(buckets or self.DEFAULT_BUCKETS)
        self._bucket_counts: Dict[Tuple[str, ...], List[int]] = defaultdict(
            lambda: [0] * (len(self.buckets) + 1)
        )
        self._sum: Dict[Tuple[str, ...], float] = defaultdict(float)
        self._count: Dict[Tuple[str, ...], int] = defaultdict(int)

    def observe(self, value: float, **labels: str) -> None:
        """
        Observe a value.

        Args:
            value: Value to observe
            **labels: Label values
        """
        key = self._label_key(labels)
        with self._lock:
            self._sum[key] += value
            self._count[key] += 1
            counts = self._bucket_counts[key]
            for index, bound in enumerate(self.buckets):
                if value <= bound:
                    counts[index] += 1
            counts[-1] += 1

    def _stats(self, key: Tuple[str, ...]) -> Dict[str, Any]:
        # Caller holds the lock
        count = self._count.get(key, 0)
        total = self._sum.get(key, 0.0)
        counts = self._bucket_counts.get(key, [0] * (len(self.buckets) + 1))
        return {
            'count': count,
            'sum': total,
            'average': total / count if count else 0.0,
            'buckets': dict(zip([*self.buckets, float('inf')], counts)),
        }

    def get_stats(self, **labels: str) -> Dict[str, Any]:
        """
        Get histogram statistics.

        Returns:
            Dict with count, sum, average, buckets
        """
        key = self._label_key(labels)
        with self._lock:
            return self._stats(key)

    def collect(self) -> List[Tuple[Dict[str, str], Dict[str, Any]]]:
        with self._lock:
            return [(self._label_dict(key), self._stats(key)) for key in list(self._count.keys())]


class MetricsRegistry:
    """
    Central registry for all metrics.

    Metric constructors are get-or-create so modules can declare their
    metrics at import time without coordinating.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._metrics: Dict[str, _LabelledMetric] = {}

    def _get_or_create(self, cls, name: str, *args) -> Any:
        with self._lock:
            existing = self._metrics.get(name)
            if existing is None:
                existing = cls(name, *args)
                self._metrics[name] = existing
            elif type(existing) is not cls:
                raise ValueError(f"Metric {name} already registered as {existing.metric_type.value}")
            return existing

    def counter(self, name: str, help_text: str, labels: Optional[List[str]] = None) -> Counter:
        """Get or create counter metric."""
        return self._get_or_create(Counter, name, help_text, labels)

    def gauge(self, name: str, help_text: str, labels: Optional[List[str]] = None) -> Gauge:
        """Get or create gauge metric."""
        return self._get_or_create(Gauge, name, help_text, labels)

    def histogram(
        self,
        name: str,
        help_text: str,
        labels: Optional[List[str]] = None,
        buckets: Optional[List[float]] = None
    ) -> Histogram:
        """Get or create histogram metric."""
        return self._get_or_create(Histogram, name, help_text, labels, buckets)

    def get(self, name: str) -> Optional[_LabelledMetric]:
        return self._metrics.get(name)

    def collect_all(self) -> Dict[str, Any]:
        """
        Collect all metrics for export.

        Returns:
            Dict mapping metric names to their type, help text and values
        """
        with self._lock:
            metrics = list(self._metrics.values())

        result = {}
        for metric in metrics:
            entry = {
                'type': metric.metric_type.value,
                'help': metric.help_text,
                'values': metric.collect(),
            }
            if isinstance(metric, Histogram):
                entry['buckets'] = metric.buckets
            result[metric.name] = entry
        return result

    def export_prometheus(self) -> str:
        """
        Export metrics in Prometheus text format.

        Returns:
            Prometheus-formatted metrics string
        """
        with self._lock:
            metrics = list(self._metrics.values())

        lines = []
        for metric in metrics:
            lines.append(f"# HELP {metric.name} {metric.help_text}")
            lines.append(f"# TYPE {metric.name} {metric.metric_type.value}")

            if isinstance(metric, Histogram):
                for label_dict, stats in metric.collect():
                    for bound, count in stats['buckets'].items():
                        le = "+Inf" if bound == float('inf') else str(bound)
                        lines.append(f"{metric.name}_bucket{self._format_labels(dict(label_dict, le=le))} {count}")
                    label_str = self._format_labels(label_dict)
                    lines.append(f"{metric.name}_sum{label_str} {stats['sum']}")
                    lines.append(f"{metric.name}_count{label_str} {stats['count']}")
            else:
                for label_dict, value in metric.collect():
                    lines.append(f"{metric.name}{self._format_labels(label_dict)} {value}")

        return '\n'.join(lines) + '\n'

    @staticmethod
    def _format_labels(labels: Dict[str, str]) -> str:
        if not labels:
            return ""
        pairs = [f'{key}="{value}"' for key, value in labels.items()]
        return "{" + ",".join(pairs) + "}"


# Global registry instance
_global_registry: Optional[MetricsRegistry] = None


def get_registry() -> MetricsRegistry:
    """Get global metrics registry."""
    global _global_registry
    if _global_registry is None:
        _global_registry = MetricsRegistry()
    return _global_registry


def counter(name: str, help_text: str, labels: Optional[List[str]] = None) -> Counter:
    """Get or create counter from global registry."""
    return get_registry().counter(name, help_text, labels)


def gauge(name: str, help_text: str, labels: Optional[List[str]] = None) -> Gauge:
    """Get or create gauge from global registry."""
    return get_registry().gauge(name, help_text, labels)


def histogram(
    name: str,
    help_text: str,
    labels: Optional[List[str]] = None,
    buckets: Optional[List[float]] = None
) -> Histogram:
    """Get or create histogram from global registry."""
    return get_registry().histogram(name, help_text, labels, buckets)


def setup_standard_metrics() -> Dict[str, Any]:
    """
    Create the gateway's HTTP-level metrics.

    Component metrics (serializer, hub calls, sessions) are declared by the
    modules that record them.

    Returns:
        Dict of metric objects
    """
    registry = get_registry()
    return {
        'http_requests_total': registry.counter(
            'hue_gateway_http_requests_total',
            'Total HTTP requests',
            labels=['method', 'endpoint', 'status_code']
        ),
        'http_request_duration_seconds': registry.histogram(
            'hue_gateway_http_request_duration_seconds',
            'HTTP request duration in seconds',
            labels=['method', 'endpoint']
        ),
    }
