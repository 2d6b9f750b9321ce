"""Metrics collection for registry operations."""

from __future__ import annotations

import threading
from collections import defaultdict

LabelKey = tuple[tuple[str, str], ...]


def _label_key(labels: dict[str, str]) -> LabelKey:
    return tuple(sorted(labels.items()))


def _format_labels(label_key: LabelKey) -> str:
    return ",".join(f'{k}="{v}"' for k, v in label_key)


class MetricsCollector:
    """
    Collect and aggregate registry metrics.

    Features:
    - Counter, Gauge, and Histogram metrics
    - Label-based aggregation
    - Prometheus-compatible export

    Example:
        ```python
        metrics = MetricsCollector()

        metrics.counter(
            "registry_operations_total",
            labels={"operation": "add_credential", "status": "ok"},
        ).inc()

        metrics.gauge("registry_identities").set(42)

        prometheus_data = metrics.export_prometheus()
        ```
    """

    def __init__(self) -> None:
        self._counters: dict[str, dict[LabelKey, float]] = defaultdict(lambda: defaultdict(float))
        self._gauges: dict[str, dict[LabelKey, float]] = defaultdict(dict)
        # Running [count, sum] per label set
        self._histograms: dict[str, dict[LabelKey, list[float]]] = defaultdict(
            lambda: defaultdict(lambda: [0, 0.0])
        )

        self._lock = threading.Lock()

    def counter(self, name: str, labels: dict[str, str] | None = None) -> Counter:
        """Get a counter metric."""
        return Counter(name, labels or {}, self)

    def gauge(self, name: str, labels: dict[str, str] | None = None) -> Gauge:
        """Get a gauge metric."""
        return Gauge(name, labels or {}, self)

    def histogram(self, name: str, labels: dict[str, str] | None = None) -> Histogram:
        """Get a histogram metric."""
        return Histogram(name, labels or {}, self)

    def _inc_counter(self, name: str, labels: dict[str, str], value: float = 1) -> None:
        with self._lock:
            self._counters[name][_label_key(labels)] += value

    def _set_gauge(self, name: str, labels: dict[str, str], value: float) -> None:
        with self._lock:
            self._gauges[name][_label_key(labels)] = value

    def _observe_histogram(self, name: str, labels: dict[str, str], value: float) -> None:
        with self._lock:
            totals = self._histograms[name][_label_key(labels)]
            totals[0] += 1
            totals[1] += value

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Current value of a counter (0 if never incremented)."""
        with self._lock:
            return self._counters.get(name, {}).get(_label_key(labels or {}), 0.0)

    def get_gauge(self, name: str, labels: dict[str, str] | None = None) -> float | None:
        """Current value of a gauge, or None if never set."""
        with self._lock:
            return self._gauges.get(name, {}).get(_label_key(labels or {}))

    def get_histogram(self, name: str, labels: dict[str, str] | None = None) -> tuple[int, float]:
        """Observation count and sum of a histogram ((0, 0.0) if never observed)."""
        with self._lock:
            count, total = self._histograms.get(name, {}).get(_label_key(labels or {}), (0, 0.0))
            return int(count), total

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus format."""
        lines = []

        with self._lock:
            for kind, metrics in (("counter", self._counters), ("gauge", self._gauges)):
                for name, values in metrics.items():
                    lines.append(f"# TYPE {name} {kind}")
                    for label_key, value in values.items():
                        labels_str = _format_labels(label_key)
                        if labels_str:
                            lines.append(f"{name}{{{labels_str}}} {value}")
                        else:
                            lines.append(f"{name} {value}")

            # Histograms (simplified)
            for name, values in self._histograms.items():
                lines.append(f"# TYPE {name} histogram")
                for label_key, (count, total) in values.items():
                    labels_str = _format_labels(label_key)
                    suffix = f"{{{labels_str}}}" if labels_str else ""
                    lines.append(f"{name}_count{suffix} {count}")
                    lines.append(f"{name}_sum{suffix} {total}")

        return "\n".join(lines)


class Counter:
    """Counter metric."""

    def __init__(self, name: str, labels: dict[str, str], collector: MetricsCollector) -> None:
        self.name = name
        self.labels = labels
        self._collector = collector

    def inc(self, value: float = 1) -> None:
        """Increment counter."""
        self._collector._inc_counter(self.name, self.labels, value)


class Gauge:
    """Gauge metric."""

    def __init__(self, name: str, labels: dict[str, str], collector: MetricsCollector) -> None:
        self.name = name
        self.labels = labels
        self._collector = collector

    def set(self, value: float) -> None:
        """Set gauge value."""
        self._collector._set_gauge(self.name, self.labels, value)


class Histogram:
    """Histogram metric."""

    def __init__(self, name: str, labels: dict[str, str], collector: MetricsCollector) -> None:
        self.name = name
        self.labels = labels
        self._collector = collector

    def observe(self, value: float) -> None:
        """Observe a value."""
        self._collector._observe_histogram(self.name, self.labels, value)
