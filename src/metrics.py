"""In-process checkout metrics.

Counters, gauges and histograms are kept in a module-level registry and
can be dumped in the Prometheus text exposition format with
:func:`generate_metrics_text`.  Nothing is exported over the network;
the CLI or a test decides what to do with the text.
"""

from collections import defaultdict
from threading import Lock
from typing import Dict, Iterable, List, Tuple

LabelValues = Tuple[str, ...]


class Metric:
    """Base class for all metrics."""

    kind = "untyped"

    def __init__(self, name: str, description: str, label_names: Iterable[str] = ()):
        self.name = name
        self.description = description
        self.label_names = list(label_names)
        self._lock = Lock()
        _METRIC_REGISTRY.append(self)

    def _key(self, labels: Dict[str, str]) -> LabelValues:
        return tuple(str(labels.get(k, "")) for k in self.label_names)

    def _format_labels(self, label_values: LabelValues, **more: str) -> str:
        pairs = [f'{name}="{value}"' for name, value in zip(self.label_names, label_values)]
        pairs.extend(f'{name}="{value}"' for name, value in more.items())
        if not pairs:
            return ""
        return "{" + ",".join(pairs) + "}"

    def _header(self) -> List[str]:
        return [f"# HELP {self.name} {self.description}", f"# TYPE {self.name} {self.kind}"]

    def reset(self) -> None:
        raise NotImplementedError

    def to_prometheus(self) -> List[str]:
        raise NotImplementedError


class Counter(Metric):
    """Monotonic counter.  ``CHECKOUT_ERROR_TOTAL.inc(type="empty_cart")``"""

    kind = "counter"

    def __init__(self, name: str, description: str, label_names: Iterable[str] = ()):
        super().__init__(name, description, label_names)
        self._values: Dict[LabelValues, int] = defaultdict(int)

    def inc(self, **labels: str) -> None:
        with self._lock:
            self._values[self._key(labels)] += 1

    def value(self, **labels: str) -> int:
        with self._lock:
            return self._values.get(self._key(labels), 0)

    def reset(self) -> None:
        with self._lock:
            self._values.clear()

    def to_prometheus(self) -> List[str]:
        lines = self._header()
        with self._lock:
            for label_values, value in self._values.items():
                lines.append(f"{self.name}{self._format_labels(label_values)} {value}")
        return lines


class Gauge(Metric):
    """Value that may go up or down, e.g. remaining stock of a product."""

    kind = "gauge"

    def __init__(self, name: str, description: str, label_names: Iterable[str] = ()):
        super().__init__(name, description, label_names)
        self._values: Dict[LabelValues, float] = {}

    def set(self, value: float, **labels: str) -> None:
        with self._lock:
            self._values[self._key(labels)] = float(value)

    def value(self, **labels: str) -> float:
        with self._lock:
            return self._values.get(self._key(labels), 0.0)

    def reset(self) -> None:
        with self._lock:
            self._values.clear()

    def to_prometheus(self) -> List[str]:
        lines = self._header()
        with self._lock:
            for label_values, value in self._values.items():
                lines.append(f"{self.name}{self._format_labels(label_values)} {value}")
        return lines


class Histogram(Metric):
    """Histogram over ascending bucket upper bounds, plus an implicit ``+Inf``."""

    kind = "histogram"

    def __init__(
        self,
        name: str,
        description: str,
        buckets: Iterable[float],
        label_names: Iterable[str] = (),
    ):
        super().__init__(name, description, label_names)
        self.buckets = sorted(float(b) for b in buckets)
        # per-bucket (non-cumulative) counts; cumulated on export
        self._counts: Dict[LabelValues, List[int]] = defaultdict(lambda: [0] * len(self.buckets))
        self._sums: Dict[LabelValues, float] = defaultdict(float)
        self._totals: Dict[LabelValues, int] = defaultdict(int)

    def observe(self, value: float, **labels: str) -> None:
        key = self._key(labels)
        with self._lock:
            for idx, upper in enumerate(self.buckets):
                if value <= upper:
                    self._counts[key][idx] += 1
                    break
            self._totals[key] += 1
            self._sums[key] += float(value)

    def count(self, **labels: str) -> int:
        with self._lock:
            return self._totals.get(self._key(labels), 0)

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._sums.clear()
            self._totals.clear()

    def to_prometheus(self) -> List[str]:
        lines = self._header()
        with self._lock:
            for label_values, total in self._totals.items():
                cumulative = 0
                for idx, upper in enumerate(self.buckets):
                    cumulative += self._counts[label_values][idx]
                    labels = self._format_labels(label_values, le=str(upper))
                    lines.append(f"{self.name}_bucket{labels} {cumulative}")
                labels = self._format_labels(label_values, le="+Inf")
                lines.append(f"{self.name}_bucket{labels} {total}")
                plain = self._format_labels(label_values)
                lines.append(f"{self.name}_sum{plain} {self._sums[label_values]}")
                lines.append(f"{self.name}_count{plain} {total}")
        return lines


_METRIC_REGISTRY: List[Metric] = []


def generate_metrics_text() -> bytes:
    """Generate the text representation of all registered metrics."""
    lines: List[str] = []
    for metric in _METRIC_REGISTRY:
        lines.extend(metric.to_prometheus())
    return "\n".join(lines).encode("utf-8")


def reset_metrics() -> None:
    """Zero every registered metric (used between test cases)."""
    for metric in _METRIC_REGISTRY:
        metric.reset()


# -----------------------------------------------------------------------------
# Metrics recorded by the checkout flow.
# -----------------------------------------------------------------------------

CHECKOUT_DURATION_SECONDS = Histogram(
    name="checkout_duration_seconds",
    description="Duration of checkout operations in seconds",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

# Labelled by CheckoutError.error_type
CHECKOUT_ERROR_TOTAL = Counter(
    name="checkout_error_total",
    description="Total number of checkout errors, labelled by type",
    label_names=["type"],
)

CHECKOUTS_COMPLETED_TOTAL = Counter(
    name="checkouts_completed_total",
    description="Total number of settled checkouts",
)

SHIPMENTS_TOTAL = Counter(
    name="shipments_total",
    description="Total number of shipment notices issued",
)

PRODUCT_STOCK = Gauge(
    name="product_stock",
    description="Available quantity per product after the last settlement",
    label_names=["product"],
)
