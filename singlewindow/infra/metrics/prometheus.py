"""Clearance metrics backed by the Prometheus client."""
import os

from prometheus_client import Counter, Gauge

# Global metrics configuration
METRICS_ENABLED = os.getenv("ENABLE_METRICS", "false").lower() == "true"


class MetricsFactory:
    """Factory for creating metrics with consistent naming."""

    @staticmethod
    def counter(name, description, labels=None):
        """Create a counter-metric."""
        return Counter(
            name=f"singlewindow_{name}",
            documentation=description,
            labelnames=labels or []
        ) if METRICS_ENABLED else DummyCounter(name, description, labels)

    @staticmethod
    def gauge(name, description, labels=None):
        """Create a gauge metric."""
        return Gauge(
            name=f"singlewindow_{name}",
            documentation=description,
            labelnames=labels or []
        ) if METRICS_ENABLED else DummyGauge(name, description, labels)


# Fake implementations for when metrics are disabled
class DummyMetric:
    def __init__(self, name, description, labels=None):
        self.name = name
        self.description = description

    def labels(self, **kwargs):
        return self


class DummyCounter(DummyMetric):
    def inc(self, amount=1):
        pass


class DummyGauge(DummyMetric):
    def inc(self, amount=1):
        pass

    def dec(self, amount=1):
        pass

    def set(self, value):
        pass


# Module-level metrics (registered once per process)
decode_failures = MetricsFactory.counter(
    "codec_decode_failures_total",
    "Messages rejected by the message codec",
    ["reason_code"],
)

channel_assignments = MetricsFactory.counter(
    "risk_channel_assignments_total",
    "Risk profiles computed, by resulting channel",
    ["channel"],
)

ledger_rejections = MetricsFactory.counter(
    "guarantee_ledger_rejections_total",
    "Guarantee ledger operations refused",
    ["operation", "reason_code"],
)

clearance_transitions = MetricsFactory.counter(
    "clearance_transitions_total",
    "Clearance state transitions",
    ["from_state", "to_state"],
)

guard_rejections = MetricsFactory.counter(
    "clearance_guard_rejections_total",
    "Clearance operations refused by a guard",
    ["reason_code"],
)

deadline_failures = MetricsFactory.counter(
    "clearance_deadline_failures_total",
    "Declarations the deadline sweep could not process",
    ["reason_code"],
)

lock_waits = MetricsFactory.gauge(
    "keyed_lock_waiters",
    "Threads waiting on a per-key lock",
    ["namespace"],
)
