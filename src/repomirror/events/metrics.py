"""Prometheus metrics for mirror observability.

Metrics Defined:
- mirror_events_total: Counter of processed webhook events
- mirror_merge_failures_total: Counter of events whose merge raised
- mirror_reconciliations_total: Counter of startup reconciliations by outcome
- mirror_issues_cached: Gauge of issues held in the mirror

The MetricsEventEmitter plugs into the event emission system so every
republished event is counted.
"""

import logging
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

from repomirror.events.emitter import EventEmitter
from repomirror.events.models import MirrorEvent


logger = logging.getLogger(__name__)


class MirrorMetrics:
    """Container for all mirror Prometheus metrics.

    Supports custom registries for testing.

    Metrics:
        events_total: Counter of processed events.
            Labels: handler_key, merged (true/false)

        merge_failures_total: Counter of failed merges.
            Labels: handler_key

        reconciliations_total: Counter of reconciliations.
            Labels: outcome (cold_start/stale/fresh)

        issues_cached: Gauge of issues in the mirror.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize mirror metrics.

        Args:
            registry: Optional Prometheus registry. If None, uses the
                      default REGISTRY. Pass a custom registry for testing.
        """
        self.registry = registry or REGISTRY

        self.events_total = Counter(
            "mirror_events_total",
            "Total number of webhook events processed by the mirror",
            labelnames=["handler_key", "merged"],
            registry=self.registry,
        )

        self.merge_failures_total = Counter(
            "mirror_merge_failures_total",
            "Total number of webhook events whose merge failed",
            labelnames=["handler_key"],
            registry=self.registry,
        )

        self.reconciliations_total = Counter(
            "mirror_reconciliations_total",
            "Total number of startup reconciliations by outcome",
            labelnames=["outcome"],
            registry=self.registry,
        )

        self.issues_cached = Gauge(
            "mirror_issues_cached",
            "Number of issues and pull requests held in the mirror",
            registry=self.registry,
        )

    def record_event(self, handler_key: str, merged: bool) -> None:
        self.events_total.labels(
            handler_key=handler_key or "none",
            merged="true" if merged else "false",
        ).inc()

    def record_merge_failure(self, handler_key: str) -> None:
        self.merge_failures_total.labels(handler_key=handler_key or "none").inc()

    def record_reconciliation(self, outcome: str) -> None:
        self.reconciliations_total.labels(outcome=outcome).inc()

    def set_issue_count(self, count: int) -> None:
        self.issues_cached.set(max(0, count))


# Global metrics instance for the default registry
_default_metrics: Optional[MirrorMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> MirrorMetrics:
    """Get or create the mirror metrics instance.

    Args:
        registry: Optional Prometheus registry. If None, returns the
                  global metrics instance for the default registry.

    Returns:
        MirrorMetrics: The metrics instance.
    """
    global _default_metrics

    if registry is not None:
        return MirrorMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = MirrorMetrics()

    return _default_metrics


def generate_metrics_output(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Generate Prometheus metrics output for the /metrics endpoint."""
    return generate_latest(registry or REGISTRY)


class MetricsEventEmitter(EventEmitter):
    """Event emitter that counts republished events in Prometheus."""

    def __init__(
        self,
        metrics: Optional[MirrorMetrics] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        if metrics is not None:
            self._metrics = metrics
        else:
            self._metrics = get_metrics(registry)

    @property
    def metrics(self) -> MirrorMetrics:
        return self._metrics

    async def emit(self, event: MirrorEvent) -> None:
        try:
            self._metrics.record_event(event.handler_key, event.merged)
        except Exception as e:
            logger.error(
                "Failed to update metrics for event %s: %s",
                event.handler_key,
                str(e),
                extra={"handler_key": event.handler_key, "error": str(e)},
            )
