"""Mirror event republishing and metrics.

Event Emitters:
- EventEmitter: Abstract base class for event emission
- SubscriberEventEmitter: In-process subscribers keyed by handler key
- LoggingEventEmitter: Emits events as structured log entries
- CompositeEventEmitter: Emits to multiple sinks simultaneously
- MetricsEventEmitter: Counts events as Prometheus metrics
- NullEventEmitter: Discards events (for testing)
"""

from repomirror.events.emitter import (
    ALL_EVENTS,
    CompositeEventEmitter,
    EventEmitter,
    EventSinkType,
    LoggingEventEmitter,
    NullEventEmitter,
    SubscriberEventEmitter,
    create_event_emitter,
)
from repomirror.events.metrics import (
    MetricsEventEmitter,
    MirrorMetrics,
    generate_metrics_output,
    get_metrics,
)
from repomirror.events.models import EntityKind, MirrorEvent

__all__ = [
    # Event models
    "EntityKind",
    "MirrorEvent",
    # Event emitters
    "ALL_EVENTS",
    "EventEmitter",
    "SubscriberEventEmitter",
    "LoggingEventEmitter",
    "CompositeEventEmitter",
    "MetricsEventEmitter",
    "NullEventEmitter",
    # Metrics
    "MirrorMetrics",
    "get_metrics",
    "generate_metrics_output",
    # Factory
    "EventSinkType",
    "create_event_emitter",
]
