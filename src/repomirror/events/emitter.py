"""Event emitter implementations for republishing mirror events.

This module provides the notification surface of the mirror. Every event
processed by the router is handed to an EventEmitter:

- SubscriberEventEmitter: In-process subscribers keyed by handler key
- LoggingEventEmitter: Emits events as structured log entries
- CompositeEventEmitter: Emits to multiple sinks simultaneously
- NullEventEmitter: Discards events (for testing)

Source:
- src/repomirror/events/models.py (MirrorEvent)
"""

import inspect
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from repomirror.events.models import MirrorEvent


logger = logging.getLogger(__name__)

Subscriber = Callable[[MirrorEvent], Union[None, Awaitable[None]]]

# Subscribing under this key receives every event
ALL_EVENTS = "*"


class EventSinkType(str, Enum):
    """Types of event sinks supported by the mirror.

    Attributes:
        LOGGING: Emit events as structured log entries.
        METRICS: Emit events as Prometheus metrics.
    """

    LOGGING = "logging"
    METRICS = "metrics"


class EventEmitter(ABC):
    """Abstract base class for mirror event emitters.

    Implementations should be fault-tolerant: emit() failures should be
    logged, never propagated into the event-processing loop.
    """

    @abstractmethod
    async def emit(self, event: MirrorEvent) -> None:
        """Emit a mirror event.

        Args:
            event: The mirror event to emit.
        """
        pass

    async def close(self) -> None:
        """Close the emitter and release resources."""
        pass


class SubscriberEventEmitter(EventEmitter):
    """Event emitter that dispatches to registered callbacks.

    Callbacks subscribe to a handler key (e.g. ``issueClosed``) or to
    ``"*"`` for every event. Both plain functions and coroutine functions
    are accepted. Events with no subscribers are dropped silently.

    Example:
        >>> hub = SubscriberEventEmitter()
        >>> hub.on("issueCommentCreated", lambda event: print(event.payload["comment"]["id"]))
        >>> await hub.emit(event)
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Subscriber]] = {}

    def on(self, handler_key: str, callback: Subscriber) -> None:
        """Subscribe ``callback`` to events named ``handler_key``."""
        self._subscribers.setdefault(handler_key, []).append(callback)

    def off(self, handler_key: str, callback: Subscriber) -> bool:
        """Unsubscribe a callback.

        Returns:
            True if the callback was found and removed, False otherwise.
        """
        callbacks = self._subscribers.get(handler_key, [])
        try:
            callbacks.remove(callback)
            return True
        except ValueError:
            return False

    def subscriber_count(self, handler_key: str) -> int:
        return len(self._subscribers.get(handler_key, []))

    async def emit(self, event: MirrorEvent) -> None:
        """Call every subscriber of the event's handler key, then ``"*"``.

        A failing subscriber is logged and does not stop the others.
        """
        callbacks = list(self._subscribers.get(event.handler_key, []))
        if event.handler_key != ALL_EVENTS:
            callbacks.extend(self._subscribers.get(ALL_EVENTS, []))

        for callback in callbacks:
            try:
                result: Any = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.exception(
                    "Event subscriber failed",
                    extra={
                        "handler_key": event.handler_key,
                        "subscriber": getattr(callback, "__name__", repr(callback)),
                        "error": str(e),
                    },
                )


class LoggingEventEmitter(EventEmitter):
    """Event emitter that logs events using structured logging.

    Merged events are logged at INFO, events the mirror did not merge
    at DEBUG.
    """

    def __init__(self, logger_name: Optional[str] = None):
        """Initialize the logging event emitter.

        Args:
            logger_name: Optional logger name. If not provided, uses
                         the module logger.
        """
        self._logger = (
            logging.getLogger(logger_name)
            if logger_name
            else logger
        )

    async def emit(self, event: MirrorEvent) -> None:
        log_level = logging.INFO if event.merged else logging.DEBUG
        self._logger.log(
            log_level,
            "Mirror event: %s",
            event.handler_key or "<unclassified>",
            extra=event.to_log_dict(),
        )


class CompositeEventEmitter(EventEmitter):
    """Event emitter that delegates to multiple child emitters.

    Failures in one emitter do not affect others; each emitter is called
    independently and errors are logged but not propagated.
    """

    def __init__(self, emitters: Optional[List[EventEmitter]] = None):
        self._emitters: List[EventEmitter] = emitters or []

    @property
    def emitters(self) -> List[EventEmitter]:
        """Get the list of child emitters (read-only copy)."""
        return list(self._emitters)

    async def emit(self, event: MirrorEvent) -> None:
        for emitter in self._emitters:
            try:
                await emitter.emit(event)
            except Exception as e:
                logger.error(
                    "Failed to emit event to %s: %s",
                    type(emitter).__name__,
                    str(e),
                    extra={
                        "emitter_type": type(emitter).__name__,
                        "handler_key": event.handler_key,
                        "error": str(e),
                    },
                )

    async def close(self) -> None:
        for emitter in self._emitters:
            try:
                await emitter.close()
            except Exception as e:
                logger.error(
                    "Failed to close emitter %s: %s",
                    type(emitter).__name__,
                    str(e),
                )


class NullEventEmitter(EventEmitter):
    """Event emitter that discards all events."""

    async def emit(self, event: MirrorEvent) -> None:
        pass


def create_event_emitter(
    sink_types: Optional[List[EventSinkType]] = None,
    subscribers: Optional[SubscriberEventEmitter] = None,
    logger_name: Optional[str] = None,
) -> EventEmitter:
    """Build the emitter the router publishes to.

    Args:
        sink_types: Sinks to enable in addition to the subscriber hub.
        subscribers: In-process subscriber hub. Always included when given.
        logger_name: Optional logger name for the LoggingEventEmitter.

    Returns:
        A single emitter, or a CompositeEventEmitter when several apply.
        NullEventEmitter when nothing is configured.
    """
    emitters: List[EventEmitter] = []
    if subscribers is not None:
        emitters.append(subscribers)

    for sink_type in sink_types or []:
        sink_type = EventSinkType(sink_type)
        if sink_type == EventSinkType.LOGGING:
            emitters.append(LoggingEventEmitter(logger_name=logger_name))
        elif sink_type == EventSinkType.METRICS:
            # Imported here so metrics.py can import from this module
            from repomirror.events.metrics import MetricsEventEmitter

            emitters.append(MetricsEventEmitter())

    if not emitters:
        return NullEventEmitter()

    if len(emitters) == 1:
        return emitters[0]

    return CompositeEventEmitter(emitters)
