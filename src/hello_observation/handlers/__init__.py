"""Observation handlers: logging, correlation, events, tracing, metrics, Sentry."""

from __future__ import annotations

from .correlation import CorrelationObservationHandler
from .events import (
    EventPublishingObservationHandler,
    InMemoryEventSink,
    LoggingEventSink,
    ObservationEvent,
    ObservationEventSink,
)
from .logging import LoggingObservationHandler
from .metrics import MetricsObservationHandler
from .sentry import SentryObservationHandler
from .tracing import TracingObservationHandler

__all__ = [
    "CorrelationObservationHandler",
    "EventPublishingObservationHandler",
    "InMemoryEventSink",
    "LoggingEventSink",
    "LoggingObservationHandler",
    "MetricsObservationHandler",
    "ObservationEvent",
    "ObservationEventSink",
    "SentryObservationHandler",
    "TracingObservationHandler",
]
