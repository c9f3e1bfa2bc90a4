"""Observation events and the sinks that receive them."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from ..correlation import TRACE_ID_KEY

if TYPE_CHECKING:
    from ..observation import ObservationContext

logger = logging.getLogger("hello_observation.events")


class ObservationEvent(BaseModel):
    """One start or stop notification, as handed to a sink."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    context_name: str
    contextual_name: str
    tags: dict[str, str] = Field(default_factory=dict)
    phase: Literal["start", "stop"]
    trace_id: str | None = None
    outcome: str | None = None
    duration_ms: float | None = None

    @classmethod
    def from_context(
        cls,
        context: ObservationContext,
        phase: Literal["start", "stop"],
    ) -> ObservationEvent:
        if phase == "start":
            return cls(
                timestamp=context.started_at or datetime.now(timezone.utc),
                context_name=context.name,
                contextual_name=context.contextual_name,
                tags=dict(context.tags),
                phase=phase,
                trace_id=context.get(TRACE_ID_KEY),
            )
        duration = context.duration
        return cls(
            timestamp=context.stopped_at or datetime.now(timezone.utc),
            context_name=context.name,
            contextual_name=context.contextual_name,
            tags=dict(context.stop_tags),
            phase=phase,
            trace_id=context.get(TRACE_ID_KEY),
            outcome=context.outcome.value if context.outcome else None,
            duration_ms=round(duration * 1000, 3) if duration is not None else None,
        )


@runtime_checkable
class ObservationEventSink(Protocol):
    """Append-only destination for observation events."""

    def append(self, event: ObservationEvent) -> None: ...


class InMemoryEventSink:
    """Keeps events in a list. Used in tests and for local inspection."""

    def __init__(self) -> None:
        self._events: list[ObservationEvent] = []
        self._lock = threading.Lock()

    def append(self, event: ObservationEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[ObservationEvent]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class LoggingEventSink:
    """Publishes each event as one JSON log line."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def append(self, event: ObservationEvent) -> None:
        self._log.info(event.model_dump_json())


class EventPublishingObservationHandler:
    """Turns observation lifecycle notifications into events for a sink."""

    def __init__(self, sink: ObservationEventSink) -> None:
        self.sink = sink

    def supports(self, context: ObservationContext) -> bool:
        return True

    def on_start(self, context: ObservationContext) -> None:
        self.sink.append(ObservationEvent.from_context(context, "start"))

    def on_stop(self, context: ObservationContext) -> None:
        self.sink.append(ObservationEvent.from_context(context, "stop"))
