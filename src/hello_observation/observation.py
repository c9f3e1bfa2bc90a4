"""ObservationContext: one instrumented unit of work and its lifecycle."""

from __future__ import annotations

import asyncio
import time
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from .exceptions import InvalidStateError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .registry import HandlerRegistration


class ObservationState(Enum):
    """Lifecycle of an observation. Transitions only move forward."""

    CREATED = "created"
    STARTED = "started"
    STOPPED = "stopped"


class Outcome(Enum):
    """How the observed work finished."""

    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"


class ObservationContext:
    """A named unit of work with low-cardinality tags and start/stop timestamps.

    Contexts are created by the code that wraps a unit of work and are never
    shared between concurrent operations. Tags are fixed once the context
    starts because handlers read them in ``on_start``.

    Handlers keep per-context state (spans, trace ids) through :meth:`put`
    and :meth:`get`; that storage stays writable for the whole lifecycle.
    """

    __slots__ = (
        "_attributes",
        "_matched",
        "_result_tags",
        "_started_monotonic",
        "_stopped_monotonic",
        "_tags",
        "_token",
        "contextual_name",
        "error",
        "name",
        "outcome",
        "parent",
        "started_at",
        "state",
        "stopped_at",
    )

    def __init__(
        self,
        name: str,
        contextual_name: str | None = None,
        tags: Iterable[tuple[str, str]] | None = None,
    ) -> None:
        if not name:
            raise ValueError("Observation name must not be empty")
        self.name = name
        self.contextual_name = contextual_name or name
        self._tags: list[tuple[str, str]] = [
            (str(key), str(value)) for key, value in (tags or ())
        ]
        self._result_tags: list[tuple[str, str]] = []
        self.state = ObservationState.CREATED
        self.started_at: datetime | None = None
        self.stopped_at: datetime | None = None
        self.outcome: Outcome | None = None
        self.error: BaseException | None = None
        self.parent: ObservationContext | None = None
        self._attributes: dict[str, Any] = {}
        self._matched: list[HandlerRegistration] = []
        self._token: Token[ObservationContext | None] | None = None
        self._started_monotonic: float | None = None
        self._stopped_monotonic: float | None = None

    def __repr__(self) -> str:
        return (
            f"ObservationContext(name={self.name!r}, "
            f"contextual_name={self.contextual_name!r}, state={self.state.value})"
        )

    # ── Tags ─────────────────────────────────────────────────────────

    @property
    def tags(self) -> tuple[tuple[str, str], ...]:
        """Creation-time tags in the order they were added."""
        return tuple(self._tags)

    @property
    def stop_tags(self) -> tuple[tuple[str, str], ...]:
        """Creation-time tags, result tags, and the ``outcome`` tag once stopped."""
        if self.outcome is None:
            return (*self._tags, *self._result_tags)
        return (*self._tags, *self._result_tags, ("outcome", self.outcome.value))

    def tag(self, key: str, value: str) -> ObservationContext:
        """Append a low-cardinality tag. Only legal before the context starts."""
        if self.state is not ObservationState.CREATED:
            raise InvalidStateError(
                f"Cannot tag observation {self.name!r} in state {self.state.value}"
            )
        self._tags.append((str(key), str(value)))
        return self

    def tag_result(self, key: str, value: str) -> ObservationContext:
        """Record a low-cardinality tag about the result, such as a status class.

        Only legal while the context is running. Result tags are reported with
        the stop notification and never change :attr:`tags`.
        """
        if self.state is not ObservationState.STARTED:
            raise InvalidStateError(
                f"Cannot tag the result of observation {self.name!r} "
                f"in state {self.state.value}"
            )
        self._result_tags.append((str(key), str(value)))
        return self

    # ── Handler storage ──────────────────────────────────────────────

    def put(self, key: str, value: Any) -> None:
        self._attributes[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._attributes.get(key, default)

    # ── Lifecycle ────────────────────────────────────────────────────

    @property
    def duration(self) -> float | None:
        """Elapsed seconds between start and stop, on the monotonic clock."""
        if self._started_monotonic is None or self._stopped_monotonic is None:
            return None
        return self._stopped_monotonic - self._started_monotonic

    def _mark_started(self) -> None:
        if self.state is not ObservationState.CREATED:
            raise InvalidStateError(
                f"Observation {self.name!r} cannot start from {self.state.value}"
            )
        self.parent = _current_observation.get()
        self.state = ObservationState.STARTED
        self.started_at = datetime.now(timezone.utc)
        self._started_monotonic = time.monotonic()
        self._token = _current_observation.set(self)

    def _mark_stopped(self, error: BaseException | None = None) -> None:
        if self.state is not ObservationState.STARTED:
            raise InvalidStateError(
                f"Observation {self.name!r} cannot stop from {self.state.value}"
            )
        self._stopped_monotonic = time.monotonic()
        self.stopped_at = datetime.now(timezone.utc)
        self.error = error
        if error is None:
            self.outcome = Outcome.SUCCESS
        elif isinstance(error, asyncio.CancelledError):
            self.outcome = Outcome.CANCELLED
        else:
            self.outcome = Outcome.ERROR
        self.state = ObservationState.STOPPED

    def _restore_ambient(self) -> None:
        token, self._token = self._token, None
        if token is None:
            return
        try:
            _current_observation.reset(token)
        except ValueError:
            # Stopped from a different context than the one it started in.
            if _current_observation.get() is self:
                _current_observation.set(self.parent)


_current_observation: ContextVar[ObservationContext | None] = ContextVar(
    "current_observation", default=None
)


def current_observation() -> ObservationContext | None:
    """The innermost started observation in the current context, if any."""
    return _current_observation.get()


def create(
    name: str,
    contextual_name: str | None = None,
    *,
    tags: Iterable[tuple[str, str]] | dict[str, str] | None = None,
) -> ObservationContext:
    """Build a not-yet-started observation. No handler is notified."""
    if isinstance(tags, dict):
        tags = tags.items()
    return ObservationContext(name, contextual_name, tags)


def tag(context: ObservationContext, key: str, value: str) -> ObservationContext:
    """Append a tag to ``context``; see :meth:`ObservationContext.tag`."""
    return context.tag(key, value)
