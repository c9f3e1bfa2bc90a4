"""Correlation management: request correlation ids, trace/span ids, and
carrying the ambient observation across asynchronous boundaries.

asyncio copies the current :mod:`contextvars` context into every task it
creates, so work spawned with ``asyncio.create_task`` inside an observation
already sees it. Work handed to a thread pool or queued for later does not:
capture an :class:`AmbientContext` while the observation is active and run
the deferred work through it.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import re
import secrets
import uuid
from concurrent.futures import Executor
from contextvars import Context, ContextVar, copy_context
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from .observation import ObservationContext, current_observation

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)

TRACE_ID_KEY = "trace_id"
SPAN_ID_KEY = "span_id"
PARENT_SPAN_ID_KEY = "parent_span_id"

_TRACEPARENT = re.compile(r"^00-([0-9a-f]{32})-([0-9a-f]{16})-[0-9a-f]{2}$")

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID in context."""
    _correlation_id.set(correlation_id)


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def generate_trace_id() -> str:
    return secrets.token_hex(16)


def generate_span_id() -> str:
    return secrets.token_hex(8)


def trace_id_from_correlation_id(correlation_id: str) -> str | None:
    """Reuse a UUID-shaped correlation id as a 32-hex trace id."""
    try:
        return uuid.UUID(correlation_id).hex
    except ValueError:
        return None


def get_trace_id() -> str | None:
    """Trace id of the ambient observation, if a correlation handler set one."""
    observation = current_observation()
    return observation.get(TRACE_ID_KEY) if observation is not None else None


def get_span_id() -> str | None:
    observation = current_observation()
    return observation.get(SPAN_ID_KEY) if observation is not None else None


def format_traceparent(trace_id: str, span_id: str, *, sampled: bool = True) -> str:
    """W3C ``traceparent`` header value."""
    return f"00-{trace_id}-{span_id}-{'01' if sampled else '00'}"


def parse_traceparent(value: str | None) -> tuple[str, str] | None:
    """Extract ``(trace_id, parent_span_id)`` from a ``traceparent`` header."""
    if not value:
        return None
    match = _TRACEPARENT.match(value.strip().lower())
    if match is None:
        return None
    return match.group(1), match.group(2)


def propagation_headers() -> dict[str, str]:
    """Headers carrying the ambient correlation to a downstream service."""
    return _headers(get_correlation_id(), get_trace_id(), get_span_id())


def _headers(
    correlation_id: str | None, trace_id: str | None, span_id: str | None
) -> dict[str, str]:
    headers: dict[str, str] = {}
    if correlation_id:
        headers["X-Correlation-ID"] = correlation_id
    if trace_id and span_id:
        headers["traceparent"] = format_traceparent(trace_id, span_id)
    return headers


@dataclass(frozen=True)
class AmbientContext:
    """Snapshot of the ambient observation and correlation ids.

    Captured where the work is scheduled, passed along with it, and entered
    where the work finally runs.
    """

    observation: ObservationContext | None
    correlation_id: str | None
    trace_id: str | None
    span_id: str | None
    _context: Context = field(repr=False, compare=False)

    def headers(self) -> dict[str, str]:
        """Propagation headers as they were when the context was captured."""
        return _headers(self.correlation_id, self.trace_id, self.span_id)

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``fn`` inside a fresh copy of the captured context."""
        logger.debug(
            "Running %s under observation %s (correlation %s)",
            getattr(fn, "__qualname__", fn),
            self.observation.name if self.observation is not None else None,
            self.correlation_id,
        )
        return self._context.copy().run(fn, *args, **kwargs)

    def bind(self, fn: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return self.run(fn, *args, **kwargs)

        return wrapper


def capture() -> AmbientContext:
    """Capture the current ambient context for deferred execution."""
    return AmbientContext(
        observation=current_observation(),
        correlation_id=get_correlation_id(),
        trace_id=get_trace_id(),
        span_id=get_span_id(),
        _context=copy_context(),
    )


def bind(fn: Callable[..., T]) -> Callable[..., T]:
    """Bind ``fn`` to the context that is ambient right now."""
    return capture().bind(fn)


def run_in_executor(
    executor: Executor | None,
    fn: Callable[..., T],
    *args: Any,
) -> asyncio.Future[T]:
    """``loop.run_in_executor`` that carries the ambient context into the pool."""
    loop = asyncio.get_running_loop()
    return loop.run_in_executor(executor, capture().bind(fn), *args)

