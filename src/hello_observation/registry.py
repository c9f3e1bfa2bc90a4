"""Observation handler registry: ordered handlers with per-context filtering."""

from __future__ import annotations

import contextlib
import fnmatch
import inspect
import logging
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from .exceptions import InvalidStateError, ObservationHandlerError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

    from .observation import ObservationContext

logger = logging.getLogger("hello_observation.registry")

T = TypeVar("T")

_MATCH_CACHE_MAX_SIZE = 2048


@runtime_checkable
class ObservationHandler(Protocol):
    """Protocol for observation handlers (logging, correlation, tracing, ...)."""

    def supports(self, context: ObservationContext) -> bool:
        """Whether this handler wants notifications for ``context``."""
        ...

    def on_start(self, context: ObservationContext) -> None: ...

    def on_stop(self, context: ObservationContext) -> None: ...


class HandlerRegistration:
    """A registered handler with optional name filtering."""

    def __init__(
        self,
        handler: ObservationHandler,
        *,
        names: list[str] | None = None,
    ) -> None:
        self.handler = handler
        self.names = names or []
        self._match_cache: dict[str, bool] = {}

    def matches(self, context: ObservationContext) -> bool:
        """Check if this registration applies to the context."""
        if not self._matches_name(context.name):
            return False
        return bool(self.handler.supports(context))

    def _matches_name(self, name: str) -> bool:
        if not self.names:
            return True
        if name in self._match_cache:
            return self._match_cache[name]
        matched = any(fnmatch.fnmatch(name, pattern) for pattern in self.names)
        if len(self._match_cache) >= _MATCH_CACHE_MAX_SIZE:
            self._match_cache.clear()
        self._match_cache[name] = matched
        return matched


class ObservationRegistry:
    """Process-wide ordered list of observation handlers.

    Handlers are registered during bootstrap, after which the registry is
    frozen and only read. Every handler whose registration matches a context
    is notified on start and on stop, in registration order. The matching set
    is computed once at start so that a handler gets both notifications or
    neither.

    Handler failures are isolated: they are logged and never reach the
    observed work, the other handlers, or the matching stop notification.
    """

    def __init__(self) -> None:
        self._registrations: list[HandlerRegistration] = []
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def handlers(self) -> tuple[ObservationHandler, ...]:
        return tuple(r.handler for r in self._registrations)

    def register(
        self,
        handler: ObservationHandler,
        *,
        names: list[str] | None = None,
    ) -> HandlerRegistration:
        """Append a handler; ``names`` are fnmatch patterns on context names."""
        if self._frozen:
            raise InvalidStateError("Observation registry is frozen")
        registration = HandlerRegistration(handler, names=names)
        self._registrations.append(registration)
        return registration

    def freeze(self) -> None:
        """Reject further registrations."""
        self._frozen = True

    # ── Low-level lifecycle ──────────────────────────────────────────

    def start(self, context: ObservationContext) -> ObservationContext:
        """Transition ``context`` to STARTED and notify matching handlers."""
        context._mark_started()  # noqa: SLF001
        matched = []
        for registration in self._registrations:
            try:
                if registration.matches(context):
                    matched.append(registration)
            except Exception as exc:  # noqa: BLE001
                self._report(registration.handler, "supports", context, exc)
        context._matched = matched  # noqa: SLF001
        for registration in matched:
            try:
                registration.handler.on_start(context)
            except Exception as exc:  # noqa: BLE001
                self._report(registration.handler, "start", context, exc)
        return context

    def stop(
        self,
        context: ObservationContext,
        error: BaseException | None = None,
    ) -> ObservationContext:
        """Move ``context`` to STOPPED and notify the handlers matched at start."""
        context._mark_stopped(error)  # noqa: SLF001
        try:
            for registration in context._matched:  # noqa: SLF001
                try:
                    registration.handler.on_stop(context)
                except Exception as exc:  # noqa: BLE001
                    self._report(registration.handler, "stop", context, exc)
        finally:
            # Handlers still see this context as ambient while stopping.
            context._restore_ambient()  # noqa: SLF001
        return context

    @staticmethod
    def _report(
        handler: object,
        phase: str,
        context: ObservationContext,
        exc: Exception,
    ) -> None:
        error = ObservationHandlerError(handler, phase, context, exc)
        logger.warning("%s", error, exc_info=exc)

    # ── Scoped APIs ──────────────────────────────────────────────────

    def observe(self, context: ObservationContext, work: Callable[[], T]) -> T:
        """Run ``work`` inside ``context``; stop notification runs on every exit."""
        self.start(context)
        try:
            result = work()
        except BaseException as exc:
            self.stop(context, exc)
            raise
        if inspect.isawaitable(result):
            # Stopping now would close the context before the work ran.
            if inspect.iscoroutine(result):
                result.close()
            error = TypeError(
                "observe() received an awaitable; use observe_async() instead"
            )
            self.stop(context, error)
            raise error
        self.stop(context)
        return result

    async def observe_async(
        self,
        context: ObservationContext,
        work: Callable[[], Awaitable[T]] | Awaitable[T],
    ) -> T:
        """Await ``work`` inside ``context``.

        ``work`` may be a coroutine function or an awaitable. Stop
        notification runs once the work completes, fails, or is cancelled,
        and always before the result or error reaches the caller.
        """
        self.start(context)
        try:
            awaitable = work() if callable(work) else work
            result = await awaitable
        except BaseException as exc:
            # CancelledError lands here too and stops with a cancelled outcome.
            self.stop(context, exc)
            raise
        self.stop(context)
        return result

    @contextlib.contextmanager
    def observation(self, context: ObservationContext) -> Iterator[ObservationContext]:
        """``with registry.observation(ctx):`` form of :meth:`observe`."""
        self.start(context)
        try:
            yield context
        except BaseException as exc:
            self.stop(context, exc)
            raise
        self.stop(context)


_registry: ObservationRegistry | None = None


def get_observation_registry() -> ObservationRegistry:
    """Get the process-wide registry, creating an empty one on first access."""
    global _registry
    if _registry is None:
        _registry = ObservationRegistry()
    return _registry


def set_observation_registry(registry: ObservationRegistry | None) -> None:
    """Install ``registry`` as the process-wide registry (``None`` resets it)."""
    global _registry
    _registry = registry


def observe(
    context: ObservationContext,
    work: Callable[[], T],
    *,
    registry: ObservationRegistry | None = None,
) -> T:
    """Observe ``work`` with ``registry`` or the process-wide registry."""
    return (registry or get_observation_registry()).observe(context, work)


async def observe_async(
    context: ObservationContext,
    work: Callable[[], Awaitable[T]] | Awaitable[T],
    *,
    registry: ObservationRegistry | None = None,
) -> T:
    """Async counterpart of :func:`observe`."""
    return await (registry or get_observation_registry()).observe_async(
        context, work
    )
