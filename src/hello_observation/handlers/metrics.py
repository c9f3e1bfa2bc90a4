"""MetricsObservationHandler: Prometheus metrics (optional [prometheus] extra).

Emits ``observation_duration_seconds`` and ``observation_total`` with labels
``{name, outcome}``. Only the context name is used as a label: contextual
names and tag values are not guaranteed to be low-cardinality.

Collectors are created once per Prometheus registry and shared by every
handler built against it, so bootstrapping twice in one process reuses them.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..observation import ObservationContext

_logger = logging.getLogger(__name__)

_collectors: weakref.WeakKeyDictionary[Any, tuple[Any, Any]] = (
    weakref.WeakKeyDictionary()
)
_collectors_lock = threading.Lock()


def _collectors_for(registry: Any) -> tuple[Any, Any]:
    from prometheus_client import Counter, Histogram

    with _collectors_lock:
        existing = _collectors.get(registry)
        if existing is not None:
            return existing
        histogram = Histogram(
            "observation_duration_seconds",
            "Observed unit-of-work duration",
            ["name", "outcome"],
            registry=registry,
        )
        counter = Counter(
            "observation_total",
            "Observed unit-of-work invocations",
            ["name", "outcome"],
            registry=registry,
        )
        _collectors[registry] = (histogram, counter)
        return histogram, counter


class MetricsObservationHandler:
    """Records duration and outcome of every stopped observation."""

    def __init__(self, registry: Any | None = None) -> None:
        self._histogram = None
        self._counter = None
        try:
            from prometheus_client import REGISTRY

            target = registry if registry is not None else REGISTRY
            self._histogram, self._counter = _collectors_for(target)
        except ImportError:
            pass

    def supports(self, context: ObservationContext) -> bool:
        return self._histogram is not None and self._counter is not None

    def on_start(self, context: ObservationContext) -> None:
        return None

    def on_stop(self, context: ObservationContext) -> None:
        if self._histogram is None or self._counter is None:
            return
        outcome = context.outcome.value if context.outcome else "unknown"
        labels = {"name": context.name, "outcome": outcome}
        try:
            self._histogram.labels(**labels).observe(context.duration or 0.0)
            self._counter.labels(**labels).inc()
        except Exception:  # noqa: BLE001
            _logger.debug("Failed to emit metrics labels", exc_info=True)
