"""CorrelationObservationHandler: trace and span ids for log correlation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..correlation import (
    PARENT_SPAN_ID_KEY,
    SPAN_ID_KEY,
    TRACE_ID_KEY,
    generate_span_id,
    generate_trace_id,
    get_correlation_id,
    trace_id_from_correlation_id,
)

if TYPE_CHECKING:
    from ..observation import ObservationContext

CORRELATION_ID_KEY = "correlation_id"


class CorrelationObservationHandler:
    """Assigns a trace id and span id to every observation.

    A nested observation inherits its parent's trace id and records the
    parent's span id. A root observation derives its trace id from the
    ambient correlation id when that is UUID-shaped, so logs of one request
    share a trace id, and falls back to a random one.

    Register this handler first: later handlers read the ids in ``on_start``.
    """

    def supports(self, context: ObservationContext) -> bool:
        return True

    def on_start(self, context: ObservationContext) -> None:
        parent = context.parent
        trace_id = parent.get(TRACE_ID_KEY) if parent is not None else None
        if trace_id is None:
            trace_id = context.get(TRACE_ID_KEY)
        correlation_id = get_correlation_id()
        if trace_id is None and correlation_id:
            trace_id = trace_id_from_correlation_id(correlation_id)
        context.put(TRACE_ID_KEY, trace_id or generate_trace_id())
        context.put(SPAN_ID_KEY, generate_span_id())
        if parent is not None and parent.get(SPAN_ID_KEY):
            context.put(PARENT_SPAN_ID_KEY, parent.get(SPAN_ID_KEY))
        if correlation_id:
            context.put(CORRELATION_ID_KEY, correlation_id)

    def on_stop(self, context: ObservationContext) -> None:
        # Ids stay on the context so stop-phase handlers and sinks can read them.
        return None
