"""TracingObservationHandler: OpenTelemetry spans (optional [opentelemetry] extra)."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any, cast

from ..correlation import get_correlation_id

if TYPE_CHECKING:
    from ..observation import ObservationContext

SPAN_KEY = "otel.span"


class TracingObservationHandler:
    """Opens a span per observation, parented on the enclosing observation's span.

    Records the tags as span attributes and the outcome on stop. Does
    nothing when ``opentelemetry-api`` is not installed.
    """

    def __init__(self, tracer_name: str = "hello-observation") -> None:
        self._tracer = None
        self._trace_api: Any = None
        try:
            trace_api = cast(
                "Any", __import__("opentelemetry.trace", fromlist=["trace"])
            )

            self._trace_api = trace_api
            self._tracer = trace_api.get_tracer(tracer_name, "0.1.0")
        except ImportError:
            pass

    def supports(self, context: ObservationContext) -> bool:
        return self._tracer is not None

    def on_start(self, context: ObservationContext) -> None:
        if self._tracer is None:
            return
        parent_context = None
        parent = context.parent
        parent_span = parent.get(SPAN_KEY) if parent is not None else None
        if parent_span is not None and self._trace_api is not None:
            parent_context = self._trace_api.set_span_in_context(parent_span)
        span = self._tracer.start_span(context.contextual_name, context=parent_context)
        span.set_attribute("observation.name", context.name)
        for key, value in context.tags:
            span.set_attribute(key, value)
        correlation_id = get_correlation_id()
        if correlation_id:
            span.set_attribute("correlation_id", correlation_id)
        context.put(SPAN_KEY, span)

    def on_stop(self, context: ObservationContext) -> None:
        span = context.get(SPAN_KEY)
        if span is None:
            return
        try:
            outcome = context.outcome.value if context.outcome else "unknown"
            span.set_attribute("outcome", outcome)
            if context.error is not None and outcome == "error":
                with contextlib.suppress(Exception):
                    span.record_exception(context.error)
                self._set_error_status(span, context.error)
        finally:
            span.end()

    def _set_error_status(self, span: Any, error: BaseException) -> None:
        if self._trace_api is None:
            return
        status_cls = getattr(self._trace_api, "Status", None)
        status_code = getattr(self._trace_api, "StatusCode", None)
        if status_cls is None or status_code is None:
            return
        span.set_status(status_cls(status_code.ERROR, str(error)))
