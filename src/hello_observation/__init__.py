"""hello-observation: observation lifecycle hooks for greeting demo services.

Zero web dependencies in the core. Optional extras add OpenTelemetry,
Prometheus, Sentry, an httpx greeting client and a FastAPI adapter.
"""

from __future__ import annotations

from .bootstrap import bootstrap, build_registry
from .config import ObservationConfig
from .correlation import (
    AmbientContext,
    bind,
    capture,
    generate_correlation_id,
    get_correlation_id,
    get_span_id,
    get_trace_id,
    propagation_headers,
    run_in_executor,
    set_correlation_id,
)
from .exceptions import (
    ConfigurationError,
    GreetingClientError,
    HelloObservationError,
    InvalidStateError,
    ObservationHandlerError,
    ValidationError,
)
from .observation import (
    ObservationContext,
    ObservationState,
    Outcome,
    create,
    current_observation,
    tag,
)
from .problems import ErrorMapping, ErrorTranslator, ProblemDetail, translate
from .registry import (
    HandlerRegistration,
    ObservationHandler,
    ObservationRegistry,
    get_observation_registry,
    observe,
    observe_async,
    set_observation_registry,
)

__all__ = [
    # ── Observation ─────────────────────────────────────────────
    "ObservationContext",
    "ObservationState",
    "Outcome",
    "create",
    "current_observation",
    "tag",
    # ── Registry ────────────────────────────────────────────────
    "HandlerRegistration",
    "ObservationHandler",
    "ObservationRegistry",
    "get_observation_registry",
    "observe",
    "observe_async",
    "set_observation_registry",
    # ── Correlation ─────────────────────────────────────────────
    "AmbientContext",
    "bind",
    "capture",
    "generate_correlation_id",
    "get_correlation_id",
    "get_span_id",
    "get_trace_id",
    "propagation_headers",
    "run_in_executor",
    "set_correlation_id",
    # ── Problems ────────────────────────────────────────────────
    "ErrorMapping",
    "ErrorTranslator",
    "ProblemDetail",
    "translate",
    # ── Bootstrap ───────────────────────────────────────────────
    "ObservationConfig",
    "bootstrap",
    "build_registry",
    # ── Exceptions ──────────────────────────────────────────────
    "ConfigurationError",
    "GreetingClientError",
    "HelloObservationError",
    "InvalidStateError",
    "ObservationHandlerError",
    "ValidationError",
]
