"""Process bootstrap: build, freeze and install the observation registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .config import ObservationConfig
from .handlers import (
    CorrelationObservationHandler,
    EventPublishingObservationHandler,
    LoggingEventSink,
    LoggingObservationHandler,
    MetricsObservationHandler,
    SentryObservationHandler,
    TracingObservationHandler,
)
from .registry import ObservationRegistry, set_observation_registry
from .structured_logging import configure_logging

if TYPE_CHECKING:
    from .registry import ObservationHandler

logger = logging.getLogger(__name__)


def build_registry(
    config: ObservationConfig,
    *,
    extra_handlers: list[ObservationHandler] | None = None,
) -> ObservationRegistry:
    """Register the handlers enabled by ``config``.

    The correlation handler goes first so every later handler sees the trace
    ids in ``on_start``. ``extra_handlers`` are appended last.
    """
    registry = ObservationRegistry()
    registry.register(CorrelationObservationHandler())
    registry.register(LoggingObservationHandler())
    if config.log_events:
        registry.register(EventPublishingObservationHandler(LoggingEventSink()))
    if config.tracing_enabled:
        registry.register(TracingObservationHandler(config.service_name))
    if config.metrics_enabled:
        registry.register(MetricsObservationHandler())
    if config.sentry_enabled:
        registry.register(SentryObservationHandler())
    for handler in extra_handlers or []:
        registry.register(handler)
    return registry


def bootstrap(
    config: ObservationConfig | None = None,
    *,
    extra_handlers: list[ObservationHandler] | None = None,
    install: bool = True,
) -> ObservationRegistry:
    """Configure logging and return a frozen registry.

    With ``install`` the registry also becomes the process-wide registry
    returned by :func:`~hello_observation.registry.get_observation_registry`.
    """
    config = config or ObservationConfig.from_env()
    configure_logging(config)
    registry = build_registry(config, extra_handlers=extra_handlers)
    registry.freeze()
    if install:
        set_observation_registry(registry)
    logger.info(
        "Observation registry ready with %d handlers",
        len(registry.handlers),
    )
    return registry
