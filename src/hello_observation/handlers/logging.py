"""LoggingObservationHandler: start/stop lines for every observation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..observation import ObservationContext

logger = logging.getLogger("hello_observation.observations")


class LoggingObservationHandler:
    """Logs observation start and stop: name, tags, duration, outcome."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def supports(self, context: ObservationContext) -> bool:
        return True

    def on_start(self, context: ObservationContext) -> None:
        self._log.info(
            "Started observation of %s (%s) tags=%s",
            context.name,
            context.contextual_name,
            dict(context.tags),
        )

    def on_stop(self, context: ObservationContext) -> None:
        outcome = context.outcome.value if context.outcome else "unknown"
        elapsed = (context.duration or 0.0) * 1000
        if context.error is not None:
            self._log.warning(
                "Stopped observation for %s after %.2fms outcome=%s error=%r",
                context.name,
                elapsed,
                outcome,
                context.error,
            )
            return
        self._log.info(
            "Stopped observation for %s after %.2fms outcome=%s",
            context.name,
            elapsed,
            outcome,
        )
