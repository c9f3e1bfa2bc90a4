"""SentryObservationHandler: report failed observations (optional [sentry] extra)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..correlation import TRACE_ID_KEY, get_correlation_id
from ..exceptions import ValidationError
from ..observation import Outcome

if TYPE_CHECKING:
    from ..observation import ObservationContext

_logger = logging.getLogger(__name__)


class SentryObservationHandler:
    """Captures the error of an observation that stopped with an error outcome.

    Client errors (:class:`ValidationError`) and cancellations are not
    reported.
    """

    def __init__(self) -> None:
        try:
            import sentry_sdk
        except ImportError:
            sentry_sdk = None  # type: ignore[assignment]
        self._sentry = sentry_sdk

    def supports(self, context: ObservationContext) -> bool:
        return self._sentry is not None

    def on_start(self, context: ObservationContext) -> None:
        return None

    def on_stop(self, context: ObservationContext) -> None:
        if self._sentry is None or context.outcome is not Outcome.ERROR:
            return
        error = context.error
        if error is None or isinstance(error, ValidationError):
            return
        with self._sentry.new_scope() as scope:
            scope.set_tag("observation.name", context.name)
            scope.set_tag("observation.contextual_name", context.contextual_name)
            for key, value in context.tags:
                scope.set_tag(key, value)
            correlation_id = get_correlation_id()
            if correlation_id:
                scope.set_tag("correlation_id", correlation_id)
            trace_id = context.get(TRACE_ID_KEY)
            if trace_id:
                scope.set_tag("trace_id", trace_id)
            self._sentry.capture_exception(error)
        _logger.debug("Reported %r from observation %s", error, context.name)
