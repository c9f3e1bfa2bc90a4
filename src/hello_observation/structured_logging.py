"""Log correlation: stamp records with the ambient trace ids, render JSON."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from .correlation import get_correlation_id, get_span_id, get_trace_id
from .observation import current_observation

if TYPE_CHECKING:
    from .config import ObservationConfig

ROOT_LOGGER = "hello_observation"

_CORRELATION_FIELDS = ("trace_id", "span_id", "correlation_id", "observation")


class CorrelationLogFilter(logging.Filter):
    """Adds ``trace_id``, ``span_id``, ``correlation_id`` and ``observation``
    to every record, read from the ambient context at emit time."""

    def filter(self, record: logging.LogRecord) -> bool:
        observation = current_observation()
        record.trace_id = get_trace_id()
        record.span_id = get_span_id()
        record.correlation_id = get_correlation_id()
        record.observation = observation.name if observation is not None else None
        return True


class StructuredFormatter(logging.Formatter):
    """Single-line JSON entries with correlation fields."""

    def __init__(self, service_name: str | None = None) -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service_name:
            entry["service"] = self.service_name
        for name in _CORRELATION_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


TEXT_FORMAT = (
    "%(asctime)s %(levelname)s [%(name)s] "
    "[trace_id=%(trace_id)s span_id=%(span_id)s] %(message)s"
)


def configure_logging(config: ObservationConfig) -> logging.Handler:
    """Attach a correlated stream handler to the package root logger."""
    root = logging.getLogger(ROOT_LOGGER)
    for existing in list(root.handlers):
        if getattr(existing, "_hello_observation", False):
            root.removeHandler(existing)
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationLogFilter())
    if config.log_json:
        handler.setFormatter(StructuredFormatter(config.service_name))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler._hello_observation = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(config.log_level.upper())
    return handler
