from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest

from hello_observation.config import ObservationConfig
from hello_observation.correlation import TRACE_ID_KEY, set_correlation_id
from hello_observation.handlers import CorrelationObservationHandler
from hello_observation.observation import create
from hello_observation.registry import ObservationRegistry
from hello_observation.structured_logging import (
    ROOT_LOGGER,
    CorrelationLogFilter,
    StructuredFormatter,
    configure_logging,
)


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger(ROOT_LOGGER)
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        "hello_observation.test", logging.INFO, __file__, 1, message, None, None
    )


def test_filter_stamps_ambient_trace() -> None:
    registry = ObservationRegistry()
    registry.register(CorrelationObservationHandler())
    set_correlation_id("cid-log")
    ctx = create("greeting")
    log_filter = CorrelationLogFilter()

    record = registry.observe(ctx, lambda: _filtered(log_filter))

    assert record.trace_id == ctx.get(TRACE_ID_KEY)
    assert record.correlation_id == "cid-log"
    assert record.observation == "greeting"


def _filtered(log_filter: CorrelationLogFilter) -> logging.LogRecord:
    record = _record()
    assert log_filter.filter(record)
    return record


def test_filter_outside_observation_sets_none() -> None:
    record = _record()
    CorrelationLogFilter().filter(record)
    assert record.trace_id is None
    assert record.observation is None


def test_formatter_renders_json_with_correlation_fields() -> None:
    record = _record("Greeting C3PO")
    record.trace_id = "a" * 32
    record.correlation_id = "cid-1"

    entry = json.loads(StructuredFormatter("hello-observation").format(record))

    assert entry["message"] == "Greeting C3PO"
    assert entry["level"] == "INFO"
    assert entry["service"] == "hello-observation"
    assert entry["trace_id"] == "a" * 32
    assert entry["correlation_id"] == "cid-1"
    assert "span_id" not in entry


def test_configure_logging_replaces_previous_handler(restore_root_logger: None) -> None:
    config = ObservationConfig(log_json=True, log_level="debug")

    first = configure_logging(config)
    second = configure_logging(config)

    root = logging.getLogger(ROOT_LOGGER)
    assert first not in root.handlers
    assert second in root.handlers
    assert root.level == logging.DEBUG
    assert isinstance(second.formatter, StructuredFormatter)
