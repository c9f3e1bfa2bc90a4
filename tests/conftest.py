from __future__ import annotations

from typing import Any

import pytest

from hello_observation.correlation import set_correlation_id
from hello_observation.observation import ObservationContext
from hello_observation.registry import ObservationRegistry, set_observation_registry


class RecordingHandler:
    """Appends ``(label, phase, context name)`` to a shared journal."""

    def __init__(
        self,
        label: str,
        journal: list[tuple[str, str, str]],
        *,
        supports: bool = True,
        fail_on: set[str] | None = None,
    ) -> None:
        self.label = label
        self.journal = journal
        self._supports = supports
        self.fail_on = fail_on or set()
        self.seen: list[ObservationContext] = []

    def supports(self, context: ObservationContext) -> bool:
        return self._supports

    def on_start(self, context: ObservationContext) -> None:
        self.journal.append((self.label, "start", context.name))
        self.seen.append(context)
        if "start" in self.fail_on:
            raise RuntimeError(f"{self.label} broke on start")

    def on_stop(self, context: ObservationContext) -> None:
        self.journal.append((self.label, "stop", context.name))
        if "stop" in self.fail_on:
            raise RuntimeError(f"{self.label} broke on stop")

    def count(self, phase: str) -> int:
        return sum(
            1 for label, p, _ in self.journal if label == self.label and p == phase
        )


@pytest.fixture
def journal() -> list[tuple[str, str, str]]:
    return []


@pytest.fixture
def registry() -> ObservationRegistry:
    return ObservationRegistry()


@pytest.fixture
def recorder(registry: ObservationRegistry, journal: list[Any]) -> RecordingHandler:
    handler = RecordingHandler("recorder", journal)
    registry.register(handler)
    return handler


@pytest.fixture(autouse=True)
def _reset_process_state() -> Any:
    yield
    set_observation_registry(None)
    set_correlation_id(None)
