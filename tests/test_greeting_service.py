from __future__ import annotations

import math
from typing import Any

import pytest

from conftest import RecordingHandler
from hello_observation.exceptions import ValidationError
from hello_observation.greeting import (
    GREETINGS,
    Greeting,
    GreetingService,
    LatencySupplier,
)
from hello_observation.handlers import (
    EventPublishingObservationHandler,
    InMemoryEventSink,
)
from hello_observation.observation import Outcome
from hello_observation.registry import ObservationRegistry


@pytest.fixture
def service(registry: ObservationRegistry) -> GreetingService:
    async def no_sleep(_seconds: float) -> None:
        return None

    return GreetingService(registry, latency=lambda: 250, sleep=no_sleep)


def test_say_hello_in_each_language(service: GreetingService) -> None:
    for code, word in GREETINGS.items():
        assert service.say_hello("Mario", code) == f"{word} Mario!"


def test_say_hello_uses_default_language(registry: ObservationRegistry) -> None:
    service = GreetingService(registry, default_language="jp")
    assert service.say_hello("User") == "konnichiwa User!"


def test_say_hello_is_observed(
    service: GreetingService, recorder: RecordingHandler
) -> None:
    service.say_hello("Mario", "it")

    (ctx,) = recorder.seen
    assert ctx.name == "greeting"
    assert ctx.contextual_name == "say-hello"
    assert ctx.tags == (("greeting", "hello"), ("lang", "it"))
    assert ctx.outcome is Outcome.SUCCESS


@pytest.mark.parametrize("name", ["7x", "", "   "])
def test_invalid_names_are_rejected(
    service: GreetingService, recorder: RecordingHandler, name: str
) -> None:
    with pytest.raises(ValidationError) as info:
        service.say_hello(name)

    assert info.value.errors == {"name": ["Invalid name format."]}
    assert recorder.seen[0].outcome is Outcome.ERROR
    assert recorder.count("stop") == 1


def test_unknown_language_is_rejected_and_tagged_unknown(
    service: GreetingService, recorder: RecordingHandler
) -> None:
    with pytest.raises(ValidationError) as info:
        service.say_hello("Mario", "xx")

    assert "lang" in info.value.errors
    assert ("lang", "unknown") in recorder.seen[0].tags


def test_names_records_greeted_names(service: GreetingService) -> None:
    service.say_hello("Zed")
    service.say_hello("Ann")
    service.say_hello("Zed", "fr")
    with pytest.raises(ValidationError):
        service.say_hello("9lives")

    assert service.names() == ["Ann", "Zed"]


async def test_greet_waits_for_latency(registry: ObservationRegistry) -> None:
    slept: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        slept.append(seconds)

    sink = InMemoryEventSink()
    registry.register(EventPublishingObservationHandler(sink))
    service = GreetingService(registry, latency=lambda: 320, sleep=fake_sleep)

    greeting = await service.greet("C3PO")

    assert isinstance(greeting, Greeting)
    assert greeting.greeting == "HELLO THERE, C3PO, delayed for 320 ms."
    assert slept == [0.32]
    start, stop = sink.events
    assert start.context_name == "greeting.call"
    assert start.tags == {"latency": "320"}
    assert stop.outcome == "success"


async def test_greet_rejects_invalid_name(
    service: GreetingService, recorder: RecordingHandler
) -> None:
    with pytest.raises(ValidationError):
        await service.greet("1337")
    assert recorder.seen[0].outcome is Outcome.ERROR


def test_latency_supplier_follows_sine_wave() -> None:
    supplier = LatencySupplier()
    values = [supplier() for _ in range(400)]

    expected: list[Any] = [
        200 + abs(math.floor(math.sin(math.pi / 200 * n) * 250)) for n in range(1, 401)
    ]
    assert values == expected
    assert min(values) >= 200
    assert max(values) == 450
