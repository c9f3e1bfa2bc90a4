from __future__ import annotations

import asyncio
from typing import Any

import pytest

from conftest import RecordingHandler
from hello_observation.observation import (
    ObservationState,
    Outcome,
    create,
    current_observation,
)
from hello_observation.registry import ObservationRegistry, observe_async


async def test_observe_async_stops_after_work_completes(
    registry: ObservationRegistry, recorder: RecordingHandler, journal: list[Any]
) -> None:
    async def work() -> str:
        await asyncio.sleep(0)
        journal.append(("work", "done", "greeting.call"))
        return "ok"

    result = await registry.observe_async(create("greeting.call"), work)

    assert result == "ok"
    assert journal == [
        ("recorder", "start", "greeting.call"),
        ("work", "done", "greeting.call"),
        ("recorder", "stop", "greeting.call"),
    ]


async def test_observe_async_accepts_awaitable(
    registry: ObservationRegistry, recorder: RecordingHandler
) -> None:
    async def work() -> int:
        return 7

    assert await registry.observe_async(create("greeting.call"), work()) == 7
    assert recorder.count("stop") == 1


async def test_observe_async_reraises_after_stop(
    registry: ObservationRegistry, recorder: RecordingHandler, journal: list[Any]
) -> None:
    ctx = create("greeting.call")

    async def work() -> None:
        await asyncio.sleep(0)
        raise LookupError("gone")

    with pytest.raises(LookupError):
        await registry.observe_async(ctx, work)

    assert journal[-1] == ("recorder", "stop", "greeting.call")
    assert ctx.outcome is Outcome.ERROR


async def test_cancellation_stops_exactly_once_as_cancelled(
    registry: ObservationRegistry, recorder: RecordingHandler
) -> None:
    ctx = create("greeting.call")
    started = asyncio.Event()

    async def work() -> None:
        started.set()
        await asyncio.sleep(60)

    task = asyncio.create_task(registry.observe_async(ctx, work))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert recorder.count("start") == 1
    assert recorder.count("stop") == 1
    assert ctx.state is ObservationState.STOPPED
    assert ctx.outcome is Outcome.CANCELLED
    assert ("outcome", "cancelled") in ctx.stop_tags


async def test_timeout_cancels_and_stops(
    registry: ObservationRegistry, recorder: RecordingHandler
) -> None:
    ctx = create("greeting.call")

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(
            registry.observe_async(ctx, lambda: asyncio.sleep(60)), timeout=0.01
        )

    assert recorder.count("stop") == 1
    assert ctx.outcome is Outcome.CANCELLED


async def test_concurrent_observations_do_not_interfere(
    registry: ObservationRegistry, recorder: RecordingHandler
) -> None:
    async def work(delay: float) -> str | None:
        await asyncio.sleep(delay)
        current = current_observation()
        return current.contextual_name if current else None

    contexts = [create("greeting.call", f"call-{i}") for i in range(5)]
    results = await asyncio.gather(
        *(
            registry.observe_async(ctx, lambda d=0.001 * (5 - i): work(d))
            for i, ctx in enumerate(contexts)
        )
    )

    assert results == [f"call-{i}" for i in range(5)]
    assert recorder.count("start") == 5 and recorder.count("stop") == 5
    assert all(ctx.outcome is Outcome.SUCCESS for ctx in contexts)


async def test_spawned_task_sees_observation_after_caller_returned(
    registry: ObservationRegistry,
) -> None:
    ctx = create("server.job")
    release = asyncio.Event()
    seen: list[Any] = []

    async def deferred() -> None:
        await release.wait()
        seen.append(current_observation())

    async def work() -> asyncio.Task[None]:
        return asyncio.create_task(deferred())

    task = await registry.observe_async(ctx, work)
    assert current_observation() is None
    release.set()
    await task

    assert seen == [ctx]


async def test_module_level_observe_async_uses_process_registry(
    journal: list[Any],
) -> None:
    from hello_observation.registry import get_observation_registry

    handler = RecordingHandler("global", journal)
    get_observation_registry().register(handler)

    async def work() -> str:
        return "ok"

    assert await observe_async(create("greeting.call"), work) == "ok"
    assert handler.count("stop") == 1
