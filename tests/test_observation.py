from __future__ import annotations

import pytest

from hello_observation.exceptions import InvalidStateError
from hello_observation.observation import (
    ObservationContext,
    ObservationState,
    Outcome,
    create,
    current_observation,
    tag,
)
from hello_observation.registry import ObservationRegistry


def test_create_builds_unstarted_context() -> None:
    ctx = create("greeting", "say-hello", tags={"greeting": "hello"})

    assert ctx.name == "greeting"
    assert ctx.contextual_name == "say-hello"
    assert ctx.tags == (("greeting", "hello"),)
    assert ctx.state is ObservationState.CREATED
    assert ctx.started_at is None
    assert ctx.stopped_at is None
    assert ctx.outcome is None


def test_contextual_name_defaults_to_name() -> None:
    assert create("server.job").contextual_name == "server.job"


def test_empty_name_is_rejected() -> None:
    with pytest.raises(ValueError):
        ObservationContext("")


def test_tags_keep_insertion_order() -> None:
    ctx = create("server.job")
    tag(ctx, "job.type", "string")
    tag(ctx, "span.kind", "server")
    assert ctx.tags == (("job.type", "string"), ("span.kind", "server"))


def test_tag_returns_context_for_chaining() -> None:
    ctx = create("server.job").tag("a", "1").tag("b", "2")
    assert [key for key, _ in ctx.tags] == ["a", "b"]


def test_tag_after_start_fails_without_mutating(registry: ObservationRegistry) -> None:
    ctx = create("greeting", tags=[("greeting", "hello")])
    registry.start(ctx)

    with pytest.raises(InvalidStateError):
        tag(ctx, "late", "value")

    assert ctx.tags == (("greeting", "hello"),)
    registry.stop(ctx)


def test_tag_after_stop_fails(registry: ObservationRegistry) -> None:
    ctx = create("greeting")
    registry.observe(ctx, lambda: None)
    with pytest.raises(InvalidStateError):
        ctx.tag("late", "value")
    assert ctx.tags == ()


def test_result_tags_are_reported_on_stop_only(registry: ObservationRegistry) -> None:
    ctx = create("http.server.requests", tags={"method": "GET"})
    with pytest.raises(InvalidStateError):
        ctx.tag_result("status", "2xx")

    registry.observe(ctx, lambda: ctx.tag_result("status", "4xx"))

    assert ctx.tags == (("method", "GET"),)
    assert ctx.stop_tags == (
        ("method", "GET"),
        ("status", "4xx"),
        ("outcome", "success"),
    )
    with pytest.raises(InvalidStateError):
        ctx.tag_result("status", "5xx")


def test_lifecycle_sets_timestamps_and_outcome(registry: ObservationRegistry) -> None:
    ctx = create("greeting")

    registry.start(ctx)
    assert ctx.state is ObservationState.STARTED
    assert ctx.started_at is not None
    assert ctx.stopped_at is None

    registry.stop(ctx)
    assert ctx.state is ObservationState.STOPPED
    assert ctx.stopped_at is not None
    assert ctx.stopped_at >= ctx.started_at
    assert ctx.outcome is Outcome.SUCCESS
    assert ctx.duration is not None and ctx.duration >= 0


def test_transitions_happen_once(registry: ObservationRegistry) -> None:
    ctx = create("greeting")
    registry.start(ctx)
    with pytest.raises(InvalidStateError):
        registry.start(ctx)
    registry.stop(ctx)
    with pytest.raises(InvalidStateError):
        registry.stop(ctx)
    with pytest.raises(InvalidStateError):
        registry.start(ctx)


def test_stop_without_start_fails(registry: ObservationRegistry) -> None:
    ctx = create("greeting")
    with pytest.raises(InvalidStateError):
        registry.stop(ctx)
    assert ctx.stopped_at is None
    assert ctx.state is ObservationState.CREATED


def test_stop_tags_include_outcome(registry: ObservationRegistry) -> None:
    ctx = create("greeting", tags={"greeting": "hello"})
    assert ctx.stop_tags == (("greeting", "hello"),)
    with pytest.raises(KeyError):
        registry.observe(ctx, lambda: {}["missing"])
    assert ctx.stop_tags == (("greeting", "hello"), ("outcome", "error"))
    assert isinstance(ctx.error, KeyError)


def test_current_observation_tracks_nesting(registry: ObservationRegistry) -> None:
    outer = create("outer")
    inner = create("inner")
    seen: list[ObservationContext | None] = []

    def inner_work() -> None:
        seen.append(current_observation())

    def outer_work() -> None:
        seen.append(current_observation())
        registry.observe(inner, inner_work)
        seen.append(current_observation())

    assert current_observation() is None
    registry.observe(outer, outer_work)

    assert seen == [outer, inner, outer]
    assert inner.parent is outer
    assert outer.parent is None
    assert current_observation() is None


def test_handler_storage_is_per_context() -> None:
    first, second = create("a"), create("b")
    first.put("trace_id", "abc")
    assert first.get("trace_id") == "abc"
    assert second.get("trace_id") is None
    assert second.get("trace_id", "fallback") == "fallback"
