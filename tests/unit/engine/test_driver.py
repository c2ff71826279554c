# tests/unit/engine/test_driver.py
"""Tests for PipelineDriver.

Covers the cursor write ordering around each action, abort on any action
error (whatever the step's policy), the RETRY attempt bound, and the
events emitted along the way.
"""

import asyncio
from typing import Any

import pytest

from autobuild.contracts import (
    BuildContext,
    Cursor,
    InterruptionPolicy,
    PipelineStatus,
    PipelineSummary,
    StepCompleted,
    StepFailed,
    StepStarted,
    UploadRejectedError,
    step,
)
from autobuild.core.cursor import CursorStore
from autobuild.core.events import EventBus
from autobuild.engine.clock import MockClock
from autobuild.engine.driver import PipelineDriver
from tests.fixtures.steps import Killed, make_registry, scripted_step


def _recording_bus() -> tuple[EventBus, list[Any]]:
    bus = EventBus()
    seen: list[Any] = []
    for event_type in (StepStarted, StepCompleted, StepFailed, PipelineSummary):
        bus.subscribe(event_type, seen.append)
    return bus, seen


def _driver(store: CursorStore, context: BuildContext, *descriptors: object, **kwargs: Any) -> PipelineDriver:
    return PipelineDriver(store, make_registry(*descriptors).assemble(), context, **kwargs)


class TestSuccessfulRun:
    def test_runs_every_step_in_order(self, store: CursorStore, context: BuildContext) -> None:
        order: list[str] = []

        @step("First", 1)
        def first(ctx: BuildContext) -> None:
            order.append("First")

        @step("Second", 2)
        async def second(ctx: BuildContext) -> None:
            order.append("Second")

        result = asyncio.run(_driver(store, context, second, first).run())

        assert order == ["First", "Second"]
        assert result.status == PipelineStatus.COMPLETED
        assert (result.steps_completed, result.total_steps, result.exit_code) == (2, 2, 0)
        assert result.error is None

    def test_store_is_cleared_on_completion(self, store: CursorStore, context: BuildContext) -> None:
        a, _ = scripted_step("A", 1)
        store.scope("A").set_int("done", 1)

        asyncio.run(_driver(store, context, a).run())

        assert store.load_cursor() is None
        assert store.items() == {}

    def test_host_keys_survive_completion(self, store: CursorStore, context: BuildContext) -> None:
        a, _ = scripted_step("A", 1)
        store.set("host.active_platform", "android")

        asyncio.run(_driver(store, context, a).run())

        assert store.get("host.active_platform") == "android"

    def test_empty_pipeline_completes(self, store: CursorStore, context: BuildContext) -> None:
        result = asyncio.run(PipelineDriver(store, [], context).run())
        assert result.succeeded
        assert result.total_steps == 0

    def test_start_index_skips_earlier_steps(self, store: CursorStore, context: BuildContext) -> None:
        a, a_action = scripted_step("A", 1)
        b, b_action = scripted_step("B", 2)

        result = asyncio.run(_driver(store, context, a, b).run(1))

        assert (a_action.calls, b_action.calls) == (0, 1)
        assert result.steps_completed == 1

    def test_start_at_end_only_clears(self, store: CursorStore, context: BuildContext) -> None:
        a, action = scripted_step("A", 1)
        store.advance(1)

        result = asyncio.run(_driver(store, context, a).run(1))

        assert action.calls == 0
        assert result.succeeded
        assert store.load_cursor() is None


class TestCursorWriteOrdering:
    def test_cursor_points_at_running_step(self, store: CursorStore, context: BuildContext) -> None:
        seen: list[Cursor | None] = []

        @step("Zero", 0)
        async def zero(ctx: BuildContext) -> None:
            seen.append(ctx.store.load_cursor())

        @step("One", 1, policy=InterruptionPolicy.RETRY)
        async def one(ctx: BuildContext) -> None:
            seen.append(ctx.store.load_cursor())

        asyncio.run(_driver(store, context, zero, one).run())

        assert seen == [Cursor(step_index=0, retry_count=0), Cursor(step_index=1, retry_count=0)]

    def test_kill_leaves_cursor_on_in_flight_step(self, store: CursorStore, context: BuildContext) -> None:
        a, _ = scripted_step("A", 1)
        b, _ = scripted_step("B", 2, "kill")
        c, c_action = scripted_step("C", 3)

        with pytest.raises(Killed):
            asyncio.run(_driver(store, context, a, b, c).run())

        assert store.load_cursor() == Cursor(step_index=1, retry_count=0)
        assert c_action.calls == 0

    def test_current_step_is_set_only_while_running(self, store: CursorStore, context: BuildContext) -> None:
        names: list[str | None] = []

        @step("Probe", 1)
        def probe(ctx: BuildContext) -> None:
            names.append(ctx.current_step)

        asyncio.run(_driver(store, context, probe).run())

        assert names == ["Probe"]
        assert context.current_step is None


class TestAbort:
    @pytest.mark.parametrize("policy", list(InterruptionPolicy))
    def test_action_error_aborts_whatever_the_policy(
        self, store: CursorStore, context: BuildContext, policy: InterruptionPolicy
    ) -> None:
        a, _ = scripted_step("A", 1)
        b, b_action = scripted_step("B", 2, "fail", policy=policy, retry_limit=5)
        c, c_action = scripted_step("C", 3)

        result = asyncio.run(_driver(store, context, a, b, c).run())

        assert result.status == PipelineStatus.FAILED
        assert result.exit_code == 1
        assert result.steps_completed == 1
        assert result.error is not None
        assert result.error["type"] == "RuntimeError"
        assert b_action.calls == 1
        assert c_action.calls == 0
        assert store.load_cursor() is None

    def test_service_error_detail_reaches_payload(self, store: CursorStore, context: BuildContext) -> None:
        @step("Upload", 1)
        async def rejected(ctx: BuildContext) -> None:
            raise UploadRejectedError("Upload refused", status_code=403, detail="quota exceeded")

        result = asyncio.run(_driver(store, context, rejected).run())

        assert result.error == {
            "exception": "Upload refused",
            "type": "UploadRejectedError",
            "detail": "quota exceeded",
        }

    def test_step_progress_is_cleared_on_abort(self, store: CursorStore, context: BuildContext) -> None:
        @step("Partial", 1)
        def partial(ctx: BuildContext) -> None:
            ctx.progress.set_int("done", 1)
            raise RuntimeError("boom")

        asyncio.run(_driver(store, context, partial).run())

        assert store.items("step.") == {}

    @pytest.mark.parametrize("start_index", [-1, 3])
    def test_start_index_out_of_range(self, store: CursorStore, context: BuildContext, start_index: int) -> None:
        a, action = scripted_step("A", 1)
        b, _ = scripted_step("B", 2)

        result = asyncio.run(_driver(store, context, a, b).run(start_index))

        assert result.error is not None
        assert result.error["type"] == "CursorError"
        assert action.calls == 0


class TestRetryBound:
    def test_retry_step_runs_within_limit(self, store: CursorStore, context: BuildContext) -> None:
        a, action = scripted_step("A", 1, policy=InterruptionPolicy.RETRY, retry_limit=1)
        store.begin_step(0)  # one interrupted attempt

        result = asyncio.run(_driver(store, context, a).run(0))

        assert result.succeeded
        assert action.calls == 1

    def test_retry_step_exhausted(self, store: CursorStore, context: BuildContext) -> None:
        a, action = scripted_step("A", 1, policy=InterruptionPolicy.RETRY, retry_limit=1)
        store.begin_step(0)
        store.begin_step(0)

        result = asyncio.run(_driver(store, context, a).run(0))

        assert result.error is not None
        assert result.error["type"] == "RetriesExhaustedError"
        assert "(3 tries)" in result.error["exception"]
        assert action.calls == 0
        assert store.load_cursor() is None

    def test_retry_limit_zero_allows_one_attempt(self, store: CursorStore, context: BuildContext) -> None:
        a, action = scripted_step("A", 1, policy=InterruptionPolicy.RETRY, retry_limit=0)
        store.begin_step(0)

        result = asyncio.run(_driver(store, context, a).run(0))

        assert result.error is not None
        assert result.error["type"] == "RetriesExhaustedError"
        assert action.calls == 0

    @pytest.mark.parametrize("policy", [InterruptionPolicy.CANCEL, InterruptionPolicy.CONTINUE])
    def test_limit_only_applies_to_retry(
        self, store: CursorStore, context: BuildContext, policy: InterruptionPolicy
    ) -> None:
        a, action = scripted_step("A", 1, policy=policy, retry_limit=0)
        for _ in range(3):
            store.begin_step(0)

        result = asyncio.run(_driver(store, context, a).run(0))

        assert result.succeeded
        assert action.calls == 1


class TestEvents:
    def test_successful_run_events(self, store: CursorStore, context: BuildContext) -> None:
        bus, seen = _recording_bus()
        clock = MockClock(start=100.0)
        a, _ = scripted_step("A", 1, policy=InterruptionPolicy.RETRY, retry_limit=2)

        asyncio.run(_driver(store, context, a, event_bus=bus, clock=clock).run())

        assert [type(e) for e in seen] == [StepStarted, StepCompleted, PipelineSummary]
        started = seen[0]
        assert (started.index, started.name, started.attempt, started.max_attempts) == (0, "A", 1, 3)
        assert seen[1].duration_seconds == 0.0
        assert seen[2].status == PipelineStatus.COMPLETED
        assert seen[2].exit_code == 0

    def test_failed_run_events(self, store: CursorStore, context: BuildContext) -> None:
        bus, seen = _recording_bus()
        a, _ = scripted_step("A", 1, "fail")

        asyncio.run(_driver(store, context, a, event_bus=bus).run())

        assert [type(e) for e in seen] == [StepStarted, StepFailed, PipelineSummary]
        assert seen[1].name == "A"
        assert seen[1].error_message == "action failed on call 1"
        assert seen[2].status == PipelineStatus.FAILED
        assert seen[2].exit_code == 1
