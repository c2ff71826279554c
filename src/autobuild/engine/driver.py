# src/autobuild/engine/driver.py
"""PipelineDriver: runs the assembled steps from a given index.

Write ordering is the whole correctness story:

    1. begin_step(i)   cursor {i, retry_count + 1} committed BEFORE the action
    2. await action    may suspend, may be abandoned by a process kill
    3. advance(i + 1)  cursor {i + 1, -1} committed AFTER the action returns

A kill between 1 and 3 leaves the cursor on the step that was in flight, so
the resume trigger can apply that step's interruption policy on restart.

Any Exception raised by an action (or by the driver itself) aborts the
pipeline: it is logged, the store is cleared and a FAILED result returned.
There is no pipeline-level retry. BaseExceptions that are not Exceptions
(KeyboardInterrupt, SystemExit, a kill) propagate untouched and leave the
cursor in place.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from autobuild.contracts.context import BuildContext
from autobuild.contracts.enums import InterruptionPolicy, PipelineStatus
from autobuild.contracts.errors import (
    CursorError,
    ExecutionError,
    RetriesExhaustedError,
    ServiceError,
)
from autobuild.contracts.events import PipelineSummary, StepCompleted, StepFailed, StepStarted
from autobuild.contracts.results import PipelineResult
from autobuild.contracts.step import Step
from autobuild.core.cursor.store import CursorStore
from autobuild.core.events import EventBusProtocol, NullEventBus
from autobuild.core.logging import get_logger
from autobuild.engine.clock import DEFAULT_CLOCK, Clock

logger = get_logger(__name__)


def _attempt_suffix(step: Step, attempt: int) -> str:
    if step.policy == InterruptionPolicy.RETRY:
        return f" (Attempt {attempt}/{step.max_attempts})"
    return ""


class PipelineDriver:
    """Executes steps sequentially, persisting the cursor around each action.

    Example:
        driver = PipelineDriver(store, registry.assemble(), context)
        result = await driver.run()
        assert store.load_cursor() is None
    """

    def __init__(
        self,
        store: CursorStore,
        steps: Sequence[Step],
        context: BuildContext,
        *,
        event_bus: EventBusProtocol | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._steps = list(steps)
        self._context = context
        self._events: EventBusProtocol = event_bus if event_bus is not None else NullEventBus()
        self._clock = clock if clock is not None else DEFAULT_CLOCK

    @property
    def steps(self) -> list[Step]:
        return list(self._steps)

    async def run(self, start_index: int = 0) -> PipelineResult:
        """Run steps from start_index to the end.

        Args:
            start_index: First step to run (0 for a fresh run)

        Returns:
            COMPLETED result (exit code 0), or FAILED result (exit code 1)
            after an abort. Either way the store holds no cursor afterwards.
        """
        total = len(self._steps)
        steps_completed = 0
        index = start_index
        current: Step | None = None

        try:
            if not 0 <= start_index <= total:
                raise CursorError(f"Start index {start_index} is outside the step list (0..{total})")

            while index < total:
                current = self._steps[index]
                retry_count = self._store.begin_step(index)
                attempt = retry_count + 1

                if current.policy == InterruptionPolicy.RETRY and retry_count > current.retry_limit:
                    raise RetriesExhaustedError(current.name, attempt)

                logger.info(
                    f"Running step {index}: {current.name}{_attempt_suffix(current, attempt)}",
                    step=current.name,
                    index=index,
                    attempt=attempt,
                    max_attempts=current.max_attempts,
                )
                self._events.emit(
                    StepStarted(
                        index=index,
                        name=current.name,
                        attempt=attempt,
                        max_attempts=current.max_attempts,
                        policy=current.policy,
                    )
                )

                started = self._clock.monotonic()
                self._context.current_step = current.name
                try:
                    await current.run(self._context)
                finally:
                    self._context.current_step = None
                duration = self._clock.monotonic() - started

                self._store.advance(index + 1)

                logger.info(
                    f"Completed step {index}! {current.name}{_attempt_suffix(current, attempt)}",
                    step=current.name,
                    index=index,
                    attempt=attempt,
                    duration_seconds=round(duration, 3),
                )
                self._events.emit(
                    StepCompleted(
                        index=index,
                        name=current.name,
                        attempt=attempt,
                        max_attempts=current.max_attempts,
                        policy=current.policy,
                        duration_seconds=duration,
                    )
                )
                steps_completed += 1
                index += 1
                current = None

            self._store.clear()
        except Exception as e:
            return self.abort(
                e,
                index=index,
                step_name=current.name if current is not None else None,
                steps_completed=steps_completed,
            )

        logger.info("Done!", steps_completed=steps_completed, total_steps=total)
        self._events.emit(
            PipelineSummary(
                status=PipelineStatus.COMPLETED,
                steps_completed=steps_completed,
                total_steps=total,
                exit_code=0,
            )
        )
        return PipelineResult(status=PipelineStatus.COMPLETED, steps_completed=steps_completed, total_steps=total)

    def abort(
        self,
        error: Exception,
        *,
        index: int | None = None,
        step_name: str | None = None,
        steps_completed: int = 0,
    ) -> PipelineResult:
        """Terminate the pipeline after a fatal error.

        Logs the error (with collaborator detail when present), clears the
        store and reports failure.

        Returns:
            FAILED result carrying an ExecutionError payload
        """
        payload: ExecutionError = {"exception": str(error), "type": type(error).__name__}
        extra: dict[str, Any] = {}
        if isinstance(error, ServiceError):
            if error.status_code is not None:
                extra["status_code"] = error.status_code
            if error.detail:
                payload["detail"] = error.detail
                extra["detail"] = error.detail

        logger.error(
            "Build failed, aborting",
            step=step_name,
            index=index,
            error=str(error),
            error_type=type(error).__name__,
            **extra,
        )

        try:
            self._store.clear()
        except Exception as clear_error:
            logger.error(
                "Could not clear pipeline cursor after abort",
                error=str(clear_error),
                error_type=type(clear_error).__name__,
            )

        if step_name is not None and index is not None:
            self._events.emit(StepFailed(index=index, name=step_name, error_message=str(error)))
        self._events.emit(
            PipelineSummary(
                status=PipelineStatus.FAILED,
                steps_completed=steps_completed,
                total_steps=len(self._steps),
                exit_code=1,
                error_message=str(error),
            )
        )
        return PipelineResult(
            status=PipelineStatus.FAILED,
            steps_completed=steps_completed,
            total_steps=len(self._steps),
            error=payload,
        )
