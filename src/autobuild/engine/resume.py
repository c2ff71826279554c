# src/autobuild/engine/resume.py
"""ResumeTrigger: picks up an interrupted pipeline run on process start.

Runs once per process start. With no cursor in the store it does nothing.
Otherwise it applies the interruption policy of the step recorded in the
cursor (evaluated once, here) and hands over to the driver:

    RETRY     re-enter the same index; the driver's retry check bounds it
    CONTINUE  treat the step as completed; advance past it without re-running
    CANCEL    abort the pipeline

Nothing raised while resuming reaches the host: any exception becomes a
pipeline abort (store cleared, FAILED result).
"""

from collections.abc import Sequence

from autobuild.contracts.context import BuildContext
from autobuild.contracts.enums import InterruptionPolicy
from autobuild.contracts.errors import CursorError, InterruptedStepError
from autobuild.contracts.events import PipelineResumed
from autobuild.contracts.results import PipelineResult
from autobuild.contracts.step import Step
from autobuild.core.cursor.store import CursorStore
from autobuild.core.events import EventBusProtocol, NullEventBus
from autobuild.core.logging import get_logger
from autobuild.engine.clock import Clock
from autobuild.engine.driver import PipelineDriver
from autobuild.plugins.manager import StepRegistry

logger = get_logger(__name__)


class ResumeTrigger:
    """Resumes an in-progress pipeline run from its persisted cursor.

    Example:
        trigger = ResumeTrigger(store, registry, context)
        result = await trigger.resume()
        if result is None:
            ...  # nothing was running
    """

    def __init__(
        self,
        store: CursorStore,
        registry: StepRegistry,
        context: BuildContext,
        *,
        event_bus: EventBusProtocol | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._context = context
        self._events: EventBusProtocol = event_bus if event_bus is not None else NullEventBus()
        self._clock = clock

    def _driver(self, steps: Sequence[Step]) -> PipelineDriver:
        return PipelineDriver(self._store, steps, self._context, event_bus=self._events, clock=self._clock)

    async def resume(self) -> PipelineResult | None:
        """Resume the interrupted run, if any.

        Returns:
            None when no run was in progress (store untouched), otherwise
            the terminal result of the resumed run.
        """
        try:
            cursor = self._store.load_cursor()
        except Exception as e:
            return self._driver([]).abort(e)
        if cursor is None:
            logger.debug("No pipeline in progress")
            return None

        steps: list[Step] = []
        step: Step | None = None
        try:
            steps = self._registry.assemble()
            # index == len(steps) means the last step finished and only the final clear was lost
            if cursor.step_index > len(steps):
                raise CursorError(
                    f"Cursor points at step {cursor.step_index}, but only {len(steps)} steps are registered"
                )
            if cursor.step_index == len(steps):
                logger.info("Resuming finished pipeline", index=cursor.step_index)
                start_index = cursor.step_index
            else:
                step = steps[cursor.step_index]
                logger.info(
                    f"Resuming at step {cursor.step_index}: {step.name}",
                    step=step.name,
                    index=cursor.step_index,
                    policy=step.policy.value,
                    attempts=cursor.attempts,
                )
                self._events.emit(PipelineResumed(index=cursor.step_index, name=step.name, policy=step.policy))
                start_index = self._apply_policy(step, cursor.step_index)
        except Exception as e:
            return self._driver(steps).abort(
                e,
                index=cursor.step_index,
                step_name=step.name if step is not None else None,
            )

        return await self._driver(steps).run(start_index)

    def _apply_policy(self, step: Step, index: int) -> int:
        """Return the index the driver should start from.

        Raises:
            InterruptedStepError: If the step's policy is CANCEL
        """
        if step.policy == InterruptionPolicy.CANCEL:
            raise InterruptedStepError(step.name)
        if step.policy == InterruptionPolicy.CONTINUE:
            logger.warning(f"Step {step.name} was interrupted; continuing with the next step", step=step.name, index=index)
            self._store.advance(index + 1)
            return index + 1
        if step.policy == InterruptionPolicy.RETRY:
            return index
        raise ValueError(f"Invalid interruption policy: {step.policy!r}")
