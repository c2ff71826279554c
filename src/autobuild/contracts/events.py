"""Observability events for pipeline execution.

Emitted by the pipeline driver and resume trigger, consumed by CLI
formatters for human-readable or structured output.
"""

from dataclasses import dataclass

from autobuild.contracts.enums import InterruptionPolicy, PipelineStatus


@dataclass(frozen=True, slots=True)
class PipelineInitialized:
    """Emitted when a fresh run begins, listing the assembled steps in order."""

    step_names: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class PipelineResumed:
    """Emitted when the resume trigger finds an in-progress run.

    Attributes:
        index: Step index recorded in the cursor
        name: Name of the step that was interrupted
        policy: Policy applied to the interruption
    """

    index: int
    name: str
    policy: InterruptionPolicy


@dataclass(frozen=True, slots=True)
class StepStarted:
    """Emitted after the cursor is persisted, right before the action runs."""

    index: int
    name: str
    attempt: int
    max_attempts: int
    policy: InterruptionPolicy


@dataclass(frozen=True, slots=True)
class StepCompleted:
    """Emitted after a step's action returned and the cursor advanced."""

    index: int
    name: str
    attempt: int
    max_attempts: int
    policy: InterruptionPolicy
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class StepFailed:
    """Emitted when a step (or the driver on its behalf) aborts the pipeline."""

    index: int
    name: str
    error_message: str


@dataclass(frozen=True, slots=True)
class PipelineSummary:
    """Emitted once at the terminal outcome of a run."""

    status: PipelineStatus
    steps_completed: int
    total_steps: int
    exit_code: int
    error_message: str | None = None


PipelineEvent = PipelineInitialized | PipelineResumed | StepStarted | StepCompleted | StepFailed | PipelineSummary

# Every event type the driver and resume trigger emit
PIPELINE_EVENTS: tuple[type, ...] = (
    PipelineInitialized,
    PipelineResumed,
    StepStarted,
    StepCompleted,
    StepFailed,
    PipelineSummary,
)
