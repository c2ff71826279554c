"""Pipeline run results."""

from dataclasses import dataclass

from autobuild.contracts.enums import PipelineStatus
from autobuild.contracts.errors import ExecutionError


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Terminal outcome of a pipeline run.

    Attributes:
        status: COMPLETED or FAILED
        steps_completed: Steps that finished during this process
        total_steps: Length of the assembled step list
        error: Failure payload, set only when status is FAILED
    """

    status: PipelineStatus
    steps_completed: int
    total_steps: int
    error: ExecutionError | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == PipelineStatus.COMPLETED

    @property
    def exit_code(self) -> int:
        """Process exit status: 0 on completion, 1 on any fatal abort."""
        return 0 if self.succeeded else 1
