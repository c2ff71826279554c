"""Durable execution cursor contract."""

from dataclasses import dataclass

# Retry count sentinel: the step at step_index has not been attempted this pass.
NOT_ATTEMPTED = -1


@dataclass(frozen=True, slots=True)
class Cursor:
    """Position of an in-progress pipeline run.

    A cursor exists in the store if and only if a run is in progress. It is
    written before a step's action starts and rewritten immediately after the
    action returns, so a kill mid-action always leaves it pointing at the
    step that was in flight.

    Attributes:
        step_index: Index into the freshly assembled step list
        retry_count: Attempts already started for this step, minus one.
            NOT_ATTEMPTED (-1) until the first attempt begins.
    """

    step_index: int
    retry_count: int = NOT_ATTEMPTED

    def __post_init__(self) -> None:
        if self.step_index < 0:
            raise ValueError(f"step_index must be >= 0, got {self.step_index}")
        if self.retry_count < NOT_ATTEMPTED:
            raise ValueError(f"retry_count must be >= {NOT_ATTEMPTED}, got {self.retry_count}")

    @property
    def attempts(self) -> int:
        """Number of attempts started for the current step."""
        return self.retry_count + 1
