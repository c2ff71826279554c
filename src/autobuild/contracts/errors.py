"""Error contracts for pipeline execution.

Two kinds of failure reach the pipeline driver and they are NOT the same:

- An execution error: a step's action raised. Always fatal for the whole
  pipeline, whatever the step's interruption policy or retry limit.
- An interruption: the host process was killed while an action was in
  flight. Only observable on the next start, where the step's
  InterruptionPolicy decides between retry, continue and cancel.

Everything below the driver surfaces as a single failure with a
human-readable message. ExecutionError is the payload shape used when
that failure is reported.
"""

from typing import NotRequired, TypedDict


class ExecutionError(TypedDict):
    """Schema for a pipeline failure payload."""

    exception: str  # String representation of the exception
    type: str  # Exception class name (e.g., "UploadRejectedError")
    detail: NotRequired[str]  # Extra context supplied by a collaborator


class AutobuildError(Exception):
    """Base exception for autobuild."""

    pass


class ConfigurationError(AutobuildError):
    """The static build descriptor is missing or invalid.

    Fatal at process start, before any step runs.
    """

    pass


class StepValidationError(AutobuildError):
    """A registered step descriptor is malformed.

    Recoverable: the registry skips the descriptor and logs a warning.
    """

    def __init__(self, step_name: str, reason: str) -> None:
        self.step_name = step_name
        self.reason = reason
        super().__init__(f"Skipping step {step_name!r}: {reason}")


class StepExecutionError(AutobuildError):
    """A step's action failed in-band.

    Steps may raise this to signal failure; any other Exception escaping an
    action is treated the same way.
    """

    pass


class RetriesExhaustedError(AutobuildError):
    """A RETRY step was interrupted more often than its retry_limit allows."""

    def __init__(self, step_name: str, attempts: int) -> None:
        self.step_name = step_name
        self.attempts = attempts
        super().__init__(f"Failed to run step: {step_name}! Step was killed by a process restart. ({attempts} tries)")


class InterruptedStepError(AutobuildError):
    """A CANCEL step was interrupted; the run cannot be recovered."""

    def __init__(self, step_name: str) -> None:
        self.step_name = step_name
        super().__init__(f"Failed to run step: {step_name}! Step was killed by a process restart.")


class CursorError(AutobuildError):
    """The persisted cursor does not match the assembled step list."""

    pass


class ServiceError(AutobuildError):
    """An external collaborator rejected a request.

    Attributes:
        status_code: Remote status code, when the collaborator has one
        detail: Extra diagnostic text logged on abort
    """

    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class LoginError(ServiceError):
    """No user identity could be established within the attempt bound."""

    pass


class ArtifactBuildError(ServiceError):
    """The build produced no artifact, or a stale/invalid one."""

    pass


class UploadRejectedError(ServiceError):
    """The upload failed validation (size budget, ownership) or was refused."""

    pass


class PlatformSwitchError(ServiceError):
    """The target platform is unsupported or the switch did not take effect."""

    pass
