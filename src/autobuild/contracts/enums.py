"""Status codes, policies and platform kinds shared across subsystem boundaries."""

from enum import StrEnum


class InterruptionPolicy(StrEnum):
    """How resumption treats a step that was running when the process died.

    Evaluated once, by the resume trigger, against the step recorded in the
    cursor at restart.

    Values:
        RETRY: Re-enter the same step; bounded by the step's retry_limit.
        CONTINUE: Treat the step as completed and advance to the next one.
        CANCEL: Abort the whole pipeline.
    """

    RETRY = "retry"
    CONTINUE = "continue"
    CANCEL = "cancel"


class PipelineStatus(StrEnum):
    """Terminal status of a pipeline run."""

    COMPLETED = "completed"
    FAILED = "failed"


class BuildTarget(StrEnum):
    """Target platforms an artifact can be built for."""

    WINDOWS64 = "windows64"
    ANDROID = "android"
    IOS = "ios"

    @property
    def upload_platform(self) -> str:
        """Platform name used by the remote store (``windows64`` -> ``windows``)."""
        return self.value.replace("64", "")
