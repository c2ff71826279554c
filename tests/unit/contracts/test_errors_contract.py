# tests/unit/contracts/test_errors_contract.py
"""Tests for the error hierarchy and PipelineResult."""

import pytest

from autobuild.contracts import (
    ArtifactBuildError,
    AutobuildError,
    ConfigurationError,
    CursorError,
    InterruptedStepError,
    LoginError,
    PipelineResult,
    PipelineStatus,
    PlatformSwitchError,
    RetriesExhaustedError,
    ServiceError,
    StepExecutionError,
    StepValidationError,
    UploadRejectedError,
)


@pytest.mark.parametrize(
    "error_cls",
    [ConfigurationError, StepExecutionError, CursorError, ServiceError],
)
def test_errors_share_root(error_cls: type[Exception]) -> None:
    assert issubclass(error_cls, AutobuildError)


@pytest.mark.parametrize("error_cls", [LoginError, ArtifactBuildError, UploadRejectedError, PlatformSwitchError])
def test_collaborator_errors_are_service_errors(error_cls: type[ServiceError]) -> None:
    error = error_cls("boom", status_code=403, detail="forbidden")
    assert isinstance(error, ServiceError)
    assert error.status_code == 403
    assert error.detail == "forbidden"
    assert str(error) == "boom"


def test_retries_exhausted_message() -> None:
    error = RetriesExhaustedError("Build", 3)
    assert str(error) == "Failed to run step: Build! Step was killed by a process restart. (3 tries)"
    assert error.attempts == 3


def test_interrupted_step_message() -> None:
    assert "Upload" in str(InterruptedStepError("Upload"))


def test_step_validation_error_carries_reason() -> None:
    error = StepValidationError("Bad", "retry_limit must be >= 0, got -1")
    assert error.step_name == "Bad"
    assert str(error) == "Skipping step 'Bad': retry_limit must be >= 0, got -1"


class TestPipelineResult:
    def test_completed_exits_zero(self) -> None:
        result = PipelineResult(status=PipelineStatus.COMPLETED, steps_completed=2, total_steps=2)
        assert result.succeeded
        assert result.exit_code == 0

    def test_failed_exits_one(self) -> None:
        result = PipelineResult(
            status=PipelineStatus.FAILED,
            steps_completed=0,
            total_steps=2,
            error={"exception": "boom", "type": "RuntimeError"},
        )
        assert not result.succeeded
        assert result.exit_code == 1
