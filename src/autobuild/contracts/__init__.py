"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no runtime dependencies on core/engine.
Settings classes (BuildSettings, BuildMetadata) are NOT re-exported here -
import them from autobuild.core.config.

Import patterns:
    from autobuild.contracts import InterruptionPolicy, Step, Cursor
    from autobuild.core.config import BuildSettings
"""

from autobuild.contracts.context import BuildContext
from autobuild.contracts.cursor import NOT_ATTEMPTED, Cursor
from autobuild.contracts.enums import BuildTarget, InterruptionPolicy, PipelineStatus
from autobuild.contracts.errors import (
    ArtifactBuildError,
    AutobuildError,
    ConfigurationError,
    CursorError,
    ExecutionError,
    InterruptedStepError,
    LoginError,
    PlatformSwitchError,
    RetriesExhaustedError,
    ServiceError,
    StepExecutionError,
    StepValidationError,
    UploadRejectedError,
)
from autobuild.contracts.events import (
    PipelineInitialized,
    PipelineResumed,
    PipelineSummary,
    StepCompleted,
    StepFailed,
    StepStarted,
)
from autobuild.contracts.results import PipelineResult
from autobuild.contracts.services import (
    ArtifactHandle,
    BuildService,
    LoginService,
    MetadataSink,
    PlatformSwitcher,
    RemoteArtifact,
    SceneLoader,
    Services,
    UploadService,
    UserIdentity,
    signature_path,
)
from autobuild.contracts.step import (
    ORDER_BUILD,
    ORDER_FINISH,
    ORDER_OPEN_INITIAL_SCENE,
    ORDER_SET_BUILD_METADATA,
    ORDER_UPLOAD,
    Step,
    StepDescriptor,
    step,
)

__all__ = [
    "NOT_ATTEMPTED",
    "ORDER_BUILD",
    "ORDER_FINISH",
    "ORDER_OPEN_INITIAL_SCENE",
    "ORDER_SET_BUILD_METADATA",
    "ORDER_UPLOAD",
    "ArtifactBuildError",
    "ArtifactHandle",
    "AutobuildError",
    "BuildContext",
    "BuildService",
    "BuildTarget",
    "ConfigurationError",
    "Cursor",
    "CursorError",
    "ExecutionError",
    "InterruptedStepError",
    "InterruptionPolicy",
    "LoginError",
    "LoginService",
    "MetadataSink",
    "PipelineInitialized",
    "PipelineResult",
    "PipelineResumed",
    "PipelineStatus",
    "PipelineSummary",
    "PlatformSwitchError",
    "PlatformSwitcher",
    "RemoteArtifact",
    "RetriesExhaustedError",
    "SceneLoader",
    "ServiceError",
    "Services",
    "Step",
    "StepCompleted",
    "StepDescriptor",
    "StepExecutionError",
    "StepFailed",
    "StepStarted",
    "StepValidationError",
    "UploadRejectedError",
    "UploadService",
    "UserIdentity",
    "signature_path",
    "step",
]
