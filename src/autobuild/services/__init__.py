"""Collaborator implementations: login, build, upload and local backends."""

from autobuild.services.build import ArtifactBuilder, FreshnessCheckedBuildService
from autobuild.services.local import (
    DirectoryArtifactStore,
    EnvironmentAuthenticator,
    FileMetadataSink,
    LoggingSceneLoader,
    RecordingPlatformSwitcher,
    SubprocessArtifactBuilder,
    make_local_services,
)
from autobuild.services.login import Authenticator, RetryingLoginService
from autobuild.services.upload import ArtifactStore, ValidatingUploadService, format_size

__all__ = [
    "ArtifactBuilder",
    "ArtifactStore",
    "Authenticator",
    "DirectoryArtifactStore",
    "EnvironmentAuthenticator",
    "FileMetadataSink",
    "FreshnessCheckedBuildService",
    "LoggingSceneLoader",
    "RecordingPlatformSwitcher",
    "RetryingLoginService",
    "SubprocessArtifactBuilder",
    "ValidatingUploadService",
    "format_size",
    "make_local_services",
]
