"""External collaborator contracts.

The orchestrator never looks inside these services; it invokes them through
the narrow protocols below and treats any exception they raise as an
ordinary step failure. Implementations live in autobuild.services.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from autobuild.contracts.enums import BuildTarget

SIGNATURE_SUFFIX = ".sig"


def signature_path(artifact_path: Path) -> Path:
    """Sidecar holding an artifact's signature (``world-android.vrcw`` -> ``world-android.sig``)."""
    return artifact_path.with_suffix(SIGNATURE_SUFFIX)


@dataclass(frozen=True, slots=True)
class UserIdentity:
    """Identity of the logged-in user."""

    user_id: str
    display_name: str | None = None


@dataclass(frozen=True, slots=True)
class ArtifactHandle:
    """A built artifact on local disk.

    Attributes:
        artifact_id: Remote identity the artifact belongs to
        path: Location of the artifact file
        signature: Signature produced alongside the artifact
        platform: Platform the artifact was built for
    """

    artifact_id: str
    path: Path
    signature: str
    platform: BuildTarget | None = None


@dataclass(frozen=True, slots=True)
class RemoteArtifact:
    """Remote record returned after an upload."""

    artifact_id: str
    owner_id: str
    platform: str | None
    version: int


class LoginService(Protocol):
    """Establishes the current user identity."""

    async def login(self) -> UserIdentity:
        """Return the current user, retrying internally up to a bound.

        Raises:
            LoginError: If no identity could be established
        """
        ...


class BuildService(Protocol):
    """Builds the artifact for the currently active platform."""

    async def build_for_current_target(self, artifact_id: str | None) -> ArtifactHandle:
        """Build and return a handle to a fresh artifact.

        Raises:
            ArtifactBuildError: If the output is missing, stale or invalid
        """
        ...


class UploadService(Protocol):
    """Publishes a built artifact."""

    async def upload(self, handle: ArtifactHandle, destination_id: str, signature: str) -> RemoteArtifact:
        """Upload after validating size budget and ownership.

        Raises:
            UploadRejectedError: If validation fails or the remote refuses
        """
        ...


class PlatformSwitcher(Protocol):
    """Switches the active build platform.

    In a real host a switch may force a process restart; steps that call it
    must be written with that in mind.
    """

    @property
    def active_platform(self) -> BuildTarget | None:
        """Currently active platform, if known."""
        ...

    async def switch_to(self, target: BuildTarget) -> None:
        """Switch to target, waiting until the environment settles.

        Raises:
            PlatformSwitchError: If unsupported or the switch did not take effect
        """
        ...


class MetadataSink(Protocol):
    """Best-effort sink for the rendered build metadata string."""

    def apply(self, metadata: str) -> None:
        """Stamp metadata. Has no failure path."""
        ...


class SceneLoader(Protocol):
    """Prepares the initial scene/environment before building."""

    def open(self, scene: str) -> None:
        """Open the named scene."""
        ...


@dataclass(frozen=True)
class Services:
    """Bundle of the collaborators available to steps."""

    login: LoginService
    build: BuildService
    upload: UploadService
    platforms: PlatformSwitcher
    metadata: MetadataSink
    scenes: SceneLoader
