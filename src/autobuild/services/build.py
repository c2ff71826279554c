# src/autobuild/services/build.py
"""FreshnessCheckedBuildService: guards a raw builder against stale output.

A builder that fails quietly can leave the previous artifact in place. The
service takes a timestamp immediately before invoking the builder and
rejects any artifact whose modification time is older, then writes the
signature sidecar next to the artifact for the Upload step to read.
"""

from typing import Protocol

from autobuild.contracts.errors import ArtifactBuildError
from autobuild.contracts.services import ArtifactHandle, signature_path
from autobuild.core.logging import get_logger
from autobuild.engine.clock import DEFAULT_CLOCK, Clock

logger = get_logger(__name__)


class ArtifactBuilder(Protocol):
    """Produces an artifact for the active platform, without any checks."""

    async def build(self, artifact_id: str | None) -> ArtifactHandle:
        """Build, assigning a new artifact id when artifact_id is None."""
        ...


class FreshnessCheckedBuildService:
    """BuildService rejecting missing or stale artifacts."""

    def __init__(self, builder: ArtifactBuilder, clock: Clock | None = None) -> None:
        self._builder = builder
        self._clock = clock if clock is not None else DEFAULT_CLOCK

    async def build_for_current_target(self, artifact_id: str | None) -> ArtifactHandle:
        """Build and verify a fresh artifact.

        Raises:
            ArtifactBuildError: If the artifact is missing, not newer than the
                build start, or has no signature
        """
        logger.info("Building...", artifact_id=artifact_id)
        build_started = self._clock.now()
        handle = await self._builder.build(artifact_id)

        if not handle.path.is_file():
            raise ArtifactBuildError(f"Built artifact not found: {handle.path}")
        modified = handle.path.stat().st_mtime
        if modified < build_started:
            raise ArtifactBuildError(
                "Artifact file was not updated!",
                detail=f"{handle.path} modified at {modified:.3f}, build started at {build_started:.3f}",
            )
        if not handle.signature:
            raise ArtifactBuildError(f"Builder returned no signature for {handle.path}")

        signature_path(handle.path).write_text(handle.signature)
        return handle
