# src/autobuild/services/upload.py
"""ValidatingUploadService: checks an artifact before publishing it."""

from typing import Protocol

from autobuild.contracts.errors import UploadRejectedError
from autobuild.contracts.services import ArtifactHandle, LoginService, RemoteArtifact
from autobuild.core.logging import get_logger

logger = get_logger(__name__)


def format_size(size: int) -> str:
    """Human-readable byte count (``1.5 MB``)."""
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


class ArtifactStore(Protocol):
    """Remote artifact storage."""

    async def fetch(self, artifact_id: str) -> RemoteArtifact | None:
        """Return the remote record, or None if the artifact is unknown."""
        ...

    async def publish(
        self,
        handle: ArtifactHandle,
        artifact_id: str,
        signature: str,
        *,
        owner_id: str,
    ) -> RemoteArtifact:
        """Store the artifact under artifact_id."""
        ...


class ValidatingUploadService:
    """UploadService enforcing existence, size budget and ownership.

    A remote record with no owner is unclaimed and may be taken over by
    the current user.
    """

    def __init__(self, store: ArtifactStore, login: LoginService, size_limit_bytes: int) -> None:
        if size_limit_bytes <= 0:
            raise ValueError("size_limit_bytes must be > 0")
        self._store = store
        self._login = login
        self._size_limit = size_limit_bytes

    async def upload(self, handle: ArtifactHandle, destination_id: str, signature: str) -> RemoteArtifact:
        """Validate and publish.

        Raises:
            UploadRejectedError: Missing file, over budget, or owned by someone else
        """
        user = await self._login.login()

        if not handle.path.is_file():
            raise UploadRejectedError(f"Could not find built artifact file: {handle.path}")

        size = handle.path.stat().st_size
        if size > self._size_limit:
            raise UploadRejectedError(
                f"Artifact size is too large! {format_size(size)} > {format_size(self._size_limit)}",
                detail=f"{handle.path}: {size} bytes, limit {self._size_limit} bytes",
            )

        logger.info("Fetching artifact info", artifact_id=destination_id)
        remote = await self._store.fetch(destination_id)
        if remote is not None and remote.owner_id and remote.owner_id != user.user_id:
            raise UploadRejectedError(
                "User ID does not match target artifact owner!",
                detail=f"owner={remote.owner_id} user={user.user_id}",
            )

        logger.info(
            "Uploading artifact...",
            artifact_id=destination_id,
            file=handle.path.name,
            platform=handle.platform.upload_platform if handle.platform is not None else None,
        )
        result = await self._store.publish(handle, destination_id, signature, owner_id=user.user_id)
        logger.info("Upload complete!", artifact_id=destination_id, version=result.version)
        return result
