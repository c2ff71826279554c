# tests/unit/services/test_upload.py
"""Tests for ValidatingUploadService and format_size."""

import asyncio
from pathlib import Path

import pytest

from autobuild.contracts import ArtifactHandle, BuildTarget, RemoteArtifact, UploadRejectedError
from autobuild.services import ValidatingUploadService, format_size
from tests.fixtures.services import FakeLogin


class MemoryArtifactStore:
    def __init__(self, existing: RemoteArtifact | None = None) -> None:
        self.existing = existing
        self.published: list[tuple[str, str, str]] = []

    async def fetch(self, artifact_id: str) -> RemoteArtifact | None:
        return self.existing

    async def publish(
        self,
        handle: ArtifactHandle,
        artifact_id: str,
        signature: str,
        *,
        owner_id: str,
    ) -> RemoteArtifact:
        self.published.append((handle.path.name, artifact_id, owner_id))
        return RemoteArtifact(artifact_id=artifact_id, owner_id=owner_id, platform="android", version=1)


@pytest.fixture
def artifact(tmp_path: Path) -> ArtifactHandle:
    path = tmp_path / "world-android-1.bundle"
    path.write_bytes(b"x" * 2048)
    return ArtifactHandle(artifact_id="art_1", path=path, signature="sig", platform=BuildTarget.ANDROID)


def _remote(owner_id: str) -> RemoteArtifact:
    return RemoteArtifact(artifact_id="art_1", owner_id=owner_id, platform=None, version=3)


class TestValidatingUploadService:
    def test_publishes_as_current_user(self, artifact: ArtifactHandle) -> None:
        store = MemoryArtifactStore()
        login = FakeLogin("usr_me")
        service = ValidatingUploadService(store, login, size_limit_bytes=4096)

        result = asyncio.run(service.upload(artifact, "art_1", "sig"))

        assert store.published == [("world-android-1.bundle", "art_1", "usr_me")]
        assert result.owner_id == "usr_me"
        assert login.calls == 1

    def test_same_owner_may_update(self, artifact: ArtifactHandle) -> None:
        store = MemoryArtifactStore(_remote("usr_me"))
        service = ValidatingUploadService(store, FakeLogin("usr_me"), size_limit_bytes=4096)

        asyncio.run(service.upload(artifact, "art_1", "sig"))

        assert len(store.published) == 1

    def test_unclaimed_artifact_may_be_taken(self, artifact: ArtifactHandle) -> None:
        store = MemoryArtifactStore(_remote(""))
        service = ValidatingUploadService(store, FakeLogin("usr_me"), size_limit_bytes=4096)

        asyncio.run(service.upload(artifact, "art_1", "sig"))

        assert len(store.published) == 1

    def test_other_owner_rejected(self, artifact: ArtifactHandle) -> None:
        store = MemoryArtifactStore(_remote("usr_someone_else"))
        service = ValidatingUploadService(store, FakeLogin("usr_me"), size_limit_bytes=4096)

        with pytest.raises(UploadRejectedError, match="does not match target artifact owner"):
            asyncio.run(service.upload(artifact, "art_1", "sig"))

        assert store.published == []

    def test_over_budget_rejected(self, artifact: ArtifactHandle) -> None:
        store = MemoryArtifactStore()
        service = ValidatingUploadService(store, FakeLogin(), size_limit_bytes=1024)

        with pytest.raises(UploadRejectedError, match=r"too large! 2.0 KB > 1.0 KB"):
            asyncio.run(service.upload(artifact, "art_1", "sig"))

        assert store.published == []

    def test_exactly_at_budget_accepted(self, artifact: ArtifactHandle) -> None:
        service = ValidatingUploadService(MemoryArtifactStore(), FakeLogin(), size_limit_bytes=2048)
        asyncio.run(service.upload(artifact, "art_1", "sig"))

    def test_missing_file_rejected(self, tmp_path: Path) -> None:
        handle = ArtifactHandle(artifact_id="art_1", path=tmp_path / "gone.bundle", signature="sig")
        service = ValidatingUploadService(MemoryArtifactStore(), FakeLogin(), size_limit_bytes=1024)

        with pytest.raises(UploadRejectedError, match="Could not find built artifact file"):
            asyncio.run(service.upload(handle, "art_1", "sig"))

    def test_size_limit_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            ValidatingUploadService(MemoryArtifactStore(), FakeLogin(), size_limit_bytes=0)


class TestFormatSize:
    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0 B"),
            (1023, "1023 B"),
            (1536, "1.5 KB"),
            (5 * 1024 * 1024, "5.0 MB"),
            (3 * 1024**3, "3.0 GB"),
        ],
    )
    def test_units(self, size: int, expected: str) -> None:
        assert format_size(size) == expected
