# tests/fixtures/services.py
"""In-process fakes for the collaborator protocols.

The fakes stand for the host, so tests reuse one instance across simulated
process restarts: what the host remembers (the active platform, uploaded
artifacts) survives, while the BuildContext and registry are rebuilt.
"""

from __future__ import annotations

from pathlib import Path

from autobuild.contracts import (
    ArtifactHandle,
    BuildTarget,
    PlatformSwitchError,
    RemoteArtifact,
    Services,
    UserIdentity,
    signature_path,
)
from tests.fixtures.steps import Killed


class FakeLogin:
    def __init__(self, user_id: str = "usr_tester") -> None:
        self.identity = UserIdentity(user_id=user_id)
        self.calls = 0

    async def login(self) -> UserIdentity:
        self.calls += 1
        return self.identity


class FakePlatformSwitcher:
    """Switcher that can simulate a host restart during a switch."""

    def __init__(self, active: BuildTarget | None = None) -> None:
        self._active = active
        self.switches: list[BuildTarget] = []
        self.kill_on: set[BuildTarget] = set()
        self.unsupported: set[BuildTarget] = set()

    @property
    def active_platform(self) -> BuildTarget | None:
        return self._active

    async def switch_to(self, target: BuildTarget) -> None:
        if target in self.unsupported:
            raise PlatformSwitchError(f"Could not switch to build target: {target.value}")
        self.switches.append(target)
        self._active = target
        if target in self.kill_on:
            self.kill_on.discard(target)
            raise Killed(f"host restarted while switching to {target.value}")


class FakeBuildService:
    """Writes a small artifact plus signature sidecar for the active platform."""

    def __init__(self, output_dir: Path, platforms: FakePlatformSwitcher, new_id: str = "art_new") -> None:
        self._output_dir = output_dir
        self._platforms = platforms
        self._new_id = new_id
        self.calls: list[tuple[BuildTarget | None, str | None]] = []

    async def build_for_current_target(self, artifact_id: str | None) -> ArtifactHandle:
        platform = self._platforms.active_platform
        self.calls.append((platform, artifact_id))
        artifact_id = artifact_id or self._new_id
        assert platform is not None
        self._output_dir.mkdir(parents=True, exist_ok=True)
        path = self._output_dir / f"world-{platform.value}-{len(self.calls)}.bundle"
        path.write_bytes(b"bundle:" + platform.value.encode())
        signature = f"sig-{platform.value}"
        signature_path(path).write_text(signature)
        return ArtifactHandle(artifact_id=artifact_id, path=path, signature=signature, platform=platform)


class FakeUploadService:
    def __init__(self) -> None:
        self.uploads: list[tuple[ArtifactHandle, str, str]] = []
        self.kill_next = False

    async def upload(self, handle: ArtifactHandle, destination_id: str, signature: str) -> RemoteArtifact:
        if self.kill_next:
            self.kill_next = False
            raise Killed(f"host restarted while uploading {handle.path.name}")
        self.uploads.append((handle, destination_id, signature))
        platform = handle.platform.upload_platform if handle.platform is not None else None
        return RemoteArtifact(artifact_id=destination_id, owner_id="usr_tester", platform=platform, version=len(self.uploads))


class RecordingMetadataSink:
    def __init__(self) -> None:
        self.applied: list[str] = []

    def apply(self, metadata: str) -> None:
        self.applied.append(metadata)


class RecordingSceneLoader:
    def __init__(self) -> None:
        self.opened: list[str] = []

    def open(self, scene: str) -> None:
        self.opened.append(scene)


def make_fake_services(output_dir: Path) -> Services:
    platforms = FakePlatformSwitcher()
    return Services(
        login=FakeLogin(),
        build=FakeBuildService(output_dir, platforms),
        upload=FakeUploadService(),
        platforms=platforms,
        metadata=RecordingMetadataSink(),
        scenes=RecordingSceneLoader(),
    )
