# src/autobuild/services/local.py
"""Local collaborator backends used by the CLI.

These run the pipeline against the local machine: a build command run as a
subprocess, a directory acting as the remote artifact store, and the state
database remembering the active platform across restarts.
"""

import asyncio
import hashlib
import json
import os
import shutil
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from autobuild.contracts.enums import BuildTarget
from autobuild.contracts.errors import ArtifactBuildError, LoginError, PlatformSwitchError, UploadRejectedError
from autobuild.contracts.services import ArtifactHandle, RemoteArtifact, Services, UserIdentity
from autobuild.core.config import BuildSettings
from autobuild.core.cursor.database import StateDB
from autobuild.core.cursor.store import HOST_PREFIX, CursorStore
from autobuild.core.logging import get_logger
from autobuild.services.build import FreshnessCheckedBuildService
from autobuild.services.login import RetryingLoginService
from autobuild.services.upload import ValidatingUploadService

logger = get_logger(__name__)

USER_ENV_VAR = "AUTOBUILD_USER"
ACTIVE_PLATFORM_KEY = f"{HOST_PREFIX}active_platform"
MANIFEST_NAME = "manifest.json"


class EnvironmentAuthenticator:
    """Identity from configuration, falling back to the AUTOBUILD_USER variable."""

    def __init__(self, user: str | None = None, env_var: str = USER_ENV_VAR) -> None:
        self._user = user
        self._env_var = env_var

    async def fetch_current_user(self) -> UserIdentity:
        user = self._user or os.environ.get(self._env_var)
        if not user:
            raise LoginError(f"Unable to load credentials: set services.user or {self._env_var}")
        return UserIdentity(user_id=user)


class RecordingPlatformSwitcher:
    """PlatformSwitcher keeping the active platform in the state database.

    The record survives restarts, the way a host remembers its active build
    target.
    """

    def __init__(self, store: CursorStore, supported: frozenset[BuildTarget] | None = None) -> None:
        self._store = store
        self._supported = supported if supported is not None else frozenset(BuildTarget)

    @property
    def active_platform(self) -> BuildTarget | None:
        value = self._store.get(ACTIVE_PLATFORM_KEY)
        return BuildTarget(value) if value is not None else None

    async def switch_to(self, target: BuildTarget) -> None:
        if self.active_platform == target:
            return
        if target not in self._supported:
            raise PlatformSwitchError(f"Could not switch to build target: {target.value}", detail="unsupported target")

        logger.info("Switching to build target", platform=target.value)
        self._store.set(ACTIVE_PLATFORM_KEY, target.value)
        await asyncio.sleep(0)
        if self.active_platform != target:
            raise PlatformSwitchError(f"Could not switch to build target: {target.value}")
        logger.info("Switched to build target", platform=target.value)


class SubprocessArtifactBuilder:
    """ArtifactBuilder running the configured build command.

    The command is an argv template; ``{platform}``, ``{artifact_id}`` and
    ``{output}`` are substituted. The output file is named
    ``<name>-<platform>-<artifact_id>.bundle`` so the Upload step can tell
    its platform from the name. The signature is the file's SHA-256.
    """

    def __init__(
        self,
        command: list[str],
        output_dir: Path,
        platforms: RecordingPlatformSwitcher,
        name: str = "artifact",
    ) -> None:
        self._command = list(command)
        self._output_dir = output_dir
        self._platforms = platforms
        self._name = name.replace("-", "_")

    def output_path(self, platform: BuildTarget, artifact_id: str) -> Path:
        return self._output_dir / f"{self._name}-{platform.value}-{artifact_id}.bundle"

    async def build(self, artifact_id: str | None) -> ArtifactHandle:
        if not self._command:
            raise ArtifactBuildError("No build command configured (services.build_command)")
        platform = self._platforms.active_platform
        if platform is None:
            raise ArtifactBuildError("No active build platform")
        if artifact_id is None:
            artifact_id = f"art_{uuid.uuid4()}"
            logger.info("Assigned new artifact id", artifact_id=artifact_id)

        output = self.output_path(platform, artifact_id)
        output.parent.mkdir(parents=True, exist_ok=True)
        argv = [part.format(platform=platform.value, artifact_id=artifact_id, output=str(output)) for part in self._command]

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ArtifactBuildError(f"Could not run build command {argv[0]!r}: {e}") from e
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise ArtifactBuildError(
                f"Build command exited with status {proc.returncode}",
                status_code=proc.returncode,
                detail=stderr.decode(errors="replace")[-2000:],
            )
        if not output.is_file():
            raise ArtifactBuildError(f"Build command produced no artifact at {output}")

        signature = hashlib.sha256(output.read_bytes()).hexdigest()
        return ArtifactHandle(artifact_id=artifact_id, path=output, signature=signature, platform=platform)


class DirectoryArtifactStore:
    """ArtifactStore backed by a directory.

    Layout:
        <root>/<artifact_id>/manifest.json
        <root>/<artifact_id>/<platform>/<artifact file>
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    def _manifest_path(self, artifact_id: str) -> Path:
        return self._root / artifact_id / MANIFEST_NAME

    def _read_manifest(self, artifact_id: str) -> dict[str, Any] | None:
        path = self._manifest_path(artifact_id)
        if not path.exists():
            return None
        try:
            manifest: dict[str, Any] = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise UploadRejectedError(f"Corrupt remote manifest for {artifact_id}", detail=str(e)) from e
        return manifest

    async def fetch(self, artifact_id: str) -> RemoteArtifact | None:
        manifest = self._read_manifest(artifact_id)
        if manifest is None:
            return None
        return RemoteArtifact(
            artifact_id=artifact_id,
            owner_id=manifest.get("owner_id", ""),
            platform=None,
            version=manifest.get("version", 0),
        )

    async def publish(
        self,
        handle: ArtifactHandle,
        artifact_id: str,
        signature: str,
        *,
        owner_id: str,
    ) -> RemoteArtifact:
        platform = handle.platform.upload_platform if handle.platform is not None else "unknown"
        manifest = self._read_manifest(artifact_id) or {"artifact_id": artifact_id, "owner_id": "", "version": 0, "platforms": {}}

        target_dir = self._root / artifact_id / platform
        target_dir.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copy2, handle.path, target_dir / handle.path.name)

        manifest["owner_id"] = manifest["owner_id"] or owner_id
        manifest["version"] += 1
        manifest["platforms"][platform] = {
            "file": handle.path.name,
            "signature": signature,
            "uploaded_at": datetime.now(UTC).isoformat(),
        }
        self._manifest_path(artifact_id).write_text(json.dumps(manifest, indent=2, sort_keys=True))

        return RemoteArtifact(
            artifact_id=artifact_id,
            owner_id=manifest["owner_id"],
            platform=platform,
            version=manifest["version"],
        )


class FileMetadataSink:
    """MetadataSink writing the metadata string to each configured file.

    Best effort: a file that cannot be written is logged and skipped.
    """

    def __init__(self, paths: list[Path]) -> None:
        self._paths = list(paths)

    def apply(self, metadata: str) -> None:
        for path in self._paths:
            logger.info("Applying build metadata", file=str(path), metadata=metadata)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(metadata)
            except OSError as e:
                logger.warning("Could not write build metadata", file=str(path), error=str(e))


class LoggingSceneLoader:
    """SceneLoader for hosts without scenes: records and logs the request."""

    def __init__(self) -> None:
        self.opened: list[str] = []

    def open(self, scene: str) -> None:
        logger.info("Opening scene", scene=scene)
        self.opened.append(scene)


def make_local_services(settings: BuildSettings, state_db: StateDB) -> Services:
    """Wire the local backends from the descriptor's ``services`` section."""
    config = settings.services
    platforms = RecordingPlatformSwitcher(CursorStore(state_db))
    login = RetryingLoginService(
        EnvironmentAuthenticator(config.user),
        attempts=config.login_attempts,
        delay_seconds=config.login_delay_seconds,
    )
    builder = SubprocessArtifactBuilder(config.build_command, config.output_dir, platforms)
    return Services(
        login=login,
        build=FreshnessCheckedBuildService(builder),
        upload=ValidatingUploadService(DirectoryArtifactStore(config.remote_dir), login, config.size_limit_bytes),
        platforms=platforms,
        metadata=FileMetadataSink(config.metadata_files),
        scenes=LoggingSceneLoader(),
    )
