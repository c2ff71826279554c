# src/autobuild/plugins/steps.py
"""Built-in build-and-publish steps.

Five steps, registered by BuiltinStepsPlugin:

    Open Initial Scene   -1000  CANCEL
    Set Build Metadata    9000  CANCEL
    Build                10000  RETRY (1)
    Upload               20000  CANCEL
    Finish               50000  RETRY (1)

Build switches platform once per target, and a switch may restart the
host, so it records per-platform progress in its step scope
(``platform_index``, ``artifact_path.<i>``, ``artifact_id``) and resets
its retry budget after each finished platform.
"""

from pathlib import Path

from autobuild.contracts.context import BuildContext
from autobuild.contracts.enums import BuildTarget, InterruptionPolicy
from autobuild.contracts.errors import StepExecutionError
from autobuild.contracts.services import ArtifactHandle, signature_path
from autobuild.contracts.step import (
    ORDER_BUILD,
    ORDER_FINISH,
    ORDER_OPEN_INITIAL_SCENE,
    ORDER_SET_BUILD_METADATA,
    ORDER_UPLOAD,
    StepDescriptor,
    step,
)
from autobuild.core.config import parse_build_target
from autobuild.core.logging import get_logger
from autobuild.plugins.hookspecs import hookimpl

logger = get_logger(__name__)

BUILD_STEP = "Build"

# Step-scope keys written by the Build step
PLATFORM_INDEX_KEY = "platform_index"
ARTIFACT_ID_KEY = "artifact_id"


def artifact_path_key(index: int) -> str:
    return f"artifact_path.{index}"


def platform_from_artifact_name(path: Path) -> BuildTarget:
    """Derive the target platform from an artifact file name.

    Artifacts are named ``<name>-<platform>-<rest>``; ``world-StandaloneWindows64-1.4.0.vrcw``
    belongs to windows64.

    Raises:
        StepExecutionError: If the name carries no known platform
    """
    parts = path.name.split("-", 2)
    if len(parts) < 3:
        raise StepExecutionError(f"Cannot derive platform from artifact name: {path.name}")
    try:
        return BuildTarget(parse_build_target(parts[1]))
    except ValueError:
        raise StepExecutionError(f"Unknown platform {parts[1]!r} in artifact name: {path.name}") from None


def _resolve_artifact_id(context: BuildContext) -> str | None:
    """Artifact id from this process, or the one persisted by an earlier Build attempt."""
    persisted = context.progress_for(BUILD_STEP).get_str(ARTIFACT_ID_KEY)
    if persisted is not None:
        context.artifact_id = persisted
    return context.artifact_id


@step("Open Initial Scene", ORDER_OPEN_INITIAL_SCENE)
def open_initial_scene(context: BuildContext) -> None:
    if context.settings.scene is not None:
        context.services.scenes.open(context.settings.scene)


@step("Set Build Metadata", ORDER_SET_BUILD_METADATA)
def set_build_metadata(context: BuildContext) -> None:
    if context.metadata is not None:
        metadata = str(context.metadata)
        logger.info("Applying build metadata", metadata=metadata)
        context.services.metadata.apply(metadata)


@step(BUILD_STEP, ORDER_BUILD, policy=InterruptionPolicy.RETRY, retry_limit=1)
async def build(context: BuildContext) -> None:
    """Build every target platform not yet built by an earlier attempt."""
    targets = context.build_targets
    progress = context.progress
    start = progress.get_int(PLATFORM_INDEX_KEY, 0)
    if start >= len(targets):
        return

    _resolve_artifact_id(context)
    await context.services.login.login()

    for i in range(start, len(targets)):
        target = targets[i]
        logger.info("Switching build platform", platform=target.value, index=i)
        await context.services.platforms.switch_to(target)

        handle = await context.services.build.build_for_current_target(context.artifact_id)
        # A new artifact gets its id on first build; keep it for the remaining platforms.
        context.artifact_id = handle.artifact_id
        progress.set_str(ARTIFACT_ID_KEY, handle.artifact_id)

        logger.info("Build complete", platform=target.value, path=str(handle.path))
        progress.set_str(artifact_path_key(i), str(handle.path))
        progress.set_int(PLATFORM_INDEX_KEY, i + 1)
        progress.reset_attempts()


@step("Upload", ORDER_UPLOAD)
async def upload(context: BuildContext) -> None:
    to_upload: list[Path] = []
    if context.settings.upload_after_build:
        built = context.progress_for(BUILD_STEP)
        for i in range(len(context.build_targets)):
            recorded = built.get_str(artifact_path_key(i))
            if recorded is None:
                raise StepExecutionError(f"No built artifact recorded for {context.build_targets[i].value}")
            to_upload.append(Path(recorded))
    to_upload.extend(context.upload_targets)
    if not to_upload:
        return

    artifact_id = _resolve_artifact_id(context)
    if artifact_id is None:
        raise StepExecutionError("No artifact id to upload to; set artifact_id or build first")

    for path in to_upload:
        platform = platform_from_artifact_name(path)
        sig_file = signature_path(path)
        if not sig_file.exists():
            raise StepExecutionError(f"Missing signature file: {sig_file}")
        signature = sig_file.read_text().strip()

        logger.info("Uploading artifact", file=path.name, platform=platform.upload_platform)
        handle = ArtifactHandle(artifact_id=artifact_id, path=path, signature=signature, platform=platform)
        remote = await context.services.upload.upload(handle, artifact_id, signature)
        logger.info("Upload complete", file=path.name, version=remote.version)


@step("Finish", ORDER_FINISH, policy=InterruptionPolicy.RETRY, retry_limit=1)
async def finish(context: BuildContext) -> None:
    if context.restore_platform is not None:
        logger.info("Returning to default platform", platform=context.restore_platform.value)
        await context.services.platforms.switch_to(context.restore_platform)


BUILTIN_STEPS: tuple[StepDescriptor, ...] = (open_initial_scene, set_build_metadata, build, upload, finish)


class BuiltinStepsPlugin:
    """Contributes the built-in steps."""

    @hookimpl
    def autobuild_get_steps(self) -> list[StepDescriptor]:
        return list(BUILTIN_STEPS)
