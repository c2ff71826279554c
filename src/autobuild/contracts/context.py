"""Shared build context.

One BuildContext exists per process. It is created at start from the static
build descriptor, threaded explicitly through every step invocation, and
discarded at exit. Only one step holds it at a time, so it needs no locking.

What must survive a restart does not live here: steps persist their
sub-progress through ``context.progress`` (the durable cursor store, scoped
to the running step's name).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from autobuild.contracts.enums import BuildTarget

if TYPE_CHECKING:
    from autobuild.contracts.services import Services
    from autobuild.core.config import BuildMetadata, BuildSettings
    from autobuild.core.cursor.store import CursorStore, StepProgress


@dataclass
class BuildContext:
    """Unit-of-work state for one pipeline run.

    Attributes:
        settings: Validated, frozen build descriptor
        services: External collaborators
        artifact_id: Remote artifact identity. Seeded from settings; the Build
            step may replace it (a new artifact gets its id on first build).
        current_step: Name of the step holding the context, set by the driver
    """

    settings: BuildSettings
    services: Services
    store: CursorStore = field(repr=False)
    artifact_id: str | None = None
    current_step: str | None = None

    def __post_init__(self) -> None:
        if self.artifact_id is None:
            self.artifact_id = self.settings.artifact_id

    # === Descriptor views ===

    @property
    def build_targets(self) -> list[BuildTarget]:
        """Ordered platforms to build for."""
        return list(self.settings.build_targets)

    @property
    def metadata(self) -> BuildMetadata | None:
        """Metadata to stamp into the build, if any."""
        return self.settings.metadata

    @property
    def upload_targets(self) -> list[Path]:
        """Explicit extra artifacts to upload."""
        return list(self.settings.upload)

    @property
    def restore_platform(self) -> BuildTarget | None:
        """Platform to switch back to after the pipeline."""
        return self.settings.default_platform

    # === Step-local progress ===

    @property
    def progress(self) -> StepProgress:
        """Durable progress scope of the step currently running.

        Raises:
            RuntimeError: If no step holds the context
        """
        if self.current_step is None:
            raise RuntimeError("No step is running; progress scope is undefined")
        return self.store.scope(self.current_step)

    def progress_for(self, step_name: str) -> StepProgress:
        """Durable progress scope of another step (read its results)."""
        return self.store.scope(step_name)
