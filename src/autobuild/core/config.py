# src/autobuild/core/config.py
"""
Build descriptor schema and loading.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction; the descriptor is
read-only to the orchestrator and read once per process start.
"""

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from autobuild.contracts.enums import BuildTarget
from autobuild.contracts.errors import ConfigurationError

# Host-native build target names (as the editor spells them) accepted alongside the short names.
_TARGET_ALIASES: dict[str, BuildTarget] = {
    "standalonewindows64": BuildTarget.WINDOWS64,
    "windows": BuildTarget.WINDOWS64,
    "win64": BuildTarget.WINDOWS64,
}


def parse_build_target(value: Any) -> Any:
    """Normalise a platform name to a BuildTarget value (case-insensitive).

    Unknown strings are returned unchanged so Pydantic reports them.
    """
    if isinstance(value, BuildTarget) or not isinstance(value, str):
        return value
    key = value.strip().lower()
    if key in _TARGET_ALIASES:
        return _TARGET_ALIASES[key]
    return key


class GitMetadata(BaseModel):
    """Revision of one repository that went into the build."""

    model_config = {"frozen": True}

    repo: str
    head: str

    def __str__(self) -> str:
        return f"{self.repo}-{self.head[:8]}"


class BuildMetadata(BaseModel):
    """Metadata stamped into the built artifact.

    Renders as ``<version>+<build_id>[.<repo>-<head8>...][.<extra>...]``,
    e.g. ``1.4.0+212.world-1a2b3c4d.nightly``.
    """

    model_config = {"frozen": True}

    version: str
    timestamp: int = 0
    build_id: int = 0
    git: list[GitMetadata] = Field(default_factory=list)
    extra_build_info: list[str] = Field(default_factory=list)

    def __str__(self) -> str:
        meta = f"{self.version}+{self.build_id}"
        for g in self.git:
            meta += f".{g}"
        for extra in self.extra_build_info:
            meta += f".{extra}"
        return meta


class LocalServicesSettings(BaseModel):
    """Settings for the local collaborator backends used by the CLI.

    Example YAML:
        services:
          build_command: ["./tools/bundle.sh", "--platform", "{platform}", "--out", "{output}"]
          output_dir: build/artifacts
          remote_dir: /mnt/releases
          size_limit_bytes: 104857600
          user: ci-bot
    """

    model_config = {"frozen": True}

    build_command: list[str] = Field(
        default_factory=list,
        description="argv template; {platform}, {artifact_id} and {output} are substituted",
    )
    output_dir: Path = Field(default=Path("build/artifacts"), description="Where builds are written")
    remote_dir: Path = Field(default=Path(".autobuild/remote"), description="Directory acting as the remote store")
    size_limit_bytes: int = Field(default=100 * 1024 * 1024, gt=0, description="Upload size budget")
    user: str | None = Field(default=None, description="User identity; falls back to AUTOBUILD_USER")
    metadata_files: list[Path] = Field(default_factory=list, description="Files receiving the metadata string")
    login_attempts: int = Field(default=10, gt=0, description="Bounded login attempts")
    login_delay_seconds: float = Field(default=0.25, ge=0, description="Delay between login attempts")


class BuildSettings(BaseModel):
    """The static build descriptor.

    This is the single configuration input of a pipeline run. All settings
    are validated and frozen after construction.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    artifact_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("artifact_id", "blueprint_id"),
        description="Remote artifact identity; assigned on first build when absent",
    )
    scene: str | None = Field(default=None, description="Scene to open before building")
    build_targets: list[BuildTarget] = Field(default_factory=list, description="Ordered platforms to build for")
    upload_after_build: bool = Field(default=False, description="Upload every artifact built by this run")
    upload: list[Path] = Field(default_factory=list, description="Extra artifact files to upload")
    metadata: BuildMetadata | None = Field(default=None, description="Metadata to stamp before building")
    default_platform: BuildTarget | None = Field(default=None, description="Platform to restore at the end")
    services: LocalServicesSettings = Field(default_factory=LocalServicesSettings)

    @field_validator("build_targets", mode="before")
    @classmethod
    def normalise_build_targets(cls, v: Any) -> Any:
        if isinstance(v, list | tuple):
            return [parse_build_target(item) for item in v]
        return v

    @field_validator("default_platform", mode="before")
    @classmethod
    def normalise_default_platform(cls, v: Any) -> Any:
        return parse_build_target(v)

    @field_validator("build_targets")
    @classmethod
    def validate_unique_targets(cls, v: list[BuildTarget]) -> list[BuildTarget]:
        """Each platform is built at most once per run."""
        duplicates = sorted({t.value for t in v if v.count(t) > 1})
        if duplicates:
            raise ValueError(f"Duplicate build target(s): {duplicates}")
        return v


def format_validation_errors(error: ValidationError) -> list[str]:
    """Flatten a Pydantic ValidationError into ``loc: msg`` lines."""
    lines = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        lines.append(f"{loc}: {item['msg']}")
    return lines


def load_settings(config_path: Path) -> BuildSettings:
    """Load the build descriptor with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (AUTOBUILD_*) - highest priority
    2. Descriptor file (JSON, YAML or TOML)
    3. Defaults from the Pydantic schema - lowest priority

    Environment variable format: AUTOBUILD_SERVICES__USER for nested keys.

    Args:
        config_path: Path to the descriptor

    Returns:
        Validated BuildSettings

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise ConfigurationError(f"Build descriptor not found: {config_path}")

    try:
        dynaconf_settings = Dynaconf(
            envvar_prefix="AUTOBUILD",
            settings_files=[str(config_path)],
            environments=False,
            load_dotenv=False,
            merge_enabled=True,
        )
        # Dynaconf returns uppercase keys; Pydantic fields are lowercase
        internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
        raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    except Exception as e:
        raise ConfigurationError(f"Could not read build descriptor {config_path}: {e}") from e

    try:
        return BuildSettings(**raw_config)
    except ValidationError as e:
        lines = format_validation_errors(e)
        raise ConfigurationError(f"Invalid build descriptor {config_path}: " + "; ".join(lines)) from e
