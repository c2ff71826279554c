# src/autobuild/cli.py
"""autobuild Command Line Interface.

Entry point for the autobuild CLI tool.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

import typer

from autobuild import __version__
from autobuild.cli_formatters import create_console_formatters, create_json_formatters, subscribe_formatters
from autobuild.contracts.errors import ConfigurationError, CursorError
from autobuild.contracts.results import PipelineResult
from autobuild.core.cursor import CursorStore, StateDB
from autobuild.core.events import EventBus
from autobuild.core.logging import get_logger
from autobuild.engine.runner import Autobuilder
from autobuild.plugins.manager import StepRegistry

__all__ = ["app"]

logger = get_logger(__name__)

DEFAULT_SETTINGS = "build.json"
DEFAULT_STATE_DB = ".autobuild/state.db"
STATE_DB_ENV_VAR = "AUTOBUILD_STATE_DB"

# Exit code for configuration and usage errors detected before any step runs
EXIT_CONFIG_ERROR = 2

app = typer.Typer(
    name="autobuild",
    help="autobuild: crash-resumable build-and-publish pipelines.",
    no_args_is_help=True,
)


class TyperExitHost:
    """HostProcess ending the command with typer.Exit."""

    def exit(self, code: int) -> None:
        raise typer.Exit(code)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"autobuild version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(EXIT_CONFIG_ERROR)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # We handle existence check ourselves for better error message
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """autobuild: crash-resumable build-and-publish pipelines."""
    from autobuild.core.logging import configure_logging

    log_level = "DEBUG" if verbose else "INFO"
    configure_logging(json_output=json_logs, level=log_level)

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def _build_autobuilder(settings: str, state_db: str, output_format: str, prefix: str) -> Autobuilder:
    """Load the descriptor and wire an Autobuilder whose events go to stdout.

    Raises:
        typer.Exit: With EXIT_CONFIG_ERROR if the descriptor is missing or invalid
    """
    event_bus = EventBus()
    formatters = create_json_formatters() if output_format == "json" else create_console_formatters(prefix)
    subscribe_formatters(event_bus, formatters)

    try:
        return Autobuilder.from_paths(
            Path(settings).expanduser(),
            Path(state_db).expanduser(),
            host=TyperExitHost(),
            event_bus=event_bus,
        )
    except ConfigurationError as e:
        _abort_interrupted_run(state_db, e)
        if output_format == "json":
            typer.echo(json.dumps({"event": "error", "error": str(e), "error_type": type(e).__name__}), err=True)
        else:
            typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR) from None


def _abort_interrupted_run(state_db: str, error: Exception) -> None:
    """Clear a run left in the state database when the process cannot start.

    A descriptor that fails to load is fatal for any in-progress run; the
    cursor must not survive it.
    """
    path = Path(state_db).expanduser()
    if not path.exists():
        return
    with StateDB.from_path(path) as db:
        removed = CursorStore(db).clear()
    if removed:
        logger.error(
            "Build failed, aborting",
            error=str(error),
            error_type=type(error).__name__,
            cleared_keys=removed,
        )


def _open_store(state_db: str) -> CursorStore | None:
    """Open the state database if it exists (never creates one)."""
    path = Path(state_db).expanduser()
    if not path.exists():
        return None
    return CursorStore(StateDB.from_path(path))


def _echo_idle(output_format: str) -> None:
    if output_format == "json":
        typer.echo(json.dumps({"status": "idle"}))
    else:
        typer.echo("idle")


@app.command()
def start(
    settings: str = typer.Option(
        DEFAULT_SETTINGS,
        "--settings",
        "-s",
        help="Path to the build descriptor (JSON, YAML or TOML).",
    ),
    state_db: str = typer.Option(
        DEFAULT_STATE_DB,
        "--state-db",
        envvar=STATE_DB_ENV_VAR,
        help="Path to the SQLite state database holding the pipeline cursor.",
    ),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
) -> None:
    """Start a fresh build, discarding any interrupted one."""
    builder = _build_autobuilder(settings, state_db, output_format, prefix="Build")
    builder.start()


@app.command()
def resume(
    settings: str = typer.Option(
        DEFAULT_SETTINGS,
        "--settings",
        "-s",
        help="Path to the build descriptor (JSON, YAML or TOML).",
    ),
    state_db: str = typer.Option(
        DEFAULT_STATE_DB,
        "--state-db",
        envvar=STATE_DB_ENV_VAR,
        help="Path to the SQLite state database holding the pipeline cursor.",
    ),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
) -> None:
    """Resume an interrupted build. Does nothing when no build is in progress.

    Run this on every host start.
    """
    builder = _build_autobuilder(settings, state_db, output_format, prefix="Resume")
    result: PipelineResult | None = builder.resume()
    if result is None:
        if output_format == "json":
            typer.echo(json.dumps({"event": "idle"}))
        else:
            typer.echo("No build in progress.")


@app.command()
def steps() -> None:
    """List the assembled steps in execution order."""
    registry = StepRegistry()
    registry.register_builtin_steps()
    registry.register_entrypoint_steps()

    assembled = registry.assemble()
    typer.echo(f"{'#':>3}  {'ORDER':>7}  {'POLICY':8}  {'RETRIES':>7}  NAME")
    for i, step in enumerate(assembled):
        typer.echo(f"{i:>3}  {step.order:>7}  {step.policy.value:8}  {step.retry_limit:>7}  {step.name}")
    for rejected in registry.rejected:
        typer.echo(f"Warning: {rejected}", err=True)


@app.command()
def status(
    state_db: str = typer.Option(
        DEFAULT_STATE_DB,
        "--state-db",
        envvar=STATE_DB_ENV_VAR,
        help="Path to the SQLite state database holding the pipeline cursor.",
    ),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
) -> None:
    """Show the pipeline cursor, or 'idle' when no build is in progress."""
    store = _open_store(state_db)
    if store is None:
        _echo_idle(output_format)
        return

    try:
        cursor = store.load_cursor()
    except CursorError as e:
        if output_format == "json":
            typer.echo(json.dumps({"status": "corrupt", "error": str(e)}))
        else:
            typer.echo(f"Error: {e}", err=True)
            typer.echo("Run 'autobuild reset' to discard the broken run.", err=True)
        raise typer.Exit(1) from None

    if cursor is None:
        _echo_idle(output_format)
        return

    registry = StepRegistry()
    registry.register_builtin_steps()
    registry.register_entrypoint_steps()
    assembled = registry.assemble()
    step_name = assembled[cursor.step_index].name if cursor.step_index < len(assembled) else None
    progress = store.items("step.")

    if output_format == "json":
        typer.echo(
            json.dumps(
                {
                    "status": "running",
                    "step_index": cursor.step_index,
                    "step": step_name,
                    "attempts": cursor.attempts,
                    "progress": progress,
                }
            )
        )
        return

    typer.echo(f"running: step {cursor.step_index} ({step_name or 'unknown'}), attempts started: {cursor.attempts}")
    for key, value in progress.items():
        typer.echo(f"  {key} = {value}")


@app.command()
def reset(
    state_db: str = typer.Option(
        DEFAULT_STATE_DB,
        "--state-db",
        envvar=STATE_DB_ENV_VAR,
        help="Path to the SQLite state database holding the pipeline cursor.",
    ),
) -> None:
    """Clear the pipeline cursor and all step progress."""
    store = _open_store(state_db)
    if store is None:
        typer.echo("Nothing to reset.")
        return
    removed = store.clear()
    typer.echo(f"Cleared {removed} state key(s).")


if __name__ == "__main__":
    app()
