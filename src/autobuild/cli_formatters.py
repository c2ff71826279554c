# src/autobuild/cli_formatters.py
"""CLI event formatter factories for pipeline execution output.

Provides factory functions that return event handler maps for console
(human-readable) and JSON (structured) output formats. Each factory
returns a dict mapping event types to handler callables, suitable for
subscribing to an EventBus.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import typer

from autobuild.contracts.enums import InterruptionPolicy
from autobuild.contracts.events import (
    PipelineInitialized,
    PipelineResumed,
    PipelineSummary,
    StepCompleted,
    StepFailed,
    StepStarted,
)
from autobuild.core.events import EventBusProtocol
from autobuild.core.logging import LOG_TAG


def _attempt_info(policy: InterruptionPolicy, attempt: int, max_attempts: int) -> str:
    return f" (Attempt {attempt}/{max_attempts})" if policy == InterruptionPolicy.RETRY else ""


def create_console_formatters(prefix: str = "Build") -> dict[type, Callable[..., None]]:
    """Create console formatters for human-readable CLI output.

    Every line starts with LOG_TAG so the output can be scraped from a host log.

    Args:
        prefix: Label for the summary line (e.g. "Build" or "Resume").
    """

    def _format_initialized(event: PipelineInitialized) -> None:
        typer.echo(f"{LOG_TAG} INITIALIZING - {len(event.step_names)} Steps:")
        for i, name in enumerate(event.step_names):
            typer.echo(f"{LOG_TAG} - Step {i} - {name}")

    def _format_resumed(event: PipelineResumed) -> None:
        typer.echo(f"{LOG_TAG} Resuming at step {event.index}: {event.name} (policy: {event.policy.value})")

    def _format_step_started(event: StepStarted) -> None:
        attempt = _attempt_info(event.policy, event.attempt, event.max_attempts)
        typer.echo(f"{LOG_TAG} Running step {event.index}: {event.name}{attempt}")

    def _format_step_completed(event: StepCompleted) -> None:
        attempt = _attempt_info(event.policy, event.attempt, event.max_attempts)
        typer.echo(f"{LOG_TAG} Completed step {event.index}! {event.name}{attempt} in {event.duration_seconds:.2f}s")

    def _format_step_failed(event: StepFailed) -> None:
        typer.echo(f"{LOG_TAG} ✗ Step {event.index} ({event.name}) failed: {event.error_message}", err=True)

    def _format_summary(event: PipelineSummary) -> None:
        symbol = "✓" if event.exit_code == 0 else "✗"
        line = (
            f"{LOG_TAG} {symbol} {prefix} {event.status.value.upper()}: "
            f"{event.steps_completed}/{event.total_steps} steps completed | exit {event.exit_code}"
        )
        if event.error_message:
            line += f" | {event.error_message}"
        typer.echo(line, err=event.exit_code != 0)

    return {
        PipelineInitialized: _format_initialized,
        PipelineResumed: _format_resumed,
        StepStarted: _format_step_started,
        StepCompleted: _format_step_completed,
        StepFailed: _format_step_failed,
        PipelineSummary: _format_summary,
    }


def create_json_formatters() -> dict[type, Callable[..., None]]:
    """Create JSON formatters for structured CLI output."""

    def _format_initialized_json(event: PipelineInitialized) -> None:
        typer.echo(json.dumps({"event": "pipeline_initialized", "steps": list(event.step_names)}))

    def _format_resumed_json(event: PipelineResumed) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "pipeline_resumed",
                    "index": event.index,
                    "step": event.name,
                    "policy": event.policy.value,
                }
            )
        )

    def _format_step_started_json(event: StepStarted) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "step_started",
                    "index": event.index,
                    "step": event.name,
                    "attempt": event.attempt,
                    "max_attempts": event.max_attempts,
                    "policy": event.policy.value,
                }
            )
        )

    def _format_step_completed_json(event: StepCompleted) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "step_completed",
                    "index": event.index,
                    "step": event.name,
                    "attempt": event.attempt,
                    "max_attempts": event.max_attempts,
                    "duration_seconds": event.duration_seconds,
                }
            )
        )

    def _format_step_failed_json(event: StepFailed) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "step_failed",
                    "index": event.index,
                    "step": event.name,
                    "error": event.error_message,
                }
            ),
            err=True,
        )

    def _format_summary_json(event: PipelineSummary) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "pipeline_completed",
                    "status": event.status.value,
                    "steps_completed": event.steps_completed,
                    "total_steps": event.total_steps,
                    "exit_code": event.exit_code,
                    "error": event.error_message,
                }
            )
        )

    return {
        PipelineInitialized: _format_initialized_json,
        PipelineResumed: _format_resumed_json,
        StepStarted: _format_step_started_json,
        StepCompleted: _format_step_completed_json,
        StepFailed: _format_step_failed_json,
        PipelineSummary: _format_summary_json,
    }


def subscribe_formatters(
    event_bus: EventBusProtocol,
    formatters: dict[type, Callable[..., None]],
) -> None:
    """Subscribe all formatters to the event bus.

    Args:
        event_bus: The event bus to subscribe handlers to.
        formatters: Mapping from event type to handler callable.
    """
    for event_type, handler in formatters.items():
        event_bus.subscribe(event_type, handler)
