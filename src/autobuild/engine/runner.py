# src/autobuild/engine/runner.py
"""Autobuilder: process-level entry points.

``start()`` begins a fresh run; ``resume()`` is called on every process
start and continues an interrupted run, if there is one. Both end by
handing the exit code to the host process (a resume that found nothing to
do returns without exiting).
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

from autobuild.contracts.context import BuildContext
from autobuild.contracts.events import PipelineInitialized
from autobuild.contracts.results import PipelineResult
from autobuild.contracts.services import Services
from autobuild.core.config import BuildSettings, load_settings
from autobuild.core.cursor.database import StateDB
from autobuild.core.cursor.store import CursorStore
from autobuild.core.events import EventBusProtocol, NullEventBus
from autobuild.core.logging import get_logger
from autobuild.engine.clock import Clock
from autobuild.engine.driver import PipelineDriver
from autobuild.engine.resume import ResumeTrigger
from autobuild.plugins.manager import StepRegistry

logger = get_logger(__name__)


class HostProcess(Protocol):
    """The process hosting the pipeline."""

    def exit(self, code: int) -> None:
        """Terminate with the given exit code."""
        ...


class SystemExitHost:
    """Host exit via SystemExit, so interpreter cleanup still runs."""

    def exit(self, code: int) -> None:
        raise SystemExit(code)


class Autobuilder:
    """Wires store, registry and context together for one process.

    Example:
        builder = Autobuilder.from_paths(Path("build.json"), Path(".autobuild/state.db"))
        builder.resume()   # no-op unless a run was interrupted
        builder.start()    # fresh run; exits the process when done
    """

    def __init__(
        self,
        settings: BuildSettings,
        services: Services,
        store: CursorStore,
        *,
        registry: StepRegistry | None = None,
        host: HostProcess | None = None,
        event_bus: EventBusProtocol | None = None,
        clock: Clock | None = None,
    ) -> None:
        if registry is None:
            registry = StepRegistry()
            registry.register_builtin_steps()
        self._settings = settings
        self._store = store
        self._registry = registry
        self._host: HostProcess = host if host is not None else SystemExitHost()
        self._events: EventBusProtocol = event_bus if event_bus is not None else NullEventBus()
        self._clock = clock
        self._context = BuildContext(settings=settings, services=services, store=store)

    @classmethod
    def from_paths(
        cls,
        settings_path: Path,
        state_db_path: Path,
        *,
        host: HostProcess | None = None,
        event_bus: EventBusProtocol | None = None,
    ) -> Autobuilder:
        """Build an Autobuilder with local service backends.

        Loads the descriptor once, opens the state database and registers
        built-in and entry-point steps.

        Raises:
            ConfigurationError: If the descriptor is missing or invalid
        """
        from autobuild.services.local import make_local_services

        settings = load_settings(settings_path)
        db = StateDB.from_path(state_db_path)
        registry = StepRegistry()
        registry.register_builtin_steps()
        registry.register_entrypoint_steps()
        return cls(
            settings,
            make_local_services(settings, db),
            CursorStore(db),
            registry=registry,
            host=host,
            event_bus=event_bus,
        )

    @property
    def settings(self) -> BuildSettings:
        return self._settings

    @property
    def store(self) -> CursorStore:
        return self._store

    @property
    def registry(self) -> StepRegistry:
        return self._registry

    @property
    def context(self) -> BuildContext:
        return self._context

    async def start_async(self) -> PipelineResult:
        """Clear any previous run and run every step from the beginning."""
        self._store.clear()
        steps = self._registry.assemble()

        logger.info(f"INITIALIZING - {len(steps)} Steps:", total_steps=len(steps))
        for i, step in enumerate(steps):
            logger.info(f"- Step {i} - {step.name}", index=i, step=step.name)
        self._events.emit(PipelineInitialized(step_names=tuple(s.name for s in steps)))

        driver = PipelineDriver(self._store, steps, self._context, event_bus=self._events, clock=self._clock)
        return await driver.run(0)

    async def resume_async(self) -> PipelineResult | None:
        trigger = ResumeTrigger(self._store, self._registry, self._context, event_bus=self._events, clock=self._clock)
        return await trigger.resume()

    def start(self) -> PipelineResult:
        """Run a fresh pipeline, then exit the host with the result's code."""
        result = asyncio.run(self.start_async())
        self._host.exit(result.exit_code)
        return result

    def resume(self) -> PipelineResult | None:
        """Resume an interrupted run, then exit the host.

        Returns None without exiting when nothing was running.
        """
        result = asyncio.run(self.resume_async())
        if result is None:
            return None
        self._host.exit(result.exit_code)
        return result
