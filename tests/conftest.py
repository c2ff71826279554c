# tests/conftest.py
"""Shared test fixtures and helpers.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

from autobuild.contracts import BuildContext, Services
from autobuild.core.config import BuildSettings
from autobuild.core.cursor import CursorStore, StateDB
from autobuild.plugins import StepRegistry
from tests.fixtures.host import HostSimulator
from tests.fixtures.services import make_fake_services


@pytest.fixture
def state_db() -> Iterator[StateDB]:
    db = StateDB.in_memory()
    yield db
    db.close()


@pytest.fixture
def store(state_db: StateDB) -> CursorStore:
    return CursorStore(state_db)


@pytest.fixture
def services(tmp_path: Path) -> Services:
    return make_fake_services(tmp_path / "artifacts")


@pytest.fixture
def build_settings() -> BuildSettings:
    return BuildSettings()


@pytest.fixture
def context(build_settings: BuildSettings, services: Services, store: CursorStore) -> BuildContext:
    return BuildContext(settings=build_settings, services=services, store=store)


@pytest.fixture
def make_host(tmp_path: Path, services: Services) -> Iterator[Callable[..., HostSimulator]]:
    created: list[HostSimulator] = []

    def _make(
        registry_factory: Callable[[], StepRegistry],
        build_settings: BuildSettings | None = None,
    ) -> HostSimulator:
        sim = HostSimulator(tmp_path / "state" / "state.db", registry_factory, services, build_settings)
        created.append(sim)
        return sim

    yield _make
    for sim in created:
        sim.close()


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
