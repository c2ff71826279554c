# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Usage:
    from tests.property.conftest import step_specs

    @given(specs=step_specs())
    def test_assembly_is_sorted(specs) -> None:
        ...
"""

# =============================================================================
# Hypothesis Settings
# =============================================================================
#
# For standardized @settings decorators, import from tests.property.settings:
#   from tests.property.settings import STANDARD_SETTINGS, DETERMINISM_SETTINGS
#
# Tiers: DETERMINISM (500), STATE_MACHINE (200), STANDARD (100), SLOW (50), QUICK (20)
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass

from hypothesis import strategies as st

from autobuild.contracts import InterruptionPolicy

# Small order range so ties are common
step_orders = st.integers(min_value=-5, max_value=5)

policies = st.sampled_from(list(InterruptionPolicy))

retry_limits = st.integers(min_value=0, max_value=3)


@dataclass(frozen=True)
class StepSpec:
    """Shape of a generated step: everything but its action."""

    name: str
    order: int
    policy: InterruptionPolicy
    retry_limit: int


@st.composite
def step_specs(draw: st.DrawFn, min_size: int = 0, max_size: int = 8) -> list[StepSpec]:
    """Lists of steps with unique names."""
    count = draw(st.integers(min_value=min_size, max_value=max_size))
    return [
        StepSpec(
            name=f"step-{i}",
            order=draw(step_orders),
            policy=draw(policies),
            retry_limit=draw(retry_limits),
        )
        for i in range(count)
    ]
