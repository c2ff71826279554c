# tests/property/engine/test_resume_properties.py
"""Property-based tests for kill-and-resume outcomes.

For any step list and any schedule of kills, the run ends exactly as the
interruption policies predict, and no cursor is left behind.
"""

from __future__ import annotations

from pathlib import Path
from tempfile import TemporaryDirectory

from hypothesis import given
from hypothesis import strategies as st

from autobuild.contracts import InterruptionPolicy, PipelineStatus
from autobuild.plugins import StepRegistry
from tests.fixtures.host import HostSimulator
from tests.fixtures.services import make_fake_services
from tests.fixtures.steps import ScriptedAction, StepsPlugin, scripted_step
from tests.property.conftest import StepSpec, step_specs
from tests.property.settings import SLOW_SETTINGS


def _predict(specs: list[StepSpec], kills: list[int]) -> tuple[PipelineStatus, list[int]]:
    """Expected status and per-step call counts for a kill schedule.

    kills[i] is how many times step i is killed before it would succeed.
    """
    calls = [0] * len(specs)
    for i, entry in enumerate(specs):
        if kills[i] == 0:
            calls[i] = 1
            continue
        if entry.policy == InterruptionPolicy.CANCEL:
            calls[i] = 1
            return PipelineStatus.FAILED, calls
        if entry.policy == InterruptionPolicy.CONTINUE:
            calls[i] = 1
            continue
        # RETRY: one first attempt plus retry_limit retries
        if kills[i] > entry.retry_limit:
            calls[i] = entry.retry_limit + 1
            return PipelineStatus.FAILED, calls
        calls[i] = kills[i] + 1
    return PipelineStatus.COMPLETED, calls


@st.composite
def kill_schedules(draw: st.DrawFn) -> tuple[list[StepSpec], list[int]]:
    specs = draw(step_specs(min_size=1, max_size=5))
    kills = [draw(st.integers(min_value=0, max_value=4)) for _ in specs]
    return specs, kills


class TestResumeProperties:
    @given(schedule=kill_schedules())
    @SLOW_SETTINGS
    def test_outcome_matches_policies(self, schedule: tuple[list[StepSpec], list[int]]) -> None:
        specs, kills = schedule
        # Distinct orders keep the assembled list in generation order
        ordered = [StepSpec(s.name, i, s.policy, s.retry_limit) for i, s in enumerate(specs)]
        steps = [
            scripted_step(s.name, s.order, *(["kill"] * kills[i]), policy=s.policy, retry_limit=s.retry_limit)
            for i, s in enumerate(ordered)
        ]
        actions: list[ScriptedAction] = [action for _, action in steps]

        def registry() -> StepRegistry:
            r = StepRegistry()
            r.register(StepsPlugin(*(descriptor for descriptor, _ in steps)))
            return r

        expected_status, expected_calls = _predict(ordered, kills)

        with TemporaryDirectory() as tmp:
            root = Path(tmp)
            host = HostSimulator(root / "state.db", registry, make_fake_services(root / "artifacts"))
            try:
                result = host.start()
                restarts = 0
                while result is None:
                    restarts += 1
                    assert restarts <= sum(kills) + 1
                    result = host.resume()

                assert result.status == expected_status
                assert [a.calls for a in actions] == expected_calls
                assert host.host.exit_codes == [0 if expected_status == PipelineStatus.COMPLETED else 1]
                assert host.store().load_cursor() is None
            finally:
                host.close()
