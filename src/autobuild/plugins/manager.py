# src/autobuild/plugins/manager.py
"""Step registry: plugin registration and step-list assembly.

Uses pluggy for hook-based plugin registration. Steps are contributed only
by plugins that were explicitly registered (built-ins, entry points, or a
direct register() call); nothing is discovered by scanning modules.
"""

from typing import Any

import pluggy

from autobuild.contracts.errors import StepValidationError
from autobuild.contracts.step import Step
from autobuild.core.logging import get_logger
from autobuild.plugins.hookspecs import PROJECT_NAME, AutobuildStepSpec
from autobuild.plugins.validation import validate_descriptor

logger = get_logger(__name__)


def _descriptor_list(result: Any) -> list[Any]:
    """Materialise a hook result; a hook must return a list (or None)."""
    if result is None:
        return []
    if not isinstance(result, list | tuple):
        raise TypeError(f"expected a list of StepDescriptor, got {type(result).__name__}")
    return list(result)


class StepRegistry:
    """Collects step descriptors from plugins and assembles the step list.

    The assembled list is ordered by ``order`` ascending, ties broken by
    discovery order (hook implementations in registration order, then
    descriptor order within each implementation). Invalid descriptors and
    duplicate names are skipped with a warning.

    Usage:
        registry = StepRegistry()
        registry.register_builtin_steps()
        registry.register(MyPlugin())

        steps = registry.assemble()
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(AutobuildStepSpec)
        self._steps: tuple[Step, ...] | None = None
        self._rejected: list[StepValidationError] = []

    def register_builtin_steps(self) -> None:
        """Register the built-in build-and-publish steps."""
        from autobuild.plugins.steps import BuiltinStepsPlugin

        self.register(BuiltinStepsPlugin(), name="autobuild.builtin")

    def register_entrypoint_steps(self) -> int:
        """Register plugins published under the ``autobuild`` entry-point group.

        Returns:
            Number of plugins loaded
        """
        count = self._pm.load_setuptools_entrypoints(PROJECT_NAME)
        if count:
            self._steps = None
            logger.debug("Loaded entry-point step plugins", count=count)
        return count

    def register(self, plugin: Any, name: str | None = None) -> None:
        """Register a plugin.

        Args:
            plugin: Object implementing the autobuild_get_steps hook
            name: Optional registration name (pluggy rejects duplicates)
        """
        self._pm.register(plugin, name=name)
        self._steps = None

    def is_registered(self, plugin: Any) -> bool:
        return self._pm.is_registered(plugin)

    @property
    def rejected(self) -> list[StepValidationError]:
        """Descriptors skipped by the last assembly."""
        return list(self._rejected)

    def assemble(self) -> list[Step]:
        """Return the ordered step list.

        Cached until another plugin is registered, so repeated calls return
        equal sequences.
        """
        if self._steps is None:
            self._steps = self._collect()
        return list(self._steps)

    def _collect(self) -> tuple[Step, ...]:
        accepted: dict[str, Step] = {}
        rejected: list[StepValidationError] = []
        discovery_index = 0

        # get_hookimpls() lists implementations in registration order;
        # calling the hook itself would return results last-registered-first.
        for impl in self._pm.hook.autobuild_get_steps.get_hookimpls():
            try:
                descriptors = _descriptor_list(impl.function())
            except Exception as e:
                error = StepValidationError(impl.plugin_name, f"plugin step hook failed: {type(e).__name__}: {e}")
                rejected.append(error)
                logger.warning(str(error), plugin=impl.plugin_name, reason=error.reason)
                continue

            for descriptor in descriptors:
                try:
                    step = validate_descriptor(descriptor, discovery_index)
                    if step.name in accepted:
                        raise StepValidationError(step.name, "a step with this name is already registered")
                except StepValidationError as e:
                    rejected.append(e)
                    logger.warning(str(e), step=e.step_name, plugin=impl.plugin_name, reason=e.reason)
                else:
                    accepted[step.name] = step
                discovery_index += 1

        self._rejected = rejected
        return tuple(sorted(accepted.values(), key=lambda s: (s.order, s.discovery_index)))
