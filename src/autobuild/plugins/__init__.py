"""Step plugin system: hook specifications, validation and the step registry.

Usage:
    from autobuild.plugins import StepRegistry, hookimpl

    registry = StepRegistry()
    registry.register_builtin_steps()
    steps = registry.assemble()
"""

from autobuild.plugins.hookspecs import PROJECT_NAME, hookimpl, hookspec
from autobuild.plugins.manager import StepRegistry
from autobuild.plugins.validation import validate_descriptor

__all__ = [
    "PROJECT_NAME",
    "StepRegistry",
    "hookimpl",
    "hookspec",
    "validate_descriptor",
]
