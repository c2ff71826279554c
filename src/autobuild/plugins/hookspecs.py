# src/autobuild/plugins/hookspecs.py
"""pluggy hook specifications for autobuild step plugins.

Plugins implement these hooks to contribute pipeline steps. The step
registry calls them when it assembles the step list.

Usage (implementing a plugin):
    from autobuild.contracts import step
    from autobuild.plugins.hookspecs import hookimpl

    @step("Notify", 30000)
    async def notify(context):
        ...

    class NotifyPlugin:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def autobuild_get_steps(self):
            return [notify]

Third-party distributions expose such a plugin object under the
``autobuild`` entry-point group.
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from autobuild.contracts.step import StepDescriptor

# Project name for pluggy, also the entry-point group
PROJECT_NAME = "autobuild"

# Hook specification marker
hookspec = pluggy.HookspecMarker(PROJECT_NAME)

# Hook implementation marker (for plugins to use)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class AutobuildStepSpec:
    """Hook specifications for step plugins."""

    @hookspec
    def autobuild_get_steps(self) -> list["StepDescriptor"]:  # type: ignore[empty-body]
        """Return step descriptors contributed by this plugin.

        Returns:
            List of StepDescriptor, in the order they were declared
        """
