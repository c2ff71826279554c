"""Pipeline engine: driver, resume trigger and process entry points.

Usage:
    from autobuild.engine import Autobuilder

    builder = Autobuilder(settings, services, store)
    builder.resume()
"""

from autobuild.engine.clock import DEFAULT_CLOCK, Clock, MockClock, SystemClock
from autobuild.engine.driver import PipelineDriver
from autobuild.engine.resume import ResumeTrigger
from autobuild.engine.runner import Autobuilder, HostProcess, SystemExitHost

__all__ = [
    "DEFAULT_CLOCK",
    "Autobuilder",
    "Clock",
    "HostProcess",
    "MockClock",
    "PipelineDriver",
    "ResumeTrigger",
    "SystemClock",
    "SystemExitHost",
]
