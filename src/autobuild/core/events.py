"""Event bus carrying pipeline events from the engine to presenters.

Only the event types in PIPELINE_EVENTS can be subscribed to. A formatter
map keyed on anything else is a wiring mistake and fails at subscription,
not silently at the first run that never prints.
"""

from collections import defaultdict
from collections.abc import Callable
from typing import Any, Protocol

from autobuild.contracts.events import PIPELINE_EVENTS, PipelineEvent

EventHandler = Callable[[Any], None]


class EventBusProtocol(Protocol):
    def subscribe(self, event_type: type, handler: EventHandler) -> None: ...

    def emit(self, event: PipelineEvent) -> None: ...


def _check_event_type(event_type: type) -> None:
    if event_type not in PIPELINE_EVENTS:
        known = ", ".join(t.__name__ for t in PIPELINE_EVENTS)
        raise TypeError(f"{event_type!r} is not a pipeline event (expected one of: {known})")


class EventBus:
    """Synchronous dispatch by exact event type, in subscription order.

    Handler exceptions propagate to whoever emitted the event.

    Example:
        bus = EventBus()
        bus.subscribe(StepStarted, lambda e: print(f"Running step {e.index}: {e.name}"))
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[type, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        """Register handler for event_type.

        Raises:
            TypeError: If event_type is not a pipeline event
        """
        _check_event_type(event_type)
        self._handlers[event_type].append(handler)

    def emit(self, event: PipelineEvent) -> None:
        for handler in self._handlers.get(type(event), ()):
            handler(event)


class NullEventBus:
    """Bus used when nothing presents events (library use, tests).

    Subscriptions are still type-checked so wiring mistakes surface the
    same way with or without a CLI.
    """

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        _check_event_type(event_type)

    def emit(self, event: PipelineEvent) -> None:
        pass
