"""Step descriptors and assembled steps.

A module contributes a pipeline step by handing a StepDescriptor to the
registry (see autobuild.plugins.hookspecs). The registry validates each
descriptor and turns it into an immutable Step whose ``run`` coroutine
accepts the shared BuildContext whatever the wrapped action's signature.

Usage:
    from autobuild.contracts.step import ORDER_UPLOAD, step

    @step("Notify", ORDER_UPLOAD + 100)
    async def notify(context: BuildContext) -> None:
        ...
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from autobuild.contracts.enums import InterruptionPolicy

if TYPE_CHECKING:
    from autobuild.contracts.context import BuildContext

ORDER_OPEN_INITIAL_SCENE = -1000
ORDER_SET_BUILD_METADATA = 9000
ORDER_BUILD = 10000
ORDER_UPLOAD = 20000
ORDER_FINISH = 50000

StepRunner = Callable[["BuildContext"], Awaitable[None]]


@dataclass(frozen=True)
class StepDescriptor:
    """Registration record for a step, as supplied by a plugin.

    Nothing here is trusted until the registry validates it.
    """

    name: str
    order: int
    action: Callable[..., Any] = field(compare=False)
    policy: InterruptionPolicy = InterruptionPolicy.CANCEL
    retry_limit: int = 1

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        """Invoke the wrapped action directly (keeps decorated functions callable)."""
        return self.action(*args, **kwargs)


@dataclass(frozen=True)
class Step:
    """A validated, ordered pipeline step.

    Only ``name`` and ``order`` identify a step across process restarts;
    the list is assembled fresh on every start.

    Attributes:
        name: Stable step name, also the scope for step-local progress keys
        order: Sort key (ascending)
        policy: Interruption policy applied on resume
        retry_limit: Extra attempts allowed after interruptions (RETRY only)
        discovery_index: Position in registration order, breaks order ties
        run: Coroutine function invoking the action with the shared context
    """

    name: str
    order: int
    policy: InterruptionPolicy
    retry_limit: int
    discovery_index: int
    run: StepRunner = field(compare=False, repr=False)

    @property
    def max_attempts(self) -> int:
        """Total attempts allowed for the step."""
        return self.retry_limit + 1


def step(
    name: str,
    order: int,
    *,
    policy: InterruptionPolicy = InterruptionPolicy.CANCEL,
    retry_limit: int = 1,
) -> Callable[[Callable[..., Any]], StepDescriptor]:
    """Decorator turning a function into a StepDescriptor.

    Args:
        name: Step name shown in logs and used to scope progress keys
        order: Sort key; see the ORDER_* constants for built-in positions
        policy: How an interruption of this step is handled on resume
        retry_limit: Retries allowed after interruptions under RETRY

    Returns:
        Decorator producing a StepDescriptor that is still callable
    """

    def decorator(action: Callable[..., Any]) -> StepDescriptor:
        return StepDescriptor(name=name, order=order, action=action, policy=policy, retry_limit=retry_limit)

    return decorator
