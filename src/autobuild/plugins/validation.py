"""Step descriptor validation.

Validates descriptors supplied by plugins BEFORE they enter the step list,
and normalises every accepted action into a coroutine taking the shared
BuildContext.

Design:
- Validation is separate from registration (the registry decides what to
  do with a rejected descriptor: it skips it and logs a warning)
- Rejections are StepValidationError, carrying the step name and reason
- An accepted action takes no parameters or exactly one positional
  parameter that a BuildContext can be passed to
- A sync action must not declare a return value other than None or an
  awaitable; coroutine functions are always accepted

Usage:
    try:
        step = validate_descriptor(descriptor, discovery_index=3)
    except StepValidationError as e:
        logger.warning(str(e))
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any, get_origin

from autobuild.contracts.context import BuildContext
from autobuild.contracts.enums import InterruptionPolicy
from autobuild.contracts.errors import StepValidationError
from autobuild.contracts.step import Step, StepDescriptor, StepRunner

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
_NONE_ANNOTATIONS = (None, type(None), "None")


def _signature(action: Callable[..., Any]) -> inspect.Signature:
    # Annotations naming TYPE_CHECKING-only imports cannot be evaluated;
    # fall back to the raw strings and compare by name.
    try:
        return inspect.signature(action, eval_str=True)
    except NameError:
        return inspect.signature(action)


def _accepts_context(annotation: Any) -> bool:
    if annotation is inspect.Parameter.empty:
        return True
    if isinstance(annotation, str):
        return annotation.rsplit(".", 1)[-1] == BuildContext.__name__
    return isinstance(annotation, type) and issubclass(BuildContext, annotation)


def _returns_nothing_or_awaitable(annotation: Any) -> bool:
    if annotation is inspect.Signature.empty or annotation in _NONE_ANNOTATIONS:
        return True
    if isinstance(annotation, str):
        return annotation.startswith(("Awaitable", "Coroutine"))
    origin = get_origin(annotation) or annotation
    return isinstance(origin, type) and issubclass(origin, Awaitable)


def _is_coroutine_action(action: Callable[..., Any]) -> bool:
    return inspect.iscoroutinefunction(action) or inspect.iscoroutinefunction(getattr(action, "__call__", None))


def _build_runner(action: Callable[..., Any], takes_context: bool) -> StepRunner:
    """Wrap an action so the driver can always ``await run(context)``."""

    async def run(context: BuildContext) -> None:
        result = action(context) if takes_context else action()
        if inspect.isawaitable(result):
            await result

    return run


def validate_descriptor(descriptor: Any, discovery_index: int) -> Step:
    """Validate a descriptor and build the Step it describes.

    Args:
        descriptor: Object returned by a plugin's autobuild_get_steps hook
        discovery_index: Position in registration order

    Returns:
        Validated Step

    Raises:
        StepValidationError: If the descriptor is malformed
    """
    if not isinstance(descriptor, StepDescriptor):
        raise StepValidationError(repr(descriptor), f"expected StepDescriptor, got {type(descriptor).__name__}")

    name = descriptor.name
    if not isinstance(name, str) or not name.strip():
        raise StepValidationError(repr(name), "step name must be a non-empty string")
    if not isinstance(descriptor.order, int) or isinstance(descriptor.order, bool):
        raise StepValidationError(name, f"order must be an int, got {descriptor.order!r}")
    if not isinstance(descriptor.policy, InterruptionPolicy):
        raise StepValidationError(name, f"policy must be an InterruptionPolicy, got {descriptor.policy!r}")
    if not isinstance(descriptor.retry_limit, int) or isinstance(descriptor.retry_limit, bool):
        raise StepValidationError(name, f"retry_limit must be an int, got {descriptor.retry_limit!r}")
    if descriptor.retry_limit < 0:
        raise StepValidationError(name, f"retry_limit must be >= 0, got {descriptor.retry_limit}")

    action = descriptor.action
    if not callable(action):
        raise StepValidationError(name, "action is not callable")

    try:
        signature = _signature(action)
    except (TypeError, ValueError) as e:
        raise StepValidationError(name, f"cannot inspect action signature: {e}") from e

    params = list(signature.parameters.values())
    if len(params) > 1:
        raise StepValidationError(name, f"action must take at most one parameter, takes {len(params)}")
    if params:
        param = params[0]
        if param.kind not in _POSITIONAL:
            raise StepValidationError(name, f"action parameter {param.name!r} must be positional")
        if not _accepts_context(param.annotation):
            raise StepValidationError(
                name,
                f"action parameter {param.name!r} is annotated {param.annotation!r}, which cannot receive a BuildContext",
            )

    if not _is_coroutine_action(action) and not _returns_nothing_or_awaitable(signature.return_annotation):
        raise StepValidationError(
            name,
            f"sync action must return None or an awaitable, is annotated {signature.return_annotation!r}",
        )

    return Step(
        name=name,
        order=descriptor.order,
        policy=descriptor.policy,
        retry_limit=descriptor.retry_limit,
        discovery_index=discovery_index,
        run=_build_runner(action, takes_context=bool(params)),
    )
