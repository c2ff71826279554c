"""Durable cursor store: crash-surviving execution position of a pipeline run."""

from autobuild.core.cursor.database import StateDB
from autobuild.core.cursor.store import (
    HOST_PREFIX,
    RETRY_COUNT_KEY,
    STEP_INDEX_KEY,
    CursorStore,
    StepProgress,
)

__all__ = [
    "HOST_PREFIX",
    "RETRY_COUNT_KEY",
    "STEP_INDEX_KEY",
    "CursorStore",
    "StateDB",
    "StepProgress",
]
