"""CursorStore: the durable execution position of a pipeline run.

Key layout (table autobuild_state):
    pipeline.step_index        index into the assembled step list
    pipeline.retry_count       attempts started for that step, minus one (-1 = none)
    step.<name>.<key>          step-local sub-progress, scoped by step name
    host.<key>                 host facts that outlive a run (not cleared)

Every write is its own committed transaction and returns only once it is
durable. Nothing here relies on cleanup code running after a kill.
"""

import json
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Connection, delete, insert, or_, select

from autobuild.contracts.cursor import NOT_ATTEMPTED, Cursor
from autobuild.contracts.errors import CursorError
from autobuild.core.cursor.database import StateDB
from autobuild.core.cursor.schema import state_table

STEP_INDEX_KEY = "pipeline.step_index"
RETRY_COUNT_KEY = "pipeline.retry_count"
PIPELINE_PREFIX = "pipeline."
STEP_PREFIX = "step."
HOST_PREFIX = "host."


def _read(conn: Connection, key: str) -> Any:
    row = conn.execute(select(state_table.c.value).where(state_table.c.key == key)).fetchone()
    if row is None:
        return None
    return json.loads(row.value)


def _write(conn: Connection, key: str, value: Any) -> None:
    conn.execute(delete(state_table).where(state_table.c.key == key))
    conn.execute(insert(state_table).values(key=key, value=json.dumps(value), updated_at=datetime.now(UTC)))


class CursorStore:
    """Crash-surviving key/value store holding the pipeline cursor.

    Invariant: a cursor is present if and only if a run is in progress.

    Usage:
        store = CursorStore(StateDB.from_path(Path(".autobuild/state.db")))
        attempt = store.begin_step(2)   # persisted before the action runs
        ...
        store.advance(3)                # persisted after the action returns
        store.clear()                   # terminal success or abort
    """

    def __init__(self, db: StateDB) -> None:
        self._db = db

    @property
    def db(self) -> StateDB:
        return self._db

    # === Cursor ===

    def load_cursor(self) -> Cursor | None:
        """Read the cursor, or None when no run is in progress.

        Raises:
            CursorError: If the stored values are not a valid cursor
        """
        with self._db.connection() as conn:
            step_index = _read(conn, STEP_INDEX_KEY)
            retry_count = _read(conn, RETRY_COUNT_KEY)
        if step_index is None:
            return None
        if retry_count is None:
            retry_count = NOT_ATTEMPTED
        try:
            return Cursor(step_index=int(step_index), retry_count=int(retry_count))
        except (TypeError, ValueError) as e:
            raise CursorError(f"Corrupt pipeline cursor: {e}") from e

    @property
    def is_running(self) -> bool:
        """Whether a pipeline run is in progress."""
        return self.load_cursor() is not None

    def begin_step(self, step_index: int) -> int:
        """Record that an attempt of step_index is starting.

        Atomically sets the step index and increments the retry count.

        Returns:
            The new retry count (0 for a first attempt)
        """
        with self._db.connection() as conn:
            previous = _read(conn, RETRY_COUNT_KEY)
            retry_count = (NOT_ATTEMPTED if previous is None else int(previous)) + 1
            _write(conn, STEP_INDEX_KEY, step_index)
            _write(conn, RETRY_COUNT_KEY, retry_count)
        return retry_count

    def advance(self, step_index: int) -> None:
        """Move the cursor to step_index with no attempts started."""
        with self._db.connection() as conn:
            _write(conn, STEP_INDEX_KEY, step_index)
            _write(conn, RETRY_COUNT_KEY, NOT_ATTEMPTED)

    def reset_attempts(self) -> None:
        """Reset the retry count of the current step (cursor index unchanged)."""
        with self._db.connection() as conn:
            _write(conn, RETRY_COUNT_KEY, NOT_ATTEMPTED)

    def clear(self) -> int:
        """Delete the cursor and every step-scoped key.

        Returns:
            Number of keys deleted
        """
        with self._db.connection() as conn:
            result = conn.execute(
                delete(state_table).where(
                    or_(
                        state_table.c.key.startswith(PIPELINE_PREFIX, autoescape=True),
                        state_table.c.key.startswith(STEP_PREFIX, autoescape=True),
                    )
                )
            )
            return result.rowcount

    # === Raw key access ===

    def get(self, key: str, default: Any = None) -> Any:
        with self._db.connection() as conn:
            value = _read(conn, key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        if value is None:
            raise ValueError(f"Cannot store None for {key!r}; use delete()")
        with self._db.connection() as conn:
            _write(conn, key, value)

    def delete(self, key: str) -> None:
        with self._db.connection() as conn:
            conn.execute(delete(state_table).where(state_table.c.key == key))

    def items(self, prefix: str = "") -> dict[str, Any]:
        """All keys under prefix, sorted, with decoded values."""
        query = select(state_table.c.key, state_table.c.value).order_by(state_table.c.key)
        if prefix:
            query = query.where(state_table.c.key.startswith(prefix, autoescape=True))
        with self._db.connection() as conn:
            rows = conn.execute(query).fetchall()
        return {row.key: json.loads(row.value) for row in rows}

    def scope(self, step_name: str) -> "StepProgress":
        """Progress scope for a step's sub-progress keys."""
        return StepProgress(self, step_name)


class StepProgress:
    """Step-local sub-progress, namespaced under the step's name.

    A step that does several units of work (one build per platform) records
    how far it got here, so a retried attempt skips finished units. The
    driver never inspects these keys.
    """

    def __init__(self, store: CursorStore, step_name: str) -> None:
        self._store = store
        self._step_name = step_name

    @property
    def step_name(self) -> str:
        return self._step_name

    @property
    def prefix(self) -> str:
        return f"{STEP_PREFIX}{self._step_name}."

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get_int(self, key: str, default: int = 0) -> int:
        return int(self._store.get(self._key(key), default))

    def set_int(self, key: str, value: int) -> None:
        self._store.set(self._key(key), int(value))

    def get_str(self, key: str, default: str | None = None) -> str | None:
        value = self._store.get(self._key(key))
        return default if value is None else str(value)

    def set_str(self, key: str, value: str) -> None:
        self._store.set(self._key(key), str(value))

    def delete(self, key: str) -> None:
        self._store.delete(self._key(key))

    def items(self) -> dict[str, Any]:
        """Keys in this scope (without the scope prefix)."""
        return {key[len(self.prefix) :]: value for key, value in self._store.items(self.prefix).items()}

    def reset_attempts(self) -> None:
        """Give the running step a fresh retry budget.

        Call after persisting a completed unit of work, before starting work
        that may restart the process.
        """
        self._store.reset_attempts()
