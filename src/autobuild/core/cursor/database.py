"""Database connection management for the durable cursor store.

SQLite with WAL journaling and synchronous=FULL: a write that returned has
reached disk, which is what lets the driver persist the cursor before an
action starts and trust it after a kill.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Self

from sqlalchemy import Connection, create_engine, event
from sqlalchemy.engine import Engine

from autobuild.core.cursor.schema import metadata


class StateDB:
    """Cursor store database connection manager."""

    def __init__(self, connection_string: str) -> None:
        """Initialize database connection and create tables.

        Args:
            connection_string: SQLAlchemy connection string
                e.g., "sqlite:///./.autobuild/state.db"
        """
        self.connection_string = connection_string
        self._engine: Engine | None = create_engine(connection_string, echo=False)
        if connection_string.startswith("sqlite"):
            StateDB._configure_sqlite(self._engine)
        metadata.create_all(self._engine)

    @staticmethod
    def _configure_sqlite(engine: Engine) -> None:
        """Register a connect hook setting durability pragmas.

        - PRAGMA journal_mode=WAL (crash-safe commits)
        - PRAGMA synchronous=FULL (commit waits for fsync)
        - PRAGMA busy_timeout=5000 (contention tolerance)
        """

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection: object, connection_record: object) -> None:
            cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=FULL")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine."""
        if self._engine is None:
            raise RuntimeError("Database not initialized")
        return self._engine

    def close(self) -> None:
        """Close database connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    @classmethod
    def in_memory(cls) -> Self:
        """Create an in-memory SQLite database for testing.

        Does not survive a simulated restart; use from_path() for that.
        """
        return cls("sqlite:///:memory:")

    @classmethod
    def from_path(cls, path: Path) -> Self:
        """Open (or create) a file-backed store, creating parent directories."""
        path = path.expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls(f"sqlite:///{path}")

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Get a connection inside a transaction.

        Commits on clean exit, rolls back on exception.
        """
        with self.engine.begin() as conn:
            yield conn
