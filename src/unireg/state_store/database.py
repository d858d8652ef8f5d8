"""SQLite engine and session management for the State Store."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from unireg.state_store.models import Base

if TYPE_CHECKING:
    from sqlalchemy import Engine

MEMORY = ":memory:"

# Request threads and the outbox worker write concurrently; wait instead of
# failing with "database is locked".
BUSY_TIMEOUT_MS = 5000


def _set_sqlite_pragmas(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
    cursor.close()


def _build_engine(db_path: str) -> Engine:
    if db_path == MEMORY:
        # One shared connection so every thread (TestClient, worker) sees the same DB
        engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{db_path}",
            connect_args={"check_same_thread": False},
        )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


class Database:
    """Owns the SQLAlchemy engine and session factory for one SQLite file.

    Both are created on first use and released by ``close``.
    """

    def __init__(self, db_path: str = "unireg.db") -> None:
        """Initialize the manager.

        Args:
            db_path: Path to the SQLite file, or ":memory:" for an in-memory DB.
        """
        self.db_path = db_path
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine:
        """The engine, created on first access."""
        if self._engine is None:
            self._engine = _build_engine(self.db_path)
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Session factory; objects stay loaded after commit."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory

    def create_tables(self) -> None:
        """Create missing tables."""
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Return a new session; the caller closes it."""
        return self.session_factory()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Open a session wrapped in a single transaction.

        Commits when the block exits normally and rolls back if it raises.
        The session is closed either way; loaded objects stay usable because
        the session factory does not expire them on commit.

        Yields:
            The session bound to the open transaction.
        """
        session = self.get_session()
        try:
            with session.begin():
                yield session
        finally:
            session.close()

    def table_names(self) -> list[str]:
        """Names of the tables present, sorted."""
        return sorted(inspect(self.engine).get_table_names())

    def is_wal_mode(self) -> bool:
        """Whether the connection uses write-ahead logging."""
        with self.engine.connect() as conn:
            return conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"

    def close(self) -> None:
        """Dispose of the engine; the next access reconnects."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None
