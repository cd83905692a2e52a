"""Database connection manager for the registrar store."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from coursegate.store.models import Base

if TYPE_CHECKING:
    from sqlalchemy import Engine

DEFAULT_BUSY_TIMEOUT_MS = 30_000


class Database:
    """Database connection manager.

    Manages SQLite database connections with WAL mode, foreign keys and a
    busy timeout so writers for different students queue instead of failing.
    """

    def __init__(
        self,
        db_path: str = "coursegate.db",
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    ) -> None:
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Use ":memory:" for in-memory DB.
            busy_timeout_ms: How long a writer waits on a locked database.
        """
        self.db_path = db_path
        self.busy_timeout_ms = busy_timeout_ms
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            # An in-memory database lives in one connection. A single-slot
            # pool hands it to one session at a time, so one session's
            # commit or rollback never lands on another's transaction.
            if self.db_path == ":memory:":
                self._engine = create_engine(
                    "sqlite:///:memory:",
                    echo=False,
                    poolclass=QueuePool,
                    pool_size=1,
                    max_overflow=0,
                    pool_timeout=self.busy_timeout_ms / 1000,
                    connect_args={"check_same_thread": False},
                )
            else:
                self._engine = create_engine(
                    f"sqlite:///{self.db_path}",
                    echo=False,
                    connect_args={
                        "check_same_thread": False,
                        "timeout": self.busy_timeout_ms / 1000,
                    },
                )

            busy_timeout_ms = self.busy_timeout_ms

            @event.listens_for(self._engine, "connect")
            def set_sqlite_pragma(dbapi_connection: object, _connection_record: object) -> None:
                cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
                cursor.close()

        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
            )
        return self._session_factory

    def create_tables(self) -> None:
        """Create all tables if they don't exist."""
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session.

        Returns:
            A new SQLAlchemy session.
        """
        return self.session_factory()

    def begin_write(self, session: Session) -> None:
        """Take the database write lock before the session's first read.

        Must be the session's first statement. Reads that follow see no
        concurrent writer until commit or rollback, so check-then-insert runs
        against a stable snapshot.

        Args:
            session: A session with no statements executed yet.
        """
        session.execute(text("BEGIN IMMEDIATE"))

    def is_wal_mode(self) -> bool:
        """Check if WAL mode is enabled.

        Returns:
            True if WAL mode is enabled.
        """
        with self.engine.connect() as conn:
            result = conn.execute(text("PRAGMA journal_mode"))
            mode = result.scalar()
            return mode == "wal"

    def close(self) -> None:
        """Close the database connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
