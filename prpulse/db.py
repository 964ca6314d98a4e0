"""
Database Management Layer.

Provides a DatabaseManager for:
- Connection pooling (PostgreSQL, file SQLite) / StaticPool (in-memory SQLite)
- Session management with context managers
- Running blocking session work off the event loop

Usage:
    from prpulse.db import db, Base

    db.initialize()
    with db.session() as session:
        record = session.get(PullRequestRecord, "pr-acme/widgets-1")

    # From async code (webhook pipeline, durable cache tier)
    count = await db.run(lambda session: session.query(WebhookLog).count())
"""

import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import Optional, TypeVar

from sqlalchemy import create_engine, event, make_url, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from starlette.concurrency import run_in_threadpool

from .config import get_settings

T = TypeVar("T")


def is_memory_sqlite(url: str) -> bool:
    """True for `sqlite://`, `sqlite:///:memory:` and `mode=memory` URIs."""
    parsed = make_url(url)
    database = parsed.database or ""
    return database in ("", ":memory:") or parsed.query.get("mode") == "memory"


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""

    pass


class DatabaseManager:
    """
    Database manager with connection pooling and health checks.

    The application creates one at startup; tests create their own against
    an in-memory SQLite URL.
    """

    def __init__(self):
        self._initialized = False
        self.engine = None
        self.SessionLocal: Optional[sessionmaker] = None

    def initialize(self, database_url: str | None = None) -> None:
        """
        Initialize database connection. Call once at app startup.

        Args:
            database_url: Optional override. Uses settings.database_url if not provided.
        """
        if self._initialized:
            return

        settings = get_settings()
        url = database_url or settings.database_url
        is_sqlite = url.startswith("sqlite")
        in_memory = is_sqlite and is_memory_sqlite(url)

        if in_memory:
            # One connection, or every session would see its own empty database
            connect_args = {"check_same_thread": False}
            pool_class: type[StaticPool | QueuePool] = StaticPool
            pool_config = {}
        elif is_sqlite:
            # A connection per session, so one session's rollback never
            # touches another's transaction
            connect_args = {"check_same_thread": False}
            pool_class = QueuePool
            pool_config = {"pool_size": settings.db_pool_size, "max_overflow": settings.db_max_overflow}
        else:
            connect_args = {}
            pool_class = QueuePool
            pool_config = {
                "pool_size": settings.db_pool_size,
                "max_overflow": settings.db_max_overflow,
                "pool_pre_ping": settings.db_pool_pre_ping,
            }

        self.engine = create_engine(
            url,
            poolclass=pool_class,
            connect_args=connect_args,
            echo=settings.debug,
            **pool_config,
        )

        if is_sqlite and not in_memory:

            @event.listens_for(self.engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                # Webhook writes and listing reads land on the same file from
                # different threadpool workers
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA busy_timeout=5000")
                cursor.close()

        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

        self._initialized = True

    def create_all_tables(self) -> None:
        """Create all tables defined by models."""
        self._ensure_initialized()
        # Register every mapped class on Base.metadata
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions with auto-commit/rollback.

        Usage:
            with db.session() as session:
                session.add(record)
        """
        self._ensure_initialized()
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    async def run(self, work: Callable[[Session], T]) -> T:
        """
        Run `work` inside a committed session on the threadpool.

        This is the only point where async callers suspend on SQL I/O.
        """
        def _in_session() -> T:
            with self.session() as session:
                return work(session)

        return await run_in_threadpool(_in_session)

    @property
    def is_initialized(self) -> bool:
        """Check if database manager is initialized."""
        return self._initialized

    def health_check(self) -> dict:
        """
        Perform database health check.

        Returns:
            dict with 'healthy' (bool), 'latency_ms' (float), and 'error' (str or None)
        """
        if not self._initialized:
            return {"healthy": False, "latency_ms": 0, "error": "Database not initialized"}

        start = time.perf_counter()
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            latency = (time.perf_counter() - start) * 1000
            return {"healthy": True, "latency_ms": round(latency, 2), "error": None}
        except Exception as e:
            latency = (time.perf_counter() - start) * 1000
            return {"healthy": False, "latency_ms": round(latency, 2), "error": str(e)}

    def reset(self) -> None:
        """Dispose the engine and return to the uninitialized state."""
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.SessionLocal = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        """Raise error if not initialized."""
        if not self._initialized:
            raise RuntimeError("DatabaseManager not initialized. Call initialize() first.")


# Process-wide manager used by the FastAPI app; initialized in startup.
db = DatabaseManager()


__all__ = ["Base", "DatabaseManager", "db", "is_memory_sqlite"]
