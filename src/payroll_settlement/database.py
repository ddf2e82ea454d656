"""Database handle, session management, and storage helpers."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncGenerator, Awaitable, TypeVar

from sqlalchemy import event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payroll_settlement.errors import StorageUnavailable

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

T = TypeVar("T")


class Database:
    """Explicit storage handle: open at process start, close at shutdown.

    Services never reach for a module-level engine; they receive a session
    created from the handle that the application constructed.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("Database is not open")
        return self._session_factory

    def open(self) -> Database:
        """Create the engine and session factory."""
        if self._engine is not None:
            return self

        if self.is_sqlite:
            engine = create_async_engine(
                self.url,
                echo=self.echo,
                connect_args={"timeout": 30},
            )
            _serialize_sqlite_writers(engine)
        else:
            engine = create_async_engine(
                self.url,
                echo=self.echo,
                pool_pre_ping=True,
                pool_size=10,
                max_overflow=20,
            )

        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        return self

    async def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None

    async def create_all(self) -> None:
        """Create all tables (development and tests; production uses migrations)."""
        from payroll_settlement.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session, committing on success."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


def _serialize_sqlite_writers(engine: AsyncEngine) -> None:
    """Start every SQLite transaction with BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write, so two connections that
    both read before writing deadlock on lock upgrade instead of waiting.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def dialect_insert(session: AsyncSession, model: Any) -> Any:
    """Return an INSERT construct that supports ON CONFLICT for the bound dialect."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"ON CONFLICT inserts are not supported on {dialect}")


async def with_deadline(operation: Awaitable[T], timeout: float) -> T:
    """Await a storage-bound operation, surfacing hangs as a retryable error."""
    try:
        return await asyncio.wait_for(operation, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise StorageUnavailable(f"Operation exceeded {timeout}s deadline") from exc
    except OperationalError as exc:
        raise StorageUnavailable(f"Storage unavailable: {exc.orig}") from exc
    except DBAPIError as exc:
        if not exc.connection_invalidated:
            raise
        raise StorageUnavailable(f"Storage connection lost: {exc.orig}") from exc
