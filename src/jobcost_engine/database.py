"""Database connection, session and transaction management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from jobcost_engine.exceptions import TransactionConflictError
from jobcost_engine.models import Base

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.ext.asyncio import AsyncEngine

    from jobcost_engine.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected
_CONFLICT_SQLSTATES = {"40001", "40P01"}


def is_conflict_error(exc: BaseException) -> bool:
    """Check whether a DBAPI error means a concurrent transaction won."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return True
    # SQLite reports writer contention as an OperationalError
    return "database is locked" in str(orig)


class Database:
    """Owns an async engine and its session factory.

    Constructed once by the application and passed to whoever needs sessions;
    nothing here is module-global.
    """

    def __init__(self, url: str, **engine_kwargs):
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        """Create a database from settings, pooling only for server databases."""
        kwargs: dict = {"echo": settings.debug}
        if not settings.database_url.startswith("sqlite"):
            kwargs.update(pool_pre_ping=True, pool_size=10, max_overflow=20)
        return cls(settings.database_url, **kwargs)

    def unit_of_work(self, isolation_level: str | None = None) -> UnitOfWork:
        """Start a new unit of work bound to this database."""
        return UnitOfWork(self.session_factory, isolation_level=isolation_level)

    async def create_all(self) -> None:
        """Create all tables (tests and local development)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


class UnitOfWork:
    """Explicit transaction boundary around one session.

    Usage::

        async with db.unit_of_work("SERIALIZABLE") as uow:
            await SettlementService(uow.session, company_id).settle(...)

    Leaving the block normally commits; an exception rolls back. ``commit`` and
    ``rollback`` can also be called directly. Serialization failures and
    deadlocks surface as ``TransactionConflictError``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        isolation_level: str | None = None,
    ):
        self._session_factory = session_factory
        self.isolation_level = isolation_level
        self._session: AsyncSession | None = None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("Unit of work has not begun")
        return self._session

    async def begin(self) -> AsyncSession:
        """Open the session and start its transaction."""
        self._session = self._session_factory()
        if self.isolation_level:
            await self._session.connection(
                execution_options={"isolation_level": self.isolation_level}
            )
        return self._session

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except DBAPIError as e:
            await self.session.rollback()
            if is_conflict_error(e):
                logger.warning("Transaction conflict on commit: %s", e.orig)
                raise TransactionConflictError(str(e.orig)) from e
            raise

    async def rollback(self) -> None:
        await self.session.rollback()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> UnitOfWork:
        await self.begin()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if exc is None:
                await self.commit()
                return
            await self.rollback()
            if is_conflict_error(exc):
                logger.warning("Transaction conflict, rolled back: %s", exc)
                raise TransactionConflictError(str(exc)) from exc
        finally:
            await self.close()


async def with_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    isolation_level: str | None = None,
) -> T:
    """Run ``work`` inside a unit of work and return its result."""
    async with UnitOfWork(session_factory, isolation_level=isolation_level) as uow:
        return await work(uow.session)
