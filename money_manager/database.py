"""Store connector: one shared async engine per process."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, List, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import Result
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from .config import normalize_database_url
from .errors import (
    ConfigurationError,
    ConnectivityError,
    ServiceUnavailableError,
    StoreTimeoutError,
)
from .models import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Store:
    """Handle to the relational store, passed to handlers as a dependency.

    Every statement runs in its own short session and is bounded by
    ``timeout`` seconds; on expiry the in-flight driver call is cancelled and
    ``StoreTimeoutError`` is raised.
    """

    def __init__(self, engine: AsyncEngine, timeout: Optional[float] = None):
        self.engine: Optional[AsyncEngine] = engine
        self.timeout = timeout
        self._sessionmaker = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @classmethod
    async def connect(cls, database_url: Optional[str], timeout: Optional[float] = None) -> "Store":
        """Open the pool, verify reachability and ensure the tables exist."""
        url = normalize_database_url(database_url)
        try:
            engine = create_async_engine(url, echo=False, future=True)
        except (SQLAlchemyError, ImportError) as e:
            raise ConfigurationError(f"Unsupported DATABASE_URL: {e}") from e

        if engine.dialect.name == "sqlite":
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        store = cls(engine, timeout=timeout)
        safe_url = engine.url.render_as_string(hide_password=True)
        try:
            await store.ping()
        except (SQLAlchemyError, OSError, StoreTimeoutError) as e:
            await store.close()
            raise ConnectivityError(f"Failed to ping database at {safe_url}: {e}") from e
        logger.info("Database connection established: %s", safe_url)

        try:
            await store.create_tables()
        except (SQLAlchemyError, OSError, StoreTimeoutError) as e:
            await store.close()
            raise ConnectivityError(f"Failed to create tables: {e}") from e
        logger.info("Tables created successfully")
        return store

    @property
    def closed(self) -> bool:
        return self.engine is None

    async def close(self) -> None:
        if self.engine is None:
            return
        engine, self.engine = self.engine, None
        await engine.dispose()
        logger.info("Database connection closed")

    async def _bounded(self, awaitable):
        if self.timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, self.timeout)
        except asyncio.TimeoutError as e:
            raise StoreTimeoutError() from e

    def _require_engine(self) -> AsyncEngine:
        if self.engine is None:
            raise ServiceUnavailableError()
        return self.engine

    async def ping(self) -> None:
        engine = self._require_engine()

        async def _ping():
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

        await self._bounded(_ping())

    async def create_tables(self) -> None:
        engine = self._require_engine()

        async def _create():
            # create_all checks for each table first and never alters existing ones
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        await self._bounded(_create())

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        self._require_engine()
        async with self._sessionmaker() as session:
            yield session

    async def execute(self, statement, consume: Callable[[Result], Any]) -> Any:
        """Run one statement, hand its result to ``consume`` and commit."""

        async def _run():
            async with self.session() as session:
                result = await session.execute(statement)
                value = consume(result)
                await session.commit()
                return value

        return await self._bounded(_run())

    async def scalar(self, statement) -> Any:
        return await self.execute(statement, lambda result: result.scalar_one_or_none())

    async def scalars(self, statement) -> List[Any]:
        return await self.execute(statement, lambda result: list(result.scalars().all()))

    async def rowcount(self, statement) -> int:
        return await self.execute(statement, lambda result: result.rowcount)
