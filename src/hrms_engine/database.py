"""Database handle and transactional unit-of-work runner.

The engine and session factory live on an explicit ``Database`` object that
callers construct, pass to services, and dispose. Nothing here is module-global.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hrms_engine.errors import ConflictError, translate_storage_errors
from hrms_engine.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from hrms_engine.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_engine_for(database_url: str, timeout_seconds: float = 10.0) -> AsyncEngine:
    """Create async database engine with connection-level timeouts."""
    if database_url.startswith("sqlite"):
        # sqlite3 treats ``timeout`` as the busy-wait for a locked database
        return create_async_engine(
            database_url,
            echo=False,
            connect_args={"timeout": timeout_seconds},
        )
    return create_async_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=timeout_seconds,
        connect_args={"timeout": timeout_seconds, "command_timeout": timeout_seconds},
    )


class Database:
    """Storage handle: an engine plus its session factory."""

    def __init__(
        self,
        engine: AsyncEngine,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 0.05,
    ):
        self.engine = engine
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        """Build a handle from application settings."""
        return cls(
            create_engine_for(settings.database_url, settings.db_pool_timeout_seconds),
            retry_attempts=settings.conflict_retry_attempts,
            retry_backoff_seconds=settings.conflict_retry_backoff_seconds,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    async def create_all(self) -> None:
        """Create all tables (development and tests; production uses migrations)."""
        with translate_storage_errors():
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Open a session that commits on success and rolls back on error.

        SQLAlchemy failures raised inside the block, or by the commit, surface
        as ConflictError or StorageUnavailableError.
        """
        with translate_storage_errors():
            async with self._session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

    async def run_in_transaction(
        self,
        work: Callable[[AsyncSession], Awaitable[T]],
        *,
        attempts: int | None = None,
    ) -> T:
        """Run ``work`` in its own transaction, retrying on ConflictError.

        Every attempt gets a fresh session, so a retry restarts the whole
        unit of work rather than resuming a partially applied one.
        """
        max_attempts = attempts or self.retry_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                async with self.session() as session:
                    return await work(session)
            except ConflictError:
                if attempt >= max_attempts:
                    logger.warning(
                        "Giving up after %d conflicting attempt(s)", attempt
                    )
                    raise
                delay = self.retry_backoff_seconds * (2 ** (attempt - 1))
                logger.info(
                    "Transaction conflict on attempt %d/%d, retrying in %.3fs",
                    attempt,
                    max_attempts,
                    delay,
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")
