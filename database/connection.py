"""
Database store client.

The API owns exactly one ``Database`` instance: it is constructed at startup,
kept on ``app.state.database`` and disposed at shutdown. Nothing in the
codebase creates an engine at import time; services receive an
``AsyncSession`` (or the ``Database``) from their caller.

Every interaction with PostgreSQL is bounded:
- connect timeout (asyncpg ``timeout``)
- per-command timeout (asyncpg ``command_timeout``)
- server-side ``statement_timeout``
- pool checkout timeout (``pool_timeout``)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shared.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Database:
    """Explicitly constructed PostgreSQL store client (engine + session factory)."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Database":
        """Create a store client with pool and timeout limits from settings."""
        settings = settings or get_settings()
        statement_timeout_s = settings.DB_STATEMENT_TIMEOUT_MS / 1000

        engine = create_async_engine(
            settings.DATABASE_URL,
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            connect_args={
                "timeout": settings.DB_CONNECT_TIMEOUT,
                # Client-side guard slightly above the server-side one so the
                # server cancels first and reports SQLSTATE 57014
                "command_timeout": statement_timeout_s + 1,
                "server_settings": {
                    "statement_timeout": str(settings.DB_STATEMENT_TIMEOUT_MS),
                },
            },
        )
        logger.info(
            f"Database engine created: pool_size={settings.DB_POOL_SIZE}, "
            f"max_overflow={settings.DB_MAX_OVERFLOW}, "
            f"statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}ms"
        )
        return cls(engine)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session; roll back on error and always close.

        Usage:
            async with database.session() as session:
                ...
        """
        session = self.session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def ping(self) -> bool:
        """Return True when a trivial query succeeds."""
        async with self.session() as session:
            await session.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()
        logger.info("Database engine disposed")
