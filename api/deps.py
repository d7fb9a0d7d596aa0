"""
FastAPI dependencies shared by every router.

The store client lives on ``app.state.database`` (created at startup), so
tests can swap it, or ``get_session`` directly, through
``app.dependency_overrides``.
"""

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.connection import Database
from studio.errors import StoreError, translate_store_error


def get_database(request: Request) -> Database:
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise StoreError("Database is not initialized.")
    return database


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield one session per request."""
    async with get_database(request).session() as session:
        yield session


async def commit_or_raise(session: AsyncSession, context: str) -> None:
    """Commit, translating store failures into typed studio errors."""
    try:
        await session.commit()
    except (SQLAlchemyError, TimeoutError) as e:
        await session.rollback()
        raise translate_store_error(e, context) from e


SessionDep = Annotated[AsyncSession, Depends(get_session)]
