"""Database handle: async engine, session factory and the request dependency."""

import logging
from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from taskboard.core.errors import StoreError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    """Explicitly constructed store handle.

    The engine is built eagerly so a malformed URL or a missing driver fails
    here. ``connect()`` creates the schema and proves the server is reachable;
    until it has succeeded every session request raises ``StoreError``.
    """

    def __init__(self, url: str, *, echo: bool = False):
        self.url = url
        self.engine = create_async_engine(url, echo=echo)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    async def connect(self) -> None:
        # Register the mapped tables on Base.metadata before create_all.
        from taskboard import models  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error("Database connection failed url=%s: %s", self.engine.url, e)
            raise StoreError("Database is unreachable") from e

        self._ready = True
        logger.info("Database ready url=%s", self.engine.url)

    async def dispose(self) -> None:
        self._ready = False
        await self.engine.dispose()

    async def session(self) -> AsyncIterator[AsyncSession]:
        if not self._ready:
            raise StoreError("Database is not connected")
        async with self.session_factory() as session:
            yield session


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    database: Database = request.app.state.database
    async for session in database.session():
        yield session
