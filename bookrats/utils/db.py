"""Database connection and session management.

The engine lives on a `Database` handle that the application lifespan
creates once, stores on `app.state.db` and disposes on shutdown. Request
handlers receive sessions through the `get_db` dependency.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from bookrats.config import Settings
from bookrats.models.base import Base


class Database:
    """Owns the async engine and the session factory."""

    def __init__(self, url: str, **engine_kwargs: Any):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, future=True, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build the handle from application settings."""
        kwargs: dict[str, Any] = {"echo": settings.app_debug and settings.log_level == "DEBUG"}
        # SQLite uses a static/null pool that rejects sizing arguments
        if not settings.database_url.startswith("sqlite"):
            kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_recycle=settings.db_pool_recycle,
                pool_pre_ping=True,
            )
        return cls(settings.database_url, **kwargs)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for a unit of work.

        Usage:
            async with db.session() as session:
                result = await session.execute(...)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> None:
        """Round-trip a trivial statement to verify connectivity."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_all(self) -> None:
        """Create missing tables from the ORM metadata."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close the connection pool."""
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    """Return the process-wide handle attached by the lifespan."""
    return request.app.state.db


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session.

    Commits when the request handler returns normally, rolls back otherwise.

    Usage:
        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_database(request).session() as session:
        yield session


def is_unique_violation(
    exc: IntegrityError,
    constraint_name: str,
    table: str,
    columns: tuple[str, ...],
) -> bool:
    """Whether an IntegrityError was raised by the given unique constraint.

    PostgreSQL reports the constraint name; SQLite only lists the columns.
    """
    message = str(exc.orig)
    if constraint_name in message:
        return True
    column_list = ", ".join(f"{table}.{column}" for column in columns)
    return f"UNIQUE constraint failed: {column_list}" in message
