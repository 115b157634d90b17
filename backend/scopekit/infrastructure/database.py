"""Database Session Manager: async connection pool with automatic rollback and health checks.

Invariants:
    - Every session auto-rolls-back on exception (no partial commits leak)
    - All SQLAlchemy exceptions are mapped to ExecutionError (core/errors.py) with a reason
    - Nothing is retried: the manager cannot know whether the operation was idempotent

Design Decisions:
    - No process-wide instance: callers build a manager from Settings and own its lifetime
    - expire_on_commit=False: prevents lazy-load issues in async context
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

from scopekit.core.errors import ExecutionError

logger = logging.getLogger(__name__)


def _engine_kwargs(database_url: str, pool_size: int, echo: bool) -> dict:
    kwargs: dict = {"echo": echo, "pool_pre_ping": True}
    # SQLite uses a static/single-connection pool that rejects sizing arguments
    if not database_url.startswith("sqlite"):
        kwargs.update(pool_size=pool_size, pool_recycle=3600)
    return kwargs


class DatabaseSessionManager:
    """Manages async database sessions with pooling, rollback, and health checks."""

    def __init__(
        self, database_url: str, pool_size: int = 10, echo: bool = False,
    ):
        self.engine = create_async_engine(
            database_url, **_engine_kwargs(database_url, pool_size, echo),
        )
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.error(f"DB integrity error: {e}")
            raise ExecutionError("Integrity constraint violated", "integrity") from e
        except OperationalError as e:
            await session.rollback()
            logger.error(f"DB operational error: {e}")
            raise ExecutionError("Connection or operational error", "connectivity") from e
        except DBAPIError as e:
            await session.rollback()
            logger.error(f"DB driver error: {e}")
            raise ExecutionError("Database driver error", "driver") from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"SQLAlchemy error: {e}")
            raise ExecutionError("Database operation failed", "database") from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except ExecutionError as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()

