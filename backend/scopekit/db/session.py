"""Async Session Factory: async DB sessions for scripts and test fixtures.

Invariants:
    - expire_on_commit=False so loaded entities stay readable after commit

Design Decisions:
    - Separate from infrastructure/database.py: no pooling or error mapping here,
      just the raw factory
"""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker


def create_session_factory(
    database_url: str, echo: bool = False,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory for the given database URL."""
    engine = create_async_engine(database_url, echo=echo)
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
