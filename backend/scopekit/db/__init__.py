"""Database Infrastructure: async session factory and SQLAlchemy Base.

Invariants:
    - All sessions are async (AsyncSession)

Design Decisions:
    - aiosqlite for local/test databases, asyncpg for PostgreSQL
"""
