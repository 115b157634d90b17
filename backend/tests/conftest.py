"""Root conftest: shared test configuration and database fixtures.

Invariants:
    - Every test gets a fresh in-memory SQLite database (StaticPool: one shared connection)
    - Seeded rows are committed through their own session, so tests read through a
      fresh identity map and eager loading is really exercised

Design Decisions:
    - SQLite in-memory via aiosqlite: fast, no external dependency
"""

import os
from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)
from sqlalchemy.pool import StaticPool

# Keep tests away from any developer .env database
os.environ.setdefault("SCOPEKIT_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from scopekit.core.billing_states import AccountState, InvoiceState  # noqa: E402
from scopekit.db.base import Base  # noqa: E402
from scopekit.models import Account, Invoice, InvoiceLine  # noqa: E402

VERIFIED = datetime(2024, 1, 10, tzinfo=timezone.utc)
SUSPENDED = datetime(2024, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", poolclass=StaticPool, echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


def _account(name, region, state, verified=True, suspended=False, created_day=1, invoices=()):
    return Account(
        name=name,
        region=region,
        state=state.value,
        verified_at=VERIFIED if verified else None,
        suspended_at=SUSPENDED if suspended else None,
        created_at=datetime(2024, 1, created_day, tzinfo=timezone.utc),
        invoices=list(invoices),
    )


@pytest.fixture
async def seed_accounts(test_session_factory) -> dict[str, Account]:
    """Accounts across {active, suspended, pending} x {EU, US}, keyed by name.

    Alpha EU owes 1000 (INV-1, issued), Charlie US owes 700, Bravo EU (suspended) owes 300.
    """
    accounts = [
        _account(
            "Alpha EU", "EU", AccountState.ACTIVE, created_day=2,
            invoices=[
                Invoice(
                    number="INV-1", state=InvoiceState.ISSUED.value,
                    amount_cents=1000, issued_at=VERIFIED,
                    lines=[
                        InvoiceLine(position=1, description="Seat", quantity=2, unit_cents=300),
                        InvoiceLine(position=2, description="Support", quantity=1, unit_cents=400),
                    ],
                ),
                Invoice(
                    number="INV-2", state=InvoiceState.PAID.value,
                    amount_cents=500, issued_at=VERIFIED,
                ),
                Invoice(number="INV-3", state=InvoiceState.DRAFT.value, amount_cents=200),
            ],
        ),
        _account(
            "Bravo EU", "EU", AccountState.SUSPENDED, suspended=True, created_day=3,
            invoices=[
                Invoice(
                    number="INV-5", state=InvoiceState.ISSUED.value,
                    amount_cents=300, issued_at=VERIFIED,
                ),
            ],
        ),
        _account(
            "Charlie US", "US", AccountState.ACTIVE, created_day=4,
            invoices=[
                Invoice(
                    number="INV-4", state=InvoiceState.ISSUED.value,
                    amount_cents=700, issued_at=VERIFIED,
                ),
            ],
        ),
        _account("Delta US", "US", AccountState.SUSPENDED, suspended=True, created_day=5),
        _account("Echo EU", "EU", AccountState.ACTIVE, verified=False, created_day=6),
        _account("Foxtrot EU", "EU", AccountState.PENDING, verified=False, created_day=7),
    ]
    async with test_session_factory() as session:
        session.add_all(accounts)
        await session.commit()
    return {a.name: a for a in accounts}
