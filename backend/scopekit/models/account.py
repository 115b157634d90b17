"""Account ORM: the entity scoped by the billing query plans.

Invariants:
    - key is a UUID primary key
    - state holds an AccountState value (String column, validated by ACCOUNT_LIFECYCLE)
    - an account counts as active only when verified and not suspended (see billing_scopes.active)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scopekit.core.billing_states import AccountState
from scopekit.db.base import Base


class Account(Base):
    """Billing account."""
    __tablename__ = "accounts"

    key: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    region: Mapped[str] = mapped_column(String(8), nullable=False, index=True)
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccountState.PENDING.value, index=True,
    )
    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    suspended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    invoices: Mapped[list["Invoice"]] = relationship(
        "Invoice", back_populates="account",
        cascade="all, delete-orphan", lazy="raise",
        order_by="Invoice.number",
    )
