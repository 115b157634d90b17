"""Invoice ORM: invoices and their lines, the related collections of an Account.

Invariants:
    - Always belongs to an Account (account_key FK)
    - amount_cents is the stored total; lines are informational detail
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Integer, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scopekit.core.billing_states import InvoiceState
from scopekit.db.base import Base


class Invoice(Base):
    __tablename__ = "invoices"

    key: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    account_key: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.key", ondelete="CASCADE"), nullable=False,
    )
    number: Mapped[str] = mapped_column(String(40), nullable=False)
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvoiceState.DRAFT.value,
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    issued_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    account: Mapped["Account"] = relationship(
        "Account", back_populates="invoices", lazy="raise",
    )
    lines: Mapped[list["InvoiceLine"]] = relationship(
        "InvoiceLine", back_populates="invoice",
        cascade="all, delete-orphan", lazy="raise",
        order_by="InvoiceLine.position",
    )


class InvoiceLine(Base):
    __tablename__ = "invoice_lines"

    key: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    invoice_key: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("invoices.key", ondelete="CASCADE"), nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    invoice: Mapped["Invoice"] = relationship(
        "Invoice", back_populates="lines", lazy="raise",
    )
