"""ORM Models: SQLAlchemy declarative models for the billing reference domain.

Invariants:
    - All models inherit from Base (db/base.py)
    - Relationships use lazy="raise": every related collection must be eager-loaded
      through a declared load context

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from scopekit.models.account import Account  # noqa: F401
from scopekit.models.invoice import Invoice, InvoiceLine  # noqa: F401
