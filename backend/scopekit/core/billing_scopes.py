"""Billing Scopes: named filters and eager-load declarations for accounts and invoices.

Invariants:
    - Multi-condition filters are a single scope (active, outstanding)
    - Scope functions only build expressions against the model passed in

Design Decisions:
    - Enum values compared via .value: state columns are plain String columns
"""

from datetime import datetime
from enum import Enum
from typing import Iterable

from sqlalchemy import ColumnElement, and_

from scopekit.core.billing_states import (
    ACCOUNT_LIFECYCLE, AccountState, InvoiceState,
)
from scopekit.core.domain_types import AccountKey
from scopekit.core.eager_load import EagerLoadPlanner
from scopekit.core.lifecycle import Lifecycle
from scopekit.core.scopes import scope


def _values(states: Iterable) -> list[str]:
    return [s.value if isinstance(s, Enum) else s for s in states]


@scope
def active(model) -> ColumnElement[bool]:
    """Active, verified and not suspended."""
    return and_(
        model.state == AccountState.ACTIVE.value,
        model.verified_at.is_not(None),
        model.suspended_at.is_(None),
    )


@scope
def in_region(model, region: str) -> ColumnElement[bool]:
    return model.region == region


@scope
def in_states(model, states: Iterable) -> ColumnElement[bool]:
    return model.state.in_(_values(states))


@scope
def editable(model, lifecycle: Lifecycle = ACCOUNT_LIFECYCLE) -> ColumnElement[bool]:
    return model.state.in_(sorted(_values(lifecycle.editable_states())))


@scope
def created_after(model, moment: datetime) -> ColumnElement[bool]:
    return model.created_at > moment


@scope
def name_contains(model, text: str) -> ColumnElement[bool]:
    return model.name.icontains(text, autoescape=True)


@scope
def belongs_to(model, account_keys: Iterable[AccountKey]) -> ColumnElement[bool]:
    return model.account_key.in_(list(account_keys))


@scope
def outstanding(model) -> ColumnElement[bool]:
    """Issued, dated and still owing money."""
    return and_(
        model.state == InvoiceState.ISSUED.value,
        model.issued_at.is_not(None),
        model.amount_cents > 0,
    )


BILLING_EAGER_LOADS = EagerLoadPlanner({
    "account_list": (),
    "account_detail": ("invoices", "invoices.lines"),
    "billing_overview": ("invoices",),
    "invoice_list": ("lines",),
})
