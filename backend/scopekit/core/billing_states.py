"""Billing Lifecycles: account and invoice states with their presentation tables.

Invariants:
    - Tables are validated at import: a missing label/color/icon stops the process
    - Accounts are editable while pending or active; invoices only while draft
"""

from enum import Enum

from scopekit.core.lifecycle import Lifecycle


class AccountState(str, Enum):
    """Account lifecycle states, maps to DB `accounts.state` column."""
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CLOSED = "closed"


class InvoiceState(str, Enum):
    """Invoice lifecycle states, maps to DB `invoices.state` column."""
    DRAFT = "draft"
    ISSUED = "issued"
    PAID = "paid"
    VOID = "void"


ACCOUNT_LIFECYCLE = Lifecycle(
    AccountState,
    labels={
        AccountState.PENDING: "Pending",
        AccountState.ACTIVE: "Active",
        AccountState.SUSPENDED: "Suspended",
        AccountState.CLOSED: "Closed",
    },
    badge_colors={
        AccountState.PENDING: "yellow",
        AccountState.ACTIVE: "green",
        AccountState.SUSPENDED: "orange",
        AccountState.CLOSED: "gray",
    },
    icons={
        AccountState.PENDING: "clock",
        AccountState.ACTIVE: "check-circle",
        AccountState.SUSPENDED: "pause-circle",
        AccountState.CLOSED: "x-circle",
    },
    editable={AccountState.PENDING, AccountState.ACTIVE},
)


INVOICE_LIFECYCLE = Lifecycle(
    InvoiceState,
    labels={
        InvoiceState.DRAFT: "Draft",
        InvoiceState.ISSUED: "Issued",
        InvoiceState.PAID: "Paid",
        InvoiceState.VOID: "Void",
    },
    badge_colors={
        InvoiceState.DRAFT: "gray",
        InvoiceState.ISSUED: "blue",
        InvoiceState.PAID: "green",
        InvoiceState.VOID: "red",
    },
    icons={
        InvoiceState.DRAFT: "pencil",
        InvoiceState.ISSUED: "send",
        InvoiceState.PAID: "check",
        InvoiceState.VOID: "ban",
    },
    editable={InvoiceState.DRAFT},
)
