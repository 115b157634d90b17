"""Domain Types: shared enums and constants used across the core.

Invariants:
    - All valid cost classes encoded as an Enum, no raw string matching
    - CostClass values are the wire names used in logs and cache keys
    - Account identity is an AccountKey, never a bare UUID, at service boundaries

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ─────────────────────────────────────────────

AccountKey = NewType("AccountKey", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class CostClass(str, Enum):
    """Coarse expense of an operation, drives cache eligibility."""
    TRIVIAL_LOOKUP = "trivial-lookup"
    AGGREGATE_COMPUTATION = "aggregate-computation"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ─── Constants ───────────────────────────────────────────────────

DEFAULT_FALLBACK_TTL_SECONDS = 300
RELATION_PATH_SEPARATOR = "."   # "invoices.lines" loads Account.invoices then Invoice.lines
