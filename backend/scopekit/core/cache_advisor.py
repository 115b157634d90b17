"""Cache Advisor: pure cache-or-compute decision from an operation's cost class.

Invariants:
    - trivial-lookup NEVER yields should_cache=True, not even with force_cache=True
    - aggregate-computation yields should_cache=True with the operation TTL,
      or the fallback TTL when none is given
    - bypass_cache=True is the only way to skip caching an aggregate-computation
    - Keys are deterministic: explicit key, else namespace:name:digest(sorted params)
    - No IO, no storage: the decision is handed to a CacheStore by the caller

Design Decisions:
    - Pydantic models for Operation/CacheDecision: validated, frozen values
    - Refused overrides are recorded in `reason` rather than raised: the caller
      still gets a usable (uncached) decision
"""

import hashlib
import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from scopekit.core.domain_types import DEFAULT_FALLBACK_TTL_SECONDS, CostClass


class CacheReason(str, Enum):
    TRIVIAL_LOOKUP = "trivial_lookup"
    OVERRIDE_REFUSED = "trivial_lookup_override_refused"
    BYPASSED = "aggregate_bypassed"
    AGGREGATE = "aggregate_computation"


class Operation(BaseModel):
    """An operation whose result may be cached."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    cost_class: CostClass
    params: dict[str, Any] = Field(default_factory=dict)
    key: str | None = Field(None, min_length=1)
    ttl_seconds: int | None = Field(None, gt=0)
    force_cache: bool = False
    bypass_cache: bool = False


class CacheDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    should_cache: bool
    key: str
    ttl_seconds: int | None
    cost_class: CostClass
    reason: CacheReason


def cache_key(name: str, params: dict[str, Any], namespace: str = "scopekit") -> str:
    payload = json.dumps(params, sort_keys=True, default=str)
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]
    return f"{namespace}:{name}:{digest}"


def should_cache(
    operation: Operation,
    fallback_ttl_seconds: int = DEFAULT_FALLBACK_TTL_SECONDS,
    namespace: str = "scopekit",
) -> CacheDecision:
    """Decide cache eligibility. Pure, no IO."""
    if fallback_ttl_seconds <= 0:
        raise ValueError(
            f"fallback_ttl_seconds must be positive, got {fallback_ttl_seconds}",
        )
    key = operation.key or cache_key(operation.name, operation.params, namespace)

    if operation.cost_class == CostClass.TRIVIAL_LOOKUP:
        reason = (
            CacheReason.OVERRIDE_REFUSED if operation.force_cache
            else CacheReason.TRIVIAL_LOOKUP
        )
        return CacheDecision(
            should_cache=False, key=key, ttl_seconds=None,
            cost_class=operation.cost_class, reason=reason,
        )

    if operation.bypass_cache:
        return CacheDecision(
            should_cache=False, key=key, ttl_seconds=None,
            cost_class=operation.cost_class, reason=CacheReason.BYPASSED,
        )

    return CacheDecision(
        should_cache=True,
        key=key,
        ttl_seconds=operation.ttl_seconds or fallback_ttl_seconds,
        cost_class=operation.cost_class,
        reason=CacheReason.AGGREGATE,
    )
