"""Account Queries: billing operations built from scopes, load contexts and cache policy.

Invariants:
    - Every cacheable operation consults should_cache() before touching the store
    - get_account is a trivial-lookup: never cached, even when the caller forces it
    - Aggregates (state_summary, outstanding_balance) are cached under keys derived
      from the plan fingerprint, so equal plans share one entry
    - Relations are loaded only through declared load contexts (BILLING_EAGER_LOADS)

Design Decisions:
    - Executor and store injected: the service never opens sessions itself
    - Aggregates return plain dicts/ints, never ORM rows, so cached values are
      not bound to a closed session
"""

import logging
from dataclasses import asdict
from typing import Any, Iterable, Sequence

from scopekit.config import Settings, get_settings
from scopekit.core.billing_scopes import (
    BILLING_EAGER_LOADS, active, belongs_to, editable, in_region, in_states,
    outstanding,
)
from scopekit.core.billing_states import ACCOUNT_LIFECYCLE, AccountState
from scopekit.core.cache_advisor import (
    CacheDecision, CacheReason, Operation, should_cache,
)
from scopekit.core.domain_types import AccountKey, CostClass
from scopekit.core.query_plan import QueryPlan
from scopekit.core.repository_protocols import CacheStore, PlanExecutor
from scopekit.models.account import Account
from scopekit.models.invoice import Invoice

logger = logging.getLogger(__name__)


class AccountQueryService:
    """Read-side operations over accounts and their invoices."""

    def __init__(
        self,
        executor: PlanExecutor,
        cache_store: CacheStore,
        settings: Settings | None = None,
    ):
        self.executor = executor
        self.cache_store = cache_store
        self.settings = settings or get_settings()

    def _decide(self, operation: Operation) -> CacheDecision:
        decision = should_cache(
            operation,
            fallback_ttl_seconds=self.settings.cache_fallback_ttl_seconds,
            namespace=self.settings.cache_namespace,
        )
        if decision.reason == CacheReason.OVERRIDE_REFUSED:
            logger.warning(
                f"force_cache refused for {operation.name}: trivial lookups are never cached",
                extra={
                    "cost_class": operation.cost_class.value,
                    "cache_key": decision.key,
                },
            )
        return decision

    def accounts_plan(
        self,
        region: str | None = None,
        states: Iterable[AccountState | str] | None = None,
        active_only: bool = False,
        editable_only: bool = False,
        context: str = "account_list",
    ) -> QueryPlan:
        plan = QueryPlan.for_model(Account)
        if active_only:
            plan = plan.where(active())
        if editable_only:
            plan = plan.where(editable())
        if region is not None:
            plan = plan.where(in_region(region))
        if states is not None:
            plan = plan.where(
                in_states([ACCOUNT_LIFECYCLE.coerce(s) for s in states]),
            )
        return BILLING_EAGER_LOADS.attach(plan, context).order_by("name")

    async def get_account(self, key: AccountKey, force_cache: bool = False) -> Account | None:
        operation = Operation(
            name="get_account",
            cost_class=CostClass.TRIVIAL_LOOKUP,
            params={"key": str(key)},
            force_cache=force_cache,
        )
        decision = self._decide(operation)
        return await self.cache_store.get_or_compute(
            decision, lambda: self.executor.get(Account, key),
        )

    async def list_accounts(self, **filters: Any) -> Sequence[Account]:
        plan = self.accounts_plan(**filters)
        logger.debug("Listing accounts", extra={"plan": plan.signature()})
        return await self.executor.execute(plan)

    async def account_detail(self, key: AccountKey) -> Account | None:
        """Account with its invoices and their lines loaded."""
        relations = BILLING_EAGER_LOADS.plan_for("account_detail")
        return await self.executor.get(Account, key, relations)

    async def state_summary(
        self,
        region: str,
        ttl_seconds: int | None = None,
        bypass_cache: bool = False,
    ) -> list[dict]:
        """Per-state account counts in a region, with presentation metadata."""
        base = QueryPlan.for_model(Account).where(in_region(region))
        operation = Operation(
            name="state_summary",
            cost_class=CostClass.AGGREGATE_COMPUTATION,
            params={"plan": base.fingerprint},
            ttl_seconds=ttl_seconds,
            bypass_cache=bypass_cache,
        )

        async def compute() -> list[dict]:
            summary = []
            for state in AccountState:
                count = await self.executor.count(base.where(in_states([state])))
                summary.append({
                    "state": state.value,
                    "count": count,
                    **asdict(ACCOUNT_LIFECYCLE.presentation(state)),
                })
            return summary

        return await self.cache_store.get_or_compute(self._decide(operation), compute)

    async def outstanding_balance(
        self, region: str, ttl_seconds: int | None = None,
    ) -> int:
        """Sum of issued, unpaid invoice amounts for active accounts in a region."""
        accounts_plan = self.accounts_plan(region=region, active_only=True)
        operation = Operation(
            name="outstanding_balance",
            cost_class=CostClass.AGGREGATE_COMPUTATION,
            params={"plan": accounts_plan.fingerprint},
            ttl_seconds=ttl_seconds,
        )

        async def compute() -> int:
            accounts = await self.executor.execute(accounts_plan)
            if not accounts:
                return 0
            invoices_plan = QueryPlan.for_model(Invoice).where(
                outstanding(), belongs_to([a.key for a in accounts]),
            )
            invoices = await self.executor.execute(invoices_plan)
            return sum(i.amount_cents for i in invoices)

        return await self.cache_store.get_or_compute(self._decide(operation), compute)
