"""Boundary Protocols: contracts between the pure core and its collaborators.

Invariants:
    - Core NEVER imports from infrastructure; dependency arrows point inward only
    - All IO goes through these Protocol types
    - Implementations are provided by the shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: implementations do IO, while the core functions that
      produce their inputs (plans, decisions) stay synchronous and pure
"""

from typing import Any, Awaitable, Callable, Iterable, Protocol, Sequence, TypeVar

from scopekit.core.cache_advisor import CacheDecision
from scopekit.core.query_plan import QueryPlan

T = TypeVar("T")


class PlanExecutor(Protocol):
    """Runs a QueryPlan; raises ExecutionError on any failure."""
    async def execute(self, plan: QueryPlan) -> Sequence[Any]: ...
    async def count(self, plan: QueryPlan) -> int: ...
    async def get(
        self, model: type, key: Any, relations: Iterable[str] = (),
    ) -> Any | None: ...


class CacheStore(Protocol):
    """Cache-or-compute storage, consulted only after the CacheAdvisor."""
    async def get_or_compute(
        self, decision: CacheDecision, thunk: Callable[[], Awaitable[T]],
    ) -> T: ...
    def invalidate(self, key: str) -> bool: ...
