"""Eager-Load Planner: declared, per-context relation sets attached to query plans.

Invariants:
    - Declarations are fixed at construction and read-only afterwards
    - plan_for() returns the declared frozenset unchanged (idempotent, no accumulation)
    - Relations are never inferred from usage; an undeclared context loads nothing
    - Dotted paths ("invoices.lines") declare nested loads

Design Decisions:
    - Undeclared relations are the caller's responsibility: the ORM models use
      lazy="raise", so a missing declaration fails loudly at access time instead
      of silently issuing one query per row
"""

from types import MappingProxyType
from typing import Iterable, Mapping

from scopekit.core.domain_types import RELATION_PATH_SEPARATOR
from scopekit.core.errors import CompositionError
from scopekit.core.query_plan import QueryPlan


class EagerLoadPlanner:
    """Static map of load context -> relation paths."""

    def __init__(self, declarations: Mapping[str, Iterable[str]]):
        frozen: dict[str, frozenset[str]] = {}
        for context, relations in declarations.items():
            if isinstance(relations, str):
                raise CompositionError(
                    f"Eager-load context '{context}' must declare an iterable of "
                    f"relation names, not the string {relations!r}",
                )
            checked = []
            for relation in relations:
                if not isinstance(relation, str) or not relation or any(
                    not part for part in relation.split(RELATION_PATH_SEPARATOR)
                ):
                    raise CompositionError(
                        f"Eager-load context '{context}' declares invalid relation {relation!r}",
                    )
                checked.append(relation)
            frozen[context] = frozenset(checked)
        self._declarations = MappingProxyType(frozen)

    @property
    def contexts(self) -> tuple[str, ...]:
        return tuple(self._declarations)

    def plan_for(self, context: str) -> frozenset[str]:
        return self._declarations.get(context, frozenset())

    def attach(self, plan: QueryPlan, context: str) -> QueryPlan:
        """Return a new plan carrying the context's declared relations."""
        relations = self.plan_for(context)
        if not relations:
            return plan
        return plan.with_eager_load(*sorted(relations))
