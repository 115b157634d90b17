"""Query Composer: immutable plan builder over scope predicates.

Invariants:
    - A QueryPlan never changes after construction; every builder method returns a new plan
    - Predicate order is preserved exactly as supplied (reproducible signatures and cache keys)
    - At most ONE disjunctive group per plan; more groups need nested sub-plans (as_scope)
    - An empty disjunctive group, a duplicate predicate and a conflicting predicate
      (same name, different params, both ANDed) are CompositionErrors
    - The composer never executes anything: execution belongs to a PlanExecutor

Design Decisions:
    - Frozen dataclass + dataclasses.replace over a mutable fluent builder: plans can be
      shared across threads and reused as cache-key material
    - Conjunction is the default (where); disjunction is explicit (any_of)
"""

import hashlib
from dataclasses import dataclass, replace
from typing import Iterable

from sqlalchemy import ColumnElement, and_, or_, true

from scopekit.core.domain_types import RELATION_PATH_SEPARATOR, SortDirection
from scopekit.core.errors import CompositionError
from scopekit.core.scopes import ScopeFactory, ScopePredicate


@dataclass(frozen=True)
class OrderField:
    name: str
    direction: SortDirection = SortDirection.ASC

    @property
    def signature(self) -> str:
        prefix = "-" if self.direction == SortDirection.DESC else ""
        return f"{prefix}{self.name}"


def _check_predicate(predicate: object) -> ScopePredicate:
    if isinstance(predicate, ScopePredicate):
        return predicate
    if isinstance(predicate, ScopeFactory):
        raise CompositionError(
            f"Scope '{predicate.name}' was passed uncalled; call it to bind parameters",
            predicate_name=predicate.name,
        )
    raise CompositionError(
        f"Expected a ScopePredicate, got {type(predicate).__name__}",
        predicate_name=getattr(predicate, "name", None),
    )


def _check_relation(relation: object) -> str:
    if not isinstance(relation, str) or not relation.strip():
        raise CompositionError(f"Invalid eager-load relation {relation!r}")
    if any(not part for part in relation.split(RELATION_PATH_SEPARATOR)):
        raise CompositionError(f"Invalid eager-load relation path {relation!r}")
    return relation


@dataclass(frozen=True)
class QueryPlan:
    """Ordered predicates, optional OR group, eager-load set, ordering and window."""
    model: type
    predicates: tuple[ScopePredicate, ...] = ()
    disjunction: tuple[ScopePredicate, ...] | None = None
    eager_load: frozenset[str] = frozenset()
    ordering: tuple[OrderField, ...] = ()
    limit_to: int | None = None
    offset_by: int = 0

    @classmethod
    def for_model(cls, model: type) -> "QueryPlan":
        return cls(model=model)

    # ─── Composition ─────────────────────────────────────────────

    def where(self, *predicates: ScopePredicate) -> "QueryPlan":
        """AND predicates onto the chain, in the given order."""
        chain = self.predicates
        for candidate in predicates:
            p = _check_predicate(candidate)
            for existing in chain:
                if existing == p:
                    raise CompositionError(
                        f"Duplicate predicate {p.signature} in conjunctive chain",
                        predicate_name=p.name,
                    )
                if existing.name == p.name:
                    raise CompositionError(
                        f"Conflicting predicates {existing.signature} and "
                        f"{p.signature} in conjunctive chain",
                        predicate_name=p.name,
                    )
            chain = chain + (p,)
        return replace(self, predicates=chain)

    def any_of(self, *predicates: ScopePredicate) -> "QueryPlan":
        """Attach the single disjunctive group (predicates ORed together)."""
        if not predicates:
            raise CompositionError(
                "Disjunctive group must contain at least one predicate",
            )
        if self.disjunction is not None:
            raise CompositionError(
                "Plan already has a disjunctive group; combine several OR groups "
                "through nested sub-plans (QueryPlan.as_scope)",
                predicate_name=getattr(predicates[0], "name", None),
            )
        group: tuple[ScopePredicate, ...] = ()
        for candidate in predicates:
            p = _check_predicate(candidate)
            if p in group:
                raise CompositionError(
                    f"Duplicate predicate {p.signature} in disjunctive group",
                    predicate_name=p.name,
                )
            group = group + (p,)
        return replace(self, disjunction=group)

    def with_eager_load(self, *relations: str) -> "QueryPlan":
        checked = frozenset(_check_relation(r) for r in relations)
        return replace(self, eager_load=self.eager_load | checked)

    def order_by(self, *fields: str) -> "QueryPlan":
        """Append ordering; a leading '-' sorts descending."""
        ordering = self.ordering
        for f in fields:
            name = f[1:] if f.startswith("-") else f
            if not name.strip():
                raise CompositionError(f"Invalid order-by field {f!r}")
            direction = SortDirection.DESC if f.startswith("-") else SortDirection.ASC
            ordering = ordering + (OrderField(name, direction),)
        return replace(self, ordering=ordering)

    def limit(self, count: int, offset: int = 0) -> "QueryPlan":
        if count < 0 or offset < 0:
            raise CompositionError(
                f"limit/offset must be non-negative (got {count}, {offset})",
            )
        return replace(self, limit_to=count, offset_by=offset)

    def as_scope(self, name: str | None = None) -> ScopePredicate:
        """Wrap this plan's filter as one predicate, for nesting OR groups."""
        if not self.predicates and self.disjunction is None:
            raise CompositionError("Cannot nest a sub-plan without predicates")
        if self.eager_load or self.ordering or self.limit_to is not None:
            raise CompositionError(
                "Nested sub-plans carry filters only (no eager-load, ordering or limit)",
                predicate_name=name,
            )
        return ScopePredicate(
            name or self.condition_signature(),
            lambda model: self.condition(model),
        )

    # ─── Inspection ──────────────────────────────────────────────

    @property
    def predicate_names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.predicates)

    def condition(self, model: type | None = None) -> ColumnElement[bool]:
        """Combined boolean expression: chain ANDed, then the OR group."""
        target = model if model is not None else self.model
        clauses = [p.condition(target) for p in self.predicates]
        if self.disjunction:
            clauses.append(or_(*(p.condition(target) for p in self.disjunction)))
        if not clauses:
            return true()
        return and_(*clauses)

    def condition_signature(self) -> str:
        parts = [p.signature for p in self.predicates]
        if self.disjunction:
            parts.append(
                "any(" + " | ".join(p.signature for p in self.disjunction) + ")",
            )
        return "(" + " & ".join(parts) + ")"

    def signature(self) -> str:
        """Deterministic text form of the whole plan."""
        parts = [self.model.__name__, "where " + self.condition_signature()]
        if self.eager_load:
            parts.append("eager " + ",".join(sorted(self.eager_load)))
        if self.ordering:
            parts.append("order " + ",".join(o.signature for o in self.ordering))
        if self.limit_to is not None:
            parts.append(f"limit {self.limit_to} offset {self.offset_by}")
        return " ; ".join(parts)

    @property
    def fingerprint(self) -> str:
        return hashlib.sha256(self.signature().encode("utf-8")).hexdigest()

    def __str__(self) -> str:
        return self.signature()


def compose(
    model: type,
    predicates: Iterable[ScopePredicate] = (),
    any_of: Iterable[ScopePredicate] | None = None,
    eager_load: Iterable[str] = (),
) -> QueryPlan:
    """One-shot builder: conjunctive chain, optional OR group, eager-load set."""
    plan = QueryPlan.for_model(model).where(*predicates)
    if any_of is not None:
        plan = plan.any_of(*any_of)
    relations = tuple(eager_load)
    if relations:
        plan = plan.with_eager_load(*relations)
    return plan
