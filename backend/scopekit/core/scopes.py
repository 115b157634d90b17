"""Scope Predicates: named, parameterized, composable filter conditions.

Invariants:
    - A predicate is immutable; it compares and hashes by (name, params) only
    - apply() never mutates the incoming Select: SQLAlchemy's generative where()
      returns a new statement
    - Parameters are bound against the scope function signature when the predicate
      is built; a bad binding is a CompositionError naming the scope
    - Multi-condition filters live inside ONE scope function, never at the call site

Design Decisions:
    - Decorator turns `fn(model, **params) -> ColumnElement[bool]` into a predicate
      factory: scopes read like plain functions and stay model-agnostic
    - Mutable parameter values are frozen (iterables -> tuple, set -> frozenset) so
      predicates stay hashable and signatures stay deterministic
"""

import functools
import inspect
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from sqlalchemy import ColumnElement, Select

from scopekit.core.errors import CompositionError

Clause = Callable[..., ColumnElement[bool]]


def _freeze(value: Any) -> Any:
    if isinstance(value, (str, bytes, type)):
        return value
    if isinstance(value, (set, frozenset)):
        return frozenset(_freeze(v) for v in value)
    if isinstance(value, Mapping):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    if isinstance(value, Iterable):
        # generators are drained once here, so every reuse sees the same values
        return tuple(_freeze(v) for v in value)
    return value


def _render(value: Any) -> str:
    if isinstance(value, Enum):
        return repr(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, frozenset):
        return "{" + ", ".join(sorted(_render(v) for v in value)) + "}"
    if isinstance(value, tuple):
        return "[" + ", ".join(_render(v) for v in value) + "]"
    return repr(value)


@dataclass(frozen=True)
class ScopePredicate:
    """One named filter, bound to its parameters."""
    name: str
    clause: Clause = field(compare=False, repr=False)
    params: tuple[tuple[str, Any], ...] = ()

    @property
    def arguments(self) -> dict[str, Any]:
        return dict(self.params)

    @property
    def signature(self) -> str:
        """Deterministic text form, e.g. in_region(region='EU')."""
        args = ", ".join(f"{k}={_render(v)}" for k, v in self.params)
        return f"{self.name}({args})"

    def condition(self, model: type) -> ColumnElement[bool]:
        return self.clause(model, **self.arguments)

    def apply(self, query: Select, model: type) -> Select:
        """Narrow a collection context by this predicate."""
        return query.where(self.condition(model))


class ScopeFactory:
    """Callable produced by @scope; calling it yields a ScopePredicate."""

    def __init__(self, fn: Clause, name: str):
        self.name = name
        self._fn = fn
        self._signature = inspect.signature(fn)
        params = list(self._signature.parameters.values())
        if not params:
            raise CompositionError(
                f"Scope '{name}' must accept the model as its first argument",
                predicate_name=name,
            )
        for p in params:
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
                raise CompositionError(
                    f"Scope '{name}' cannot take *args/**kwargs "
                    f"(parameter '{p.name}'); pass an iterable instead",
                    predicate_name=name,
                )
        functools.update_wrapper(self, fn)

    def __repr__(self) -> str:
        return f"<scope {self.name}>"

    def __call__(self, *args: Any, **kwargs: Any) -> ScopePredicate:
        try:
            bound = self._signature.bind(None, *args, **kwargs)
        except TypeError as exc:
            raise CompositionError(
                f"Invalid arguments for scope '{self.name}': {exc}",
                predicate_name=self.name,
            ) from None
        bound.apply_defaults()
        params = tuple(
            (key, _freeze(value))
            for key, value in list(bound.arguments.items())[1:]
        )
        return ScopePredicate(self.name, self._fn, params)


def scope(fn: Clause | None = None, *, name: str | None = None):
    """Declare a scope. Usable bare (@scope) or with a name (@scope(name="x"))."""
    def wrap(f: Clause) -> ScopeFactory:
        return ScopeFactory(f, name or f.__name__)
    return wrap(fn) if fn is not None else wrap
