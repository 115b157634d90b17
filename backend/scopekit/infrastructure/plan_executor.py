"""SQLAlchemy Plan Executor: turns a QueryPlan into one SELECT and runs it.

Invariants:
    - Predicates are applied in plan order, then the single OR group
    - Eager-load paths become selectinload chains on the SAME statement, so related
      collections arrive in the same logical operation as the primary rows
    - Unknown relations, unknown order-by fields and predicates that reference
      missing columns are ExecutionError(reason="malformed_plan")
    - Driver failures are ExecutionError(reason="database"), chained, never retried
    - count() counts the rows execute() would return, limit/offset window included

Design Decisions:
    - compile() is separate from execute(): statements can be inspected in tests
      and logged without touching the database
"""

import logging
from typing import Any, Iterable, Sequence

from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import ColumnProperty, RelationshipProperty, selectinload

from scopekit.core.domain_types import RELATION_PATH_SEPARATOR, SortDirection
from scopekit.core.errors import ErrorContext, ExecutionError
from scopekit.core.query_plan import QueryPlan

logger = logging.getLogger(__name__)


def _loader_for(model: type, path: str):
    entity = model
    loader = None
    for name in path.split(RELATION_PATH_SEPARATOR):
        attr = getattr(entity, name, None)
        prop = getattr(attr, "property", None)
        if not isinstance(prop, RelationshipProperty):
            raise ExecutionError(
                f"{entity.__name__} has no relationship '{name}' "
                f"(eager-load path '{path}')",
                "malformed_plan",
            )
        loader = selectinload(attr) if loader is None else loader.selectinload(attr)
        entity = prop.mapper.class_
    return loader


def _column_for(model: type, name: str):
    attr = getattr(model, name, None)
    if not isinstance(getattr(attr, "property", None), ColumnProperty):
        raise ExecutionError(
            f"{model.__name__} has no column '{name}' to order by", "malformed_plan",
        )
    return attr


class SqlAlchemyPlanExecutor:
    """PlanExecutor backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _filtered(self, query: Select, plan: QueryPlan) -> Select:
        model = plan.model
        current = None
        try:
            for predicate in plan.predicates:
                current = predicate.name
                query = predicate.apply(query, model)
            if plan.disjunction:
                current = plan.disjunction[0].name
                query = query.where(
                    or_(*(p.condition(model) for p in plan.disjunction)),
                )
        except AttributeError as exc:
            raise ExecutionError(
                f"predicate '{current}' does not fit {model.__name__}: {exc}",
                "malformed_plan",
                ErrorContext(predicate_name=current, plan=plan.signature()),
            ) from exc
        return query

    def compile(self, plan: QueryPlan) -> Select:
        query = self._filtered(select(plan.model), plan)
        for path in sorted(plan.eager_load):
            query = query.options(_loader_for(plan.model, path))
        for field in plan.ordering:
            column = _column_for(plan.model, field.name)
            query = query.order_by(
                column.desc() if field.direction == SortDirection.DESC else column.asc(),
            )
        if plan.limit_to is not None:
            query = query.limit(plan.limit_to)
        if plan.offset_by:
            query = query.offset(plan.offset_by)
        return query

    async def execute(self, plan: QueryPlan) -> Sequence[Any]:
        query = self.compile(plan)
        try:
            result = await self.session.execute(query)
            rows = list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.error(
                f"Plan execution failed: {exc}",
                extra={"plan": plan.signature(), "error_code": "EXECUTION_ERROR"},
            )
            raise ExecutionError(
                type(exc).__name__, "database",
                ErrorContext(plan=plan.signature()),
            ) from exc
        logger.debug(
            "Plan executed",
            extra={"plan": plan.signature(), "row_count": len(rows)},
        )
        return rows

    async def count(self, plan: QueryPlan) -> int:
        """Row count of the plan, honoring its limit/offset window."""
        if plan.limit_to is None and not plan.offset_by:
            query = self._filtered(
                select(func.count()).select_from(plan.model), plan,
            )
        else:
            window = self._filtered(select(plan.model), plan)
            if plan.limit_to is not None:
                window = window.limit(plan.limit_to)
            if plan.offset_by:
                window = window.offset(plan.offset_by)
            query = select(func.count()).select_from(window.subquery())
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as exc:
            logger.error(
                f"Plan count failed: {exc}",
                extra={"plan": plan.signature(), "error_code": "EXECUTION_ERROR"},
            )
            raise ExecutionError(
                type(exc).__name__, "database",
                ErrorContext(plan=plan.signature()),
            ) from exc
        return int(result.scalar_one())

    async def get(
        self, model: type, key: Any, relations: Iterable[str] = (),
    ) -> Any | None:
        """Single-key fetch, optionally with declared relations loaded."""
        options = [_loader_for(model, path) for path in sorted(relations)]
        try:
            return await self.session.get(
                model, key, options=options, populate_existing=bool(options),
            )
        except SQLAlchemyError as exc:
            logger.error(f"Lookup of {model.__name__} {key} failed: {exc}")
            raise ExecutionError(type(exc).__name__, "database") from exc
