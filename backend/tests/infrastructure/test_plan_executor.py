"""SQLAlchemy Plan Executor: verifies plans against a seeded SQLite database.

Tests:
    - [active, in_region(EU)] returns only active EU accounts
    - Applying predicates one by one equals executing the composed plan
    - The OR group, nested sub-plans, ordering and limit execute as declared
    - Declared relations arrive with the primary rows; undeclared ones raise on access
    - Malformed plans and driver failures surface as ExecutionError
"""

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import InvalidRequestError

from scopekit.core.billing_scopes import (
    BILLING_EAGER_LOADS, active, created_after, in_region, in_states,
    name_contains, outstanding,
)
from scopekit.core.billing_states import AccountState
from scopekit.core.errors import ExecutionError
from scopekit.core.query_plan import QueryPlan, compose
from scopekit.core.scopes import scope
from scopekit.infrastructure.plan_executor import SqlAlchemyPlanExecutor
from scopekit.models import Account, Invoice


def _names(rows):
    return sorted(r.name for r in rows)


async def test_active_in_eu_returns_only_active_eu(test_db, seed_accounts):
    plan = compose(Account, [active(), in_region("EU")])
    rows = await SqlAlchemyPlanExecutor(test_db).execute(plan)
    assert _names(rows) == ["Alpha EU"]


async def test_active_in_eu_over_four_state_region_combinations(test_session_factory):
    verified = datetime(2024, 1, 1, tzinfo=timezone.utc)
    async with test_session_factory() as session:
        session.add_all([
            Account(name=f"{state.value}-{region}", region=region, state=state.value,
                    verified_at=verified,
                    suspended_at=verified if state == AccountState.SUSPENDED else None)
            for state in (AccountState.ACTIVE, AccountState.SUSPENDED)
            for region in ("EU", "US")
        ])
        await session.commit()

    async with test_session_factory() as session:
        rows = await SqlAlchemyPlanExecutor(session).execute(
            compose(Account, [active(), in_region("EU")]),
        )
    assert [(r.state, r.region) for r in rows] == [("active", "EU")]


async def test_stepwise_application_matches_plan(test_db, seed_accounts):
    executor = SqlAlchemyPlanExecutor(test_db)
    a, b = in_region("EU"), in_states([AccountState.ACTIVE, AccountState.PENDING])
    stepwise = b.apply(a.apply(select(Account), Account), Account)
    plan = compose(Account, [a, b])

    assert str(executor.compile(plan)) == str(stepwise)
    planned = await executor.execute(plan)
    manual = (await test_db.execute(stepwise)).scalars().all()
    assert _names(planned) == _names(manual) == ["Alpha EU", "Echo EU", "Foxtrot EU"]


async def test_disjunctive_group(test_db, seed_accounts):
    plan = compose(
        Account, [in_region("US")],
        any_of=[in_states([AccountState.ACTIVE]), name_contains("delta")],
    )
    rows = await SqlAlchemyPlanExecutor(test_db).execute(plan)
    assert _names(rows) == ["Charlie US", "Delta US"]


async def test_nested_groups(test_db, seed_accounts):
    names = QueryPlan.for_model(Account).any_of(
        name_contains("alpha"), name_contains("echo"), name_contains("charlie"),
    )
    plan = QueryPlan.for_model(Account).where(names.as_scope()).any_of(
        in_region("US"), active(),
    )
    rows = await SqlAlchemyPlanExecutor(test_db).execute(plan)
    assert _names(rows) == ["Alpha EU", "Charlie US"]


async def test_ordering_and_window(test_db, seed_accounts):
    plan = (
        QueryPlan.for_model(Account)
        .where(created_after(datetime(2024, 1, 2, 12, tzinfo=timezone.utc)))
        .order_by("-created_at")
        .limit(2, offset=1)
    )
    rows = await SqlAlchemyPlanExecutor(test_db).execute(plan)
    assert [r.name for r in rows] == ["Echo EU", "Delta US"]


async def test_count(test_db, seed_accounts):
    executor = SqlAlchemyPlanExecutor(test_db)
    assert await executor.count(compose(Account, [in_region("EU")])) == 4
    assert await executor.count(QueryPlan.for_model(Account)) == 6


async def test_count_honors_limit_and_offset(test_db, seed_accounts):
    executor = SqlAlchemyPlanExecutor(test_db)
    eu = compose(Account, [in_region("EU")])
    assert await executor.count(eu.limit(2)) == 2
    assert await executor.count(eu.limit(10, offset=3)) == 1
    assert await executor.count(eu.limit(10, offset=1)) == 3


async def test_generator_parameters_survive_plan_reuse(test_db, seed_accounts):
    plan = compose(Account, [in_states(s for s in [AccountState.ACTIVE])])
    executor = SqlAlchemyPlanExecutor(test_db)
    first = await executor.execute(plan)
    second = await executor.execute(plan)
    assert _names(first) == _names(second) == ["Alpha EU", "Charlie US", "Echo EU"]
    assert await executor.count(plan) == 3
    assert "generator" not in plan.signature()


@pytest.mark.parametrize("text", ["_", "%"])
async def test_name_contains_treats_wildcards_literally(test_db, seed_accounts, text):
    rows = await SqlAlchemyPlanExecutor(test_db).execute(
        compose(Account, [name_contains(text)]),
    )
    assert rows == []


async def test_name_contains_is_case_insensitive(test_db, seed_accounts):
    rows = await SqlAlchemyPlanExecutor(test_db).execute(
        compose(Account, [name_contains("ALPHA")]),
    )
    assert _names(rows) == ["Alpha EU"]


async def test_declared_relations_are_loaded_with_primary_rows(test_db, seed_accounts):
    plan = BILLING_EAGER_LOADS.attach(
        compose(Account, [active(), in_region("EU")]), "account_detail",
    )
    [alpha] = await SqlAlchemyPlanExecutor(test_db).execute(plan)
    assert [i.number for i in alpha.invoices] == ["INV-1", "INV-2", "INV-3"]
    assert [line.description for line in alpha.invoices[0].lines] == ["Seat", "Support"]


async def test_undeclared_relation_access_raises(test_db, seed_accounts):
    plan = BILLING_EAGER_LOADS.attach(compose(Account, [in_region("US")]), "account_list")
    rows = await SqlAlchemyPlanExecutor(test_db).execute(plan)
    with pytest.raises(InvalidRequestError):
        _ = rows[0].invoices


async def test_invoice_scopes(test_db, seed_accounts):
    plan = BILLING_EAGER_LOADS.attach(
        compose(Invoice, [outstanding()]), "invoice_list",
    ).order_by("number")
    rows = await SqlAlchemyPlanExecutor(test_db).execute(plan)
    assert [i.number for i in rows] == ["INV-1", "INV-4", "INV-5"]
    assert len(rows[0].lines) == 2


async def test_get_with_relations(test_db, seed_accounts):
    key = seed_accounts["Alpha EU"].key
    account = await SqlAlchemyPlanExecutor(test_db).get(Account, key, ["invoices"])
    assert account.name == "Alpha EU"
    assert len(account.invoices) == 3


async def test_get_missing_key_returns_none(test_db, seed_accounts):
    assert await SqlAlchemyPlanExecutor(test_db).get(Account, uuid.uuid4()) is None


async def test_unknown_relation_is_malformed_plan(test_db):
    plan = QueryPlan.for_model(Account).with_eager_load("payments")
    with pytest.raises(ExecutionError) as exc:
        SqlAlchemyPlanExecutor(test_db).compile(plan)
    assert exc.value.reason == "malformed_plan"


async def test_unknown_nested_relation_is_malformed_plan(test_db):
    plan = QueryPlan.for_model(Account).with_eager_load("invoices.payments")
    with pytest.raises(ExecutionError) as exc:
        SqlAlchemyPlanExecutor(test_db).compile(plan)
    assert "Invoice" in exc.value.message


async def test_unknown_order_field_is_malformed_plan(test_db):
    plan = QueryPlan.for_model(Account).order_by("invoices")
    with pytest.raises(ExecutionError) as exc:
        SqlAlchemyPlanExecutor(test_db).compile(plan)
    assert exc.value.reason == "malformed_plan"


async def test_predicate_not_fitting_model_is_malformed_plan(test_db):
    plan = compose(Invoice, [in_region("EU")])
    with pytest.raises(ExecutionError) as exc:
        SqlAlchemyPlanExecutor(test_db).compile(plan)
    assert exc.value.context.predicate_name == "in_region"


async def test_driver_failure_is_execution_error(test_db, seed_accounts):
    @scope
    def broken(model):
        from sqlalchemy import literal_column
        return literal_column("no_such_column") == 1

    with pytest.raises(ExecutionError) as exc:
        await SqlAlchemyPlanExecutor(test_db).execute(compose(Account, [broken()]))
    assert exc.value.reason == "database"
    assert exc.value.__cause__ is not None
