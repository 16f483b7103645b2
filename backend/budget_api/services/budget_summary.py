"""
Budget summary assembly.

Resolve the user's budget period, read the month's aggregates from Postgres and
hand them to the pure daily budget calculator. Nothing here writes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from .calendar_context import (
    CalendarContext,
    build_calendar_context,
    parse_iso_date,
    today_in_zone,
    validate_cycle_day,
)
from .daily_budget import BudgetInput, BudgetResult, compute_budget_for_context
from .monthly_goals import get_saving_goal_cents
from .store import run_with_connection

if TYPE_CHECKING:
    from psycopg import AsyncConnection
    from psycopg_pool import AsyncConnectionPool
else:
    # Keep tests importable with fake pools/connections.
    AsyncConnection = Any
    AsyncConnectionPool = Any

logger = logging.getLogger(__name__)

TRANSACTION_TYPE_INCOME = "income"
TRANSACTION_TYPE_EXPENSE = "expense"


@dataclass(frozen=True)
class UserBudgetPreferences:
    time_zone: str | None
    cycle_day: int | None


@dataclass(frozen=True)
class SummaryParams:
    date: str
    time_zone: str | None
    effective_time_zone: str
    time_zone_fallback: bool
    cycle_day: int | None


@dataclass(frozen=True)
class BudgetSummary:
    params: SummaryParams
    data: BudgetResult


async def get_user_budget_preferences(connection: AsyncConnection, user_id: UUID) -> UserBudgetPreferences:
    """Load timezone and pay-cycle settings; raise LookupError for unknown users."""
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT time_zone, budget_cycle_day
            FROM users
            WHERE id = %s
            """,
            (user_id,),
        )
        row = await cursor.fetchone()

    if row is None:
        raise LookupError("User not found")

    cycle_day = row["budget_cycle_day"]
    if cycle_day is not None:
        try:
            cycle_day = validate_cycle_day(int(cycle_day))
        except ValueError:
            # A bad stored anchor should not block the summary; use calendar months.
            logger.warning("Ignoring invalid budget_cycle_day %r for user %s", cycle_day, user_id)
            cycle_day = None

    return UserBudgetPreferences(time_zone=row["time_zone"] or None, cycle_day=cycle_day)


async def sum_transactions_cents(
    connection: AsyncConnection,
    user_id: UUID,
    transaction_type: str,
    period_start: datetime,
    period_end: datetime,
    *,
    end_inclusive: bool,
) -> int:
    """Sum non-deleted amounts of one type from `period_start` (inclusive) to `period_end`."""
    if transaction_type not in {TRANSACTION_TYPE_INCOME, TRANSACTION_TYPE_EXPENSE}:
        raise ValueError(f"Unknown transaction type: {transaction_type}")

    end_operator = "<=" if end_inclusive else "<"

    async with connection.cursor() as cursor:
        await cursor.execute(
            f"""
            SELECT COALESCE(SUM(amount_cents), 0)::bigint AS total_cents
            FROM transactions
            WHERE user_id = %s
              AND type = %s
              AND deleted_at IS NULL
              AND occurred_at >= %s
              AND occurred_at {end_operator} %s
            """,
            (user_id, transaction_type, period_start, period_end),
        )
        row = await cursor.fetchone()

    if row is None or row["total_cents"] is None:
        return 0
    return int(row["total_cents"])


async def load_budget_input(
    pool: AsyncConnectionPool,
    user_id: UUID,
    context: CalendarContext,
) -> BudgetInput:
    # Independent reads, one pooled connection each, awaited together.
    saving_goal_cents, total_income_cents, spent_before_today_cents, spent_today_cents = await asyncio.gather(
        run_with_connection(pool, get_saving_goal_cents, user_id, context.month_anchor),
        run_with_connection(
            pool,
            sum_transactions_cents,
            user_id,
            TRANSACTION_TYPE_INCOME,
            context.month_start,
            context.month_end,
            end_inclusive=True,
        ),
        run_with_connection(
            pool,
            sum_transactions_cents,
            user_id,
            TRANSACTION_TYPE_EXPENSE,
            context.month_start,
            context.day_start,
            end_inclusive=False,
        ),
        run_with_connection(
            pool,
            sum_transactions_cents,
            user_id,
            TRANSACTION_TYPE_EXPENSE,
            context.day_start,
            context.day_end,
            end_inclusive=True,
        ),
    )

    return BudgetInput(
        total_income_cents=total_income_cents,
        saving_goal_cents=saving_goal_cents,
        spent_before_today_cents=spent_before_today_cents,
        spent_today_cents=spent_today_cents,
    )


def resolve_summary_date(date_iso: str | None, time_zone: str | None) -> date:
    """Requested date, or today in the user's zone when omitted."""
    if date_iso is None:
        return today_in_zone(time_zone)
    return parse_iso_date(date_iso)


async def get_budget_summary_for_date(
    pool: AsyncConnectionPool,
    user_id: UUID,
    date_iso: str | None,
    time_zone: str | None,
    *,
    cycle_day: int | None = None,
) -> BudgetSummary:
    """
    Daily budget snapshot for one user and local date.

    Store outages propagate as BudgetStoreUnavailableError; an unknown time zone
    degrades to UTC and is reported through `params.time_zone_fallback`.
    """
    local_date = resolve_summary_date(date_iso, time_zone)
    context = build_calendar_context(local_date, time_zone, cycle_day=cycle_day)

    budget_input = await load_budget_input(pool, user_id, context)
    result = compute_budget_for_context(context, budget_input)

    return BudgetSummary(
        params=SummaryParams(
            date=local_date.isoformat(),
            time_zone=time_zone,
            effective_time_zone=context.time_zone,
            time_zone_fallback=context.time_zone_fallback,
            cycle_day=cycle_day,
        ),
        data=result,
    )
