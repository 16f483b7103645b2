"""Per-month saving goals, keyed by (user_id, month_start)."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any


def month_anchor(year: int, month: int) -> date:
    """Goals are stored against the first day of their month."""
    if month < 1 or month > 12:
        raise ValueError("month must be between 1 and 12")
    if year < 1 or year > 9999:
        raise ValueError("year is out of range")
    return date(year, month, 1)


def _goal_payload(row: dict) -> dict[str, Any]:
    month_start: date = row["month_start"]
    return {
        "year": month_start.year,
        "month": month_start.month,
        "saving_goal_cents": int(row["saving_goal_cents"]),
    }


async def get_saving_goal_cents(connection: AsyncConnection, user_id: UUID, anchor: date) -> int:
    """Saving goal for the month; 0 when the user never set one."""
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT saving_goal_cents
            FROM monthly_goals
            WHERE user_id = %s
              AND month_start = %s
            """,
            (user_id, anchor),
        )
        row = await cursor.fetchone()

    if row is None or row["saving_goal_cents"] is None:
        return 0
    return int(row["saving_goal_cents"])


async def get_monthly_goal(
    connection: AsyncConnection,
    user_id: UUID,
    year: int,
    month: int,
) -> dict[str, Any] | None:
    anchor = month_anchor(year, month)

    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT month_start, saving_goal_cents
            FROM monthly_goals
            WHERE user_id = %s
              AND month_start = %s
            """,
            (user_id, anchor),
        )
        row = await cursor.fetchone()

    if row is None:
        return None
    return _goal_payload(row)


async def upsert_monthly_goal(
    connection: AsyncConnection,
    user_id: UUID,
    year: int,
    month: int,
    saving_goal_cents: int,
) -> dict[str, Any]:
    anchor = month_anchor(year, month)
    if saving_goal_cents < 0:
        raise ValueError("saving_goal_cents cannot be negative")

    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            INSERT INTO monthly_goals (user_id, month_start, saving_goal_cents)
            VALUES (%s, %s, %s)
            ON CONFLICT (user_id, month_start)
            DO UPDATE SET
                saving_goal_cents = EXCLUDED.saving_goal_cents,
                updated_at = NOW()
            RETURNING month_start, saving_goal_cents
            """,
            (user_id, anchor, saving_goal_cents),
        )
        row = await cursor.fetchone()

    return _goal_payload(row)
