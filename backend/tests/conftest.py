from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from datetime import date, datetime
from uuid import UUID

import pytest
from psycopg import OperationalError

# Settings are read at import time; tests never talk to a real database.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("DATABASE_URL", "")


class FakeCursor:
    """Answers the handful of SQL shapes issued by the budget services."""

    def __init__(self, store: "FakeStore"):
        self.store = store
        self._row = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def execute(self, query, params=None):
        params = params or ()
        normalized = " ".join(query.split())
        self.store.queries.append(normalized)
        self._row = None

        # Yield so gathered reads overlap like they would against a real server.
        await asyncio.sleep(0)

        if normalized.startswith("SELECT time_zone, budget_cycle_day FROM users"):
            (user_id,) = params
            self._row = self.store.users.get(user_id)
            return

        if normalized.startswith("SELECT saving_goal_cents FROM monthly_goals"):
            user_id, month_start = params
            cents = self.store.goals.get((user_id, month_start))
            self._row = None if cents is None else {"saving_goal_cents": cents}
            return

        if normalized.startswith("SELECT month_start, saving_goal_cents FROM monthly_goals"):
            user_id, month_start = params
            cents = self.store.goals.get((user_id, month_start))
            self._row = None if cents is None else {"month_start": month_start, "saving_goal_cents": cents}
            return

        if normalized.startswith("INSERT INTO monthly_goals"):
            user_id, month_start, cents = params
            self.store.goals[(user_id, month_start)] = cents
            self._row = {"month_start": month_start, "saving_goal_cents": cents}
            return

        if normalized.startswith("SELECT COALESCE(SUM(amount_cents), 0)::bigint AS total_cents FROM transactions"):
            user_id, transaction_type, start, end = params
            inclusive = "occurred_at <= %s" in normalized
            total = 0
            for row in self.store.transactions:
                occurred_at = row["occurred_at"]
                if row["user_id"] != user_id or row["type"] != transaction_type:
                    continue
                if row.get("deleted_at") is not None:
                    continue
                if occurred_at < start:
                    continue
                if occurred_at > end or (not inclusive and occurred_at == end):
                    continue
                total += row["amount_cents"]
            self._row = {"total_cents": total}
            return

        raise AssertionError(f"Unexpected query: {normalized}")

    async def fetchone(self):
        return self._row


class FakeConnection:
    def __init__(self, store: "FakeStore"):
        self.store = store

    def cursor(self):
        return FakeCursor(self.store)


class FakePool:
    def __init__(self, store: "FakeStore", *, fail: bool = False):
        self.store = store
        self.fail = fail
        self.active = 0
        self.max_active = 0
        self.checkouts = 0

    @asynccontextmanager
    async def connection(self):
        if self.fail:
            raise OperationalError("connection refused")

        self.checkouts += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            yield FakeConnection(self.store)
        finally:
            self.active -= 1


class FakeStore:
    def __init__(self):
        self.users: dict[UUID, dict] = {}
        self.goals: dict[tuple[UUID, date], int] = {}
        self.transactions: list[dict] = []
        self.queries: list[str] = []

    def add_user(self, user_id: UUID, *, time_zone: str | None = "UTC", budget_cycle_day: int | None = None) -> None:
        self.users[user_id] = {"time_zone": time_zone, "budget_cycle_day": budget_cycle_day}

    def add_transaction(
        self,
        user_id: UUID,
        transaction_type: str,
        amount_cents: int,
        occurred_at: datetime,
        *,
        deleted_at: datetime | None = None,
    ) -> None:
        self.transactions.append(
            {
                "user_id": user_id,
                "type": transaction_type,
                "amount_cents": amount_cents,
                "occurred_at": occurred_at,
                "deleted_at": deleted_at,
            }
        )

    def pool(self, *, fail: bool = False) -> FakePool:
        return FakePool(self, fail=fail)


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()
