from __future__ import annotations

from dataclasses import asdict
from typing import Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .auth import get_current_user_id
from .config import settings
from .database import get_db_pool
from .services.budget_alerts import build_budget_alerts
from .services.budget_summary import (
    BudgetSummary,
    get_budget_summary_for_date,
    get_user_budget_preferences,
    resolve_summary_date,
)
from .services.monthly_goals import get_monthly_goal, upsert_monthly_goal
from .services.store import BudgetStoreUnavailableError, run_with_connection
from .services.summary_cache import SummaryCache, summary_cache_key, user_cache_prefix

# Daily budget endpoints: rolling per-day target derived from the month's income, goal and spend.
router = APIRouter(prefix="/budget", tags=["budget"])

STORE_RETRY_AFTER_SECONDS = 5


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MonthFactsOut(CamelModel):
    year: int
    month: int
    days_in_month: int
    today: int


class StartOfDayOut(CamelModel):
    available_cents: int
    remaining_days_including_today: int
    daily_target_cents: int


class EndOfDayOut(CamelModel):
    available_cents: int
    remaining_days_excluding_today: int
    daily_target_tomorrow_cents: int
    rollover_from_today_cents: int


class SafetyOut(CamelModel):
    overspend: bool
    overspend_cents: int


class BudgetDataOut(CamelModel):
    month: MonthFactsOut
    start_of_day: StartOfDayOut
    end_of_day: EndOfDayOut
    safety: SafetyOut


class SummaryParamsOut(CamelModel):
    date: str
    time_zone: str | None
    effective_time_zone: str
    time_zone_fallback: bool
    cycle_day: int | None


class BudgetSummaryResponse(CamelModel):
    params: SummaryParamsOut
    data: BudgetDataOut


class BudgetAlertOut(CamelModel):
    key: str
    level: Literal["info", "warn", "danger"]
    message: str


class BudgetAlertsResponse(CamelModel):
    alerts: list[BudgetAlertOut]
    budget: BudgetDataOut


class MonthlyGoalOut(CamelModel):
    year: int
    month: int
    saving_goal_cents: int


class MonthlyGoalResponse(CamelModel):
    goal: MonthlyGoalOut | None


class MonthlyGoalUpsertRequest(CamelModel):
    saving_goal_cents: int = Field(ge=0, strict=True)


def get_summary_cache(request: Request) -> SummaryCache | None:
    # Set up in the app lifespan; absent when caching is disabled.
    return getattr(request.app.state, "summary_cache", None)


def _store_unavailable() -> HTTPException:
    return HTTPException(
        status_code=503,
        detail="Budget data is temporarily unavailable. Try again shortly.",
        headers={"Retry-After": str(STORE_RETRY_AFTER_SECONDS)},
    )


async def _load_summary(
    pool: Any,
    cache: SummaryCache | None,
    user_id: UUID,
    date_param: str | None,
) -> BudgetSummary:
    try:
        preferences = await run_with_connection(pool, get_user_budget_preferences, user_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except BudgetStoreUnavailableError as exc:
        raise _store_unavailable() from exc

    time_zone = preferences.time_zone or settings.default_time_zone
    local_date = resolve_summary_date(date_param, time_zone)

    cache_key = summary_cache_key(user_id, local_date.isoformat(), time_zone, preferences.cycle_day)
    if cache is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

    try:
        summary = await get_budget_summary_for_date(
            pool,
            user_id,
            local_date.isoformat(),
            time_zone,
            cycle_day=preferences.cycle_day,
        )
    except BudgetStoreUnavailableError as exc:
        raise _store_unavailable() from exc

    if cache is not None:
        cache.set(cache_key, summary, settings.summary_cache_ttl_seconds)
    return summary


@router.get("/summary", response_model=BudgetSummaryResponse)
async def budget_summary(
    date_param: str | None = Query(default=None, alias="date", description="YYYY-MM-DD"),
    user_id: UUID = Depends(get_current_user_id),
    pool: Any = Depends(get_db_pool),
    cache: SummaryCache | None = Depends(get_summary_cache),
) -> BudgetSummaryResponse:
    """
    Return today's spendable amount and tomorrow's rolled-over target.

    Example response:
    {
      "params": {"date": "2025-11-18", "timeZone": "America/Montevideo",
                 "effectiveTimeZone": "America/Montevideo", "timeZoneFallback": false, "cycleDay": null},
      "data": {
        "month": {"year": 2025, "month": 11, "daysInMonth": 30, "today": 18},
        "startOfDay": {"availableCents": 150000, "remainingDaysIncludingToday": 13, "dailyTargetCents": 11538},
        "endOfDay": {"availableCents": 147000, "remainingDaysExcludingToday": 12,
                     "dailyTargetTomorrowCents": 12250, "rolloverFromTodayCents": 8538},
        "safety": {"overspend": false, "overspendCents": 0}
      }
    }
    """
    summary = await _load_summary(pool, cache, user_id, date_param)
    return BudgetSummaryResponse.model_validate(asdict(summary))


@router.get("/alerts", response_model=BudgetAlertsResponse)
async def budget_alerts(
    date_param: str | None = Query(default=None, alias="date", description="YYYY-MM-DD"),
    user_id: UUID = Depends(get_current_user_id),
    pool: Any = Depends(get_db_pool),
    cache: SummaryCache | None = Depends(get_summary_cache),
) -> BudgetAlertsResponse:
    """Alert cards (overspend, negative target) for the same snapshot as /budget/summary."""
    summary = await _load_summary(pool, cache, user_id, date_param)
    alerts = build_budget_alerts(summary.data)
    return BudgetAlertsResponse.model_validate(
        {
            "alerts": [asdict(alert) for alert in alerts],
            "budget": asdict(summary.data),
        }
    )


@router.get("/goals/{year}/{month}", response_model=MonthlyGoalResponse)
async def get_monthly_goal_endpoint(
    year: int = Path(ge=1, le=9999),
    month: int = Path(ge=1, le=12),
    user_id: UUID = Depends(get_current_user_id),
    pool: Any = Depends(get_db_pool),
) -> MonthlyGoalResponse:
    """Saving goal reserved out of the month's income; `goal` is null when unset."""
    try:
        goal = await run_with_connection(pool, get_monthly_goal, user_id, year, month)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except BudgetStoreUnavailableError as exc:
        raise _store_unavailable() from exc

    return MonthlyGoalResponse.model_validate({"goal": goal})


@router.put("/goals/{year}/{month}", response_model=MonthlyGoalResponse)
async def upsert_monthly_goal_endpoint(
    payload: MonthlyGoalUpsertRequest,
    year: int = Path(ge=1, le=9999),
    month: int = Path(ge=1, le=12),
    user_id: UUID = Depends(get_current_user_id),
    pool: Any = Depends(get_db_pool),
    cache: SummaryCache | None = Depends(get_summary_cache),
) -> MonthlyGoalResponse:
    """Create or replace the month's saving goal."""
    try:
        goal = await run_with_connection(
            pool,
            upsert_monthly_goal,
            user_id,
            year,
            month,
            payload.saving_goal_cents,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except BudgetStoreUnavailableError as exc:
        raise _store_unavailable() from exc

    # Cached summaries were computed against the old goal.
    if cache is not None:
        cache.invalidate_prefix(user_cache_prefix(user_id))

    return MonthlyGoalResponse.model_validate({"goal": goal})
