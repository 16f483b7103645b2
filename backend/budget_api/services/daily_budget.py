from __future__ import annotations

from dataclasses import dataclass

from .calendar_context import CalendarContext


@dataclass(frozen=True)
class BudgetInput:
    total_income_cents: int
    saving_goal_cents: int
    spent_before_today_cents: int
    spent_today_cents: int


@dataclass(frozen=True)
class MonthFacts:
    year: int
    month: int
    days_in_month: int
    today: int


@dataclass(frozen=True)
class StartOfDay:
    available_cents: int
    remaining_days_including_today: int
    daily_target_cents: int


@dataclass(frozen=True)
class EndOfDay:
    available_cents: int
    remaining_days_excluding_today: int
    daily_target_tomorrow_cents: int
    rollover_from_today_cents: int


@dataclass(frozen=True)
class Safety:
    overspend: bool
    overspend_cents: int


@dataclass(frozen=True)
class BudgetResult:
    month: MonthFacts
    start_of_day: StartOfDay
    end_of_day: EndOfDay
    safety: Safety


def compute_daily_budget_with_rollover(
    *,
    year: int,
    month: int,
    day_of_month: int,
    days_in_month: int,
    total_income_cents: int,
    spent_before_today_cents: int,
    spent_today_cents: int,
    saving_goal_cents: int,
) -> BudgetResult:
    """
    Split what is left of the month evenly over the remaining days.

    All values are integer cents and every division is a floor division, so a
    negative balance rounds toward negative infinity (-1 // 2 == -1).
    Today's unspent target rolls forward; overspending today shows up in the
    end-of-day balance instead of a negative rollover.
    """
    available_start_cents = total_income_cents - saving_goal_cents - spent_before_today_cents
    # The last day of the month still counts as one day to spend.
    remaining_days_including_today = max(days_in_month - day_of_month + 1, 1)
    daily_target_cents = available_start_cents // remaining_days_including_today

    available_end_cents = available_start_cents - spent_today_cents
    rollover_from_today_cents = max(daily_target_cents - spent_today_cents, 0)

    remaining_days_excluding_today = max(days_in_month - day_of_month, 0)
    if remaining_days_excluding_today > 0:
        daily_target_tomorrow_cents = available_end_cents // remaining_days_excluding_today
    else:
        # No tomorrow inside this budget period.
        daily_target_tomorrow_cents = 0

    overspend = available_end_cents < 0

    return BudgetResult(
        month=MonthFacts(
            year=year,
            month=month,
            days_in_month=days_in_month,
            today=day_of_month,
        ),
        start_of_day=StartOfDay(
            available_cents=available_start_cents,
            remaining_days_including_today=remaining_days_including_today,
            daily_target_cents=daily_target_cents,
        ),
        end_of_day=EndOfDay(
            available_cents=available_end_cents,
            remaining_days_excluding_today=remaining_days_excluding_today,
            daily_target_tomorrow_cents=daily_target_tomorrow_cents,
            rollover_from_today_cents=rollover_from_today_cents,
        ),
        safety=Safety(
            overspend=overspend,
            overspend_cents=-available_end_cents if overspend else 0,
        ),
    )


def compute_budget_for_context(context: CalendarContext, budget_input: BudgetInput) -> BudgetResult:
    return compute_daily_budget_with_rollover(
        year=context.year,
        month=context.month,
        day_of_month=context.day_of_month,
        days_in_month=context.days_in_month,
        total_income_cents=budget_input.total_income_cents,
        spent_before_today_cents=budget_input.spent_before_today_cents,
        spent_today_cents=budget_input.spent_today_cents,
        saving_goal_cents=budget_input.saving_goal_cents,
    )
