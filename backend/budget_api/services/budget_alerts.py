from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .daily_budget import BudgetResult

AlertLevel = Literal["info", "warn", "danger"]


@dataclass(frozen=True)
class BudgetAlert:
    key: str
    level: AlertLevel
    message: str


def spent_today_cents(result: BudgetResult) -> int:
    return result.start_of_day.available_cents - result.end_of_day.available_cents


def build_budget_alerts(result: BudgetResult) -> list[BudgetAlert]:
    """Deterministic alert cards for one budget snapshot, most severe first."""
    alerts: list[BudgetAlert] = []

    if result.safety.overspend:
        alerts.append(
            BudgetAlert(
                key="overspend",
                level="danger",
                message="You have spent more than this month's available budget.",
            )
        )

    daily_target = result.start_of_day.daily_target_cents
    if daily_target < 0:
        alerts.append(
            BudgetAlert(
                key="negative_daily_target",
                level="warn",
                message="Today's daily target is negative: lower your saving goal or add income.",
            )
        )
    elif spent_today_cents(result) > daily_target and not result.safety.overspend:
        alerts.append(
            BudgetAlert(
                key="over_daily_target",
                level="info",
                message="You spent more than today's target; tomorrow's target is lower.",
            )
        )

    return alerts
