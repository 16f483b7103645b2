"""
Calendar and timezone normalization for budget periods.

A budget period is either the user's local calendar month or a pay cycle that
starts on a fixed day of the month. Both strategies produce a CalendarContext
whose boundaries are aware UTC datetimes, ready to be used as query bounds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import HTTPException

logger = logging.getLogger(__name__)

UTC_ZONE_NAME = "UTC"
MIN_CYCLE_DAY = 1
MAX_CYCLE_DAY = 28
MIN_SUPPORTED_YEAR = 2
MAX_SUPPORTED_YEAR = 9998

# Period ends are reported as the last millisecond before the next period starts.
LAST_INSTANT_OFFSET = timedelta(milliseconds=1)


@dataclass(frozen=True)
class CalendarContext:
    local_date: date
    time_zone: str
    time_zone_fallback: bool
    year: int
    month: int
    day_of_month: int
    # Calendar days in the month, or the cycle length for pay-cycle periods.
    days_in_month: int
    day_start: datetime
    day_end: datetime
    month_start: datetime
    month_end: datetime
    month_anchor: date


def resolve_time_zone(name: str | None) -> tuple[ZoneInfo, str, bool]:
    """
    Return (zone, effective_name, fell_back).

    Unknown or malformed identifiers never fail the request: they resolve to UTC
    and the caller is told through `fell_back`.
    """
    candidate = (name or "").strip()
    if candidate:
        try:
            return ZoneInfo(candidate), candidate, False
        except (ZoneInfoNotFoundError, ValueError, OSError):
            logger.warning("Unknown time zone %r, falling back to UTC", candidate)
    else:
        logger.warning("Empty time zone, falling back to UTC")

    return ZoneInfo(UTC_ZONE_NAME), UTC_ZONE_NAME, True


def parse_iso_date(value: str | None, *, today: date | None = None) -> date:
    """Parse YYYY-MM-DD; default to `today` when omitted."""
    if value is None:
        return today or date.today()

    if len(value) != 10 or value[4] != "-" or value[7] != "-":
        raise HTTPException(status_code=422, detail="Expected YYYY-MM-DD")

    try:
        parsed = date.fromisoformat(value)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail="Expected YYYY-MM-DD") from exc

    return _check_supported_year(parsed)


def _check_supported_year(value: date) -> date:
    # Period bounds reach one month and one UTC offset past the date itself.
    if value.year < MIN_SUPPORTED_YEAR or value.year > MAX_SUPPORTED_YEAR:
        raise HTTPException(
            status_code=422,
            detail=f"Expected YYYY-MM-DD with a year between {MIN_SUPPORTED_YEAR} and {MAX_SUPPORTED_YEAR}",
        )
    return value


def today_in_zone(time_zone: str | None, *, now: datetime | None = None) -> date:
    """Local calendar date for the user's zone."""
    zone, _, _ = resolve_time_zone(time_zone)
    current = now or datetime.now(timezone.utc)
    return current.astimezone(zone).date()


def shift_months(month_start: date, offset: int) -> date:
    # Normalize any input date to month start for stable month arithmetic.
    absolute_index = (month_start.year * 12 + (month_start.month - 1)) + offset
    next_year, month_zero_based = divmod(absolute_index, 12)
    return date(next_year, month_zero_based + 1, 1)


def validate_cycle_day(cycle_day: int) -> int:
    # Days 29-31 do not exist in every month, so cycles cannot anchor on them.
    if cycle_day < MIN_CYCLE_DAY or cycle_day > MAX_CYCLE_DAY:
        raise ValueError(f"cycle_day must be between {MIN_CYCLE_DAY} and {MAX_CYCLE_DAY}")
    return cycle_day


def local_midnight_utc(day: date, zone: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def _coerce_date(value: date | str) -> date:
    if isinstance(value, date):
        return _check_supported_year(value)
    return parse_iso_date(value)


def _build_context(
    local_date: date,
    time_zone: str | None,
    period_start: date,
    period_end_exclusive: date,
) -> CalendarContext:
    zone, effective_name, fell_back = resolve_time_zone(time_zone)
    next_day = local_date + timedelta(days=1)

    # Next-midnight minus one instant keeps 23h and 25h DST days exact.
    return CalendarContext(
        local_date=local_date,
        time_zone=effective_name,
        time_zone_fallback=fell_back,
        year=period_start.year,
        month=period_start.month,
        day_of_month=(local_date - period_start).days + 1,
        days_in_month=(period_end_exclusive - period_start).days,
        day_start=local_midnight_utc(local_date, zone),
        day_end=local_midnight_utc(next_day, zone) - LAST_INSTANT_OFFSET,
        month_start=local_midnight_utc(period_start, zone),
        month_end=local_midnight_utc(period_end_exclusive, zone) - LAST_INSTANT_OFFSET,
        month_anchor=date(period_start.year, period_start.month, 1),
    )


def calendar_month_context(local_date: date | str, time_zone: str | None) -> CalendarContext:
    """Budget period = the local calendar month containing `local_date`."""
    day = _coerce_date(local_date)
    month_start = date(day.year, day.month, 1)
    return _build_context(day, time_zone, month_start, shift_months(month_start, 1))


def cycle_month_context(
    local_date: date | str,
    time_zone: str | None,
    cycle_day: int,
) -> CalendarContext:
    """
    Budget period = pay cycle anchored on `cycle_day`.

    When the date precedes the anchor day, the cycle started in the previous
    month. `year`/`month` name the month the cycle starts in.
    """
    day = _coerce_date(local_date)
    validate_cycle_day(cycle_day)

    if day.day >= cycle_day:
        cycle_start = date(day.year, day.month, cycle_day)
    else:
        cycle_start = shift_months(date(day.year, day.month, 1), -1).replace(day=cycle_day)

    next_cycle_start = shift_months(cycle_start, 1).replace(day=cycle_day)
    return _build_context(day, time_zone, cycle_start, next_cycle_start)


def build_calendar_context(
    local_date: date | str,
    time_zone: str | None,
    *,
    cycle_day: int | None = None,
) -> CalendarContext:
    if cycle_day is None:
        return calendar_month_context(local_date, time_zone)
    return cycle_month_context(local_date, time_zone, cycle_day)
