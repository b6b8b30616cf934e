"""Datetime helpers for reporting periods."""

from __future__ import annotations

import os
from datetime import date, datetime
from typing import Literal

import pendulum

DEFAULT_TZ = "America/New_York"

PeriodType = Literal["day", "week", "month"]
PERIOD_TYPES: tuple[str, ...] = ("day", "week", "month")

_VIEW_SUFFIXES = {"day": "daily", "week": "weekly", "month": "monthly"}


def timezone_name() -> str:
    return os.environ.get("TIMEZONE", DEFAULT_TZ)


def now_in_tz() -> pendulum.DateTime:
    tz = pendulum.timezone(timezone_name())
    return pendulum.now(tz)


def today_in_tz() -> date:
    return now_in_tz().date()


def parse_period_key(value: str | date) -> date:
    """Parse a period identifier into a calendar date.

    Period keys are ISO-8601 dates (``2024-01-03``). A full ISO timestamp is
    accepted and truncated to its date. Anything else raises ``ValueError``.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        raise ValueError("Empty period key")
    parsed = pendulum.parse(raw, strict=True)
    if isinstance(parsed, pendulum.DateTime):
        return parsed.date()
    if isinstance(parsed, date):
        return parsed
    raise ValueError(f"Not a calendar date: {value!r}")


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def interval_unit(period: str) -> str:
    """Database interval unit for a period type."""
    if period == "day":
        return "day"
    if period == "week":
        return "week"
    return "month"


def view_suffix(period: str) -> str:
    return _VIEW_SUFFIXES.get(period, "monthly")


def format_period_date(value: str | date, period: str) -> str:
    """Human readable label for one period bucket."""
    day = parse_period_key(value)
    if period == "day":
        return f"{day.strftime('%b')} {day.day}"
    if period == "week":
        return f"Week of {day.strftime('%b')} {day.day}"
    return day.strftime("%B %Y")


def lookback_start(period: str, lookback_units: int, today: date | None = None) -> date:
    """First date covered by a lookback window.

    Matches ``DATE_TRUNC(unit, CURRENT_DATE) - INTERVAL 'n unit'``: weeks start
    on Monday, months on the first.
    """
    current = today or today_in_tz()
    anchor = pendulum.date(current.year, current.month, current.day)
    unit = interval_unit(period)
    if unit == "day":
        start = anchor.subtract(days=lookback_units)
    elif unit == "week":
        start = anchor.start_of("week").subtract(weeks=lookback_units)
    else:
        start = anchor.start_of("month").subtract(months=lookback_units)
    return date(start.year, start.month, start.day)
