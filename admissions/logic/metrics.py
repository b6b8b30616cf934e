"""Reduce per-period, per-campus metric rows into dashboard-ready totals."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping, Sequence

from admissions.logic.periods import (
    PeriodChanges,
    compute_period_changes,
    distinct_location_labels,
    distinct_sorted_periods,
)
from admissions.utils.dates import format_date, format_period_date, parse_period_key

logger = logging.getLogger(__name__)

ALL_CAMPUSES = "All Campuses"


@dataclass(slots=True)
class MetricRow:
    period_type: str
    period_date: str
    formatted_date: str
    campus_name: str
    value: float


@dataclass(slots=True)
class TimeSeriesPoint:
    period: str
    formatted_date: str
    total: float
    campuses: dict[str, float]


@dataclass(slots=True)
class FormattedMetrics:
    period_type: str
    rows: list[MetricRow] = field(default_factory=list)
    periods: list[str] = field(default_factory=list)
    campuses: list[str] = field(default_factory=list)
    totals: dict[str, float] = field(default_factory=dict)
    campus_totals: dict[str, float] = field(default_factory=dict)
    latest_period: str | None = None
    latest_total: float = 0
    changes: PeriodChanges = field(default_factory=PeriodChanges)
    time_series: list[TimeSeriesPoint] = field(default_factory=list)

    @classmethod
    def empty(cls, period: str) -> "FormattedMetrics":
        return cls(period_type=period)

    def value_for(self, period_key: str, campus: str) -> float:
        point = next((p for p in self.time_series if p.period == period_key), None)
        if point is None:
            return 0
        if campus == ALL_CAMPUSES:
            return point.total
        return point.campuses.get(campus, 0)


def _number(value: Any) -> float:
    if value is None or value == "":
        return 0
    if isinstance(value, (int, float)):
        return value
    number = float(value)
    return int(number) if number.is_integer() else number


def normalize_rows(raw_rows: Iterable[Mapping[str, Any]], value_field: str, period: str) -> list[MetricRow]:
    """Coerce raw query rows into ``MetricRow`` values.

    Rows may carry ``period_date`` or ``period_start`` as a date or an ISO
    string; the value column is read from ``value_field``.
    """
    rows: list[MetricRow] = []
    for raw in raw_rows:
        period_value = raw.get("period_date") or raw.get("period_start")
        if period_value is None:
            logger.warning("Skipping metric row without a period date: %s", dict(raw))
            continue
        period_key = format_date(parse_period_key(period_value))
        row_period = raw.get("period_type") or period
        rows.append(
            MetricRow(
                period_type=row_period,
                period_date=period_key,
                formatted_date=raw.get("formatted_date") or format_period_date(period_key, row_period),
                campus_name=raw.get("campus_name") or ALL_CAMPUSES,
                value=_number(raw.get(value_field)),
            )
        )
    return rows


def format_metrics(
    rows: Sequence[MetricRow],
    period: str,
    *,
    cumulative: bool = False,
    today: date | None = None,
) -> FormattedMetrics:
    """Fold rows into per-period totals, per-campus values and changes.

    Period totals count every row, unmatched campuses included. Per-campus
    maps only carry the known campuses. For cumulative metrics a campus's
    total is its value in the latest period it reports, not a sum.
    """
    if not rows:
        logger.warning("No %s metric rows to format", period)
        return FormattedMetrics.empty(period)

    periods = distinct_sorted_periods(rows)
    campuses = sorted(distinct_location_labels(rows))

    by_period: dict[str, list[MetricRow]] = defaultdict(list)
    for row in rows:
        by_period[row.period_date].append(row)

    totals: dict[str, float] = {}
    campus_totals: dict[str, float] = dict.fromkeys(campuses, 0)
    latest_seen: set[str] = set()
    time_series: list[TimeSeriesPoint] = []
    for key in periods:
        period_rows = by_period[key]
        campus_values: dict[str, float] = dict.fromkeys(campuses, 0)
        for row in period_rows:
            if row.campus_name in campus_values:
                campus_values[row.campus_name] += row.value
        for campus, value in campus_values.items():
            if not cumulative:
                campus_totals[campus] += value
            elif campus not in latest_seen and any(r.campus_name == campus for r in period_rows):
                campus_totals[campus] = value
                latest_seen.add(campus)
        totals[key] = sum(row.value for row in period_rows)
        time_series.append(
            TimeSeriesPoint(
                period=key,
                formatted_date=_series_label(period_rows[0], period, today),
                total=totals[key],
                campuses=campus_values,
            )
        )

    return FormattedMetrics(
        period_type=period,
        rows=list(rows),
        periods=periods,
        campuses=campuses,
        totals=totals,
        campus_totals=campus_totals,
        latest_period=periods[0],
        latest_total=totals[periods[0]],
        changes=compute_period_changes(periods, totals),
        time_series=time_series,
    )


def _series_label(row: MetricRow, period: str, today: date | None) -> str:
    if period == "day" and today is not None and parse_period_key(row.period_date) == today:
        return "Today"
    return row.formatted_date or row.period_date
