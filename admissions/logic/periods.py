"""Period-over-period change calculation and period/campus key extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from admissions.utils.dates import parse_period_key

NO_CAMPUS_MATCH = "No Campus Match"


@dataclass(slots=True)
class PeriodChanges:
    raw: dict[str, float] = field(default_factory=dict)
    percentage: dict[str, float] = field(default_factory=dict)


def compute_period_changes(periods: Sequence[str], totals: Mapping[str, float]) -> PeriodChanges:
    """Change of each period against the next older one.

    ``periods`` must be ordered newest first. Totals missing from ``totals``
    count as zero. The oldest period has nothing to compare against and is
    pinned to zero change.
    """
    changes = PeriodChanges()
    if len(periods) < 2:
        return changes

    for current_key, previous_key in zip(periods, periods[1:]):
        current = totals.get(current_key) or 0
        previous = totals.get(previous_key) or 0
        changes.raw[current_key] = current - previous
        if previous == 0:
            # growth from an empty period saturates at 100%
            changes.percentage[current_key] = 100 if current > 0 else 0
        else:
            changes.percentage[current_key] = (current - previous) / previous * 100

    oldest = periods[-1]
    changes.raw[oldest] = 0
    changes.percentage[oldest] = 0
    return changes


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def distinct_sorted_periods(records: Iterable[Any]) -> list[str]:
    """Distinct ``period_date`` values, newest first by calendar date."""
    keys = {_field(record, "period_date") for record in records}
    keys.discard(None)
    return sorted(keys, key=parse_period_key, reverse=True)


def distinct_location_labels(records: Iterable[Any]) -> set[str]:
    labels = {_field(record, "campus_name") for record in records}
    labels.discard(None)
    labels.discard(NO_CAMPUS_MATCH)
    return labels
