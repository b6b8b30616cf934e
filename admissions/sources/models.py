"""Metric source data models."""

from __future__ import annotations

from dataclasses import dataclass

from admissions.utils.dates import view_suffix


class MetricsQueryError(RuntimeError):
    """The hosted backend failed to return metric rows."""


@dataclass(slots=True)
class MetricDefinition:
    name: str
    label: str
    view_prefix: str
    value_column: str
    rpc_function: str | None = None
    cumulative: bool = False

    def view_name(self, period: str) -> str:
        return f"{self.view_prefix}_{view_suffix(period)}"


@dataclass(slots=True)
class Campus:
    campus_id: str
    campus_name: str
