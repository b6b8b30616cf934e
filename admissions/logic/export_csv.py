"""CSV export helpers."""

from __future__ import annotations

import os
from pathlib import Path

import pandas as pd

from admissions.logic.metrics import FormattedMetrics

OUTPUT_DIR = Path(os.environ.get("CSV_OUTPUT_DIR", "artifacts/csv"))

BASE_COLUMNS = ["period", "label"]
TRAILING_COLUMNS = ["total", "change", "change_pct"]


def metrics_frame(metrics: FormattedMetrics) -> pd.DataFrame:
    """One row per period, newest first, with a column per campus."""
    columns = BASE_COLUMNS + metrics.campuses + TRAILING_COLUMNS
    if not metrics.time_series:
        return pd.DataFrame(columns=columns)
    records = []
    for point in metrics.time_series:
        record = {"period": point.period, "label": point.formatted_date}
        for campus in metrics.campuses:
            record[campus] = point.campuses.get(campus, 0)
        record["total"] = point.total
        record["change"] = metrics.changes.raw.get(point.period, 0)
        record["change_pct"] = round(metrics.changes.percentage.get(point.period, 0), 2)
        records.append(record)
    return pd.DataFrame.from_records(records, columns=columns)


def metrics_csv(metrics: FormattedMetrics) -> str:
    return metrics_frame(metrics).to_csv(index=False)


def write_metrics_csv(metrics: FormattedMetrics, name: str) -> Path:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    file_path = OUTPUT_DIR / f"{name}-{metrics.period_type}.csv"
    metrics_frame(metrics).to_csv(file_path, index=False)
    return file_path
