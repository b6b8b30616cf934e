"""FastAPI application serving dashboard metrics."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict
from functools import lru_cache

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.engine import Engine

from admissions.db.session import create_engine_from_env
from admissions.logic.enrollment import grade_bands
from admissions.logic.export_csv import metrics_csv
from admissions.logic.metrics import FormattedMetrics, format_metrics, normalize_rows
from admissions.sources import get_metric, metrics_schema
from admissions.sources.models import MetricDefinition, MetricsQueryError
from admissions.sources.sql import SqlMetricsSource
from admissions.utils.dates import PeriodType, today_in_tz

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK = int(os.environ.get("DEFAULT_LOOKBACK", 12))

app = FastAPI(title="Admissions Analytics API")


class MetricRowModel(BaseModel):
    period_type: str
    period_date: str
    formatted_date: str
    campus_name: str
    value: float


class TimeSeriesPointModel(BaseModel):
    period: str
    formatted_date: str
    total: float
    campuses: dict[str, float]


class ChangesModel(BaseModel):
    raw: dict[str, float]
    percentage: dict[str, float]


class MetricsResponse(BaseModel):
    metric: str
    label: str
    period_type: str
    rows: list[MetricRowModel]
    periods: list[str]
    campuses: list[str]
    totals: dict[str, float]
    campus_totals: dict[str, float]
    latest_period: str | None
    latest_total: float
    changes: ChangesModel
    time_series: list[TimeSeriesPointModel]


class CampusModel(BaseModel):
    campus_id: str
    campus_name: str


class GradeBandModel(BaseModel):
    grade_band: str
    enrollment_count: int


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_engine_from_env()


def get_source() -> SqlMetricsSource:
    return SqlMetricsSource(get_engine(), schema=metrics_schema())


def _definition(metric: str) -> MetricDefinition:
    try:
        return get_metric(metric)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown metric {metric}") from exc


def _load(
    source: SqlMetricsSource,
    definition: MetricDefinition,
    period: str,
    lookback_units: int,
    campus: str | None,
) -> FormattedMetrics:
    try:
        raw = source.fetch_metric(definition, period, lookback_units, campus)
    except MetricsQueryError as exc:
        logger.error("Metrics backend error for %s: %s", definition.name, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    try:
        rows = normalize_rows(raw, definition.value_column, period)
    except ValueError as exc:
        logger.error("Malformed %s row from backend: %s", definition.name, exc)
        raise HTTPException(status_code=502, detail=f"Malformed {definition.name} data: {exc}") from exc
    return format_metrics(rows, period, cumulative=definition.cumulative, today=today_in_tz())


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metrics/{metric}", response_model=MetricsResponse)
async def metric_detail(
    metric: str,
    period: PeriodType = "week",
    lookback_units: int = Query(DEFAULT_LOOKBACK, ge=1, le=104),
    campus: str | None = None,
    source: SqlMetricsSource = Depends(get_source),
) -> MetricsResponse:
    definition = _definition(metric)
    metrics = _load(source, definition, period, lookback_units, campus)
    return MetricsResponse(metric=definition.name, label=definition.label, **asdict(metrics))


@app.get("/metrics/{metric}/export.csv")
async def metric_export(
    metric: str,
    period: PeriodType = "week",
    lookback_units: int = Query(DEFAULT_LOOKBACK, ge=1, le=104),
    campus: str | None = None,
    source: SqlMetricsSource = Depends(get_source),
) -> Response:
    definition = _definition(metric)
    metrics = _load(source, definition, period, lookback_units, campus)
    filename = f"{definition.name}-{period}.csv"
    return Response(
        content=metrics_csv(metrics),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/campuses", response_model=list[CampusModel])
async def campuses(
    school_year: str | None = None,
    source: SqlMetricsSource = Depends(get_source),
) -> list[CampusModel]:
    try:
        found = source.fetch_campuses(school_year)
    except MetricsQueryError as exc:
        logger.error("Campus lookup failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [CampusModel(campus_id=c.campus_id, campus_name=c.campus_name) for c in found]


@app.get("/enrollment/grade-bands", response_model=list[GradeBandModel])
async def grade_band_enrollment(
    campus: str | None = None,
    source: SqlMetricsSource = Depends(get_source),
) -> list[GradeBandModel]:
    try:
        bands = grade_bands(source.fetch_grade_enrollment(campus))
    except MetricsQueryError as exc:
        logger.error("Grade enrollment lookup failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ValueError as exc:
        logger.error("Malformed grade enrollment row from backend: %s", exc)
        raise HTTPException(status_code=502, detail=f"Malformed grade enrollment data: {exc}") from exc
    return [GradeBandModel(grade_band=b.grade_band, enrollment_count=b.enrollment_count) for b in bands]
