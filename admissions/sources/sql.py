"""Read metric rows from the period views of the reporting schema."""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import text

from admissions.sources import DEFAULT_SCHEMA
from admissions.sources.models import Campus, MetricDefinition, MetricsQueryError
from admissions.utils.dates import format_date, lookback_start

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


class SqlMetricsSource:
    """Query pre-aggregated ``<prefix>_<daily|weekly|monthly>`` views."""

    def __init__(self, engine: Engine, schema: str | None = DEFAULT_SCHEMA) -> None:
        self.engine = engine
        self.schema = quote_identifier(schema) if schema else None

    def _qualified(self, relation: str) -> str:
        relation = quote_identifier(relation)
        if self.schema:
            return f"{self.schema}.{relation}"
        return relation

    def fetch_metric(
        self,
        definition: MetricDefinition,
        period: str,
        lookback_units: int = 12,
        campus: str | None = None,
        *,
        today: date | None = None,
    ) -> list[dict[str, Any]]:
        view = self._qualified(definition.view_name(period))
        value_column = quote_identifier(definition.value_column)
        query = f"""
            SELECT period_type, period_date, formatted_date, campus_name, {value_column}
            FROM {view}
            WHERE period_date >= :start
        """
        params: dict[str, Any] = {"start": format_date(lookback_start(period, lookback_units, today))}
        if campus:
            query += " AND campus_name = :campus"
            params["campus"] = campus
        query += " ORDER BY period_date DESC"

        try:
            with self.engine.connect() as conn:
                rows = [dict(row) for row in conn.execute(text(query), params).mappings()]
        except SQLAlchemyError as exc:
            logger.exception("Query against %s failed", view)
            raise MetricsQueryError(f"Failed to fetch {definition.name} metrics") from exc
        logger.info("Fetched %d %s rows from %s", len(rows), definition.name, view)
        return rows

    def fetch_campuses(self, school_year: str | None = None) -> list[Campus]:
        """Campuses with at least one closed won opportunity."""
        query = f"""
            SELECT DISTINCT o.preferred_campus_c AS campus_name
            FROM {self._qualified("opportunity")} o
            WHERE o.preferred_campus_c IS NOT NULL
              AND o.is_closed = TRUE
              AND o.is_won = TRUE
        """
        params: dict[str, Any] = {}
        if school_year:
            query += " AND o.school_year_c = :school_year"
            params["school_year"] = school_year
        query += " ORDER BY o.preferred_campus_c"

        try:
            with self.engine.connect() as conn:
                names = [row[0] for row in conn.execute(text(query), params)]
        except SQLAlchemyError as exc:
            logger.exception("Campus query failed")
            raise MetricsQueryError("Failed to fetch campuses") from exc
        return [Campus(campus_id=name, campus_name=name) for name in names]

    def fetch_grade_enrollment(self, campus: str | None = None) -> list[dict[str, Any]]:
        """Enrollment per grade for one campus, or summed over all campuses."""
        summary = self._qualified("grade_enrollment_summary")
        if campus:
            query = f"SELECT grade, enrollment_count FROM {summary} WHERE campus = :campus"
            params: dict[str, Any] = {"campus": campus}
        else:
            query = f"SELECT grade, SUM(enrollment_count) AS enrollment_count FROM {summary} GROUP BY grade"
            params = {}

        try:
            with self.engine.connect() as conn:
                rows = [dict(row) for row in conn.execute(text(query), params).mappings()]
        except SQLAlchemyError as exc:
            logger.exception("Grade enrollment query failed")
            raise MetricsQueryError("Failed to fetch grade enrollment") from exc
        logger.info("Fetched %d grade enrollment rows for %s", len(rows), campus or "all campuses")
        return rows
