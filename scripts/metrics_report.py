"""Print a period-over-period report for one dashboard metric."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from dotenv import load_dotenv

from admissions.db.session import create_engine_from_env
from admissions.logic.metrics import format_metrics, normalize_rows
from admissions.sources import get_metric, metrics_schema
from admissions.sources.models import MetricDefinition, MetricsQueryError
from admissions.sources.rpc import RpcMetricsClient
from admissions.sources.sql import SqlMetricsSource
from admissions.utils.dates import PERIOD_TYPES, today_in_tz


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("metric")
    parser.add_argument("--period", choices=PERIOD_TYPES, default="week")
    parser.add_argument("--lookback", type=int, default=12)
    parser.add_argument("--campus")
    parser.add_argument("--rpc", action="store_true", help="query the hosted RPC function instead of the views")
    return parser.parse_args(argv)


async def _fetch_rpc(definition: MetricDefinition, args: argparse.Namespace) -> list[dict[str, Any]]:
    client = RpcMetricsClient.from_env()
    try:
        return await client.fetch_metric(definition, args.period, args.lookback, args.campus)
    finally:
        await client.close()


def fetch_rows(definition: MetricDefinition, args: argparse.Namespace) -> list[dict[str, Any]]:
    if args.rpc:
        return asyncio.run(_fetch_rpc(definition, args))
    source = SqlMetricsSource(create_engine_from_env(), schema=metrics_schema())
    return source.fetch_metric(definition, args.period, args.lookback, args.campus)


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    args = parse_args(argv)
    try:
        definition = get_metric(args.metric)
    except KeyError as exc:
        raise SystemExit(str(exc))
    try:
        rows = normalize_rows(fetch_rows(definition, args), definition.value_column, args.period)
    except MetricsQueryError as exc:
        print(f"Query failed: {exc}", file=sys.stderr)
        sys.exit(2)
    except ValueError as exc:
        print(f"Malformed {definition.name} data: {exc}", file=sys.stderr)
        sys.exit(2)
    metrics = format_metrics(rows, args.period, cumulative=definition.cumulative, today=today_in_tz())
    print(f"{definition.label} by {args.period} ({args.campus or 'All Campuses'})")
    for point in metrics.time_series:
        change = metrics.changes.raw.get(point.period, 0)
        pct = metrics.changes.percentage.get(point.period, 0)
        print(f"{point.formatted_date:>16}  {point.total:>12,.0f}  {change:>+10,.0f}  {pct:>+7.1f}%")


if __name__ == "__main__":
    main()
