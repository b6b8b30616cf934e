"""Client for the hosted backend's RPC functions."""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from admissions.sources import DEFAULT_SCHEMA, metrics_schema
from admissions.sources.models import MetricDefinition, MetricsQueryError
from admissions.utils.retry import retry_async

logger = logging.getLogger(__name__)


def extract_rows(data: Any) -> list[dict[str, Any]]:
    """Unwrap the shapes an RPC call may answer with into a list of rows."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("rows", "result"):
            if isinstance(data.get(key), list):
                return data[key]
        return [data]
    raise MetricsQueryError(f"Unexpected RPC payload: {type(data).__name__}")


class RpcMetricsClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        schema: str = DEFAULT_SCHEMA,
        session: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.schema = schema
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Profile": schema,
            "Accept-Profile": schema,
        }
        self.session = session or httpx.AsyncClient(timeout=30.0)
        self.session.headers.update(headers)

    @classmethod
    def from_env(cls) -> "RpcMetricsClient":
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_KEY")
        if not url or not key:
            raise KeyError("SUPABASE_URL and SUPABASE_KEY are required")
        return cls(url, key, schema=metrics_schema())

    async def close(self) -> None:
        await self.session.aclose()

    async def call(self, function: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        url = f"{self.base_url}/rest/v1/rpc/{function}"
        try:
            response = await retry_async(self.session.post)(url, json=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise MetricsQueryError(f"RPC {function} failed: {exc}") from exc
        rows = extract_rows(response.json())
        for row in rows:
            if isinstance(row, dict) and "error" in row:
                raise MetricsQueryError(f"RPC {function} returned an error: {row['error']}")
        logger.info("RPC %s returned %d rows", function, len(rows))
        return rows

    async def fetch_metric(
        self,
        definition: MetricDefinition,
        period: str,
        lookback_units: int = 12,
        campus: str | None = None,
    ) -> list[dict[str, Any]]:
        if not definition.rpc_function:
            raise MetricsQueryError(f"Metric {definition.name} has no RPC function")
        params = {
            "time_period": period,
            "lookback_units": lookback_units,
            "campus_name": campus,
        }
        return await self.call(definition.rpc_function, params)
