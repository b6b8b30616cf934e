"""Metric catalog and the backends that serve metric rows."""

from __future__ import annotations

import os
import pathlib

import yaml

from admissions.sources.models import MetricDefinition

CATALOG_PATH = pathlib.Path(__file__).with_name("metrics.yml")

DEFAULT_SCHEMA = "fivetran_views"


def metrics_schema() -> str:
    return os.environ.get("METRICS_SCHEMA", DEFAULT_SCHEMA)


def load_metric_catalog() -> dict[str, MetricDefinition]:
    data = yaml.safe_load(CATALOG_PATH.read_text())
    return {item["name"]: MetricDefinition(**item) for item in data}


def get_metric(name: str) -> MetricDefinition:
    catalog = load_metric_catalog()
    if name not in catalog:
        raise KeyError(f"Unknown metric: {name}")
    return catalog[name]
