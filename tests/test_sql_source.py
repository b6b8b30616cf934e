import pytest

from admissions.logic.metrics import format_metrics, normalize_rows
from admissions.sources import get_metric, load_metric_catalog
from admissions.sources.models import MetricDefinition, MetricsQueryError
from admissions.sources.sql import SqlMetricsSource, quote_identifier


def test_catalog_lists_dashboard_metrics():
    catalog = load_metric_catalog()
    assert set(catalog) == {"leads", "converted_leads", "closed_won", "cumulative_arr"}
    assert catalog["leads"].view_name("week") == "lead_metrics_weekly"
    assert catalog["closed_won"].view_name("day") == "closed_won_daily"
    assert catalog["leads"].rpc_function == "get_lead_metrics"


def test_unknown_metric_raises_key_error():
    with pytest.raises(KeyError):
        get_metric("enrollments")


def test_fetch_metric_filters_lookback_window(source, today):
    rows = source.fetch_metric(get_metric("leads"), "week", 12, today=today)
    assert len(rows) == 4
    assert {str(row["period_date"]) for row in rows} == {"2024-03-18", "2024-03-11"}
    assert str(rows[0]["period_date"]) == "2024-03-18"


def test_fetch_metric_filters_campus(source, today):
    rows = source.fetch_metric(get_metric("leads"), "week", 12, campus="Miami", today=today)
    assert [row["lead_count"] for row in rows] == [8]


def test_fetched_rows_feed_formatting(source, today):
    definition = get_metric("leads")
    raw = source.fetch_metric(definition, "week", 12, today=today)
    metrics = format_metrics(normalize_rows(raw, definition.value_column, "week"), "week")
    assert metrics.periods == ["2024-03-18", "2024-03-11"]
    assert metrics.campuses == ["Atlanta", "Miami"]
    assert metrics.totals == {"2024-03-18": 20, "2024-03-11": 13}
    assert metrics.changes.raw["2024-03-18"] == 7


def test_missing_view_raises_query_error(source, today):
    with pytest.raises(MetricsQueryError):
        source.fetch_metric(get_metric("leads"), "day", 12, today=today)


def test_fetch_campuses(source):
    names = [c.campus_name for c in source.fetch_campuses()]
    assert names == ["Atlanta", "Chicago", "Miami"]
    current = source.fetch_campuses(school_year="25/26")
    assert [(c.campus_id, c.campus_name) for c in current] == [("Atlanta", "Atlanta"), ("Miami", "Miami")]


@pytest.mark.parametrize("name", ["lead; DROP TABLE x", "1view", "a.b", ""])
def test_identifiers_are_validated(name):
    with pytest.raises(ValueError):
        quote_identifier(name)


def test_bad_value_column_is_rejected(source, today):
    definition = MetricDefinition("bad", "Bad", "lead_metrics", "lead_count FROM x --")
    with pytest.raises(ValueError):
        source.fetch_metric(definition, "week", today=today)


def test_schema_qualifies_views(engine):
    source = SqlMetricsSource(engine, schema="fivetran_views")
    assert source._qualified("lead_metrics_weekly") == "fivetran_views.lead_metrics_weekly"


def test_fetch_grade_enrollment_for_one_campus(source):
    rows = source.fetch_grade_enrollment("Atlanta")
    assert sorted((row["grade"], row["enrollment_count"]) for row in rows) == [(" tk", 2), ("3", 4), ("9", 7), ("K", 5)]


def test_fetch_grade_enrollment_sums_all_campuses(source):
    rows = source.fetch_grade_enrollment()
    counts = {row["grade"]: row["enrollment_count"] for row in rows}
    assert counts["K"] == 6
    assert counts["6"] == 8
    assert len(counts) == 6


def test_grade_enrollment_missing_table_raises_query_error(engine):
    source = SqlMetricsSource(engine, schema="reporting")
    with pytest.raises(MetricsQueryError):
        source.fetch_grade_enrollment("Atlanta")


def test_cumulative_metric_flag():
    catalog = load_metric_catalog()
    assert catalog["cumulative_arr"].cumulative is True
    assert catalog["leads"].cumulative is False
