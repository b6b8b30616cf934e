from datetime import date

import pytest
from sqlalchemy import Boolean, Column, Date, Integer, MetaData, Numeric, Table, Text, create_engine

from admissions.sources.sql import SqlMetricsSource

metadata = MetaData()

TODAY = date(2024, 3, 20)


def _period_view(name: str, value_column: str, value_type=Integer) -> Table:
    return Table(
        name,
        metadata,
        Column("period_type", Text),
        Column("period_date", Date),
        Column("formatted_date", Text),
        Column("campus_name", Text),
        Column(value_column, value_type),
    )


lead_metrics_weekly = _period_view("lead_metrics_weekly", "lead_count")
lead_metrics_monthly = _period_view("lead_metrics_monthly", "lead_count")
closed_won_weekly = _period_view("closed_won_weekly", "opportunity_count")
cumulative_arr_weekly = _period_view("cumulative_arr_weekly", "cumulative_arr", Numeric)

grade_enrollment_summary = Table(
    "grade_enrollment_summary",
    metadata,
    Column("campus", Text),
    Column("grade", Text),
    Column("enrollment_count", Integer),
)

opportunity = Table(
    "opportunity",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("preferred_campus_c", Text),
    Column("is_closed", Boolean),
    Column("is_won", Boolean),
    Column("school_year_c", Text),
)


@pytest.fixture()
def engine():
    engine = create_engine("sqlite:///:memory:", future=True)
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def seeded_engine(engine):
    with engine.begin() as conn:
        conn.execute(lead_metrics_weekly.insert(), [
            {"period_type": "week", "period_date": date(2024, 3, 18), "formatted_date": "Week of Mar 18", "campus_name": "Atlanta", "lead_count": 12},
            {"period_type": "week", "period_date": date(2024, 3, 18), "formatted_date": "Week of Mar 18", "campus_name": "Miami", "lead_count": 8},
            {"period_type": "week", "period_date": date(2024, 3, 11), "formatted_date": "Week of Mar 11", "campus_name": "Atlanta", "lead_count": 10},
            {"period_type": "week", "period_date": date(2024, 3, 11), "formatted_date": "Week of Mar 11", "campus_name": "No Campus Match", "lead_count": 3},
            {"period_type": "week", "period_date": date(2023, 6, 5), "formatted_date": "Week of Jun 5", "campus_name": "Atlanta", "lead_count": 99},
        ])
        conn.execute(closed_won_weekly.insert(), [
            {"period_type": "week", "period_date": date(2024, 3, 18), "formatted_date": "Week of Mar 18", "campus_name": "Atlanta", "opportunity_count": 2},
        ])
        conn.execute(grade_enrollment_summary.insert(), [
            {"campus": "Atlanta", "grade": "K", "enrollment_count": 5},
            {"campus": "Atlanta", "grade": " tk", "enrollment_count": 2},
            {"campus": "Atlanta", "grade": "3", "enrollment_count": 4},
            {"campus": "Atlanta", "grade": "9", "enrollment_count": 7},
            {"campus": "Miami", "grade": "1", "enrollment_count": 3},
            {"campus": "Miami", "grade": "6", "enrollment_count": 8},
            {"campus": "Miami", "grade": "K", "enrollment_count": 1},
        ])
        conn.execute(opportunity.insert(), [
            {"preferred_campus_c": "Miami", "is_closed": True, "is_won": True, "school_year_c": "25/26"},
            {"preferred_campus_c": "Atlanta", "is_closed": True, "is_won": True, "school_year_c": "25/26"},
            {"preferred_campus_c": "Atlanta", "is_closed": True, "is_won": True, "school_year_c": "24/25"},
            {"preferred_campus_c": "Birmingham", "is_closed": True, "is_won": False, "school_year_c": "25/26"},
            {"preferred_campus_c": "Chicago", "is_closed": True, "is_won": True, "school_year_c": "24/25"},
            {"preferred_campus_c": None, "is_closed": True, "is_won": True, "school_year_c": "25/26"},
        ])
    return engine


@pytest.fixture()
def source(seeded_engine):
    return SqlMetricsSource(seeded_engine, schema=None)


@pytest.fixture()
def today():
    return TODAY
