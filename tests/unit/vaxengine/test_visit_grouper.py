"""Tests for visit grouping."""

from datetime import date, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from vaxengine.config import EngineConfig
from vaxengine.domain.models import ForecastDose
from vaxengine.services.visit_grouper import VisitGrouper, flatten_visits

START = date(2024, 1, 1)


def _due(series_code: str, offset_days: int, dose_number: int = 1) -> ForecastDose:
    return ForecastDose(
        series_code=series_code,
        dose_number=dose_number,
        due_date=START + timedelta(days=offset_days),
    )


@pytest.fixture
def grouper() -> VisitGrouper:
    return VisitGrouper(EngineConfig())


def test_empty_forecast_has_no_visits(grouper: VisitGrouper) -> None:
    assert grouper.group([]) == ()


def test_doses_within_threshold_share_a_visit(grouper: VisitGrouper) -> None:
    visits = grouper.group([_due("HepB", 0), _due("IPV", 7)])

    assert len(visits) == 1
    assert [d.series_code for d in visits[0].doses] == ["HepB", "IPV"]


def test_doses_beyond_threshold_get_separate_visits(grouper: VisitGrouper) -> None:
    visits = grouper.group([_due("HepB", 0), _due("IPV", 8)])

    assert [v.visit_date for v in visits] == [START, START + timedelta(days=8)]


def test_visit_is_dated_at_latest_due_date(grouper: VisitGrouper) -> None:
    """Grouping may delay a dose but never schedules one before it is due."""
    visits = grouper.group([_due("DTaP", 0), _due("Hib", 5), _due("PCV", 11)])

    # The anchor moves to day 5, so day 11 is still within 7 days of it
    assert len(visits) == 1
    assert visits[0].visit_date == START + timedelta(days=11)


def test_input_order_does_not_matter(grouper: VisitGrouper) -> None:
    forecast = [_due("MMR", 40), _due("HepA", 2), _due("Varicella", 0)]
    visits = grouper.group(forecast)

    assert [[d.series_code for d in v.doses] for v in visits] == [
        ["Varicella", "HepA"],
        ["MMR"],
    ]


def test_custom_threshold() -> None:
    grouper = VisitGrouper(EngineConfig(visit_grouping_threshold_days=0))
    visits = grouper.group([_due("HepB", 0), _due("IPV", 0), _due("PCV", 1)])

    assert [len(v.doses) for v in visits] == [2, 1]


forecast_strategy = st.lists(
    st.builds(
        ForecastDose,
        series_code=st.sampled_from(["HepB", "DTaP", "MMR", "Influenza", "HPV"]),
        dose_number=st.integers(min_value=1, max_value=5),
        due_date=st.dates(min_value=date(2024, 1, 1), max_value=date(2026, 12, 31)),
    ),
    max_size=30,
)


@given(forecast=forecast_strategy)
def test_regrouping_is_idempotent(forecast: list[ForecastDose]) -> None:
    """Property-based test: grouping a flattened visit plan yields the same plan."""
    grouper = VisitGrouper()
    visits = grouper.group(forecast)

    assert grouper.group(flatten_visits(visits)) == visits


@given(forecast=forecast_strategy)
def test_every_dose_is_scheduled_on_or_after_due(forecast: list[ForecastDose]) -> None:
    """Property-based test: no dose lost, none advanced before its due date."""
    visits = VisitGrouper().group(forecast)

    assert sorted(flatten_visits(visits), key=repr) == sorted(forecast, key=repr)
    for visit in visits:
        assert all(dose.due_date <= visit.visit_date for dose in visit.doses)
