"""
Visit optimization.

Groups forecast doses due within a short window into one appointment so the
patient makes fewer trips. A visit is always dated at the latest due date in
its group: grouping may delay an eligible dose, it never advances one before
its minimum age or interval.
"""

from collections.abc import Sequence
from datetime import date

import structlog

from vaxengine.config import EngineConfig
from vaxengine.domain.durations import days_between
from vaxengine.domain.models import ForecastDose, ScheduledVisit

logger = structlog.get_logger(__name__)


class VisitGrouper:
    """Clusters forecast doses into the smallest number of visit dates."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self.logger = logger.bind(component="visit_grouper")

    def group(self, forecast: Sequence[ForecastDose]) -> tuple[ScheduledVisit, ...]:
        if not forecast:
            return ()

        threshold = self.config.visit_grouping_threshold_days
        ordered = sorted(forecast, key=lambda dose: dose.due_date)

        groups: list[tuple[date, list[ForecastDose]]] = []
        visit_date = ordered[0].due_date
        current: list[ForecastDose] = []

        for dose in ordered:
            if current and abs(days_between(visit_date, dose.due_date)) > threshold:
                groups.append((visit_date, current))
                current = []
            if not current:
                visit_date = dose.due_date
            current.append(dose)
            visit_date = max(visit_date, dose.due_date)

        groups.append((visit_date, current))

        self.logger.debug("visits_grouped", doses=len(ordered), visits=len(groups))
        return tuple(
            ScheduledVisit(visit_date=when, doses=tuple(doses)) for when, doses in groups
        )


def flatten_visits(visits: Sequence[ScheduledVisit]) -> list[ForecastDose]:
    """Forecast doses of a visit plan, in visit order."""
    return [dose for visit in visits for dose in visit.doses]
