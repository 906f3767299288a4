"""
Multi-year dose forecasting.

Each series is simulated independently: evaluate, record a simulated dose on
the resulting due date, evaluate again, so later doses chain their interval
math off the earlier simulated ones. A series stops as soon as a simulated dose
fails to count (for example a live-virus conflict with real history).
"""

from collections.abc import Sequence
from datetime import date

import structlog

from vaxengine.config import EngineConfig
from vaxengine.domain.durations import add_months
from vaxengine.domain.models import (
    AdministeredDose,
    ForecastDose,
    PatientProfile,
    SeriesStatusKind,
)
from vaxengine.domain.rules import RuleSet
from vaxengine.services.series_evaluator import SeriesEvaluator

logger = structlog.get_logger(__name__)

_TERMINAL_STATUSES = frozenset({SeriesStatusKind.COMPLETE, SeriesStatusKind.CONTRAINDICATED})


class Forecaster:
    """Projects future due dates for every series in a rule set."""

    def __init__(
        self, config: EngineConfig | None = None, evaluator: SeriesEvaluator | None = None
    ) -> None:
        self.config = config or EngineConfig()
        self.evaluator = evaluator or SeriesEvaluator(self.config)
        self.logger = logger.bind(component="forecaster")

    def forecast(
        self,
        profile: PatientProfile,
        history: Sequence[AdministeredDose],
        rule_set: RuleSet,
        as_of: date,
        horizon_months: int | None = None,
    ) -> tuple[ForecastDose, ...]:
        """
        Forecast doses due up to `horizon_months` after `as_of`.

        Doses that are already due or overdue are reported by the series
        status, not repeated here as forecast items.
        """
        months = horizon_months
        if months is None:
            months = self.config.default_horizon_months
        horizon = add_months(as_of, months)

        forecast: list[ForecastDose] = []
        for series_code in rule_set:
            forecast.extend(
                self.forecast_series(profile, series_code, history, rule_set, as_of, horizon)
            )

        self.logger.debug("forecast_completed", doses=len(forecast), horizon=horizon.isoformat())
        return tuple(forecast)

    def forecast_series(
        self,
        profile: PatientProfile,
        series_code: str,
        history: Sequence[AdministeredDose],
        rule_set: RuleSet,
        as_of: date,
        horizon: date,
    ) -> list[ForecastDose]:
        simulated = list(history)
        projected: list[ForecastDose] = []
        previous_count: int | None = None

        for iteration in range(self.config.forecast_iteration_cap):
            status = self.evaluator.evaluate(profile, series_code, simulated, rule_set, as_of)

            # A simulated dose that did not count would repeat the same dose forever
            if status.valid_dose_count == previous_count:
                self.logger.debug(
                    "forecast_stalled",
                    series=series_code,
                    dose_number=status.valid_dose_count + 1,
                )
                break
            previous_count = status.valid_dose_count

            if status.status in _TERMINAL_STATUSES or status.next_due_date is None:
                break
            if status.next_due_date > horizon:
                break

            if iteration > 0 or status.status == SeriesStatusKind.FUTURE:
                projected.append(
                    ForecastDose(
                        series_code=series_code,
                        dose_number=status.valid_dose_count + 1,
                        due_date=status.next_due_date,
                    )
                )

            simulated.append(
                AdministeredDose(
                    series_code=series_code,
                    date_administered=max(status.next_due_date, as_of),
                    dose_id=f"sim-{series_code}-{iteration}",
                )
            )
        else:
            self.logger.debug(
                "forecast_iteration_cap_reached",
                series=series_code,
                cap=self.config.forecast_iteration_cap,
            )

        return projected
