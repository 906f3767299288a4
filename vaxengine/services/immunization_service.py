"""
Integration service that combines the engine components for callers.

Complete evaluation pipeline:
1. Gap analysis: one status per series in the active rule set
2. Forecast of future doses over the requested horizon
3. Visit plan grouping the forecast into appointments
4. Population summary across many patient records

The pipeline is synchronous and pure; threading, async wrappers and
persistence belong to the caller.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import date

import structlog
from pydantic import BaseModel, ConfigDict, Field

from vaxengine.config import EngineConfig, LoggingConfig
from vaxengine.domain.durations import days_between
from vaxengine.domain.models import (
    AdministeredDose,
    ForecastDose,
    PatientProfile,
    PatientRecord,
    PopulationStats,
    ScheduledVisit,
    SeriesStatus,
    SeriesStatusKind,
)
from vaxengine.domain.rules import RuleSet
from vaxengine.services.forecaster import Forecaster
from vaxengine.services.rule_registry import RuleRegistry
from vaxengine.services.series_evaluator import SeriesEvaluator
from vaxengine.services.visit_grouper import VisitGrouper

logger = structlog.get_logger(__name__)

AVERAGE_DAYS_PER_MONTH = 30.4375


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure structured logging (production-ready observability)."""
    config = config or LoggingConfig()
    logging.basicConfig(format="%(message)s", level=getattr(logging, config.level))

    renderer = (
        structlog.processors.JSONRenderer()
        if config.format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def age_in_months(date_of_birth: date, as_of: date) -> float:
    """Fractional age in months, for display."""
    return days_between(date_of_birth, as_of) / AVERAGE_DAYS_PER_MONTH


class EvaluationRequest(BaseModel):
    """Everything one evaluation needs; nothing else is consulted."""

    model_config = ConfigDict(frozen=True)

    profile: PatientProfile
    history: tuple[AdministeredDose, ...] = ()
    rule_set: RuleSet
    as_of: date = Field(description="Reference 'today' for the evaluation")
    horizon_months: int | None = Field(default=None, gt=0)


class EvaluationResponse(BaseModel):
    """Gap analysis, forecast and visit plan for one patient."""

    model_config = ConfigDict(frozen=True)

    statuses: tuple[SeriesStatus, ...]
    forecast: tuple[ForecastDose, ...]
    visits: tuple[ScheduledVisit, ...]

    def status_for(self, series_code: str) -> SeriesStatus | None:
        return next((s for s in self.statuses if s.series_code == series_code), None)


class ImmunizationService:
    """
    Entry point for callers evaluating patients against the active rules.

    Design principles:
    - Stateless per call: the only shared state is the read-only RuleSet
    - Observable (structured logging for debugging)
    - Deterministic given a fixed reference date
    """

    def __init__(self, registry: RuleRegistry, config: EngineConfig | None = None) -> None:
        self.registry = registry
        self.config = config or EngineConfig()
        self.evaluator = SeriesEvaluator(self.config)
        self.forecaster = Forecaster(self.config, self.evaluator)
        self.grouper = VisitGrouper(self.config)
        self.logger = logger.bind(component="immunization_service")

    def gap_analysis(
        self,
        profile: PatientProfile,
        history: Sequence[AdministeredDose],
        rule_set: RuleSet,
        as_of: date,
    ) -> tuple[SeriesStatus, ...]:
        """One status per series in the rule set, sorted by series code."""
        statuses = [
            self.evaluator.evaluate(profile, series_code, history, rule_set, as_of)
            for series_code in rule_set
        ]
        return tuple(sorted(statuses, key=lambda status: status.series_code))

    def evaluate(self, request: EvaluationRequest) -> EvaluationResponse:
        statuses = self.gap_analysis(
            request.profile, request.history, request.rule_set, request.as_of
        )
        forecast = self.forecaster.forecast(
            request.profile,
            request.history,
            request.rule_set,
            request.as_of,
            request.horizon_months,
        )
        visits = self.grouper.group(forecast)

        self.logger.info(
            "patient_evaluated",
            series=len(statuses),
            overdue=sum(1 for s in statuses if s.status == SeriesStatusKind.OVERDUE),
            due_now=sum(1 for s in statuses if s.status == SeriesStatusKind.DUE_NOW),
            forecast_doses=len(forecast),
            visits=len(visits),
        )
        return EvaluationResponse(statuses=statuses, forecast=forecast, visits=visits)

    def analyze_patient(
        self,
        profile: PatientProfile,
        history: Sequence[AdministeredDose],
        as_of: date,
        horizon_months: int | None = None,
    ) -> EvaluationResponse:
        """Evaluate against whatever rule set is active right now."""
        request = EvaluationRequest(
            profile=profile,
            history=tuple(history),
            rule_set=self.registry.active,
            as_of=as_of,
            horizon_months=horizon_months,
        )
        return self.evaluate(request)

    def summarize_population(
        self, records: Iterable[PatientRecord], as_of: date
    ) -> dict[str, PopulationStats]:
        """Overdue, due-now and complete series counts per patient."""
        rule_set = self.registry.active
        summary: dict[str, PopulationStats] = {}

        for record in records:
            statuses = self.gap_analysis(record.profile, record.history, rule_set, as_of)
            summary[record.patient_id] = PopulationStats(
                overdue=sum(1 for s in statuses if s.status == SeriesStatusKind.OVERDUE),
                due_now=sum(1 for s in statuses if s.status == SeriesStatusKind.DUE_NOW),
                complete=sum(
                    1
                    for s in statuses
                    if s.status in (SeriesStatusKind.COMPLETE, SeriesStatusKind.UP_TO_DATE)
                ),
                total=len(statuses),
            )

        self.logger.info("population_summarized", patients=len(summary))
        return summary
