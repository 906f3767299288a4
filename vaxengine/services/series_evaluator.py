"""
Series classification.

Turns a validated dose history into a SeriesStatus:

1. Hard contraindications (before any dose math)
2. Next unmet rule, or COMPLETE when there is none
3. Foreclosure when the patient has aged past the next dose's ceiling
4. Earliest eligible date for the next dose, with no grace period
5. FUTURE / DUE_NOW / OVERDUE relative to the evaluation date
"""

from collections.abc import Sequence
from datetime import date

import structlog

from vaxengine.config import EngineConfig
from vaxengine.domain.durations import WeekSpan
from vaxengine.domain.models import (
    AdministeredDose,
    DoseRule,
    PatientProfile,
    SeriesStatus,
    SeriesStatusKind,
)
from vaxengine.domain.policy import find_contraindication
from vaxengine.domain.rules import RuleSet
from vaxengine.services.dose_validator import DoseValidationResult, DoseValidator

logger = structlog.get_logger(__name__)


class SeriesEvaluator:
    """
    Classifies one series for one patient as of a reference date.

    Design principles:
    - Pure: same inputs and reference date always give the same status
    - Grace periods only relax judgement of past doses, never scheduling
    - A series already begun is concluded by age, never contraindicated by it
    """

    def __init__(
        self, config: EngineConfig | None = None, validator: DoseValidator | None = None
    ) -> None:
        self.config = config or EngineConfig()
        self.validator = validator or DoseValidator(self.config)
        self.logger = logger.bind(component="series_evaluator")

    def evaluate(
        self,
        profile: PatientProfile,
        series_code: str,
        history: Sequence[AdministeredDose],
        rule_set: RuleSet,
        as_of: date,
    ) -> SeriesStatus:
        validation = self.validator.validate(profile, series_code, rule_set, history)
        count = validation.valid_count

        contraindication = find_contraindication(profile, series_code)
        if contraindication is not None:
            self.logger.info(
                "series_contraindicated",
                series=series_code,
                condition=contraindication.condition.value,
            )
            return SeriesStatus(
                series_code=series_code,
                status=SeriesStatusKind.CONTRAINDICATED,
                valid_dose_count=count,
                reason=contraindication.reason,
                invalid_doses=validation.rejected,
            )

        slot = rule_set.slot_for(series_code, count + 1)
        if slot is None:
            return SeriesStatus(
                series_code=series_code,
                status=SeriesStatusKind.COMPLETE,
                valid_dose_count=count,
                reason="Series complete per ACIP schedule.",
                invalid_doses=validation.rejected,
            )

        next_rule = slot.rule
        foreclosed = self._foreclose_by_age(profile, series_code, next_rule, validation, as_of)
        if foreclosed is not None:
            return foreclosed

        due_date = self._earliest_eligible_date(profile, next_rule, validation)

        status = SeriesStatusKind.FUTURE
        effective_due = due_date
        if due_date <= as_of:
            # Actionable today; forecasting branches from the present, not the past
            overdue_threshold = WeekSpan(self.config.overdue_after_weeks).after(due_date)
            status = (
                SeriesStatusKind.OVERDUE if as_of > overdue_threshold else SeriesStatusKind.DUE_NOW
            )
            effective_due = as_of

        reason = self._describe(next_rule, count, recurring=slot.is_recurring)
        if validation.rejected:
            reason += f" [Alert: {len(validation.rejected)} invalid dose(s) found in history]"

        return SeriesStatus(
            series_code=series_code,
            status=status,
            valid_dose_count=count,
            next_due_date=effective_due,
            reason=reason,
            rule_applied=next_rule,
            invalid_doses=validation.rejected,
        )

    def _foreclose_by_age(
        self,
        profile: PatientProfile,
        series_code: str,
        next_rule: DoseRule,
        validation: DoseValidationResult,
        as_of: date,
    ) -> SeriesStatus | None:
        max_age = next_rule.max_age
        if max_age is None or as_of < max_age.after(profile.date_of_birth):
            return None

        count = validation.valid_count
        self.logger.info(
            "series_foreclosed_by_age",
            series=series_code,
            next_dose=next_rule.dose_number,
            valid_doses=count,
        )
        if count > 0:
            return SeriesStatus(
                series_code=series_code,
                status=SeriesStatusKind.COMPLETE,
                valid_dose_count=count,
                reason=(
                    f"Patient age exceeds limit for Dose {next_rule.dose_number} "
                    f"({max_age.label()}). Series concluded."
                ),
                rule_applied=next_rule,
                invalid_doses=validation.rejected,
            )
        return SeriesStatus(
            series_code=series_code,
            status=SeriesStatusKind.CONTRAINDICATED,
            valid_dose_count=count,
            reason=(
                f"Maximum age ({max_age.label()}) exceeded for Dose {next_rule.dose_number}. "
                "Not indicated."
            ),
            rule_applied=next_rule,
            invalid_doses=validation.rejected,
        )

    def _earliest_eligible_date(
        self, profile: PatientProfile, rule: DoseRule, validation: DoseValidationResult
    ) -> date:
        """Latest of the min-age, interval and interval-from-dose-1 floors."""
        min_age = rule.min_age
        floors = [min_age.after(profile.date_of_birth) if min_age else profile.date_of_birth]

        if validation.valid:
            interval = rule.min_interval
            if interval is not None:
                floors.append(interval.after(validation.valid[-1].date_administered))
            from_dose1 = rule.min_interval_from_dose1
            if from_dose1 is not None:
                floors.append(from_dose1.after(validation.valid[0].date_administered))

        return max(floors)

    @staticmethod
    def _describe(rule: DoseRule, count: int, recurring: bool) -> str:
        min_age = rule.min_age
        parts = [f"Min Age: {min_age.label() if min_age else 'none'}"]
        if count > 0:
            interval = rule.min_interval
            parts.append(f"Interval: {interval.label() if interval else 'none'}")
            from_dose1 = rule.min_interval_from_dose1
            if from_dose1 is not None:
                parts.append(f"From Dose 1: {from_dose1.label()}")

        prefix = "Recurring Dose" if recurring else "Dose"
        return f"{prefix} {rule.dose_number} due ({', '.join(parts)})."
