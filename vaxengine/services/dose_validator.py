"""
Historical dose validation.

Decides, dose by dose and in chronological order, which administered doses
count toward series progress. Checks applied to each candidate:

- Live-virus interference against every live administration in the history
- Minimum age, relaxed by the grace period
- Minimum interval from the previous valid dose, relaxed by the grace period
- Minimum interval from the first valid dose, relaxed by the grace period
- Maximum age, exact boundary with no grace

Invalid doses never become the reference point for later interval checks.
"""

from collections.abc import Sequence
from datetime import date
from typing import NamedTuple

import structlog

from vaxengine.config import EngineConfig
from vaxengine.domain.durations import add_days, days_between
from vaxengine.domain.models import (
    AdministeredDose,
    DoseRule,
    PatientProfile,
    RejectedDose,
    RejectionReason,
)
from vaxengine.domain.policy import is_live_vaccine
from vaxengine.domain.rules import RuleSet

logger = structlog.get_logger(__name__)


class DoseValidationResult(NamedTuple):
    """Outcome of validating one series' history."""

    valid: tuple[AdministeredDose, ...]
    rejected: tuple[RejectedDose, ...]
    # Doses past a finished, non-recurring schedule; kept but never counted
    superfluous: tuple[AdministeredDose, ...]

    @property
    def valid_count(self) -> int:
        return len(self.valid)


def sort_chronologically(doses: Sequence[AdministeredDose]) -> list[AdministeredDose]:
    """Sort by administration date; same-day doses keep their list order."""
    return sorted(doses, key=lambda dose: dose.date_administered)


class DoseValidator:
    """Determines which administered doses of a series are clinically valid."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self.logger = logger.bind(component="dose_validator")

    def validate(
        self,
        profile: PatientProfile,
        series_code: str,
        rule_set: RuleSet,
        history: Sequence[AdministeredDose],
    ) -> DoseValidationResult:
        """
        Validate every dose of `series_code` found in `history`.

        Args:
            profile: Patient being evaluated
            series_code: Series to validate
            rule_set: Active rule catalogue
            history: The patient's full dose history, all series

        Returns:
            DoseValidationResult with valid, rejected and superfluous doses
        """
        series_doses = sort_chronologically(
            [dose for dose in history if dose.series_code == series_code]
        )

        # Only live series need the cross-series scan
        live_history: list[date] = []
        if is_live_vaccine(series_code):
            live_history = [
                dose.date_administered for dose in history if is_live_vaccine(dose.series_code)
            ]

        valid: list[AdministeredDose] = []
        rejected: list[RejectedDose] = []
        superfluous: list[AdministeredDose] = []

        for dose in series_doses:
            target = len(valid) + 1
            rule = rule_set.rule_for(series_code, target)

            if rule is None:
                superfluous.append(dose)
                continue

            reason = self._first_failure(profile, dose, rule, valid, live_history)
            if reason is None:
                valid.append(dose)
                continue

            rejected.append(RejectedDose(dose=dose, target_dose_number=target, reason=reason))
            self.logger.debug(
                "dose_rejected",
                series=series_code,
                dose_id=dose.dose_id,
                target_dose=target,
                reason=reason.value,
            )

        return DoseValidationResult(tuple(valid), tuple(rejected), tuple(superfluous))

    def _first_failure(
        self,
        profile: PatientProfile,
        dose: AdministeredDose,
        rule: DoseRule,
        valid: list[AdministeredDose],
        live_history: list[date],
    ) -> RejectionReason | None:
        given = dose.date_administered
        grace = self.config.grace_period_days

        if self._has_live_conflict(given, live_history):
            return RejectionReason.LIVE_VIRUS_CONFLICT

        min_age = rule.min_age
        age_floor = min_age.after(profile.date_of_birth) if min_age else profile.date_of_birth
        if given < add_days(age_floor, -grace):
            return RejectionReason.BELOW_MIN_AGE

        if valid:
            interval = rule.min_interval
            if interval is not None:
                floor = interval.after(valid[-1].date_administered)
                if given < add_days(floor, -grace):
                    return RejectionReason.INTERVAL_FROM_PREVIOUS

            from_dose1 = rule.min_interval_from_dose1
            if from_dose1 is not None:
                floor = from_dose1.after(valid[0].date_administered)
                if given < add_days(floor, -grace):
                    return RejectionReason.INTERVAL_FROM_DOSE1

        max_age = rule.max_age
        if max_age is not None and given >= max_age.after(profile.date_of_birth):
            return RejectionReason.AT_OR_ABOVE_MAX_AGE

        return None

    def _has_live_conflict(self, given: date, live_history: list[date]) -> bool:
        """Another live administration 1..(spacing - 1) days earlier conflicts."""
        spacing = self.config.live_vaccine_spacing_days
        return any(0 < days_between(other, given) < spacing for other in live_history)
