"""
Domain models for immunization schedule evaluation.

These models represent the core clinical concepts and are framework-agnostic.
They use Pydantic for validation and are frozen so a single evaluation can
never mutate its inputs.
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from vaxengine.domain.durations import AgeSpan, MonthSpan, WeekSpan

MAX_OFFSET_MONTHS = 1800  # 150 years
MAX_OFFSET_WEEKS = 7800


class Sex(str, Enum):
    MALE = "M"
    FEMALE = "F"


class Condition(str, Enum):
    """Clinical condition tags a patient profile may carry."""

    IMMUNOCOMPROMISED = "Immunocompromised"
    PREGNANCY = "Pregnancy"
    ASPLENIA = "Asplenia"
    HYPERTENSION = "Hypertension"
    DIABETES_TYPE_2 = "Diabetes Type 2"
    COPD = "COPD"


class SeriesStatusKind(str, Enum):
    """Compliance state of a single vaccine series."""

    COMPLETE = "COMPLETE"
    UP_TO_DATE = "UP_TO_DATE"  # UI compatibility only, never computed
    DUE_NOW = "DUE_NOW"
    OVERDUE = "OVERDUE"
    FUTURE = "FUTURE"
    CONTRAINDICATED = "CONTRAINDICATED"


class RejectionReason(str, Enum):
    """First failed check that kept an administered dose from counting."""

    LIVE_VIRUS_CONFLICT = "live_virus_conflict"
    BELOW_MIN_AGE = "below_min_age"
    INTERVAL_FROM_PREVIOUS = "interval_from_previous"
    INTERVAL_FROM_DOSE1 = "interval_from_dose1"
    AT_OR_ABOVE_MAX_AGE = "at_or_above_max_age"


class DoseRule(BaseModel):
    """
    Eligibility constraints for one dose position within a series.

    Field aliases match the JSON rule exchange format.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    series_name: str = Field(alias="seriesName", min_length=1)
    dose_number: int = Field(alias="doseNumber", ge=1)
    # Offsets are capped at a human lifespan so every rule resolves to a calendar date
    min_age_months: int | None = Field(
        default=None, alias="minAgeMonths", ge=0, le=MAX_OFFSET_MONTHS
    )
    min_age_weeks: float | None = Field(
        default=None, alias="minAgeWeeks", ge=0, le=MAX_OFFSET_WEEKS, allow_inf_nan=False
    )
    max_age_months: int | None = Field(
        default=None, alias="maxAgeMonths", ge=0, le=MAX_OFFSET_MONTHS
    )
    max_age_weeks: float | None = Field(
        default=None, alias="maxAgeWeeks", ge=0, le=MAX_OFFSET_WEEKS, allow_inf_nan=False
    )
    min_interval_weeks: float | None = Field(
        default=None, alias="minIntervalWeeks", ge=0, le=MAX_OFFSET_WEEKS, allow_inf_nan=False
    )
    min_interval_weeks_from_dose1: float | None = Field(
        default=None,
        alias="minIntervalWeeksFromDose1",
        ge=0,
        le=MAX_OFFSET_WEEKS,
        allow_inf_nan=False,
    )
    is_recurring: bool = Field(default=False, alias="isRecurring")

    @property
    def min_age(self) -> AgeSpan | None:
        """Minimum age, precise weeks taking precedence over calendar months."""
        if self.min_age_weeks is not None:
            return WeekSpan(self.min_age_weeks)
        if self.min_age_months is not None:
            return MonthSpan(self.min_age_months)
        return None

    @property
    def max_age(self) -> AgeSpan | None:
        if self.max_age_weeks is not None:
            return WeekSpan(self.max_age_weeks)
        if self.max_age_months is not None:
            return MonthSpan(self.max_age_months)
        return None

    @property
    def min_interval(self) -> WeekSpan | None:
        if self.min_interval_weeks:
            return WeekSpan(self.min_interval_weeks)
        return None

    @property
    def min_interval_from_dose1(self) -> WeekSpan | None:
        if self.min_interval_weeks_from_dose1:
            return WeekSpan(self.min_interval_weeks_from_dose1)
        return None


class PatientProfile(BaseModel):
    """Clinical profile of the patient being evaluated."""

    model_config = ConfigDict(frozen=True)

    date_of_birth: date
    sex: Sex
    conditions: frozenset[Condition] = Field(default_factory=frozenset)
    medications: frozenset[str] = Field(
        default_factory=frozenset, description="Informational only, not used by rules"
    )

    def has_condition(self, condition: Condition) -> bool:
        return condition in self.conditions


class AdministeredDose(BaseModel):
    """A recorded administration. Not yet known to be clinically valid."""

    model_config = ConfigDict(frozen=True)

    series_code: str
    date_administered: date
    dose_id: str = Field(description="Opaque identifier from the source record")


class RejectedDose(BaseModel):
    """An administered dose the validator excluded from series progress."""

    model_config = ConfigDict(frozen=True)

    dose: AdministeredDose
    target_dose_number: int
    reason: RejectionReason


class SeriesStatus(BaseModel):
    """Evaluation result for a single series."""

    model_config = ConfigDict(frozen=True)

    series_code: str
    status: SeriesStatusKind
    valid_dose_count: int = Field(ge=0)
    next_due_date: date | None = None
    reason: str
    rule_applied: DoseRule | None = Field(
        default=None, description="Rule that produced the decision, kept for audit"
    )
    invalid_doses: tuple[RejectedDose, ...] = ()


class ForecastDose(BaseModel):
    """A single simulated future requirement."""

    model_config = ConfigDict(frozen=True)

    series_code: str
    dose_number: int = Field(ge=1)
    due_date: date


class ScheduledVisit(BaseModel):
    """Forecast doses that can be given together on one appointment date."""

    model_config = ConfigDict(frozen=True)

    visit_date: date
    doses: tuple[ForecastDose, ...]


class PatientRecord(BaseModel):
    """A patient's profile and dose history, keyed by an internal id."""

    model_config = ConfigDict(frozen=True)

    patient_id: str
    profile: PatientProfile
    history: tuple[AdministeredDose, ...] = ()


class PopulationStats(BaseModel):
    """Per-patient compliance counts across every series in a rule set."""

    overdue: int = Field(default=0, ge=0)
    due_now: int = Field(default=0, ge=0)
    complete: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
