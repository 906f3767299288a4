"""
Tests for historical dose validation.

Clinical regression cases pinned against the default catalogue with a
patient born 2023-01-01.
"""

from datetime import date, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from adapters.acip.schedule import DEFAULT_RULE_SET
from vaxengine.config import EngineConfig
from vaxengine.domain.models import (
    AdministeredDose,
    DoseRule,
    PatientProfile,
    RejectionReason,
    Sex,
)
from vaxengine.domain.rules import RuleSet
from vaxengine.services.dose_validator import DoseValidator, sort_chronologically

DOB = date(2023, 1, 1)


def _dose(series_code: str, when: date, dose_id: str = "x") -> AdministeredDose:
    return AdministeredDose(series_code=series_code, date_administered=when, dose_id=dose_id)


@pytest.fixture
def validator() -> DoseValidator:
    return DoseValidator(EngineConfig())


class TestGracePeriod:
    """Rotavirus dose 1 has a 6 week (42 day) minimum age."""

    def test_dose_within_grace_is_valid(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        result = validator.validate(
            infant, "Rotavirus", rule_set, [_dose("Rotavirus", DOB + timedelta(days=38))]
        )
        assert result.valid_count == 1
        assert result.rejected == ()

    def test_dose_one_day_before_grace_is_rejected(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        result = validator.validate(
            infant, "Rotavirus", rule_set, [_dose("Rotavirus", DOB + timedelta(days=37))]
        )
        assert result.valid_count == 0
        assert len(result.rejected) == 1
        assert result.rejected[0].reason == RejectionReason.BELOW_MIN_AGE
        assert result.rejected[0].target_dose_number == 1

    @given(offset=st.integers(min_value=0, max_value=104))
    def test_grace_boundary_property(self, offset: int) -> None:
        """Property-based test: valid exactly when given at or after min age minus grace."""
        profile = PatientProfile(date_of_birth=DOB, sex=Sex.MALE)
        result = DoseValidator().validate(
            profile,
            "Rotavirus",
            DEFAULT_RULE_SET,
            [_dose("Rotavirus", DOB + timedelta(days=offset))],
        )
        assert (result.valid_count == 1) == (offset >= 38)

    def test_zero_grace_is_strict(self, infant: PatientProfile, rule_set: RuleSet) -> None:
        strict = DoseValidator(EngineConfig(grace_period_days=0))
        result = strict.validate(
            infant, "Rotavirus", rule_set, [_dose("Rotavirus", DOB + timedelta(days=41))]
        )
        assert result.valid_count == 0

    def test_interval_grace_applies(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        # DTaP dose 2: 10 week min age, 4 week interval
        first = date(2023, 3, 1)
        history = [
            _dose("DTaP", first, "1"),
            _dose("DTaP", first + timedelta(days=24), "2"),
        ]
        assert validator.validate(infant, "DTaP", rule_set, history).valid_count == 2

        history[1] = _dose("DTaP", first + timedelta(days=23), "2")
        result = validator.validate(infant, "DTaP", rule_set, history)
        assert result.valid_count == 1
        assert result.rejected[0].reason == RejectionReason.INTERVAL_FROM_PREVIOUS


class TestLiveVirusSpacing:
    """Different live vaccines must be same day or at least 28 days apart."""

    MMR_DATE = date(2024, 1, 1)

    @pytest.mark.parametrize(
        ("gap_days", "valid"),
        [(0, True), (1, False), (14, False), (27, False), (28, True), (30, True)],
    )
    def test_varicella_after_mmr(
        self,
        validator: DoseValidator,
        infant: PatientProfile,
        rule_set: RuleSet,
        gap_days: int,
        valid: bool,
    ) -> None:
        history = [
            _dose("MMR", self.MMR_DATE, "mmr"),
            _dose("Varicella", self.MMR_DATE + timedelta(days=gap_days), "var"),
        ]
        result = validator.validate(infant, "Varicella", rule_set, history)

        assert (result.valid_count == 1) is valid
        if not valid:
            assert result.rejected[0].reason == RejectionReason.LIVE_VIRUS_CONFLICT

    def test_live_conflict_has_no_grace(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        history = [
            _dose("MMR", self.MMR_DATE, "mmr"),
            _dose("Varicella", self.MMR_DATE + timedelta(days=25), "var"),
        ]
        assert validator.validate(infant, "Varicella", rule_set, history).valid_count == 0

    def test_invalid_live_doses_still_interfere(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        """An invalid live dose still occupies the immune window for later live doses."""
        history = [
            _dose("MMR", self.MMR_DATE, "mmr"),
            _dose("Varicella", self.MMR_DATE + timedelta(days=14), "var-1"),
            # 35 days after MMR, but only 21 after the rejected Varicella
            _dose("Varicella", self.MMR_DATE + timedelta(days=35), "var-2"),
        ]
        result = validator.validate(infant, "Varicella", rule_set, history)

        assert result.valid_count == 0
        assert [r.dose.dose_id for r in result.rejected] == ["var-1", "var-2"]
        assert all(r.reason == RejectionReason.LIVE_VIRUS_CONFLICT for r in result.rejected)

    def test_inactivated_vaccines_ignore_live_spacing(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        history = [
            _dose("MMR", self.MMR_DATE, "mmr"),
            _dose("HepA", self.MMR_DATE + timedelta(days=10), "hepa"),
        ]
        assert validator.validate(infant, "HepA", rule_set, history).valid_count == 1


class TestMaxAge:
    """Rotavirus dose 1 must be given before 15 weeks 0 days (day 105)."""

    def test_day_before_ceiling_is_valid(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        result = validator.validate(
            infant, "Rotavirus", rule_set, [_dose("Rotavirus", DOB + timedelta(days=104))]
        )
        assert result.valid_count == 1

    def test_ceiling_day_is_rejected_without_grace(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        result = validator.validate(
            infant, "Rotavirus", rule_set, [_dose("Rotavirus", DOB + timedelta(days=105))]
        )
        assert result.valid_count == 0
        assert result.rejected[0].reason == RejectionReason.AT_OR_ABOVE_MAX_AGE


class TestIntervals:
    def test_hepb_dose3_needs_16_weeks_from_dose1(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        history = [
            _dose("HepB", date(2023, 6, 1), "1"),
            _dose("HepB", date(2023, 7, 1), "2"),
            # Old enough and 62 days after dose 2, but only 92 days after dose 1
            _dose("HepB", date(2023, 9, 1), "3"),
        ]
        result = validator.validate(infant, "HepB", rule_set, history)

        assert result.valid_count == 2
        assert result.rejected[0].reason == RejectionReason.INTERVAL_FROM_DOSE1
        assert result.rejected[0].target_dose_number == 3

    def test_invalid_dose_is_not_an_interval_anchor(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        history = [
            _dose("DTaP", date(2023, 2, 12), "1"),
            # Too young for dose 2 (10 weeks)
            _dose("DTaP", date(2023, 2, 26), "early"),
            # Only 15 days after the rejected dose, 29 after dose 1
            _dose("DTaP", date(2023, 3, 13), "2"),
        ]
        result = validator.validate(infant, "DTaP", rule_set, history)

        assert [d.dose_id for d in result.valid] == ["1", "2"]
        assert result.rejected[0].dose.dose_id == "early"
        assert result.rejected[0].reason == RejectionReason.BELOW_MIN_AGE

    def test_history_order_does_not_matter(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        history = [
            _dose("HepB", date(2023, 7, 1), "3"),
            _dose("HepB", DOB, "1"),
            _dose("HepB", date(2023, 2, 1), "2"),
        ]
        result = validator.validate(infant, "HepB", rule_set, history)
        assert [d.dose_id for d in result.valid] == ["1", "2", "3"]

    def test_other_series_are_ignored(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        history = [_dose("HepB", DOB, "1"), _dose("IPV", date(2023, 3, 1), "ipv")]
        result = validator.validate(infant, "HepB", rule_set, history)
        assert [d.dose_id for d in result.valid] == ["1"]


class TestScheduleEnd:
    def test_recurring_rule_validates_extra_doses(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        history = [
            _dose("Influenza", date(2023, 7, 1), "1"),
            _dose("Influenza", date(2023, 8, 1), "2"),
            _dose("Influenza", date(2024, 6, 1), "3"),
            # Only 4 months after dose 3; recurring interval is 44 weeks
            _dose("Influenza", date(2024, 10, 1), "early"),
            _dose("Influenza", date(2025, 4, 10), "4"),
        ]
        result = validator.validate(infant, "Influenza", rule_set, history)

        assert [d.dose_id for d in result.valid] == ["1", "2", "3", "4"]
        assert result.rejected[0].target_dose_number == 4
        assert result.rejected[0].reason == RejectionReason.INTERVAL_FROM_PREVIOUS
        assert result.superfluous == ()

    def test_doses_past_finished_schedule_are_superfluous(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        history = [
            _dose("HepA", date(2024, 1, 1), "1"),
            _dose("HepA", date(2024, 7, 1), "2"),
            _dose("HepA", date(2025, 1, 1), "extra"),
        ]
        result = validator.validate(infant, "HepA", rule_set, history)

        assert result.valid_count == 2
        assert result.rejected == ()
        assert [d.dose_id for d in result.superfluous] == ["extra"]

    def test_unknown_series_doses_are_superfluous(
        self, validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
    ) -> None:
        result = validator.validate(infant, "Smallpox", rule_set, [_dose("Smallpox", DOB)])
        assert result.valid_count == 0
        assert len(result.superfluous) == 1

    def test_dose_without_min_age_uses_birth(self, validator: DoseValidator) -> None:
        rules = RuleSet({"X": [DoseRule(series_name="X", dose_number=1)]})
        profile = PatientProfile(date_of_birth=DOB, sex=Sex.FEMALE)
        # Grace lets a dose recorded just before birth count
        result = validator.validate(profile, "X", rules, [_dose("X", DOB - timedelta(days=4))])
        assert result.valid_count == 1


def test_sort_chronologically_is_stable() -> None:
    same_day = date(2024, 1, 1)
    doses = [
        _dose("A", same_day, "first"),
        _dose("A", DOB, "earliest"),
        _dose("A", same_day, "second"),
    ]
    assert [d.dose_id for d in sort_chronologically(doses)] == ["earliest", "first", "second"]


class TestAdolescentBoundaries:
    """HPV dose 1 has a 9 year (108 month) minimum age."""

    PROFILE = PatientProfile(date_of_birth=date(2010, 1, 1), sex=Sex.FEMALE)

    def test_hpv_at_eight_years_is_rejected(
        self, validator: DoseValidator, rule_set: RuleSet
    ) -> None:
        result = validator.validate(self.PROFILE, "HPV", rule_set, [_dose("HPV", date(2018, 1, 1))])

        assert result.valid_count == 0
        assert result.rejected[0].reason == RejectionReason.BELOW_MIN_AGE

    def test_hpv_at_eleven_years_is_valid(
        self, validator: DoseValidator, rule_set: RuleSet
    ) -> None:
        result = validator.validate(self.PROFILE, "HPV", rule_set, [_dose("HPV", date(2021, 1, 2))])
        assert result.valid_count == 1


def test_live_daisy_chain_across_three_series(
    validator: DoseValidator, infant: PatientProfile, rule_set: RuleSet
) -> None:
    """FluMist clears MMR by 30 days but lands 16 days after a rejected Varicella."""
    first_birthday = date(2024, 1, 1)
    history = [
        _dose("MMR", first_birthday, "1"),
        _dose("Varicella", first_birthday + timedelta(days=14), "2"),
        _dose("FluMist", first_birthday + timedelta(days=30), "3"),
    ]
    result = validator.validate(infant, "FluMist", rule_set, history)

    assert result.valid_count == 0
    assert result.rejected[0].reason == RejectionReason.LIVE_VIRUS_CONFLICT
