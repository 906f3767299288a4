"""
Fixed clinical policy that applies regardless of the active rule set.

- Live attenuated vaccines (28-day spacing, pregnancy contraindication)
- Contraindications registered per condition tag
"""

from dataclasses import dataclass

from vaxengine.domain.models import Condition, PatientProfile

LIVE_VACCINES: frozenset[str] = frozenset(
    {"MMR", "Measles", "Mumps", "Rubella", "Varicella", "FluMist", "Zoster"}
)


@dataclass(frozen=True)
class Contraindication:
    """Series that must not be given to a patient carrying a condition."""

    condition: Condition
    series_codes: frozenset[str]
    reason: str

    def applies_to(self, series_code: str) -> bool:
        return series_code in self.series_codes


# Checked in insertion order; the first match wins
CONTRAINDICATIONS: dict[Condition, Contraindication] = {
    Condition.IMMUNOCOMPROMISED: Contraindication(
        condition=Condition.IMMUNOCOMPROMISED,
        series_codes=frozenset({"MMR", "Varicella", "Rotavirus", "FluMist"}),
        reason="Contraindication: Patient is Immunocompromised (Live Virus Risk)",
    ),
    Condition.PREGNANCY: Contraindication(
        condition=Condition.PREGNANCY,
        series_codes=LIVE_VACCINES,
        reason="Contraindication: Patient is Pregnant (Live Virus Risk)",
    ),
}


def is_live_vaccine(series_code: str) -> bool:
    return series_code in LIVE_VACCINES


def find_contraindication(profile: PatientProfile, series_code: str) -> Contraindication | None:
    """Return the first registered contraindication the profile triggers for a series."""
    for condition, contraindication in CONTRAINDICATIONS.items():
        if profile.has_condition(condition) and contraindication.applies_to(series_code):
            return contraindication
    return None
