"""
Built-in ACIP/CDSi rule catalogue (v4.6 snapshot).

This is the default rule set the registry starts with. It can be replaced at
runtime by a file, a user import or a remote sync without changing the engine.

Key scheduling concepts:
- minAgeWeeks: precise age (6 weeks = 42 days), preferred over months
- minAgeMonths: calendar age (12 months = first birthday)
- maxAge*: dose must be given BEFORE this age (rotavirus 15w 0d)
- minIntervalWeeksFromDose1: independent floor from the series start (HepB dose 3)
- isRecurring: last rule repeats indefinitely (annual flu, decade Td boosters)
"""

from vaxengine.domain.models import DoseRule
from vaxengine.domain.rules import RuleSet

HEPB_RULES = [
    # Logic engine has no max age here, so it applies to infants and adults alike
    DoseRule(series_name="HepB", dose_number=1, min_age_months=0),
    DoseRule(series_name="HepB", dose_number=2, min_age_months=1, min_interval_weeks=4),
    # Dose 3: min age 24 weeks, 8 weeks after dose 2, 16 weeks after dose 1
    DoseRule(
        series_name="HepB",
        dose_number=3,
        min_age_weeks=24,
        min_interval_weeks=8,
        min_interval_weeks_from_dose1=16,
    ),
]

ROTAVIRUS_RULES = [
    # Do not start on or after 15 weeks 0 days; final dose before 8 months 0 days
    DoseRule(series_name="Rotavirus", dose_number=1, min_age_weeks=6, max_age_weeks=15),
    DoseRule(series_name="Rotavirus", dose_number=2, min_age_weeks=10, min_interval_weeks=4),
    DoseRule(
        series_name="Rotavirus",
        dose_number=3,
        min_age_weeks=14,
        max_age_months=8,
        min_interval_weeks=4,
    ),
]

DTAP_RULES = [
    # Children under 7 years only
    DoseRule(series_name="DTaP", dose_number=1, min_age_weeks=6, max_age_months=84),
    DoseRule(
        series_name="DTaP", dose_number=2, min_age_weeks=10, min_interval_weeks=4, max_age_months=84
    ),
    DoseRule(
        series_name="DTaP", dose_number=3, min_age_weeks=14, min_interval_weeks=4, max_age_months=84
    ),
    DoseRule(
        series_name="DTaP",
        dose_number=4,
        min_age_months=15,
        min_interval_weeks=26,
        max_age_months=84,
    ),
    DoseRule(
        series_name="DTaP",
        dose_number=5,
        min_age_months=48,
        min_interval_weeks=26,
        max_age_months=84,
    ),
]

HIB_RULES = [
    # Healthy children 5 years and older generally do not need Hib
    DoseRule(series_name="Hib", dose_number=1, min_age_weeks=6, max_age_months=59),
    DoseRule(
        series_name="Hib", dose_number=2, min_age_weeks=10, max_age_months=15, min_interval_weeks=4
    ),
    DoseRule(
        series_name="Hib", dose_number=3, min_age_weeks=14, max_age_months=15, min_interval_weeks=4
    ),
    DoseRule(
        series_name="Hib", dose_number=4, min_age_months=12, max_age_months=59, min_interval_weeks=8
    ),
]

PCV_RULES = [
    DoseRule(series_name="PCV", dose_number=1, min_age_weeks=6, max_age_months=59),
    DoseRule(
        series_name="PCV", dose_number=2, min_age_weeks=10, max_age_months=24, min_interval_weeks=4
    ),
    DoseRule(
        series_name="PCV", dose_number=3, min_age_weeks=14, max_age_months=24, min_interval_weeks=4
    ),
    DoseRule(
        series_name="PCV", dose_number=4, min_age_months=12, max_age_months=59, min_interval_weeks=8
    ),
]

IPV_RULES = [
    DoseRule(series_name="IPV", dose_number=1, min_age_weeks=6),
    DoseRule(series_name="IPV", dose_number=2, min_age_weeks=10, min_interval_weeks=4),
    # Absolute minimum is 14 weeks; the routine schedule uses 24 weeks
    DoseRule(series_name="IPV", dose_number=3, min_age_weeks=24, min_interval_weeks=4),
    DoseRule(series_name="IPV", dose_number=4, min_age_months=48, min_interval_weeks=26),
]

MMR_RULES = [
    DoseRule(series_name="MMR", dose_number=1, min_age_months=12),
    DoseRule(series_name="MMR", dose_number=2, min_age_months=48, min_interval_weeks=4),
]

VARICELLA_RULES = [
    DoseRule(series_name="Varicella", dose_number=1, min_age_months=12),
    # 3 months between doses for children under 13
    DoseRule(series_name="Varicella", dose_number=2, min_age_months=48, min_interval_weeks=12),
]

HEPA_RULES = [
    DoseRule(series_name="HepA", dose_number=1, min_age_months=12),
    DoseRule(series_name="HepA", dose_number=2, min_age_months=18, min_interval_weeks=26),
]

MENACWY_RULES = [
    DoseRule(series_name="MenACWY", dose_number=1, min_age_months=132),  # 11 years
    DoseRule(series_name="MenACWY", dose_number=2, min_age_months=192, min_interval_weeks=8),
]

TDAP_RULES = [
    DoseRule(series_name="Tdap", dose_number=1, min_age_months=132),
]

HPV_RULES = [
    # Routine at 11-12 years, can start at 9
    DoseRule(series_name="HPV", dose_number=1, min_age_months=108),
    DoseRule(series_name="HPV", dose_number=2, min_age_months=114, min_interval_weeks=20),
    DoseRule(series_name="HPV", dose_number=3, min_age_months=118, min_interval_weeks=12),
]

ZOSTER_RULES = [
    DoseRule(series_name="Zoster", dose_number=1, min_age_months=600),  # 50 years
    DoseRule(series_name="Zoster", dose_number=2, min_age_months=600, min_interval_weeks=8),
]

PNEUMO_ADULT_RULES = [
    DoseRule(series_name="PneumoAdult", dose_number=1, min_age_months=780),  # 65 years
]

TD_BOOSTER_RULES = [
    # Every 10 years from age 19
    DoseRule(
        series_name="Td/Tdap",
        dose_number=1,
        min_age_months=228,
        min_interval_weeks=520,
        is_recurring=True,
    ),
]

COVID19_RULES = [
    DoseRule(series_name="COVID-19", dose_number=1, min_age_months=6),
    DoseRule(series_name="COVID-19", dose_number=2, min_age_months=8, min_interval_weeks=8),
    DoseRule(
        series_name="COVID-19",
        dose_number=3,
        min_age_months=14,
        min_interval_weeks=26,
        is_recurring=True,
    ),
]

INFLUENZA_RULES = [
    # Two-dose primary series for naive children, then roughly one dose per season
    DoseRule(series_name="Influenza", dose_number=1, min_age_months=6),
    DoseRule(series_name="Influenza", dose_number=2, min_age_months=7, min_interval_weeks=4),
    DoseRule(series_name="Influenza", dose_number=3, min_interval_weeks=44, is_recurring=True),
]

FLUMIST_RULES = [
    # Live attenuated influenza, minimum age 2 years
    DoseRule(series_name="FluMist", dose_number=1, min_age_months=24),
    DoseRule(series_name="FluMist", dose_number=2, min_age_months=25, min_interval_weeks=4),
]

RSV_RULES = [
    # Infant monoclonal (nirsevimab) path
    DoseRule(series_name="RSV", dose_number=1, min_age_months=0, max_age_months=8),
]

RSV_ADULT_RULES = [
    DoseRule(series_name="RSV-Adult", dose_number=1, min_age_months=720),  # 60 years
]

DEFAULT_RULE_SET = RuleSet(
    {
        "HepB": HEPB_RULES,
        "Rotavirus": ROTAVIRUS_RULES,
        "DTaP": DTAP_RULES,
        "Hib": HIB_RULES,
        "PCV": PCV_RULES,
        "IPV": IPV_RULES,
        "MMR": MMR_RULES,
        "Varicella": VARICELLA_RULES,
        "HepA": HEPA_RULES,
        "MenACWY": MENACWY_RULES,
        "Tdap": TDAP_RULES,
        "HPV": HPV_RULES,
        # Adult
        "Zoster": ZOSTER_RULES,
        "PneumoAdult": PNEUMO_ADULT_RULES,
        "Td/Tdap": TD_BOOSTER_RULES,
        # Respiratory
        "COVID-19": COVID19_RULES,
        "Influenza": INFLUENZA_RULES,
        "FluMist": FLUMIST_RULES,
        "RSV": RSV_RULES,
        "RSV-Adult": RSV_ADULT_RULES,
    }
)
