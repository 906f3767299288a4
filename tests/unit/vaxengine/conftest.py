"""Shared fixtures for engine tests."""

from datetime import date

import pytest

from adapters.acip.schedule import DEFAULT_RULE_SET
from vaxengine.domain.models import PatientProfile, Sex
from vaxengine.domain.rules import RuleSet


@pytest.fixture
def rule_set() -> RuleSet:
    return DEFAULT_RULE_SET


@pytest.fixture
def infant() -> PatientProfile:
    """Healthy patient born 2023-01-01."""
    return PatientProfile(date_of_birth=date(2023, 1, 1), sex=Sex.FEMALE)
