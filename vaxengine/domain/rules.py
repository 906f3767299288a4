"""
Immutable rule catalogue.

A RuleSet maps a series code to its ordered dose rules. The last rule of a
series may be a recurring anchor, in which case every dose beyond the defined
schedule is governed by a synthesized copy of it.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from vaxengine.domain.models import DoseRule


class RuleSetError(ValueError):
    """Base class for rule catalogue problems."""


class RuleSetInvariantError(RuleSetError):
    """Raised when a series breaks the dose ordering invariants."""

    def __init__(self, series_code: str, message: str) -> None:
        self.series_code = series_code
        super().__init__(f"Series '{series_code}': {message}")


class RuleSetParseError(RuleSetError):
    """Raised when rule data in the exchange format cannot be imported."""

    def __init__(
        self, message: str, series_code: str | None = None, index: int | None = None
    ) -> None:
        self.series_code = series_code
        self.index = index
        super().__init__(f"Failed to parse rules: {message}")


@dataclass(frozen=True)
class FixedSlot:
    """A dose position defined explicitly in the schedule."""

    rule: DoseRule

    @property
    def is_recurring(self) -> bool:
        return False


@dataclass(frozen=True)
class RecurringSlot:
    """A dose position past the defined schedule, governed by the recurring anchor."""

    anchor: DoseRule
    dose_number: int

    @property
    def last_defined_dose(self) -> int:
        return self.anchor.dose_number

    @property
    def rule(self) -> DoseRule:
        return self.anchor.model_copy(update={"dose_number": self.dose_number})

    @property
    def is_recurring(self) -> bool:
        return True


ScheduleSlot = FixedSlot | RecurringSlot


def check_series_invariants(series_code: str, rules: tuple[DoseRule, ...]) -> None:
    """Dose numbers must be contiguous from 1 and only the last rule may recur."""
    for index, rule in enumerate(rules):
        expected = index + 1
        if rule.dose_number != expected:
            raise RuleSetInvariantError(
                series_code,
                f"rule at index {index} has doseNumber {rule.dose_number}, expected {expected}",
            )
        if rule.is_recurring and index != len(rules) - 1:
            raise RuleSetInvariantError(
                series_code,
                f"only the last rule may be recurring (dose {rule.dose_number} is not last)",
            )


class RuleSet(Mapping[str, tuple[DoseRule, ...]]):
    """Read-only mapping from series code to its ordered dose rules."""

    def __init__(self, series: Mapping[str, Iterable[DoseRule]]) -> None:
        frozen: dict[str, tuple[DoseRule, ...]] = {}
        for series_code, rules in series.items():
            ordered = tuple(rules)
            check_series_invariants(series_code, ordered)
            frozen[series_code] = ordered
        self._series = MappingProxyType(frozen)

    def __getitem__(self, series_code: str) -> tuple[DoseRule, ...]:
        return self._series[series_code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._series)

    def __len__(self) -> int:
        return len(self._series)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleSet):
            return NotImplemented
        return dict(self._series) == dict(other._series)

    def __hash__(self) -> int:
        return hash(tuple(self._series.items()))

    def __repr__(self) -> str:
        return f"RuleSet(series={list(self._series)})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        # Carried by reference inside request models, never re-validated
        return core_schema.is_instance_schema(cls)

    def rules_for(self, series_code: str) -> tuple[DoseRule, ...]:
        """Rules for a series; unknown series have none."""
        return self._series.get(series_code, ())

    def slot_for(self, series_code: str, dose_number: int) -> ScheduleSlot | None:
        rules = self.rules_for(series_code)
        if dose_number <= len(rules):
            return FixedSlot(rules[dose_number - 1])
        if rules and rules[-1].is_recurring:
            return RecurringSlot(anchor=rules[-1], dose_number=dose_number)
        return None

    def rule_for(self, series_code: str, dose_number: int) -> DoseRule | None:
        slot = self.slot_for(series_code, dose_number)
        return slot.rule if slot is not None else None

    def to_exchange(self) -> dict[str, list[dict[str, Any]]]:
        """Plain JSON-ready structure in the rule exchange format."""
        return {
            series_code: [
                rule.model_dump(by_alias=True, exclude_none=True) for rule in rules
            ]
            for series_code, rules in self._series.items()
        }
