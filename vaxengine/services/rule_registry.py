"""
Active rule set management and the JSON rule exchange format.

Key patterns:
- Explicit Result type for expected failures (bad user imports)
- Import is all-or-nothing: a rejected import leaves the active set untouched
- Swapping the active set never affects an evaluation already holding a RuleSet
"""

import json
import threading
from pathlib import Path
from typing import Any, Generic, TypeVar

import structlog
from pydantic import ValidationError

from vaxengine.config import RulesConfig
from vaxengine.domain.models import DoseRule
from vaxengine.domain.rules import RuleSet, RuleSetInvariantError, RuleSetParseError

logger = structlog.get_logger(__name__)

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Outcome of an operation that can fail for ordinary reasons, such as a
    user-supplied rule file that does not validate.

    Holds exactly one of a value or an error. `unwrap()` re-raises the error.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


def _has_required_fields(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    series_name = item.get("seriesName")
    dose_number = item.get("doseNumber")
    if not isinstance(series_name, str) or not series_name:
        return False
    # bool is an int subclass but not a dose number
    return isinstance(dose_number, int | float) and not isinstance(dose_number, bool)


def rules_from_exchange(data: Any) -> RuleSet:
    """Build a RuleSet from decoded exchange-format data, or raise RuleSetParseError."""
    if not isinstance(data, dict):
        raise RuleSetParseError("Root must be an object")
    if not data:
        raise RuleSetParseError("No vaccine series definitions found")

    series: dict[str, list[DoseRule]] = {}
    for series_code, items in data.items():
        if not isinstance(items, list):
            raise RuleSetParseError(
                f"Series '{series_code}' is not an array", series_code=series_code
            )

        rules: list[DoseRule] = []
        for index, item in enumerate(items):
            message = f"Invalid rule definition in '{series_code}' at index {index}"
            if not _has_required_fields(item):
                raise RuleSetParseError(message, series_code=series_code, index=index)
            try:
                rules.append(DoseRule.model_validate(item))
            except ValidationError as e:
                fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
                raise RuleSetParseError(
                    f"{message} ({fields})", series_code=series_code, index=index
                ) from e
        series[series_code] = rules

    try:
        return RuleSet(series)
    except RuleSetInvariantError as e:
        raise RuleSetParseError(str(e), series_code=e.series_code) from e


def parse_rules(text: str) -> RuleSet:
    """Parse a JSON string in the rule exchange format."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise RuleSetParseError(f"invalid JSON ({e.msg} at line {e.lineno})") from e
    return rules_from_exchange(data)


def export_rules(rule_set: RuleSet) -> str:
    """Serialize a RuleSet to formatted exchange-format JSON."""
    return json.dumps(rule_set.to_exchange(), indent=2)


class RuleRegistry:
    """
    Holds the process-wide active rule set.

    The set can come from the built-in catalogue, a file, a user import or a
    remote sync performed by the caller; the engine only ever sees a RuleSet.
    """

    def __init__(self, default: RuleSet) -> None:
        self._default = default
        self._active = default
        self._source = "default"
        self._lock = threading.Lock()
        self.logger = logger.bind(component="rule_registry")

    @classmethod
    def from_config(cls, config: RulesConfig, default: RuleSet) -> "RuleRegistry":
        """Registry seeded from the configured rules file, if any."""
        registry = cls(default)
        if config.rules_file:
            registry.load_file(config.rules_file)
        return registry

    @property
    def active(self) -> RuleSet:
        return self._active

    @property
    def source(self) -> str:
        return self._source

    def replace(self, rule_set: RuleSet, source: str) -> None:
        with self._lock:
            self._active = rule_set
            self._source = source
        self.logger.info("rule_set_replaced", source=source, series=len(rule_set))

    def reset(self) -> None:
        """Go back to the built-in catalogue."""
        self.replace(self._default, "default")

    def try_import_json(
        self, text: str, source: str = "import"
    ) -> Result[RuleSet, RuleSetParseError]:
        try:
            rule_set = parse_rules(text)
        except RuleSetParseError as e:
            self.logger.warning(
                "rule_import_rejected",
                source=source,
                error=str(e),
                series=e.series_code,
                index=e.index,
            )
            return Result.err(e)

        self.replace(rule_set, source)
        return Result.ok(rule_set)

    def import_json(self, text: str, source: str = "import") -> RuleSet:
        """Import and activate rules, raising RuleSetParseError on bad data."""
        return self.try_import_json(text, source).unwrap()

    def load_file(self, path: str | Path) -> RuleSet:
        file_path = Path(path)
        return self.import_json(file_path.read_text(encoding="utf-8"), source=f"file:{file_path}")

    def export_json(self) -> str:
        return export_rules(self._active)
