"""
Core services for the evaluation engine.

This package contains the engine components (dose validation, series
evaluation, forecasting, visit grouping), the active rule set registry and
the service facade that wires them together for callers.
"""

from .dose_validator import DoseValidationResult, DoseValidator
from .forecaster import Forecaster
from .immunization_service import (
    EvaluationRequest,
    EvaluationResponse,
    ImmunizationService,
    configure_logging,
)
from .rule_registry import Result, RuleRegistry, export_rules, parse_rules
from .series_evaluator import SeriesEvaluator
from .visit_grouper import VisitGrouper

__all__ = [
    "DoseValidationResult",
    "DoseValidator",
    "EvaluationRequest",
    "EvaluationResponse",
    "Forecaster",
    "ImmunizationService",
    "Result",
    "RuleRegistry",
    "SeriesEvaluator",
    "VisitGrouper",
    "configure_logging",
    "export_rules",
    "parse_rules",
]
