"""
Rule evaluation layer.

Pure functions from (resource, rule) to pass/fail plus evidence.
"""

from .conditions import CONDITION_HANDLERS, compile_pattern, values_equal
from .evaluator import CheckEvaluation, RuleEvaluation, RuleEvaluator
from .property_path import ABSENT, parse_path, resolve_path

__all__ = [
    "ABSENT",
    "CONDITION_HANDLERS",
    "CheckEvaluation",
    "RuleEvaluation",
    "RuleEvaluator",
    "compile_pattern",
    "parse_path",
    "resolve_path",
    "values_equal",
]
