"""
Check condition functions.

One evaluation function per CheckCondition member, dispatched through
CONDITION_HANDLERS. Every function takes the resolved value (or ABSENT)
and the check, and returns ``(passed, detail)``. Data-shape mismatches
fail the check with a detail message instead of raising.
"""

import re
from functools import lru_cache
from numbers import Number
from typing import Any, Callable, Dict, Optional, Tuple

from ...models.enums import CheckCondition
from ...models.framework_models import RuleCheck
from .property_path import ABSENT

ConditionResult = Tuple[bool, str]
ConditionHandler = Callable[[Any, RuleCheck], ConditionResult]


@lru_cache(maxsize=512)
def compile_pattern(pattern: str, case_sensitive: bool = False) -> "re.Pattern":
    """Compile and cache a REGEX check pattern."""
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(pattern, flags)


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _parse_number(value: str) -> Optional[float]:
    try:
        return float(value.strip())
    except ValueError:
        return None


def values_equal(actual: Any, expected: Any) -> bool:
    """
    Type-aware equality.

    Same-type values compare directly. A number and a numeric string are
    compared after parsing the string once; anything else compares
    strictly. Booleans never coerce to numbers.
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual is expected

    if _is_number(actual) and _is_number(expected):
        return actual == expected

    if _is_number(actual) and isinstance(expected, str):
        parsed = _parse_number(expected)
        return parsed is not None and parsed == actual
    if isinstance(actual, str) and _is_number(expected):
        parsed = _parse_number(actual)
        return parsed is not None and parsed == expected

    if type(actual) is not type(expected) and not (
        isinstance(actual, (list, tuple)) and isinstance(expected, (list, tuple))
    ):
        return False
    if isinstance(actual, (list, tuple)):
        return len(actual) == len(expected) and all(
            values_equal(a, e) for a, e in zip(actual, expected)
        )
    return actual == expected


def check_exists(actual: Any, check: RuleCheck) -> ConditionResult:
    if actual is ABSENT:
        return False, f"'{check.property_path}' is not set"
    if actual is None:
        return False, f"'{check.property_path}' is null"
    return True, f"'{check.property_path}' is set"


def check_not_exists(actual: Any, check: RuleCheck) -> ConditionResult:
    passed, _ = check_exists(actual, check)
    if passed:
        return False, f"'{check.property_path}' is set"
    return True, f"'{check.property_path}' is not set"


def check_equals(actual: Any, check: RuleCheck) -> ConditionResult:
    if actual is ABSENT:
        return False, f"'{check.property_path}' is not set"
    if values_equal(actual, check.value):
        return True, f"'{check.property_path}' equals {check.value!r}"
    return False, f"'{check.property_path}' is {actual!r}, expected {check.value!r}"


def check_not_equals(actual: Any, check: RuleCheck) -> ConditionResult:
    if actual is ABSENT:
        return True, f"'{check.property_path}' is not set"
    if values_equal(actual, check.value):
        return False, f"'{check.property_path}' must not equal {check.value!r}"
    return True, f"'{check.property_path}' is {actual!r}"


def _contains(actual: Any, check: RuleCheck) -> Optional[bool]:
    """Membership test, or None when the value shape does not support it."""
    if isinstance(actual, str):
        if not isinstance(check.value, str):
            return None
        return check.value in actual
    if isinstance(actual, (list, tuple)):
        return any(values_equal(item, check.value) for item in actual)
    return None


def check_contains(actual: Any, check: RuleCheck) -> ConditionResult:
    if actual is ABSENT:
        return False, f"'{check.property_path}' is not set"
    if actual is None:
        return False, f"'{check.property_path}' is null"
    contained = _contains(actual, check)
    if contained is None:
        return False, _shape_mismatch(actual, check)
    if contained:
        return True, f"'{check.property_path}' contains {check.value!r}"
    return False, f"'{check.property_path}' does not contain {check.value!r}"


def check_not_contains(actual: Any, check: RuleCheck) -> ConditionResult:
    if actual is ABSENT:
        return True, f"'{check.property_path}' is not set"
    if actual is None:
        return True, f"'{check.property_path}' is null"
    contained = _contains(actual, check)
    if contained is None:
        return False, _shape_mismatch(actual, check)
    if contained:
        return False, f"'{check.property_path}' contains {check.value!r}"
    return True, f"'{check.property_path}' does not contain {check.value!r}"


def check_regex(actual: Any, check: RuleCheck) -> ConditionResult:
    if actual is ABSENT:
        return False, f"'{check.property_path}' is not set"
    if actual is None:
        return False, f"'{check.property_path}' is null"

    pattern = compile_pattern(check.value, check.case_sensitive)
    text = actual if isinstance(actual, str) else _as_text(actual)
    if pattern.search(text):
        return True, f"'{check.property_path}' matches /{check.value}/"
    return False, f"'{check.property_path}' value {text!r} does not match /{check.value}/"


def _as_text(value: Any) -> str:
    # Match the JSON spelling of scalars so rule authors can write "true"/"false"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _shape_mismatch(actual: Any, check: RuleCheck) -> str:
    return (
        f"Data shape mismatch: {check.condition.value} on '{check.property_path}' "
        f"cannot apply {type(check.value).__name__} to {type(actual).__name__}"
    )


CONDITION_HANDLERS: Dict[CheckCondition, ConditionHandler] = {
    CheckCondition.EXISTS: check_exists,
    CheckCondition.NOT_EXISTS: check_not_exists,
    CheckCondition.EQUALS: check_equals,
    CheckCondition.NOT_EQUALS: check_not_equals,
    CheckCondition.CONTAINS: check_contains,
    CheckCondition.NOT_CONTAINS: check_not_contains,
    CheckCondition.REGEX: check_regex,
}
