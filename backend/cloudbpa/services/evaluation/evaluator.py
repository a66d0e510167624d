"""
Rule Evaluator

Pure evaluation of rule checks against a single resource configuration.
No I/O and no shared state: the same (resource, rule) always produces the
same result.

Usage:
    evaluator = RuleEvaluator()
    evaluation = evaluator.evaluate_rule(resource, rule)
    if evaluation.outcome == RuleOutcome.FAILED:
        ...
"""

import logging
from dataclasses import dataclass
from typing import Any, Tuple

from ...models.enums import RuleOutcome
from ...models.framework_models import RuleCheck, RuleDefinition
from ...models.resource_models import Resource
from ...models.result_models import CheckEvidence
from .conditions import CONDITION_HANDLERS
from .property_path import ABSENT, resolve_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckEvaluation:
    """Result of one check against one resource."""

    passed: bool
    actual_value: Any
    present: bool
    evidence: CheckEvidence


@dataclass(frozen=True)
class RuleEvaluation:
    """Result of one rule against one resource."""

    outcome: RuleOutcome
    checks: Tuple[CheckEvaluation, ...] = ()

    @property
    def failed_checks(self) -> Tuple[CheckEvaluation, ...]:
        return tuple(check for check in self.checks if not check.passed)


class RuleEvaluator:
    """
    Evaluates rule checks against resource configurations.

    Data-shape mismatches and malformed paths never raise: they fail the
    check with evidence describing the mismatch.
    """

    def evaluate(self, resource: Resource, check: RuleCheck) -> CheckEvaluation:
        """
        Evaluate a single check against a resource.

        Args:
            resource: Resource whose configuration is inspected
            check: Check to evaluate

        Returns:
            CheckEvaluation with pass/fail, the resolved value and evidence
        """
        try:
            actual = resolve_path(resource.configuration, check.property_path)
        except ValueError as e:
            return self._result(check, False, ABSENT, f"Invalid property path: {e}")

        handler = CONDITION_HANDLERS[check.condition]
        try:
            passed, detail = handler(actual, check)
        except (TypeError, ValueError) as e:
            logger.debug(
                "Check %s on %s failed with data error: %s", check.condition.value, resource.resource_id, e
            )
            passed, detail = False, f"Data shape mismatch: {e}"

        return self._result(check, passed, actual, detail)

    def evaluate_rule(self, resource: Resource, rule: RuleDefinition) -> RuleEvaluation:
        """
        Evaluate every check of a rule against a resource (AND semantics).

        Returns:
            SKIPPED if the rule does not apply to the resource type,
            PASSED if every check passes, FAILED otherwise
        """
        if not rule.applies_to(resource.resource_type):
            return RuleEvaluation(outcome=RuleOutcome.SKIPPED)

        checks = tuple(self.evaluate(resource, check) for check in rule.checks)
        outcome = RuleOutcome.PASSED if all(c.passed for c in checks) else RuleOutcome.FAILED
        return RuleEvaluation(outcome=outcome, checks=checks)

    @staticmethod
    def _result(check: RuleCheck, passed: bool, actual: Any, detail: str) -> CheckEvaluation:
        present = actual is not ABSENT
        evidence = CheckEvidence(
            property_path=check.property_path,
            condition=check.condition,
            expected=check.value,
            actual=actual if present else None,
            present=present,
            passed=passed,
            message=check.message if (check.message and not passed) else detail,
        )
        return CheckEvaluation(passed=passed, actual_value=actual, present=present, evidence=evidence)
