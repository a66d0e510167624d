"""
Framework Executor

Runs the rule evaluator across every (resource, rule) pair of one
resolved framework and produces a FrameworkResult.

Execution is cooperative: the executor yields to the event loop every
``yield_interval`` resources so concurrently executing frameworks
interleave, and stops at the per-framework deadline with a PARTIAL
result holding the findings gathered so far.
"""

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from ...models.enums import FrameworkStatus, RuleOutcome
from ...models.framework_models import ResolvedRuleSet, RuleDefinition
from ...models.resource_models import Resource
from ...models.result_models import Finding, FrameworkResult
from ..evaluation import RuleEvaluation, RuleEvaluator
from .exceptions import EvaluationError

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "timeout"


class FrameworkExecutor:
    """
    Executes one resolved framework against a resource set.

    Attributes:
        evaluator: Rule evaluator used for every unit
        yield_interval: Resources evaluated between event loop yields
    """

    def __init__(self, evaluator: Optional[RuleEvaluator] = None, yield_interval: int = 50):
        self.evaluator = evaluator or RuleEvaluator()
        self.yield_interval = max(1, yield_interval)

    async def execute(
        self,
        resources: Sequence[Resource],
        rule_set: ResolvedRuleSet,
        timeout: Optional[float] = None,
    ) -> FrameworkResult:
        """
        Evaluate every rule of a framework against every resource.

        Args:
            resources: Resources to evaluate
            rule_set: Resolved rules of one framework
            timeout: Seconds before execution stops with a PARTIAL result

        Returns:
            FrameworkResult with findings and unit counts. Units that raise
            are counted as skipped and in error_count.
        """
        started = time.monotonic()
        deadline = started + timeout if timeout is not None else None

        findings: List[Finding] = []
        passed = failed = skipped = errors = 0
        timed_out = False

        logger.debug(
            "Executing %s v%s: %d rules x %d resources",
            rule_set.framework_id,
            rule_set.framework_version,
            len(rule_set.rules),
            len(resources),
        )

        for index, resource in enumerate(resources):
            if deadline is not None and time.monotonic() >= deadline:
                timed_out = True
                break

            for rule in rule_set.rules:
                try:
                    evaluation = self.evaluator.evaluate_rule(resource, rule)
                except Exception as e:
                    error = EvaluationError(
                        "Unexpected error evaluating rule",
                        rule_id=rule.rule_id,
                        resource_id=resource.resource_id,
                        context={"framework_id": rule_set.framework_id},
                        cause=e,
                    )
                    logger.warning(str(error))
                    skipped += 1
                    errors += 1
                    continue

                if evaluation.outcome == RuleOutcome.SKIPPED:
                    skipped += 1
                elif evaluation.outcome == RuleOutcome.PASSED:
                    passed += 1
                else:
                    failed += 1
                    findings.append(self._build_finding(rule_set.framework_id, rule, resource, evaluation))

            if (index + 1) % self.yield_interval == 0:
                await asyncio.sleep(0)

        duration_ms = round((time.monotonic() - started) * 1000, 3)
        status = FrameworkStatus.PARTIAL if timed_out else FrameworkStatus.COMPLETED

        if timed_out:
            logger.warning(
                "Framework %s timed out after %.0f ms with %d findings",
                rule_set.framework_id,
                duration_ms,
                len(findings),
            )
        else:
            logger.info(
                "Framework %s completed: %d passed, %d failed, %d skipped in %.0f ms",
                rule_set.framework_id,
                passed,
                failed,
                skipped,
                duration_ms,
            )

        return FrameworkResult(
            framework_id=rule_set.framework_id,
            framework_version=rule_set.framework_version,
            status=status,
            findings=tuple(findings),
            total_checks=passed + failed + skipped,
            passed_checks=passed,
            failed_checks=failed,
            skipped_checks=skipped,
            error_count=errors,
            duration_ms=duration_ms,
            error=TIMEOUT_ERROR if timed_out else None,
        )

    @staticmethod
    def _build_finding(
        framework_id: str, rule: RuleDefinition, resource: Resource, evaluation: RuleEvaluation
    ) -> Finding:
        failing = evaluation.failed_checks
        message = rule.message or "; ".join(check.evidence.message for check in failing)
        return Finding(
            id=Finding.make_id(framework_id, rule.rule_id, resource.identity),
            rule_id=rule.rule_id,
            framework_id=framework_id,
            severity=rule.severity,
            pillar=rule.pillar,
            category=rule.category,
            resource_id=resource.resource_id,
            resource_type=resource.resource_type,
            account_id=resource.account_id,
            region=resource.region,
            title=rule.title or rule.rule_id,
            message=message,
            recommendation=rule.recommendation_text,
            effort=rule.remediation.effort if rule.remediation else None,
            evidence=tuple(check.evidence for check in evaluation.checks),
        )
