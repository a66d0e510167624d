"""
Result Aggregator

Reduces the framework results of one analysis into a single
AggregatedResult: per-framework scores, normalized weights, the weighted
overall score, finding buckets, ranked recommendations and a
severity-weighted risk score.

Aggregation is commutative: the order of framework results never changes
the outcome.
"""

import hashlib
import logging
import math
import uuid
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ...models.enums import AnalysisStatus, FrameworkStatus, Severity, WeightPolicy
from ...models.framework_models import TenantFrameworkSelection
from ...models.result_models import (
    AggregatedResult,
    Finding,
    FrameworkResult,
    FrameworkScore,
    Recommendation,
    flatten_findings,
)
from .constants import SEVERITY_PRIORITY, WELL_ARCHITECTED_PILLARS, calculate_risk_score, get_risk_level

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 1.0


class ResultAggregator:
    """
    Aggregates framework results into one scored analysis result.

    Attributes:
        recommendation_limit: Maximum recommendations kept after ranking
        weight_policy: How frameworks that did not complete affect weights
    """

    def __init__(
        self,
        recommendation_limit: int = 10,
        weight_policy: WeightPolicy = WeightPolicy.EXCLUDE_AND_RENORMALIZE,
    ):
        self.recommendation_limit = recommendation_limit
        self.weight_policy = weight_policy

    def calculate_score(self, passed: int, total: int) -> float:
        """
        Calculate a framework score percentage.

        Formula: (passed / (passed + failed)) * 100, skipped units excluded.

        Example:
            >>> ResultAggregator().calculate_score(passed=87, total=100)
            87.0
        """
        if total == 0:
            return 0.0
        return round((passed / total) * 100.0, 2)

    @staticmethod
    def normalize_weights(weights: Mapping[str, float]) -> Dict[str, float]:
        """
        Scale weights so they sum to 1.0.

        Returns:
            Normalized weights keyed like the input, empty when there is
            nothing to normalize
        """
        total = math.fsum(weights.values())
        if total <= 0:
            return {}
        return {key: weights[key] / total for key in sorted(weights)}

    @staticmethod
    def effective_status(result: FrameworkResult) -> FrameworkStatus:
        """A completed framework that evaluated nothing counts as PARTIAL."""
        if result.status == FrameworkStatus.COMPLETED and result.evaluated_checks == 0:
            return FrameworkStatus.PARTIAL
        return result.status

    def aggregate(
        self,
        framework_results: Sequence[FrameworkResult],
        selections: Iterable[TenantFrameworkSelection] = (),
        analysis_id: Optional[str] = None,
        timed_out: bool = False,
        custom_weights: Optional[Mapping[str, float]] = None,
        recommendation_limit: Optional[int] = None,
    ) -> AggregatedResult:
        """
        Aggregate framework results into one AggregatedResult.

        Args:
            framework_results: One result per framework, in any order
            selections: Tenant selections providing framework weights
            analysis_id: Identifier of the run; generated when omitted
            timed_out: Whether the overall analysis budget ran out
            custom_weights: Per-analysis weight overrides keyed by framework id
            recommendation_limit: Overrides the aggregator's limit for this call

        Returns:
            AggregatedResult. With no completed framework the score is 0,
            the status FAILED and no recommendations are produced.
        """
        analysis_id = analysis_id or str(uuid.uuid4())
        results = sorted(framework_results, key=lambda r: r.framework_id)

        weights = self._raw_weights(results, selections, custom_weights or {})
        statuses = {result.framework_id: self.effective_status(result) for result in results}
        completed = [r.framework_id for r in results if statuses[r.framework_id] == FrameworkStatus.COMPLETED]
        partial = [r.framework_id for r in results if statuses[r.framework_id] == FrameworkStatus.PARTIAL]
        failed = [r.framework_id for r in results if statuses[r.framework_id] == FrameworkStatus.FAILED]

        if self.weight_policy == WeightPolicy.ZERO_FILL and completed:
            normalized = self.normalize_weights(weights)
        else:
            normalized = self.normalize_weights({fid: weights[fid] for fid in completed})

        scores = {r.framework_id: self.calculate_score(r.passed_checks, r.evaluated_checks) for r in results}
        overall = math.fsum(normalized[fid] * scores[fid] for fid in completed)
        overall_score = min(100.0, max(0.0, round(overall, 2)))

        framework_scores = {
            r.framework_id: FrameworkScore(
                framework_id=r.framework_id,
                framework_version=r.framework_version,
                status=statuses[r.framework_id],
                score=scores[r.framework_id],
                weight=weights[r.framework_id],
                normalized_weight=normalized.get(r.framework_id, 0.0),
                passed_checks=r.passed_checks,
                failed_checks=r.failed_checks,
                skipped_checks=r.skipped_checks,
                findings=len(r.findings),
                error=r.error,
            )
            for r in results
        }

        findings = flatten_findings(results)
        by_severity, by_pillar, by_category = self._tally(findings)

        if completed:
            limit = recommendation_limit or self.recommendation_limit
            recommendations = self.build_recommendations(findings, limit)
        else:
            recommendations = ()

        status = self._run_status(results, completed, timed_out)
        risk_score = calculate_risk_score(by_severity)

        aggregated = AggregatedResult(
            analysis_id=analysis_id,
            status=status,
            overall_score=overall_score if completed else 0.0,
            framework_scores=framework_scores,
            normalized_weights=normalized,
            findings_by_severity=by_severity,
            findings_by_pillar=by_pillar,
            findings_by_category=by_category,
            recommendations=recommendations,
            completed_frameworks=tuple(completed),
            partial_frameworks=tuple(partial),
            failed_frameworks=tuple(failed),
            total_findings=len(findings),
            risk_score=risk_score,
            risk_level=get_risk_level(risk_score),
            timed_out=timed_out,
        )

        logger.info(
            "Aggregated analysis %s: status=%s score=%.2f completed=%d partial=%d failed=%d findings=%d",
            analysis_id,
            status.value,
            aggregated.overall_score,
            len(completed),
            len(partial),
            len(failed),
            len(findings),
        )
        return aggregated

    def build_recommendations(self, findings: Sequence[Finding], limit: int) -> Tuple[Recommendation, ...]:
        """
        Group findings by (category, rule_id) and rank the groups.

        Ranking: highest severity first, then most occurrences, then
        category and rule id so the order is total.
        """
        groups: Dict[Tuple[str, str], List[Finding]] = {}
        for finding in findings:
            groups.setdefault((finding.category, finding.rule_id), []).append(finding)

        ranked = []
        for (category, rule_id), grouped in groups.items():
            # Representative: most severe, ties broken by stable ids
            grouped.sort(key=lambda f: (-f.severity.rank, f.framework_id, f.id))
            top = grouped[0]
            ranked.append(((-top.severity.rank, -len(grouped), category, rule_id), grouped))

        ranked.sort(key=lambda item: item[0])

        recommendations = []
        for rank, (_, grouped) in enumerate(ranked[:limit], start=1):
            top = grouped[0]
            effort = next((f.effort for f in grouped if f.effort is not None), None)
            recommendations.append(
                Recommendation(
                    id=_recommendation_id(top.category, top.rule_id),
                    rule_id=top.rule_id,
                    category=top.category,
                    title=top.title,
                    recommendation=top.recommendation,
                    severity=top.severity,
                    pillar=top.pillar,
                    priority=SEVERITY_PRIORITY[top.severity],
                    effort=effort,
                    occurrence_count=len(grouped),
                    affected_resource_count=len({f.resource_identity for f in grouped}),
                    frameworks=tuple(sorted({f.framework_id for f in grouped})),
                    rank=rank,
                )
            )
        return tuple(recommendations)

    @staticmethod
    def _raw_weights(
        results: Sequence[FrameworkResult],
        selections: Iterable[TenantFrameworkSelection],
        custom_weights: Mapping[str, float],
    ) -> Dict[str, float]:
        selection_weights = {s.framework_id: s.weight for s in selections}
        weights = {}
        for result in results:
            weight = custom_weights.get(result.framework_id, selection_weights.get(result.framework_id))
            if weight is None or weight <= 0:
                weight = DEFAULT_WEIGHT
            weights[result.framework_id] = float(weight)
        return weights

    @staticmethod
    def _tally(findings: Sequence[Finding]) -> Tuple[Dict[str, int], Dict[str, int], Dict[str, int]]:
        by_severity = {severity.value: 0 for severity in Severity}
        by_pillar = dict.fromkeys(WELL_ARCHITECTED_PILLARS, 0)
        by_category: Dict[str, int] = {}
        for finding in findings:
            by_severity[finding.severity.value] += 1
            by_pillar[finding.pillar] = by_pillar.get(finding.pillar, 0) + 1
            by_category[finding.category] = by_category.get(finding.category, 0) + 1
        return (
            by_severity,
            {key: by_pillar[key] for key in sorted(by_pillar)},
            {key: by_category[key] for key in sorted(by_category)},
        )

    @staticmethod
    def _run_status(results: Sequence[FrameworkResult], completed: List[str], timed_out: bool) -> AnalysisStatus:
        if not completed:
            return AnalysisStatus.FAILED
        if len(completed) == len(results) and not timed_out:
            return AnalysisStatus.COMPLETED
        return AnalysisStatus.PARTIAL


def _recommendation_id(category: str, rule_id: str) -> str:
    return hashlib.sha256(f"{category}|{rule_id}".encode("utf-8")).hexdigest()[:16]
