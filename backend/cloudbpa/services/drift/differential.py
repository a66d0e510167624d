"""
Differential Analysis

Compares a baseline analysis snapshot with a comparison snapshot and
reports resource changes, compliance changes and the security impact.

Pure: inputs are never mutated and the same pair of snapshots always
yields the same result.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ...models.analysis_models import AnalysisSnapshot
from ...models.diff_models import ComplianceChange, DifferentialResult, DiffOptions, ResourceChange
from ...models.enums import ChangeType, DiffThreshold, RiskLevel, Severity
from ...models.resource_models import Resource
from ...models.result_models import Finding

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("cloudbpa.audit")

# Minimum severity rank listed for each threshold
THRESHOLD_MIN_RANK = {
    DiffThreshold.ALL: Severity.INFORMATIONAL.rank,
    DiffThreshold.MEDIUM: Severity.MEDIUM.rank,
    DiffThreshold.HIGH: Severity.HIGH.rank,
}

# Recommendation triggers
MANY_RESOURCES_ADDED = 10
MANY_RESOURCES_REMOVED = 5

_MISSING = object()


class DifferentialAnalyzer:
    """
    Differential analysis between two analysis snapshots.

    Example:
        >>> analyzer = DifferentialAnalyzer()
        >>> result = analyzer.diff(last_week, today)
        >>> result.security_risk_level
        RiskLevel.INCREASED
    """

    def diff(
        self,
        baseline: AnalysisSnapshot,
        comparison: AnalysisSnapshot,
        options: Optional[DiffOptions] = None,
    ) -> DifferentialResult:
        """
        Compare two analysis snapshots.

        Args:
            baseline: Earlier snapshot
            comparison: Later snapshot
            options: Threshold for the listed compliance changes

        Returns:
            DifferentialResult. Security impact counts are computed before
            threshold filtering.
        """
        options = options or DiffOptions()

        added, removed, modified = self.diff_resources(baseline.resources, comparison.resources)
        new_violations, resolved, status_changes = self.diff_compliance(baseline.findings, comparison.findings)

        score_change = round(comparison.result.overall_score - baseline.result.overall_score, 2)
        critical_change = comparison.result.critical_findings - baseline.result.critical_findings
        findings_change = comparison.result.total_findings - baseline.result.total_findings
        risk_level = self.classify_risk(score_change, critical_change)

        total_changes = (
            len(added) + len(removed) + len(modified) + len(new_violations) + len(resolved) + len(status_changes)
        )

        recommendations = self.build_recommendations(
            added=len(added),
            removed=len(removed),
            new_violations=len(new_violations),
            resolved_violations=len(resolved),
            risk_level=risk_level,
            critical_change=critical_change,
        )

        result = DifferentialResult(
            baseline_id=baseline.analysis_id,
            comparison_id=comparison.analysis_id,
            resources_added=tuple(added),
            resources_removed=tuple(removed),
            resources_modified=tuple(modified),
            compliance_new_violations=self._filter(new_violations, options.threshold),
            compliance_resolved_violations=self._filter(resolved, options.threshold),
            compliance_status_changes=self._filter(status_changes, options.threshold),
            security_score_change=score_change,
            security_risk_level=risk_level,
            critical_findings_change=critical_change,
            findings_change=findings_change,
            total_changes=total_changes,
            recommendations=tuple(recommendations),
        )

        audit_logger.info(
            "DIFFERENTIAL_ANALYSIS - baseline=%s comparison=%s changes=%d score_change=%+.2f risk=%s",
            result.baseline_id,
            result.comparison_id,
            total_changes,
            score_change,
            risk_level.value,
        )
        return result

    def diff_resources(
        self, baseline: Iterable[Resource], comparison: Iterable[Resource]
    ) -> Tuple[List[ResourceChange], List[ResourceChange], List[ResourceChange]]:
        """
        Diff two resource snapshots keyed by resource identity.

        Returns:
            (added, removed, modified), each sorted by identity
        """
        before = {resource.identity: resource for resource in baseline}
        after = {resource.identity: resource for resource in comparison}

        added = [_resource_change(ChangeType.ADDED, after[key]) for key in sorted(after.keys() - before.keys())]
        removed = [_resource_change(ChangeType.REMOVED, before[key]) for key in sorted(before.keys() - after.keys())]

        modified = []
        for key in sorted(before.keys() & after.keys()):
            changed = changed_paths(before[key].configuration, after[key].configuration)
            if changed:
                modified.append(_resource_change(ChangeType.MODIFIED, after[key], tuple(changed)))

        logger.debug(f"Resource diff: {len(added)} added, {len(removed)} removed, {len(modified)} modified")
        return added, removed, modified

    def diff_compliance(
        self, baseline: Iterable[Finding], comparison: Iterable[Finding]
    ) -> Tuple[List[ComplianceChange], List[ComplianceChange], List[ComplianceChange]]:
        """
        Diff two finding sets keyed by (rule_id, resource_id).

        Returns:
            (new_violations, resolved_violations, status_changes)
        """
        before = _index_findings(baseline)
        after = _index_findings(comparison)

        new_violations = [
            _compliance_change(ChangeType.NEW_VIOLATION, after[key]) for key in sorted(after.keys() - before.keys())
        ]
        resolved = [
            _compliance_change(ChangeType.RESOLVED, before[key]) for key in sorted(before.keys() - after.keys())
        ]
        status_changes = [
            _compliance_change(ChangeType.STATUS_CHANGED, after[key], previous=before[key].severity)
            for key in sorted(before.keys() & after.keys())
            if before[key].severity != after[key].severity
        ]
        return new_violations, resolved, status_changes

    @staticmethod
    def classify_risk(score_change: float, critical_change: int) -> RiskLevel:
        """
        Classify the direction of security risk.

        A falling score or more critical findings is an increase, and is
        checked first; a rising score or fewer critical findings is a
        decrease.
        """
        if score_change < 0 or critical_change > 0:
            return RiskLevel.INCREASED
        if score_change > 0 or critical_change < 0:
            return RiskLevel.DECREASED
        return RiskLevel.UNCHANGED

    @staticmethod
    def build_recommendations(
        added: int,
        removed: int,
        new_violations: int,
        resolved_violations: int,
        risk_level: RiskLevel,
        critical_change: int,
    ) -> List[str]:
        """Human-readable follow-ups for the detected drift."""
        recommendations = []

        if added > MANY_RESOURCES_ADDED:
            recommendations.append(
                "Many resources were added. Verify tagging and cost monitoring for the new resources."
            )
        if removed > MANY_RESOURCES_REMOVED:
            recommendations.append(
                "Several resources were removed. Review backup and data retention policies."
            )
        if new_violations > 0:
            recommendations.append("New compliance violations were detected. A security team review is recommended.")
        if resolved_violations > new_violations:
            recommendations.append("Compliance is improving. Keep continuous monitoring in place.")
        if risk_level == RiskLevel.INCREASED:
            recommendations.append("Security risk has increased. Urgent remediation may be required.")
        if critical_change > 0:
            recommendations.append("New critical security findings were detected. Immediate action is required.")

        if not recommendations:
            recommendations.append("No significant changes were detected. Continue regular monitoring.")
        return recommendations

    @staticmethod
    def _filter(changes: List[ComplianceChange], threshold: DiffThreshold) -> Tuple[ComplianceChange, ...]:
        minimum = THRESHOLD_MIN_RANK[threshold]
        return tuple(change for change in changes if change.severity.rank >= minimum)


def changed_paths(before: Any, after: Any, prefix: str = "") -> List[str]:
    """
    List the leaf paths whose values differ between two configurations.

    Paths use the same dot/array-index notation as rule checks.
    """
    if isinstance(before, dict) and isinstance(after, dict):
        paths = []
        for key in sorted(set(before) | set(after), key=str):
            child = f"{prefix}.{key}" if prefix else str(key)
            paths.extend(changed_paths(before.get(key, _MISSING), after.get(key, _MISSING), child))
        return paths

    if isinstance(before, list) and isinstance(after, list):
        paths = []
        for index in range(max(len(before), len(after))):
            left = before[index] if index < len(before) else _MISSING
            right = after[index] if index < len(after) else _MISSING
            paths.extend(changed_paths(left, right, f"{prefix}[{index}]"))
        return paths

    if _same_leaf(before, after):
        return []
    return [prefix]


def _same_leaf(before: Any, after: Any) -> bool:
    if before is _MISSING or after is _MISSING:
        return before is after
    if type(before) is not type(after):
        return False
    if isinstance(before, float) and math.isnan(before) and math.isnan(after):
        return True
    return before == after


def _index_findings(findings: Iterable[Finding]) -> Dict[Tuple[str, str], Finding]:
    # Several frameworks may raise the same (rule, resource); keep the most severe
    indexed: Dict[Tuple[str, str], Finding] = {}
    for finding in findings:
        key = (finding.rule_id, finding.resource_id)
        current = indexed.get(key)
        if current is None or _finding_order(finding) < _finding_order(current):
            indexed[key] = finding
    return indexed


def _finding_order(finding: Finding):
    return (-finding.severity.rank, finding.framework_id, finding.id)


def _resource_change(change_type: ChangeType, resource: Resource, paths: Tuple[str, ...] = ()) -> ResourceChange:
    return ResourceChange(
        change_type=change_type,
        account_id=resource.account_id,
        resource_type=resource.resource_type,
        resource_id=resource.resource_id,
        region=resource.region,
        changed_paths=paths,
    )


def _compliance_change(
    change_type: ChangeType, finding: Finding, previous: Optional[Severity] = None
) -> ComplianceChange:
    return ComplianceChange(
        change_type=change_type,
        rule_id=finding.rule_id,
        resource_id=finding.resource_id,
        resource_type=finding.resource_type,
        framework_id=finding.framework_id,
        title=finding.title,
        severity=finding.severity,
        previous_severity=previous,
    )

