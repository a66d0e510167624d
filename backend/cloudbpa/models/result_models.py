"""
Result Models

Type-safe Pydantic models for framework execution results, findings,
recommendations and the aggregated analysis result.
"""

import hashlib
from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field, model_validator

from .base import EngineModel
from .enums import (
    AnalysisStatus,
    CheckCondition,
    FrameworkStatus,
    RecommendationPriority,
    RemediationEffort,
    Severity,
)
from .resource_models import ResourceIdentity


class CheckEvidence(EngineModel):
    """Evidence recorded for one check evaluated against one resource."""

    property_path: str
    condition: CheckCondition
    expected: Any = None
    actual: Any = None
    present: bool = False
    passed: bool = False
    message: str = ""


class Finding(EngineModel):
    """
    One failing (rule, resource) pair.

    The id is a deterministic digest of framework, rule and resource
    identity so repeated evaluations produce identical findings.
    """

    id: str
    rule_id: str
    framework_id: str
    severity: Severity
    pillar: str = ""
    category: str = ""
    resource_id: str
    resource_type: str
    account_id: str = ""
    region: str = ""
    title: str = ""
    message: str = ""
    recommendation: str = ""
    effort: Optional[RemediationEffort] = None
    evidence: Tuple[CheckEvidence, ...] = ()

    @staticmethod
    def make_id(framework_id: str, rule_id: str, identity: ResourceIdentity) -> str:
        raw = "|".join([framework_id, rule_id, *identity])
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]

    @property
    def resource_identity(self) -> ResourceIdentity:
        return ResourceIdentity(self.account_id, self.resource_type, self.resource_id)


class FrameworkResult(EngineModel):
    """
    Outcome of executing one framework against the resource set.

    Counts are in (rule, resource) evaluation units.
    """

    framework_id: str
    framework_version: Optional[str] = None
    status: FrameworkStatus
    findings: Tuple[Finding, ...] = ()
    total_checks: int = Field(0, ge=0)
    passed_checks: int = Field(0, ge=0)
    failed_checks: int = Field(0, ge=0)
    skipped_checks: int = Field(0, ge=0)
    error_count: int = Field(0, ge=0, description="Units that raised during evaluation")
    duration_ms: float = Field(0.0, ge=0)
    error: Optional[str] = None

    @model_validator(mode="after")
    def validate_counts(self) -> "FrameworkResult":
        """
        Validate that total equals passed + failed + skipped.

        Raises:
            ValueError: If the unit counts do not add up
        """
        counted = self.passed_checks + self.failed_checks + self.skipped_checks
        if self.total_checks != counted:
            raise ValueError(
                f"total_checks ({self.total_checks}) must equal passed ({self.passed_checks}) + "
                f"failed ({self.failed_checks}) + skipped ({self.skipped_checks}) = {counted}"
            )
        return self

    @property
    def evaluated_checks(self) -> int:
        return self.passed_checks + self.failed_checks

    @classmethod
    def failed(
        cls,
        framework_id: str,
        error: str,
        framework_version: Optional[str] = None,
        duration_ms: float = 0.0,
    ) -> "FrameworkResult":
        """Build a synthetic FAILED result carrying only the error."""
        return cls(
            framework_id=framework_id,
            framework_version=framework_version,
            status=FrameworkStatus.FAILED,
            duration_ms=duration_ms,
            error=error,
        )


class Recommendation(EngineModel):
    """A ranked remediation recommendation grouped by (category, rule_id)."""

    id: str
    rule_id: str
    category: str
    title: str = ""
    recommendation: str = ""
    severity: Severity
    pillar: str = ""
    priority: RecommendationPriority
    effort: Optional[RemediationEffort] = None
    occurrence_count: int = Field(0, ge=0, description="Findings grouped into this recommendation")
    affected_resource_count: int = Field(0, ge=0, description="Distinct resources affected")
    frameworks: Tuple[str, ...] = ()
    rank: int = Field(0, ge=0)


class FrameworkScore(EngineModel):
    """Score contribution of one framework to the overall score."""

    framework_id: str
    framework_version: Optional[str] = None
    status: FrameworkStatus
    score: float = Field(0.0, ge=0, le=100)
    weight: float = Field(0.0, ge=0, description="Weight before normalization")
    normalized_weight: float = Field(0.0, ge=0, le=1)
    passed_checks: int = 0
    failed_checks: int = 0
    skipped_checks: int = 0
    findings: int = 0
    error: Optional[str] = None


class AggregatedResult(EngineModel):
    """
    Aggregated outcome of one analysis run.

    Built once per run and never mutated; a re-run yields a new
    analysis id.
    """

    analysis_id: str
    status: AnalysisStatus
    overall_score: float = Field(0.0, ge=0, le=100)
    framework_scores: Dict[str, FrameworkScore] = Field(default_factory=dict)
    normalized_weights: Dict[str, float] = Field(default_factory=dict)
    findings_by_severity: Dict[str, int] = Field(default_factory=dict)
    findings_by_pillar: Dict[str, int] = Field(default_factory=dict)
    findings_by_category: Dict[str, int] = Field(default_factory=dict)
    recommendations: Tuple[Recommendation, ...] = ()
    completed_frameworks: Tuple[str, ...] = ()
    partial_frameworks: Tuple[str, ...] = ()
    failed_frameworks: Tuple[str, ...] = ()
    total_findings: int = Field(0, ge=0)
    risk_score: float = Field(0.0, ge=0)
    risk_level: str = "low"
    timed_out: bool = False

    @property
    def critical_findings(self) -> int:
        return self.findings_by_severity.get(Severity.CRITICAL.value, 0)

    def event_payload(self) -> Dict[str, Any]:
        """Payload published when an analysis finishes."""
        return {
            "analysisId": self.analysis_id,
            "status": self.status.value,
            "overallScore": self.overall_score,
            "totalFindings": self.total_findings,
        }


def flatten_findings(results: List[FrameworkResult]) -> List[Finding]:
    """Flatten findings of several framework results, preserving order."""
    return [finding for result in results for finding in result.findings]
