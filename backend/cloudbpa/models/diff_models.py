"""
Differential Analysis Models

Changes between a baseline and a comparison analysis snapshot.
"""

from typing import Optional, Tuple

from pydantic import Field

from .base import EngineModel
from .enums import ChangeType, DiffThreshold, RiskLevel, Severity


class ResourceChange(EngineModel):
    """A resource added, removed or modified between two snapshots."""

    change_type: ChangeType
    account_id: str = ""
    resource_type: str
    resource_id: str
    region: str = ""
    changed_paths: Tuple[str, ...] = Field((), description="Configuration leaf paths that changed")


class ComplianceChange(EngineModel):
    """A change in the compliance status of one (rule, resource) pair."""

    change_type: ChangeType
    rule_id: str
    resource_id: str
    resource_type: str = ""
    framework_id: str = ""
    title: str = ""
    severity: Severity
    previous_severity: Optional[Severity] = None


class DiffOptions(EngineModel):
    """Options for one differential analysis."""

    threshold: DiffThreshold = DiffThreshold.ALL


class DifferentialResult(EngineModel):
    """Outcome of comparing two analysis snapshots."""

    baseline_id: str
    comparison_id: str
    resources_added: Tuple[ResourceChange, ...] = ()
    resources_removed: Tuple[ResourceChange, ...] = ()
    resources_modified: Tuple[ResourceChange, ...] = ()
    compliance_new_violations: Tuple[ComplianceChange, ...] = ()
    compliance_resolved_violations: Tuple[ComplianceChange, ...] = ()
    compliance_status_changes: Tuple[ComplianceChange, ...] = ()
    security_score_change: float = 0.0
    security_risk_level: RiskLevel = RiskLevel.UNCHANGED
    critical_findings_change: int = 0
    findings_change: int = 0
    total_changes: int = Field(0, ge=0)
    recommendations: Tuple[str, ...] = ()
