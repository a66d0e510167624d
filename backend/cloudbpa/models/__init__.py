"""
Cloud BPA engine models.

Usage:
    from cloudbpa.models import Resource, RuleDefinition, FrameworkResult
"""

from .analysis_models import AnalysisOptions, AnalysisRun, AnalysisSnapshot
from .base import EngineModel
from .diff_models import ComplianceChange, DifferentialResult, DiffOptions, ResourceChange
from .enums import (
    AnalysisStatus,
    CacheBackend,
    ChangeType,
    CheckCondition,
    DiffThreshold,
    FrameworkStatus,
    RecommendationPriority,
    RemediationEffort,
    RiskLevel,
    RuleOutcome,
    Severity,
    WeightPolicy,
)
from .framework_models import (
    FrameworkDefinition,
    Remediation,
    ResolvedRuleSet,
    RuleCheck,
    RuleDefinition,
    RuleOverride,
    RuleScope,
    TenantFrameworkSelection,
)
from .resource_models import Resource, ResourceIdentity
from .result_models import (
    AggregatedResult,
    CheckEvidence,
    Finding,
    FrameworkResult,
    FrameworkScore,
    Recommendation,
    flatten_findings,
)

__all__ = [
    "AggregatedResult",
    "AnalysisOptions",
    "AnalysisRun",
    "AnalysisSnapshot",
    "AnalysisStatus",
    "CacheBackend",
    "ChangeType",
    "CheckCondition",
    "CheckEvidence",
    "ComplianceChange",
    "DiffOptions",
    "DiffThreshold",
    "DifferentialResult",
    "EngineModel",
    "Finding",
    "FrameworkDefinition",
    "FrameworkResult",
    "FrameworkScore",
    "FrameworkStatus",
    "RecommendationPriority",
    "Recommendation",
    "Remediation",
    "RemediationEffort",
    "ResolvedRuleSet",
    "Resource",
    "ResourceChange",
    "ResourceIdentity",
    "RiskLevel",
    "RuleCheck",
    "RuleDefinition",
    "RuleOutcome",
    "RuleOverride",
    "RuleScope",
    "Severity",
    "TenantFrameworkSelection",
    "WeightPolicy",
    "flatten_findings",
]
