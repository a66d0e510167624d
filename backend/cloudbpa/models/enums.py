"""
Shared Enums

Enumeration types used across the evaluation, scoring and drift layers.
Kept separate from the models so config and services can import them
without circular imports.

Usage:
    from cloudbpa.models.enums import Severity, CheckCondition
"""

from enum import Enum


class Severity(str, Enum):
    """
    Finding severity levels.

    Ordered from most to least severe; use ``rank`` for comparisons
    instead of the string value.
    """

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFORMATIONAL = "INFORMATIONAL"

    @property
    def rank(self) -> int:
        """Numeric rank, higher is more severe (CRITICAL=4 .. INFORMATIONAL=0)."""
        return _SEVERITY_RANK[self]

    @classmethod
    def _missing_(cls, value):
        # Accept lowercase values and the INFO shorthand used by rule catalogs
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized == "INFO":
                return cls.INFORMATIONAL
            for member in cls:
                if member.value == normalized:
                    return member
        return None


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.INFORMATIONAL: 0,
}


class CheckCondition(str, Enum):
    """
    Closed set of atomic check conditions.

    Each member has exactly one evaluation function in
    ``cloudbpa.services.evaluation.conditions``.
    """

    EXISTS = "EXISTS"
    NOT_EXISTS = "NOT_EXISTS"
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"
    REGEX = "REGEX"

    @property
    def requires_value(self) -> bool:
        return self not in (CheckCondition.EXISTS, CheckCondition.NOT_EXISTS)


class RuleOutcome(str, Enum):
    """Outcome of one rule evaluated against one resource."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class FrameworkStatus(str, Enum):
    """Execution status of a single framework within an analysis."""

    COMPLETED = "COMPLETED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class AnalysisStatus(str, Enum):
    """Overall status of an analysis run."""

    COMPLETED = "COMPLETED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class RiskLevel(str, Enum):
    """Direction of security risk between two analysis runs."""

    INCREASED = "INCREASED"
    DECREASED = "DECREASED"
    UNCHANGED = "UNCHANGED"


class ChangeType(str, Enum):
    """Kinds of change reported by the differential analyzer."""

    ADDED = "ADDED"
    REMOVED = "REMOVED"
    MODIFIED = "MODIFIED"
    NEW_VIOLATION = "NEW_VIOLATION"
    RESOLVED = "RESOLVED"
    STATUS_CHANGED = "STATUS_CHANGED"


class DiffThreshold(str, Enum):
    """Minimum severity of compliance changes listed in a differential result."""

    ALL = "all"
    MEDIUM = "medium"
    HIGH = "high"


class RecommendationPriority(str, Enum):
    """Remediation priority derived from finding severity."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class RemediationEffort(str, Enum):
    """Estimated remediation effort."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class WeightPolicy(str, Enum):
    """
    How framework weights are normalized when some frameworks do not complete.

    Attributes:
        EXCLUDE_AND_RENORMALIZE: Only completed frameworks enter the weight sum
        ZERO_FILL: Every scored framework stays in the weight sum and
            incomplete ones contribute a score of 0
    """

    EXCLUDE_AND_RENORMALIZE = "exclude_and_renormalize"
    ZERO_FILL = "zero_fill"


class CacheBackend(str, Enum):
    """Storage backend for the resolved rule set cache."""

    MEMORY = "memory"
    REDIS = "redis"
