"""
Scoring Constants - Severity Weights and Risk Levels

Standardized severity weights used to turn finding counts into a risk
score, and the mapping from severity to recommendation priority.

The risk scoring formula:
    risk_score = (critical_count * 10.0) + (high_count * 5.0) +
                 (medium_count * 2.0) + (low_count * 0.5) + (info_count * 0.0)

Risk score interpretation:
    0-20:    Low risk
    21-50:   Medium risk
    51-100:  High risk
    100+:    Critical risk
"""

from typing import Dict, Final, Mapping, Tuple

from ...models.enums import RecommendationPriority, Severity

SEVERITY_WEIGHT_CRITICAL: Final[float] = 10.0
SEVERITY_WEIGHT_HIGH: Final[float] = 5.0
SEVERITY_WEIGHT_MEDIUM: Final[float] = 2.0
SEVERITY_WEIGHT_LOW: Final[float] = 0.5
SEVERITY_WEIGHT_INFO: Final[float] = 0.0

SEVERITY_WEIGHTS: Final[Dict[Severity, float]] = {
    Severity.CRITICAL: SEVERITY_WEIGHT_CRITICAL,
    Severity.HIGH: SEVERITY_WEIGHT_HIGH,
    Severity.MEDIUM: SEVERITY_WEIGHT_MEDIUM,
    Severity.LOW: SEVERITY_WEIGHT_LOW,
    Severity.INFORMATIONAL: SEVERITY_WEIGHT_INFO,
}

WELL_ARCHITECTED_PILLARS: Final[Tuple[str, ...]] = (
    "OPERATIONAL_EXCELLENCE",
    "SECURITY",
    "RELIABILITY",
    "PERFORMANCE_EFFICIENCY",
    "COST_OPTIMIZATION",
    "SUSTAINABILITY",
)

RISK_THRESHOLD_LOW: Final[float] = 20.0
RISK_THRESHOLD_MEDIUM: Final[float] = 50.0
RISK_THRESHOLD_HIGH: Final[float] = 100.0

SEVERITY_PRIORITY: Final[Dict[Severity, RecommendationPriority]] = {
    Severity.CRITICAL: RecommendationPriority.HIGH,
    Severity.HIGH: RecommendationPriority.HIGH,
    Severity.MEDIUM: RecommendationPriority.MEDIUM,
    Severity.LOW: RecommendationPriority.LOW,
    Severity.INFORMATIONAL: RecommendationPriority.LOW,
}


def calculate_risk_score(findings_by_severity: Mapping[str, int]) -> float:
    """
    Severity-weighted risk score from finding counts keyed by severity value.

    Example:
        >>> calculate_risk_score({"CRITICAL": 3, "HIGH": 10})
        80.0
    """
    return sum(
        SEVERITY_WEIGHTS[severity] * findings_by_severity.get(severity.value, 0) for severity in Severity
    )


def get_risk_level(risk_score: float) -> str:
    """
    Determine risk level from calculated risk score.

    Returns:
        Risk level string: 'low', 'medium', 'high', or 'critical'
    """
    if risk_score <= RISK_THRESHOLD_LOW:
        return "low"
    elif risk_score <= RISK_THRESHOLD_MEDIUM:
        return "medium"
    elif risk_score <= RISK_THRESHOLD_HIGH:
        return "high"
    else:
        return "critical"
