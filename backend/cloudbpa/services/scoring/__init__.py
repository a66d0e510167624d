"""
Scoring layer: weighted aggregation, finding buckets, recommendations and
severity-weighted risk.
"""

from .aggregator import ResultAggregator
from .constants import SEVERITY_WEIGHTS, WELL_ARCHITECTED_PILLARS, calculate_risk_score, get_risk_level

__all__ = [
    "ResultAggregator",
    "SEVERITY_WEIGHTS",
    "WELL_ARCHITECTED_PILLARS",
    "calculate_risk_score",
    "get_risk_level",
]
