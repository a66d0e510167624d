"""
Analysis Models

Per-call analysis options, the analysis run returned by the orchestrator
and the snapshot consumed by the differential analyzer.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field

from .base import EngineModel
from .framework_models import RuleScope
from .resource_models import Resource
from .result_models import AggregatedResult, Finding, FrameworkResult, flatten_findings


class AnalysisOptions(EngineModel):
    """Options for one analysis run."""

    parallel_execution: bool = True
    max_concurrency: int = Field(3, ge=1, description="Frameworks executed at once")
    framework_timeout_seconds: Optional[float] = Field(
        None, gt=0, description="Per-framework budget, capped by what remains of the analysis budget"
    )
    analysis_timeout_seconds: float = Field(900.0, gt=0)
    scope: Optional[RuleScope] = None
    custom_weights: Dict[str, float] = Field(
        default_factory=dict, description="Per-analysis weight overrides keyed by framework id"
    )
    recommendation_limit: Optional[int] = Field(None, ge=1)

    @classmethod
    def from_settings(cls, settings, **overrides) -> "AnalysisOptions":
        """Build options from engine settings, applying keyword overrides."""
        values = {
            "parallel_execution": settings.parallel_execution,
            "max_concurrency": settings.max_concurrent_frameworks,
            "framework_timeout_seconds": settings.framework_timeout_seconds,
            "analysis_timeout_seconds": settings.analysis_timeout_seconds,
            "recommendation_limit": settings.recommendation_limit,
        }
        values.update(overrides)
        return cls(**values)


class AnalysisRun(EngineModel):
    """
    Everything produced by one orchestrated analysis.

    The aggregated result plus the per-framework results it was built from.
    """

    tenant_id: str
    result: AggregatedResult
    framework_results: Tuple[FrameworkResult, ...] = ()

    @property
    def analysis_id(self) -> str:
        return self.result.analysis_id

    @property
    def findings(self) -> List[Finding]:
        return flatten_findings(self.framework_results)

    def event_payload(self) -> Dict[str, Any]:
        return self.result.event_payload()


class AnalysisSnapshot(EngineModel):
    """
    A prior analysis as seen by the differential analyzer.

    Aggregated result, the resources it was run against and its findings.
    """

    result: AggregatedResult
    resources: Tuple[Resource, ...] = ()
    findings: Tuple[Finding, ...] = ()

    @property
    def analysis_id(self) -> str:
        return self.result.analysis_id

    @classmethod
    def from_run(cls, run: AnalysisRun, resources) -> "AnalysisSnapshot":
        return cls(result=run.result, resources=tuple(resources), findings=tuple(run.findings))
