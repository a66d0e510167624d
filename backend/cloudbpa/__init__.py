"""
Cloud BPA - Multi-Framework Rule Evaluation & Aggregation Engine

Evaluates normalized cloud resource configurations against multiple
compliance and best-practice frameworks, aggregates the findings into a
weighted score with ranked recommendations, and compares two analysis runs.

Layers:
    1. Evaluation: pure rule/check evaluation against one resource
    2. Framework: tenant selection resolution with a read-through cache
    3. Engine: per-framework execution and multi-framework orchestration
    4. Scoring: weighted aggregation, finding buckets, recommendations
    5. Drift: differential analysis between two analysis snapshots

Usage:
    >>> from cloudbpa import FrameworkRegistry, InMemoryDefinitionStore, MultiFrameworkOrchestrator
    >>> store = InMemoryDefinitionStore.from_file("catalog.yaml")
    >>> orchestrator = MultiFrameworkOrchestrator(FrameworkRegistry(store))
    >>> run = await orchestrator.analyze("tenant-1", resources, ["aws-wa"])
    >>> print(run.result.overall_score, run.result.status)
"""

from .services.drift import DifferentialAnalyzer
from .services.engine import FrameworkExecutor, MultiFrameworkOrchestrator
from .services.evaluation import RuleEvaluator
from .services.framework import FrameworkRegistry, InMemoryDefinitionStore
from .services.scoring import ResultAggregator

__version__ = "1.0.0"
__all__ = [
    "DifferentialAnalyzer",
    "FrameworkExecutor",
    "FrameworkRegistry",
    "InMemoryDefinitionStore",
    "MultiFrameworkOrchestrator",
    "ResultAggregator",
    "RuleEvaluator",
]
