"""
Engine Module - Framework Execution and Orchestration

    1. Executor (engine.executor)
       - Runs one resolved framework across the resource set
       - Cooperative per-framework deadline, per-unit error isolation

    2. Orchestrator (engine.orchestrator)
       - Bounded concurrent fan-out, one task per framework
       - Overall analysis budget, failure isolation, aggregation

    3. Exceptions (engine.exceptions)
       - EngineError hierarchy with error codes and context

Quick Start:
    from cloudbpa.services.engine import MultiFrameworkOrchestrator

    orchestrator = MultiFrameworkOrchestrator(registry)
    run = await orchestrator.analyze("tenant-1", resources, ["aws-wa"])
"""

from .exceptions import (
    ConfigurationError,
    EngineError,
    EvaluationError,
    FrameworkNotFoundError,
    RuleDefinitionError,
    TenantConfigNotFoundError,
)
from .executor import FrameworkExecutor
from .orchestrator import ANALYSIS_TIMEOUT_ERROR, MultiFrameworkOrchestrator

__all__ = [
    "ANALYSIS_TIMEOUT_ERROR",
    "ConfigurationError",
    "EngineError",
    "EvaluationError",
    "FrameworkExecutor",
    "FrameworkNotFoundError",
    "MultiFrameworkOrchestrator",
    "RuleDefinitionError",
    "TenantConfigNotFoundError",
]
