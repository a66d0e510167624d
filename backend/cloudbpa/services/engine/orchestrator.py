"""
Multi-Framework Orchestrator

Central coordinator for multi-framework analysis. Resolves each selected
framework through the registry, runs the executors with bounded
concurrency, isolates per-framework failures and hands the results to
the aggregator.

Responsibilities:
    1. Resolve each framework's rule set for the tenant
    2. Execute frameworks in parallel (bounded) or sequentially
    3. Convert resolution and executor failures into FAILED results
    4. Enforce the overall analysis budget
    5. Aggregate results into an AnalysisRun

Example:
    orchestrator = MultiFrameworkOrchestrator(FrameworkRegistry(store))
    run = await orchestrator.analyze("tenant-1", resources, ["aws-wa", "cis-aws"])
    print(run.result.overall_score)
"""

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from ...config import get_settings
from ...models.analysis_models import AnalysisOptions, AnalysisRun
from ...models.framework_models import TenantFrameworkSelection
from ...models.resource_models import Resource
from ...models.result_models import FrameworkResult
from ..scoring import ResultAggregator
from .exceptions import ConfigurationError, EngineError
from .executor import TIMEOUT_ERROR, FrameworkExecutor

if TYPE_CHECKING:
    from ..framework.registry import FrameworkRegistry

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("cloudbpa.audit")

ANALYSIS_TIMEOUT_ERROR = "analysis timeout"

# Share of the analysis budget (capped at one second) that executors get to
# return their PARTIAL results before outstanding tasks are cancelled
CANCELLATION_GRACE_RATIO = 0.1
MAX_CANCELLATION_GRACE_SECONDS = 1.0


class MultiFrameworkOrchestrator:
    """
    Orchestrates rule evaluation across multiple frameworks.

    One task per framework; a semaphore caps how many run at once. A
    framework that cannot be resolved or whose executor raises becomes a
    synthetic FAILED result and never aborts the other frameworks.

    Attributes:
        registry: Framework registry resolving tenant rule sets
        executor: Executor shared by all framework tasks
        aggregator: Aggregator used by analyze()
    """

    def __init__(
        self,
        registry: "FrameworkRegistry",
        executor: Optional[FrameworkExecutor] = None,
        aggregator: Optional[ResultAggregator] = None,
        settings=None,
    ):
        """
        Initialize the orchestrator.

        Args:
            registry: Framework registry (owns the rule set cache)
            executor: Framework executor; built from settings when omitted
            aggregator: Result aggregator; built from settings when omitted
            settings: Engine settings providing defaults; get_settings() when omitted
        """
        self.settings = settings or get_settings()
        self.registry = registry
        self.executor = executor or FrameworkExecutor(yield_interval=self.settings.evaluation_yield_interval)
        self.aggregator = aggregator or ResultAggregator(
            recommendation_limit=self.settings.recommendation_limit,
            weight_policy=self.settings.weight_policy,
        )

    def default_options(self) -> AnalysisOptions:
        return AnalysisOptions.from_settings(self.settings)

    async def run(
        self,
        tenant_id: str,
        resources: Sequence[Resource],
        framework_ids: Sequence[str],
        options: Optional[AnalysisOptions] = None,
    ) -> List[FrameworkResult]:
        """
        Execute every requested framework and collect the results.

        Returns:
            One FrameworkResult per distinct framework id, in request order

        Raises:
            ValueError: If resources is None
        """
        results, _ = await self._run(tenant_id, resources, framework_ids, options or self.default_options())
        return results

    async def analyze(
        self,
        tenant_id: str,
        resources: Sequence[Resource],
        framework_ids: Sequence[str],
        options: Optional[AnalysisOptions] = None,
        analysis_id: Optional[str] = None,
    ) -> AnalysisRun:
        """
        Run and aggregate a full multi-framework analysis.

        Args:
            tenant_id: Tenant being analyzed
            resources: Normalized resource inventory
            framework_ids: Frameworks to evaluate
            options: Per-call options; defaults from settings
            analysis_id: Identifier of the run; generated when omitted

        Returns:
            AnalysisRun with the aggregated result and framework results

        Raises:
            ValueError: If resources is None
        """
        options = options or self.default_options()
        analysis_id = analysis_id or str(uuid.uuid4())

        logger.info(
            "Starting analysis %s: tenant=%s, frameworks=%s, resources=%d",
            analysis_id,
            tenant_id,
            ",".join(framework_ids),
            len(resources) if resources is not None else 0,
        )

        results, timed_out = await self._run(tenant_id, resources, framework_ids, options)
        selections = await self._selections(tenant_id, framework_ids)

        aggregated = self.aggregator.aggregate(
            results,
            selections=selections,
            analysis_id=analysis_id,
            timed_out=timed_out,
            custom_weights=options.custom_weights,
            recommendation_limit=options.recommendation_limit,
        )

        audit_logger.info(
            "ANALYSIS_COMPLETED - analysis=%s tenant=%s status=%s score=%.2f findings=%d timed_out=%s",
            aggregated.analysis_id,
            tenant_id,
            aggregated.status.value,
            aggregated.overall_score,
            aggregated.total_findings,
            timed_out,
        )

        return AnalysisRun(tenant_id=tenant_id, result=aggregated, framework_results=tuple(results))

    async def _run(
        self,
        tenant_id: str,
        resources: Optional[Sequence[Resource]],
        framework_ids: Sequence[str],
        options: AnalysisOptions,
    ):
        if resources is None:
            raise ValueError("resources must not be None")

        framework_ids = list(dict.fromkeys(framework_ids))
        if not framework_ids:
            return [], False

        resources = list(resources)
        budget = options.analysis_timeout_seconds
        deadline = time.monotonic() + budget
        grace = min(budget * CANCELLATION_GRACE_RATIO, MAX_CANCELLATION_GRACE_SECONDS)
        semaphore = asyncio.Semaphore(options.max_concurrency if options.parallel_execution else 1)

        async def bounded(framework_id: str) -> FrameworkResult:
            async with semaphore:
                # Frameworks started late only get what is left of the budget
                timeout = max(deadline - time.monotonic(), 0.0)
                if options.framework_timeout_seconds is not None:
                    timeout = min(timeout, options.framework_timeout_seconds)
                return await self._execute_framework(tenant_id, framework_id, resources, options, timeout)

        tasks: Dict[str, asyncio.Task] = {}
        if options.parallel_execution:
            for framework_id in framework_ids:
                tasks[framework_id] = asyncio.ensure_future(bounded(framework_id))
            done, pending = await asyncio.wait(tasks.values(), timeout=budget + grace)
        else:
            done, pending = await self._run_sequential(framework_ids, tasks, bounded, deadline, grace)

        timed_out = bool(pending) or len(tasks) < len(framework_ids)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "Analysis budget of %.1fs exhausted; cancelled %d framework(s)",
                budget,
                len(pending),
            )

        results = []
        for framework_id in framework_ids:
            task = tasks.get(framework_id)
            if task is None or task in pending or task.cancelled():
                results.append(FrameworkResult.failed(framework_id, ANALYSIS_TIMEOUT_ERROR))
            elif task.exception() is not None:
                error = task.exception()
                logger.error("Framework %s task failed: %s", framework_id, error)
                results.append(FrameworkResult.failed(framework_id, str(error)))
            else:
                results.append(task.result())

        if not timed_out and time.monotonic() >= deadline:
            timed_out = any(r.error == TIMEOUT_ERROR for r in results)
        return results, timed_out

    @staticmethod
    async def _run_sequential(framework_ids, tasks, bounded, deadline: float, grace: float):
        """Run frameworks one at a time within the overall budget."""
        done, pending = set(), set()
        for framework_id in framework_ids:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            task = asyncio.ensure_future(bounded(framework_id))
            tasks[framework_id] = task
            finished, unfinished = await asyncio.wait({task}, timeout=remaining + grace)
            done |= finished
            if unfinished:
                pending |= unfinished
                break
        return done, pending

    async def _execute_framework(
        self,
        tenant_id: str,
        framework_id: str,
        resources: List[Resource],
        options: AnalysisOptions,
        timeout: float,
    ) -> FrameworkResult:
        started = time.monotonic()
        try:
            rule_set = await self.registry.resolve(tenant_id, framework_id, options.scope)
        except ConfigurationError as e:
            logger.warning("Framework %s unavailable for tenant %s: %s", framework_id, tenant_id, e.message)
            return FrameworkResult.failed(framework_id, e.message, duration_ms=_elapsed_ms(started))
        except EngineError as e:
            logger.error("Framework %s resolution failed: %s", framework_id, e)
            return FrameworkResult.failed(framework_id, e.message, duration_ms=_elapsed_ms(started))
        except Exception as e:
            logger.exception("Unexpected error resolving framework %s", framework_id)
            return FrameworkResult.failed(framework_id, str(e), duration_ms=_elapsed_ms(started))

        try:
            return await self.executor.execute(resources, rule_set, timeout=timeout)
        except Exception as e:
            logger.exception("Executor failed for framework %s", framework_id)
            return FrameworkResult.failed(
                framework_id,
                str(e),
                framework_version=rule_set.framework_version,
                duration_ms=_elapsed_ms(started),
            )

    async def _selections(self, tenant_id: str, framework_ids: Sequence[str]) -> List[TenantFrameworkSelection]:
        selections = []
        for framework_id in dict.fromkeys(framework_ids):
            try:
                selection = await self.registry.store.get_selection(tenant_id, framework_id)
            except Exception as e:
                logger.warning("Could not load selection weight for %s: %s", framework_id, e)
                continue
            if selection is not None:
                selections.append(selection)
        return selections


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 3)
