"""
End-to-end tests of the analysis pipeline.

Catalog -> registry -> orchestrator -> executor -> aggregator, and two
analysis snapshots -> differential analyzer. No mocks.
"""

import pytest

from cloudbpa.models import (
    AnalysisOptions,
    AnalysisSnapshot,
    AnalysisStatus,
    FrameworkStatus,
    RecommendationPriority,
    Resource,
    RiskLevel,
)
from cloudbpa.services.drift import DifferentialAnalyzer
from cloudbpa.services.engine import MultiFrameworkOrchestrator
from cloudbpa.services.framework import FrameworkRegistry, InMemoryDefinitionStore


def bucket(resource_id, **configuration):
    return Resource(
        resource_id=resource_id,
        resource_type="AWS::S3::Bucket",
        account_id="111111111111",
        region="us-east-1",
        configuration=configuration,
    )


def single_framework_catalog(framework_id, rules, tenant_id="acme", weight=1):
    return {
        "frameworks": [{"frameworkId": framework_id, "version": "1.0", "rules": rules}],
        "selections": [{"tenantId": tenant_id, "frameworkId": framework_id, "weight": weight}],
    }


VERSIONING_RULE = {
    "ruleId": "VER-1",
    "severity": "HIGH",
    "applicableResourceTypes": ["AWS::S3::Bucket"],
    "checks": [{"propertyPath": "versioning.status", "condition": "EQUALS", "value": "Enabled"}],
}

ENCRYPTION_RULE = {
    "ruleId": "ENC-1",
    "severity": "CRITICAL",
    "applicableResourceTypes": ["AWS::S3::Bucket"],
    "checks": [
        {"propertyPath": "encryption.algorithm", "condition": "EXISTS"},
        {"propertyPath": "encryption.algorithm", "condition": "REGEX", "value": "^(AES256|aws:kms)$"},
    ],
}


def orchestrator_for(catalog, settings):
    store = InMemoryDefinitionStore.from_dict(catalog)
    return MultiFrameworkOrchestrator(FrameworkRegistry(store), settings=settings)


@pytest.mark.integration
class TestSampleCatalogAnalysis:
    """Full analysis of the shared sample catalog."""

    @pytest.mark.asyncio
    async def test_acme_analysis(self, registry, settings, sample_resources):
        orchestrator = MultiFrameworkOrchestrator(registry, settings=settings)

        run = await orchestrator.analyze("acme", sample_resources, ["aws-wa", "cis-aws"], analysis_id="acme-1")
        result = run.result

        assert result.status == AnalysisStatus.COMPLETED
        assert result.framework_scores["aws-wa"].score == 60.0
        assert result.framework_scores["cis-aws"].score == 33.33
        assert result.overall_score == pytest.approx(51.11)
        assert result.total_findings == 4
        assert result.findings_by_severity == {
            "CRITICAL": 1,
            "HIGH": 2,
            "MEDIUM": 1,
            "LOW": 0,
            "INFORMATIONAL": 0,
        }
        assert result.risk_score == 22.0
        assert result.risk_level == "medium"
        assert [r.rule_id for r in result.recommendations] == ["S3-002", "CIS-2.1.1", "S3-001", "CIS-4.1"]
        assert result.recommendations[0].priority == RecommendationPriority.HIGH
        assert result.recommendations[-1].priority == RecommendationPriority.MEDIUM

    @pytest.mark.asyncio
    async def test_globex_overrides_flow_into_findings(self, registry, settings, sample_resources):
        orchestrator = MultiFrameworkOrchestrator(registry, settings=settings)

        run = await orchestrator.analyze("globex", sample_resources, ["aws-wa"])

        assert {f.rule_id for f in run.findings} == {"S3-001"}
        assert run.result.framework_scores["aws-wa"].score == 66.67
        assert run.result.findings_by_severity["CRITICAL"] == 0

    @pytest.mark.asyncio
    async def test_evaluation_is_idempotent(self, registry, settings, sample_resources):
        """Two runs over the same input produce identical findings."""
        orchestrator = MultiFrameworkOrchestrator(registry, settings=settings)

        first = await orchestrator.analyze("acme", sample_resources, ["aws-wa", "cis-aws"])
        second = await orchestrator.analyze("acme", sample_resources, ["aws-wa", "cis-aws"])

        assert first.findings == second.findings
        assert first.result.recommendations == second.result.recommendations


@pytest.mark.integration
class TestScoringProperties:
    """Scoring properties exercised through the orchestrator."""

    @pytest.mark.asyncio
    async def test_perfect_pass(self, settings):
        orchestrator = orchestrator_for(single_framework_catalog("fw", [VERSIONING_RULE, ENCRYPTION_RULE]), settings)
        resources = [
            bucket(f"b-{i}", versioning={"status": "Enabled"}, encryption={"algorithm": "aws:kms"}) for i in range(3)
        ]

        run = await orchestrator.analyze("acme", resources, ["fw"])

        assert run.result.overall_score == 100.0
        assert run.result.total_findings == 0
        assert run.result.recommendations == ()
        assert run.framework_results[0].passed_checks == 6

    @pytest.mark.asyncio
    async def test_and_semantics(self, settings):
        orchestrator = orchestrator_for(single_framework_catalog("fw", [ENCRYPTION_RULE]), settings)
        resources = [
            bucket("weak", encryption={"algorithm": "DES"}),
            bucket("strong", encryption={"algorithm": "AES256"}),
        ]

        run = await orchestrator.analyze("acme", resources, ["fw"])

        (finding,) = run.findings
        assert finding.resource_id == "weak"
        assert [e.passed for e in finding.evidence] == [True, False]

    @pytest.mark.asyncio
    async def test_isolated_failure(self, settings):
        """An unknown framework next to one scoring 80 leaves a PARTIAL run scored 80."""
        orchestrator = orchestrator_for(single_framework_catalog("fw-b", [VERSIONING_RULE]), settings)
        resources = [bucket(f"b-{i}", versioning={"status": "Enabled" if i < 8 else "Suspended"}) for i in range(10)]

        run = await orchestrator.analyze("acme", resources, ["fw-a", "fw-b"])

        assert run.result.status == AnalysisStatus.PARTIAL
        assert run.result.overall_score == 80.0
        assert run.result.failed_frameworks == ("fw-a",)
        assert run.result.normalized_weights == {"fw-b": 1.0}

    @pytest.mark.asyncio
    async def test_skip_versus_fail(self, settings):
        ec2_rule = dict(VERSIONING_RULE, ruleId="EC2-1", applicableResourceTypes=["AWS::EC2::Instance"])
        orchestrator = orchestrator_for(single_framework_catalog("fw", [VERSIONING_RULE, ec2_rule]), settings)

        run = await orchestrator.analyze("acme", [bucket("b-1", versioning={"status": "Enabled"})], ["fw"])

        result = run.framework_results[0]
        assert (result.passed_checks, result.failed_checks, result.skipped_checks) == (1, 0, 1)
        assert run.result.overall_score == 100.0

    @pytest.mark.asyncio
    async def test_framework_order_does_not_change_result(self, registry, settings, sample_resources):
        orchestrator = MultiFrameworkOrchestrator(registry, settings=settings)

        forward = await orchestrator.analyze("acme", sample_resources, ["aws-wa", "cis-aws"], analysis_id="x")
        backward = await orchestrator.analyze("acme", sample_resources, ["cis-aws", "aws-wa"], analysis_id="x")

        assert forward.result == backward.result

    @pytest.mark.asyncio
    async def test_sequential_execution_matches_parallel(self, registry, settings, sample_resources):
        orchestrator = MultiFrameworkOrchestrator(registry, settings=settings)
        frameworks = ["aws-wa", "cis-aws"]

        parallel = await orchestrator.analyze(
            "acme", sample_resources, frameworks, AnalysisOptions(parallel_execution=True), analysis_id="x"
        )
        sequential = await orchestrator.analyze(
            "acme", sample_resources, frameworks, AnalysisOptions(parallel_execution=False), analysis_id="x"
        )

        assert parallel.result.overall_score == sequential.result.overall_score
        assert parallel.findings == sequential.findings


@pytest.mark.integration
class TestDriftBetweenRuns:
    """Differential analysis over snapshots of two real runs."""

    @pytest.mark.asyncio
    async def test_drift_between_runs(self, registry, settings, sample_resources):
        orchestrator = MultiFrameworkOrchestrator(registry, settings=settings)
        fixed = [
            r.model_copy(update={"configuration": {"versioning": {"status": "Enabled"}}})
            if r.resource_id == "bucket-bad"
            else r
            for r in sample_resources
        ]
        extra = bucket("bucket-new", versioning={"status": "Enabled"}, encryption={"algorithm": "AES256"})

        first = await orchestrator.analyze("acme", sample_resources, ["aws-wa", "cis-aws"], analysis_id="run-1")
        second = await orchestrator.analyze("acme", fixed + [extra], ["aws-wa", "cis-aws"], analysis_id="run-2")
        baseline = AnalysisSnapshot.from_run(first, sample_resources)
        comparison = AnalysisSnapshot.from_run(second, fixed + [extra])

        analyzer = DifferentialAnalyzer()
        forward = analyzer.diff(baseline, comparison)
        reverse = analyzer.diff(comparison, baseline)

        assert [c.resource_id for c in forward.resources_added] == ["bucket-new"]
        assert [c.resource_id for c in forward.resources_modified] == ["bucket-bad"]
        assert [c.rule_id for c in forward.compliance_resolved_violations] == ["S3-001"]
        assert forward.security_risk_level == RiskLevel.DECREASED

        assert [c.resource_id for c in reverse.resources_removed] == ["bucket-new"]
        assert [(c.rule_id, c.resource_id) for c in reverse.compliance_new_violations] == [
            (c.rule_id, c.resource_id) for c in forward.compliance_resolved_violations
        ]

    @pytest.mark.asyncio
    async def test_diff_without_changes(self, registry, settings, sample_resources):
        orchestrator = MultiFrameworkOrchestrator(registry, settings=settings)
        run = await orchestrator.analyze("acme", sample_resources, ["aws-wa", "cis-aws"])
        snapshot = AnalysisSnapshot.from_run(run, sample_resources)

        result = DifferentialAnalyzer().diff(snapshot, snapshot)

        assert result.resources_added == result.resources_removed == result.resources_modified == ()
        assert result.compliance_new_violations == result.compliance_resolved_violations == ()
        assert result.security_score_change == 0.0
        assert result.security_risk_level == RiskLevel.UNCHANGED

    @pytest.mark.asyncio
    async def test_snapshot_survives_json_round_trip(self, registry, settings, sample_resources):
        orchestrator = MultiFrameworkOrchestrator(registry, settings=settings)
        run = await orchestrator.analyze("acme", sample_resources, ["aws-wa"])
        snapshot = AnalysisSnapshot.from_run(run, sample_resources)

        restored = AnalysisSnapshot.model_validate(snapshot.to_json_dict())

        assert restored == snapshot
        assert restored.result.framework_scores["aws-wa"].status == FrameworkStatus.COMPLETED
