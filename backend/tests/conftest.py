"""
Pytest configuration and fixtures for Cloud BPA engine tests.

The sample catalog holds two frameworks selected by tenant "acme":

    aws-wa 2024.1 (weight 2): S3-001, S3-002, EC2-001 (+ GEN-001 disabled by default)
    cis-aws 1.5   (weight 1): CIS-2.1.1, CIS-4.1

Against the three sample resources aws-wa scores 60.0 (3 passed, 2 failed,
4 skipped) and cis-aws scores 33.33 (1 passed, 2 failed, 3 skipped).
"""

import copy
from typing import Any, Dict

import pytest

from cloudbpa.config import Settings
from cloudbpa.models import FrameworkResult, FrameworkStatus, Resource, RuleDefinition
from cloudbpa.services.framework import FrameworkRegistry, InMemoryDefinitionStore

SAMPLE_CATALOG: Dict[str, Any] = {
    "frameworks": [
        {
            "frameworkId": "aws-wa",
            "version": "2023.1",
            "name": "AWS Well-Architected (legacy)",
            "rules": [
                {
                    "ruleId": "S3-001",
                    "title": "S3 bucket versioning enabled",
                    "severity": "HIGH",
                    "applicableResourceTypes": ["AWS::S3::Bucket"],
                    "checks": [{"propertyPath": "versioning.status", "condition": "EQUALS", "value": "Enabled"}],
                }
            ],
        },
        {
            "frameworkId": "aws-wa",
            "version": "2024.1",
            "name": "AWS Well-Architected",
            "frameworkType": "ARCHITECTURE_REVIEW",
            "rules": [
                {
                    "ruleId": "S3-001",
                    "title": "S3 bucket versioning enabled",
                    "pillar": "RELIABILITY",
                    "severity": "HIGH",
                    "category": "Storage",
                    "applicableResourceTypes": ["AWS::S3::Bucket"],
                    "checks": [{"propertyPath": "versioning.status", "condition": "EQUALS", "value": "Enabled"}],
                    "recommendation": "Enable versioning on the bucket",
                    "remediation": {"description": "Turn on bucket versioning", "effort": "LOW", "automatable": True},
                },
                {
                    "ruleId": "S3-002",
                    "title": "S3 bucket encryption configured",
                    "pillar": "SECURITY",
                    "severity": "CRITICAL",
                    "category": "Storage",
                    "applicableResourceTypes": ["AWS::S3::Bucket"],
                    "checks": [{"property": "encryption", "condition": "EXISTS"}],
                    "recommendation": "Configure default encryption",
                },
                {
                    "ruleId": "EC2-001",
                    "title": "Detailed monitoring enabled",
                    "pillar": "OPERATIONAL_EXCELLENCE",
                    "severity": "MEDIUM",
                    "category": "Compute",
                    "applicableResourceTypes": ["AWS::EC2::Instance"],
                    "checks": [{"propertyPath": "monitoring.state", "condition": "EQUALS", "value": "enabled"}],
                },
                {
                    "ruleId": "GEN-001",
                    "title": "Access logging enabled",
                    "pillar": "SECURITY",
                    "severity": "LOW",
                    "category": "Logging",
                    "applicableResourceTypes": ["*"],
                    "checks": [{"propertyPath": "logging.enabled", "condition": "EQUALS", "value": True}],
                    "enabledByDefault": False,
                },
            ],
        },
        {
            "frameworkId": "cis-aws",
            "version": "1.5",
            "name": "CIS AWS Foundations",
            "rules": [
                {
                    "ruleId": "CIS-2.1.1",
                    "title": "S3 default encryption uses an approved algorithm",
                    "pillar": "SECURITY",
                    "severity": "HIGH",
                    "category": "Storage",
                    "applicableResourceTypes": ["AWS::S3::Bucket"],
                    "checks": [
                        {"propertyPath": "encryption.algorithm", "condition": "REGEX", "value": "^(AES256|aws:kms)$"}
                    ],
                },
                {
                    "ruleId": "CIS-4.1",
                    "title": "EC2 instance has no public IP",
                    "pillar": "SECURITY",
                    "severity": "MEDIUM",
                    "category": "Compute",
                    "applicableResourceTypes": ["AWS::EC2::Instance"],
                    "checks": [{"attribute": "publicIp", "condition": "NOT_EXISTS"}],
                },
            ],
        },
    ],
    "selections": [
        {"tenantId": "acme", "frameworkId": "aws-wa", "weight": 2},
        {"tenantId": "acme", "frameworkId": "cis-aws", "weight": 1},
        {
            "tenantId": "globex",
            "frameworkId": "aws-wa",
            "version": "2024.1",
            "severityOverrides": {"EC2-001": "CRITICAL"},
            "excludedRules": ["S3-002"],
        },
    ],
}


@pytest.fixture
def catalog() -> Dict[str, Any]:
    """Provide a fresh deep copy of the sample catalog."""
    return copy.deepcopy(SAMPLE_CATALOG)


@pytest.fixture
def store(catalog) -> InMemoryDefinitionStore:
    """In-memory definition store loaded with the sample catalog."""
    return InMemoryDefinitionStore.from_dict(catalog)


@pytest.fixture
def registry(store) -> FrameworkRegistry:
    """Registry with a fresh in-memory cache."""
    return FrameworkRegistry(store)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def sample_resources():
    """One compliant bucket, one non-compliant bucket and one instance."""
    return [
        Resource(
            resource_id="bucket-good",
            resource_type="AWS::S3::Bucket",
            account_id="111111111111",
            region="us-east-1",
            configuration={"versioning": {"status": "Enabled"}, "encryption": {"algorithm": "AES256"}},
        ),
        Resource(
            resource_id="bucket-bad",
            resource_type="AWS::S3::Bucket",
            account_id="111111111111",
            region="us-east-1",
            configuration={"versioning": {"status": "Suspended"}},
        ),
        Resource(
            resource_id="i-0abc",
            resource_type="AWS::EC2::Instance",
            account_id="111111111111",
            region="eu-west-1",
            configuration={"monitoring": {"state": "enabled"}, "publicIp": "203.0.113.10"},
        ),
    ]


@pytest.fixture
def make_resource():
    """Factory for resources with a given configuration."""

    def _make(resource_id="res-1", resource_type="AWS::S3::Bucket", configuration=None, **kwargs) -> Resource:
        return Resource(
            resource_id=resource_id,
            resource_type=resource_type,
            account_id=kwargs.pop("account_id", "111111111111"),
            region=kwargs.pop("region", "us-east-1"),
            configuration=configuration or {},
            **kwargs,
        )

    return _make


@pytest.fixture
def make_rule():
    """Factory for rule definitions from check dictionaries."""

    def _make(rule_id="R-1", checks=None, **kwargs) -> RuleDefinition:
        checks = checks or [{"propertyPath": "enabled", "condition": "EXISTS"}]
        return RuleDefinition.model_validate({"ruleId": rule_id, "checks": checks, **kwargs})

    return _make


@pytest.fixture
def make_framework_result():
    """Factory for framework results with consistent unit counts."""

    def _make(
        framework_id="fw",
        passed=0,
        failed=0,
        skipped=0,
        status=FrameworkStatus.COMPLETED,
        findings=(),
        error=None,
    ) -> FrameworkResult:
        return FrameworkResult(
            framework_id=framework_id,
            framework_version="1.0",
            status=status,
            findings=tuple(findings),
            total_checks=passed + failed + skipped,
            passed_checks=passed,
            failed_checks=failed,
            skipped_checks=skipped,
            error=error,
        )

    return _make
