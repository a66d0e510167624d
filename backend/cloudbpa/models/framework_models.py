"""
Framework and Rule Definition Models

Read-only snapshots of the framework/rule catalog and of a tenant's
framework selections, as served by the definition store.

Invariants enforced at load time:
- A rule check uses one of the closed set of conditions
- Conditions other than EXISTS/NOT_EXISTS carry a value
- REGEX values compile
- Rule ids are unique within a framework definition
"""

import hashlib
import json
import re
from typing import Any, Dict, FrozenSet, Optional, Tuple

from pydantic import AliasChoices, Field, ValidationInfo, field_validator, model_validator

from .base import EngineModel
from .enums import CheckCondition, RemediationEffort, Severity

WILDCARD_RESOURCE_TYPE = "*"


class RuleCheck(EngineModel):
    """One atomic condition evaluated against a resource configuration."""

    property_path: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("propertyPath", "property_path", "property", "attribute"),
        description="Dot/array-index path into Resource.configuration",
    )
    condition: CheckCondition
    value: Any = None
    message: str = ""
    case_sensitive: bool = Field(False, description="REGEX only: match case-sensitively")

    @field_validator("condition", mode="before")
    @classmethod
    def normalize_condition(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @model_validator(mode="after")
    def validate_value(self) -> "RuleCheck":
        """
        Reject checks that could only fail at evaluation time.

        Raises:
            ValueError: If a value is missing or a REGEX pattern does not compile
        """
        if self.condition.requires_value and "value" not in self.model_fields_set:
            raise ValueError(f"{self.condition.value} check on '{self.property_path}' requires a value")

        if self.condition == CheckCondition.REGEX:
            if not isinstance(self.value, str):
                raise ValueError(f"REGEX check on '{self.property_path}' requires a string pattern")
            try:
                re.compile(self.value)
            except re.error as e:
                raise ValueError(f"Invalid REGEX pattern for '{self.property_path}': {e}") from e

        return self


class Remediation(EngineModel):
    """Remediation guidance attached to a rule."""

    description: str = ""
    links: Tuple[str, ...] = ()
    effort: Optional[RemediationEffort] = None
    automatable: bool = False
    steps: Tuple[str, ...] = ()


class RuleDefinition(EngineModel):
    """
    One compliance requirement scoped to certain resource types.

    All checks are combined with AND semantics: the rule passes for a
    resource only if every check passes.
    """

    rule_id: str = Field(..., min_length=1)
    framework_id: str = ""
    title: str = ""
    description: str = ""
    pillar: str = "GENERAL"
    severity: Severity = Severity.MEDIUM
    category: str = "General"
    applicable_resource_types: FrozenSet[str] = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices(
            "applicableResourceTypes", "applicable_resource_types", "resourceTypes"
        ),
    )
    checks: Tuple[RuleCheck, ...] = Field(..., min_length=1)
    recommendation: str = ""
    message: str = Field("", description="Finding message; replaces the check-derived message when set")
    remediation: Optional[Remediation] = None
    enabled_by_default: bool = True

    def applies_to(self, resource_type: str) -> bool:
        """
        Check whether the rule is scoped to a resource type.

        An empty type set or the ``*`` wildcard applies to every type.
        """
        if not self.applicable_resource_types or WILDCARD_RESOURCE_TYPE in self.applicable_resource_types:
            return True
        return resource_type in self.applicable_resource_types

    @property
    def recommendation_text(self) -> str:
        if self.recommendation:
            return self.recommendation
        if self.remediation and self.remediation.description:
            return self.remediation.description
        return ""


class FrameworkDefinition(EngineModel):
    """
    A named, versioned catalog of rules.

    Immutable per version: a new version is a new definition.
    """

    framework_id: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    name: str = ""
    description: str = ""
    framework_type: str = ""
    rules: Tuple[RuleDefinition, ...] = ()

    @field_validator("version", mode="before")
    @classmethod
    def version_as_string(cls, v):
        # YAML catalogs often carry numeric versions (e.g. 2024.1)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("rules")
    @classmethod
    def bind_rules_to_framework(cls, rules, info: ValidationInfo):
        framework_id = info.data.get("framework_id", "")
        seen = set()
        bound = []
        for rule in rules:
            if rule.rule_id in seen:
                raise ValueError(f"Duplicate rule id '{rule.rule_id}' in framework '{framework_id}'")
            seen.add(rule.rule_id)
            if rule.framework_id != framework_id:
                rule = rule.model_copy(update={"framework_id": framework_id})
            bound.append(rule)
        return tuple(bound)

    def get_rule(self, rule_id: str) -> Optional[RuleDefinition]:
        return next((rule for rule in self.rules if rule.rule_id == rule_id), None)


class RuleOverride(EngineModel):
    """Tenant-specific override for one rule."""

    enabled: Optional[bool] = None
    severity: Optional[Severity] = None
    custom_message: Optional[str] = None


class TenantFrameworkSelection(EngineModel):
    """
    A tenant's selection of one framework for analysis.

    Weights are arbitrary positive numbers; they are normalized across
    completed frameworks at aggregation time.
    """

    tenant_id: str = ""
    framework_id: str = Field(..., min_length=1)
    weight: float = Field(1.0, gt=0, description="Relative weight before normalization")
    version: Optional[str] = Field(None, description="Pinned framework version; latest when unset")
    enabled_override: Optional[bool] = Field(
        None, description="False disables every rule, True enables default-disabled rules"
    )
    severity_overrides: Dict[str, Severity] = Field(default_factory=dict)
    excluded_rules: FrozenSet[str] = Field(default_factory=frozenset)
    pillars: Optional[FrozenSet[str]] = Field(None, description="Restrict to these pillars")
    rule_overrides: Dict[str, RuleOverride] = Field(default_factory=dict)
    etag: Optional[str] = Field(None, description="Store-provided revision tag")

    @field_validator("version", mode="before")
    @classmethod
    def version_as_string(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def effective_etag(self) -> str:
        """
        Revision tag used to invalidate cached rule sets.

        Falls back to a content fingerprint so any change to the selection
        produces a different tag.
        """
        if self.etag:
            return self.etag

        canonical = {
            "framework_id": self.framework_id,
            "weight": self.weight,
            "version": self.version,
            "enabled_override": self.enabled_override,
            "severity_overrides": {k: v.value for k, v in sorted(self.severity_overrides.items())},
            "excluded_rules": sorted(self.excluded_rules),
            "pillars": sorted(self.pillars) if self.pillars is not None else None,
            "rule_overrides": {
                k: v.model_dump(mode="json") for k, v in sorted(self.rule_overrides.items())
            },
        }
        digest = hashlib.sha256(json.dumps(canonical, sort_keys=True).encode("utf-8")).hexdigest()
        return digest[:16]


class RuleScope(EngineModel):
    """Narrower scope requested by the caller for one analysis."""

    pillars: Optional[FrozenSet[str]] = None
    severities: Optional[FrozenSet[Severity]] = None
    categories: Optional[FrozenSet[str]] = None

    def allows(self, rule: RuleDefinition) -> bool:
        if self.pillars is not None and rule.pillar not in self.pillars:
            return False
        if self.severities is not None and rule.severity not in self.severities:
            return False
        if self.categories is not None and rule.category not in self.categories:
            return False
        return True


class ResolvedRuleSet(EngineModel):
    """Effective rule list for one tenant and framework version."""

    tenant_id: str
    framework_id: str
    framework_version: str
    framework_name: str = ""
    selection_etag: str
    weight: float = Field(1.0, gt=0)
    rules: Tuple[RuleDefinition, ...] = ()
    dropped_rules: int = Field(0, ge=0, description="Rules removed by exclusions, overrides or filters")

    def narrowed(self, scope: Optional[RuleScope]) -> "ResolvedRuleSet":
        """Return a copy restricted to the caller's scope."""
        if scope is None:
            return self
        kept = tuple(rule for rule in self.rules if scope.allows(rule))
        return self.model_copy(
            update={"rules": kept, "dropped_rules": self.dropped_rules + len(self.rules) - len(kept)}
        )
