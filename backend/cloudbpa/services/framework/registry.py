"""
Framework Registry

Resolves a tenant's framework selection into the concrete rule set that an
executor runs, and answers catalog queries.

Resolution order for one (tenant, framework):
    1. Load the tenant selection
    2. Pick the pinned version, or the latest known version
    3. Build the effective rule list (cached per selection etag)
    4. Narrow to the caller's scope
"""

import logging
from typing import Dict, Iterable, List, Optional

from ...models.enums import CacheBackend, Severity
from ...models.framework_models import (
    FrameworkDefinition,
    ResolvedRuleSet,
    RuleDefinition,
    RuleScope,
    TenantFrameworkSelection,
)
from ..engine.exceptions import FrameworkNotFoundError, TenantConfigNotFoundError
from .cache import RedisRuleSetStorage, RuleSetCache
from .store import DefinitionStore

logger = logging.getLogger(__name__)


class FrameworkRegistry:
    """
    Tenant-aware framework resolution with a read-through cache.

    Example:
        >>> registry = FrameworkRegistry(InMemoryDefinitionStore.from_file("catalog.yaml"))
        >>> rule_set = await registry.resolve("tenant-1", "aws-wa")
        >>> len(rule_set.rules)
        42
    """

    def __init__(self, store: DefinitionStore, cache: Optional[RuleSetCache] = None):
        """
        Initialize the registry.

        Args:
            store: Definition store providing catalogs and selections
            cache: Rule set cache; a fresh in-memory cache when omitted
        """
        self.store = store
        self.cache = cache or RuleSetCache()

    @classmethod
    def from_settings(cls, store: DefinitionStore, settings) -> "FrameworkRegistry":
        """Build a registry whose cache storage follows the engine settings."""
        if settings.cache_backend == CacheBackend.REDIS:
            storage = RedisRuleSetStorage(
                redis_url=settings.redis_url,
                db=settings.redis_db,
                ttl=settings.cache_ttl_seconds,
            )
            return cls(store, RuleSetCache(storage, key_prefix=settings.cache_key_prefix))
        return cls(store, RuleSetCache(key_prefix=settings.cache_key_prefix))

    async def resolve(self, tenant_id: str, framework_id: str, scope: Optional[RuleScope] = None) -> ResolvedRuleSet:
        """
        Resolve the effective rule set of one framework for a tenant.

        Args:
            tenant_id: Tenant being analyzed
            framework_id: Framework to resolve
            scope: Optional narrower scope requested by the caller

        Returns:
            ResolvedRuleSet with overrides and filters applied

        Raises:
            FrameworkNotFoundError: Unknown framework id or pinned version
            TenantConfigNotFoundError: Tenant has not selected the framework
        """
        selection = await self.store.get_selection(tenant_id, framework_id)

        pinned = selection.version if selection is not None else None
        version = pinned or await self.store.get_latest_version(framework_id)
        if version is None:
            raise FrameworkNotFoundError(framework_id, pinned)

        if selection is None:
            raise TenantConfigNotFoundError(tenant_id, framework_id)

        async def load() -> ResolvedRuleSet:
            framework = await self.store.get_framework(framework_id, version)
            if framework is None:
                raise FrameworkNotFoundError(framework_id, version)
            return self.build_rule_set(tenant_id, selection, framework)

        rule_set = await self.cache.get_or_populate(
            tenant_id, framework_id, version, selection.effective_etag, load
        )
        return rule_set.narrowed(scope)

    async def invalidate(self, tenant_id: str, framework_id: Optional[str] = None) -> int:
        """Drop cached rule sets for a tenant, optionally one framework only."""
        return await self.cache.invalidate(tenant_id, framework_id)

    @staticmethod
    def build_rule_set(
        tenant_id: str, selection: TenantFrameworkSelection, framework: FrameworkDefinition
    ) -> ResolvedRuleSet:
        """
        Apply a tenant selection to a framework definition.

        Exclusions and enablement are applied first, then the selection's
        pillar filter, then severity overrides and custom messages.
        """
        rules = []
        for rule in framework.rules:
            if rule.rule_id in selection.excluded_rules:
                continue

            override = selection.rule_overrides.get(rule.rule_id)
            if not _is_enabled(rule, selection, override):
                continue

            if selection.pillars is not None and rule.pillar not in selection.pillars:
                continue

            updates = {}
            severity = selection.severity_overrides.get(rule.rule_id)
            if override is not None and override.severity is not None:
                severity = override.severity
            if severity is not None and severity != rule.severity:
                updates["severity"] = severity
            if override is not None and override.custom_message:
                updates["message"] = override.custom_message

            rules.append(rule.model_copy(update=updates) if updates else rule)

        dropped = len(framework.rules) - len(rules)
        logger.debug(
            f"Resolved {framework.framework_id} v{framework.version} for tenant {tenant_id}: "
            f"{len(rules)} rules ({dropped} dropped)"
        )
        return ResolvedRuleSet(
            tenant_id=tenant_id,
            framework_id=framework.framework_id,
            framework_version=framework.version,
            framework_name=framework.name,
            selection_etag=selection.effective_etag,
            weight=selection.weight,
            rules=tuple(rules),
            dropped_rules=dropped,
        )

    async def list_frameworks(self) -> List[FrameworkDefinition]:
        """List the latest version of every framework in the catalog."""
        return await self.store.list_frameworks()

    async def get_framework_rules(
        self,
        framework_id: str,
        version: Optional[str] = None,
        pillar: Optional[str] = None,
        severity: Optional[Severity] = None,
        category: Optional[str] = None,
    ) -> List[RuleDefinition]:
        """
        List the catalog rules of a framework, optionally filtered.

        Tenant selections are not applied.

        Raises:
            FrameworkNotFoundError: Unknown framework id or version
        """
        framework = await self.store.get_framework(framework_id, version)
        if framework is None:
            raise FrameworkNotFoundError(framework_id, version)

        return [
            rule
            for rule in framework.rules
            if (pillar is None or rule.pillar == pillar)
            and (severity is None or rule.severity == severity)
            and (category is None or rule.category == category)
        ]

    @staticmethod
    def rule_statistics(rules: Iterable[RuleDefinition]) -> Dict:
        """
        Count rules by severity and pillar.

        Returns:
            {"total": int, "by_severity": {...}, "by_pillar": {...}}; every
            severity level is present in by_severity
        """
        by_severity = {severity.value: 0 for severity in Severity}
        by_pillar: Dict[str, int] = {}
        total = 0
        for rule in rules:
            total += 1
            by_severity[rule.severity.value] += 1
            by_pillar[rule.pillar] = by_pillar.get(rule.pillar, 0) + 1
        return {"total": total, "by_severity": by_severity, "by_pillar": by_pillar}


def _is_enabled(rule: RuleDefinition, selection: TenantFrameworkSelection, override) -> bool:
    # enabled_override=False switches the whole framework off for the tenant
    if selection.enabled_override is False:
        return False
    if override is not None and override.enabled is not None:
        return override.enabled
    if selection.enabled_override is True:
        return True
    return rule.enabled_by_default
