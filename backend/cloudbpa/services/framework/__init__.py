"""
Framework layer: definition store, rule set cache and tenant-aware registry.

Usage:
    from cloudbpa.services.framework import FrameworkRegistry, InMemoryDefinitionStore

    store = InMemoryDefinitionStore.from_file("catalog.yaml")
    registry = FrameworkRegistry(store)
    rule_set = await registry.resolve("tenant-1", "aws-wa")
"""

from .cache import InMemoryRuleSetStorage, RedisRuleSetStorage, RuleSetCache, RuleSetStorage
from .registry import FrameworkRegistry
from .store import DefinitionStore, InMemoryDefinitionStore

__all__ = [
    "DefinitionStore",
    "FrameworkRegistry",
    "InMemoryDefinitionStore",
    "InMemoryRuleSetStorage",
    "RedisRuleSetStorage",
    "RuleSetCache",
    "RuleSetStorage",
]
