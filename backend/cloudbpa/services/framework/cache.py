"""
Resolved Rule Set Cache

Read-through cache for resolved rule sets with injected storage.

Entries are keyed by (tenant_id, framework_id, framework_version) and are
valid only while the tenant selection etag they were built from still
matches. A per-key asyncio.Lock keeps at most one populate in flight per
key.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, Optional

import redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from ...models.framework_models import ResolvedRuleSet

logger = logging.getLogger(__name__)

RuleSetLoader = Callable[[], Awaitable[ResolvedRuleSet]]


class RuleSetStorage(ABC):
    """Backing storage for the rule set cache."""

    @abstractmethod
    async def get(self, key: str) -> Optional[ResolvedRuleSet]:
        pass

    @abstractmethod
    async def set(self, key: str, rule_set: ResolvedRuleSet) -> bool:
        pass

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix; returns the count."""
        pass


class InMemoryRuleSetStorage(RuleSetStorage):
    """Process-local dictionary storage."""

    def __init__(self):
        self._entries: Dict[str, ResolvedRuleSet] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[ResolvedRuleSet]:
        return self._entries.get(key)

    async def set(self, key: str, rule_set: ResolvedRuleSet) -> bool:
        self._entries[key] = rule_set
        return True

    async def delete_prefix(self, prefix: str) -> int:
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)


class RedisRuleSetStorage(RuleSetStorage):
    """
    Redis-backed storage shared across engine processes.

    Redis errors are logged and degrade to a cache miss; a failed initial
    ping disables the storage.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        db: int = 0,
        ttl: int = 3600,
        client: Optional["redis.Redis"] = None,
    ):
        """
        Initialize Redis storage.

        Args:
            redis_url: Connection URL, may include credentials
            db: Redis database number
            ttl: Entry time to live in seconds
            client: Pre-built client, mainly for tests
        """
        self.ttl = ttl
        try:
            self.redis_client = client or redis.from_url(
                redis_url,
                db=db,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
            )
            self.redis_client.ping()
            logger.info("Rule set Redis cache initialized successfully")
            self.enabled = True
        except RedisError as e:
            logger.warning(f"Failed to connect to Redis: {e}. Cache disabled.")
            self.enabled = False

    async def get(self, key: str) -> Optional[ResolvedRuleSet]:
        if not self.enabled:
            return None

        try:
            value = self.redis_client.get(key)
            if not value:
                return None
            return ResolvedRuleSet.model_validate(json.loads(value))
        except RedisError as e:
            logger.error(f"Redis GET error for key {key}: {e}")
            return None
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Discarding undecodable cache entry {key}: {e}")
            return None

    async def set(self, key: str, rule_set: ResolvedRuleSet) -> bool:
        if not self.enabled:
            return False

        try:
            self.redis_client.setex(key, self.ttl, json.dumps(rule_set.to_json_dict()))
            return True
        except RedisError as e:
            logger.error(f"Redis SET error for key {key}: {e}")
            return False

    async def delete_prefix(self, prefix: str) -> int:
        if not self.enabled:
            return 0

        try:
            keys = self.redis_client.keys(f"{prefix}*")
            if keys:
                return self.redis_client.delete(*keys)
            return 0
        except RedisError as e:
            logger.error(f"Redis invalidation error for prefix {prefix}: {e}")
            return 0


class RuleSetCache:
    """
    Read-through cache of resolved rule sets.

    One instance per registry, so tests inject a fresh cache.
    """

    def __init__(self, storage: Optional[RuleSetStorage] = None, key_prefix: str = "cloudbpa:ruleset"):
        self.storage = storage or InMemoryRuleSetStorage()
        self.key_prefix = key_prefix
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self.hits = 0
        self.misses = 0

    def make_key(self, tenant_id: str, framework_id: str, framework_version: str) -> str:
        return f"{self.key_prefix}:{tenant_id}:{framework_id}:{framework_version}"

    async def get_or_populate(
        self,
        tenant_id: str,
        framework_id: str,
        framework_version: str,
        etag: str,
        loader: RuleSetLoader,
    ) -> ResolvedRuleSet:
        """
        Return the cached rule set, building it with loader on a miss.

        An entry built from a different selection etag counts as a miss.
        Concurrent callers for the same key wait for a single populate.
        """
        key = self.make_key(tenant_id, framework_id, framework_version)

        cached = await self._lookup(key, etag)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                # Another caller may have populated while we waited
                cached = await self._lookup(key, etag)
                if cached is not None:
                    return cached

                self.misses += 1
                rule_set = await loader()
                await self.storage.set(key, rule_set)
                logger.debug(f"Cache populated: {key} (etag {etag})")
                return rule_set
        finally:
            self._release_lock(key)

    async def invalidate(self, tenant_id: str, framework_id: Optional[str] = None) -> int:
        """
        Drop cached rule sets of a tenant, optionally of one framework only.

        Returns:
            Number of entries removed
        """
        prefix = f"{self.key_prefix}:{tenant_id}:"
        if framework_id is not None:
            prefix = f"{prefix}{framework_id}:"
        removed = await self.storage.delete_prefix(prefix)
        logger.info(f"Invalidated {removed} cached rule sets for tenant {tenant_id}")
        return removed

    def _release_lock(self, key: str) -> None:
        # Locks only live while some caller is populating or waiting on the key
        self._lock_users[key] -= 1
        if not self._lock_users[key]:
            del self._lock_users[key]
            del self._locks[key]

    async def _lookup(self, key: str, etag: str) -> Optional[ResolvedRuleSet]:
        cached = await self.storage.get(key)
        if cached is not None and cached.selection_etag == etag:
            self.hits += 1
            return cached
        return None
