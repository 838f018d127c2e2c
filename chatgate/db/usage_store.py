"""
Usage store.

Key patterns (Redis):
- {table}:USER#{userId}#{periodStart}:MODEL#{modelId} -> Hash of counters
- {table}:GLOBAL#{periodStart}:MODEL#{modelId}        -> Hash of counters

Counters are only changed with HINCRBY so concurrent requests for the same
bucket never lose an increment. Read and write failures are raised as
``UsageStoreError``; callers decide whether to fail or swallow them.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

import redis

from chatgate.config import Config
from chatgate.config.redis_config import get_redis_client
from chatgate.schemas.usage import UsageBucketKey, UsageDelta, UsageRecord
from chatgate.utils.exceptions import UsageStoreError

logger = logging.getLogger(__name__)


class UsageStore(ABC):
    """Point lookup and atomic additive update of usage buckets."""

    @abstractmethod
    async def get(self, key: UsageBucketKey) -> UsageRecord | None:
        """Return the bucket's counters, or None if it was never incremented."""

    @abstractmethod
    async def increment(self, key: UsageBucketKey, delta: UsageDelta) -> None:
        """Add ``delta`` to the bucket, creating it if needed."""

    async def ping(self) -> bool:
        return True


class RedisUsageStore(UsageStore):
    def __init__(self, redis_client: redis.Redis | None = None, table_name: str | None = None):
        self.redis = redis_client if redis_client is not None else get_redis_client()
        self.table_name = table_name or Config.USAGE_TABLE_NAME

    def storage_key(self, key: UsageBucketKey) -> str:
        return f"{self.table_name}:{key.partition_key}:{key.sort_key}"

    async def get(self, key: UsageBucketKey) -> UsageRecord | None:
        storage_key = self.storage_key(key)
        try:
            fields = await asyncio.to_thread(self.redis.hgetall, storage_key)
        except redis.RedisError as e:
            logger.error(f"Failed to read usage bucket {storage_key}: {e}")
            raise UsageStoreError(f"Failed to read usage bucket {storage_key}") from e

        if not fields:
            return None
        return UsageRecord.from_store(fields)

    async def increment(self, key: UsageBucketKey, delta: UsageDelta) -> None:
        storage_key = self.storage_key(key)
        try:
            # MULTI/EXEC so the four counters move together
            pipe = self.redis.pipeline(transaction=True)
            for field_name, amount in delta.to_store().items():
                pipe.hincrby(storage_key, field_name, amount)
            await asyncio.to_thread(pipe.execute)
        except redis.RedisError as e:
            logger.error(f"Failed to increment usage bucket {storage_key}: {e}")
            raise UsageStoreError(f"Failed to increment usage bucket {storage_key}") from e

        logger.debug(f"Incremented {storage_key} by {delta.to_store()}")

    async def ping(self) -> bool:
        try:
            return bool(await asyncio.to_thread(self.redis.ping))
        except redis.RedisError as e:
            logger.warning(f"Usage store ping failed: {e}")
            return False


class InMemoryUsageStore(UsageStore):
    """Process-local store for development and tests."""

    def __init__(self):
        self._buckets: dict[tuple[str, str], dict[str, int]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: UsageBucketKey) -> UsageRecord | None:
        fields = self._buckets.get((key.partition_key, key.sort_key))
        if fields is None:
            return None
        return UsageRecord.from_store(fields)

    async def increment(self, key: UsageBucketKey, delta: UsageDelta) -> None:
        async with self._lock:
            fields = self._buckets.setdefault((key.partition_key, key.sort_key), {})
            for field_name, amount in delta.to_store().items():
                fields[field_name] = fields.get(field_name, 0) + amount


def create_usage_store(backend: str | None = None) -> UsageStore:
    """Build the store selected by USAGE_STORE_BACKEND."""
    backend = (backend or Config.USAGE_STORE_BACKEND).lower()
    if backend == "redis":
        return RedisUsageStore()
    if backend == "memory":
        logger.warning("Using in-memory usage store; counters are lost on restart")
        return InMemoryUsageStore()
    raise ValueError(f"Unknown usage store backend: {backend}")
