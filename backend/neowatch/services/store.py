"""
Durable key/value stores behind the result cache and the request budget.

Values are opaque bytes (JSON envelopes written by the callers). Both stores
raise on failure; callers decide whether a failure is fatal.
"""

import logging
from typing import Dict, Optional

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class KeyValueStore:
    async def read(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    async def write(self, key: str, data: bytes, ttl_ms: Optional[int] = None) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryStore(KeyValueStore):
    """Process-local store. Survives pipeline runs but not restarts."""

    def __init__(self):
        self.data: Dict[str, bytes] = {}

    async def read(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    async def write(self, key: str, data: bytes, ttl_ms: Optional[int] = None) -> None:
        self.data[key] = data


class RedisStore(KeyValueStore):
    def __init__(self, client: aioredis.Redis, prefix: str = ""):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "") -> "RedisStore":
        client = aioredis.Redis.from_url(url, socket_connect_timeout=1)
        logger.info(f"Durable cache backed by Redis at {url}")
        return cls(client, prefix=prefix)

    async def read(self, key: str) -> Optional[bytes]:
        return await self.client.get(self.prefix + key)

    async def write(self, key: str, data: bytes, ttl_ms: Optional[int] = None) -> None:
        # Redis expiry only tidies up; freshness is decided by the envelope
        await self.client.set(self.prefix + key, data, px=ttl_ms)

    async def close(self) -> None:
        await self.client.aclose()
