"""
Result Cache

Two layers:
- in-process dict of CacheEntry (checked first, never evicted except by TTL)
- durable KeyValueStore (Redis) holding JSON envelopes that survive restarts

A fresh durable hit is promoted into the in-process layer. Durable-layer
failures are logged and never reach the caller.
"""

import json
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError

from neowatch.core.clock import Clock, now_ms
from neowatch.services.store import KeyValueStore

logger = logging.getLogger(__name__)

FEED_PREFIX = "feed:"
DETAILS_PREFIX = "neo:"


def feed_key(start_date: str, end_date: str) -> str:
    return f"{FEED_PREFIX}{start_date}:{end_date}"


def details_key(neo_id: str) -> str:
    return f"{DETAILS_PREFIX}{neo_id}"


class CacheEntry(BaseModel):
    created_at: int
    ttl: int
    value: Any = None


class ResultCache:
    def __init__(self, store: KeyValueStore, clock: Clock = now_ms):
        self.store = store
        self.clock = clock
        self._memory: Dict[str, CacheEntry] = {}

    def is_fresh(self, entry: Optional[CacheEntry]) -> bool:
        return entry is not None and (self.clock() - entry.created_at) < entry.ttl

    async def get(self, key: str) -> Optional[Any]:
        entry = self._memory.get(key)
        if self.is_fresh(entry):
            return entry.value

        entry = await self._read_durable(key)
        if self.is_fresh(entry):
            self._memory[key] = entry
            logger.debug(f"Promoted durable cache entry {key}")
            return entry.value
        return None

    async def put(self, key: str, value: Any, ttl: int) -> CacheEntry:
        entry = CacheEntry(created_at=self.clock(), ttl=ttl, value=value)
        self._memory[key] = entry
        try:
            await self.store.write(key, entry.model_dump_json().encode("utf-8"), ttl_ms=ttl)
        except Exception as e:
            logger.warning(f"Durable cache write failed for {key}, keeping in-process copy: {e}")
        return entry

    async def _read_durable(self, key: str) -> Optional[CacheEntry]:
        try:
            raw = await self.store.read(key)
        except Exception as e:
            logger.warning(f"Durable cache read failed for {key}: {e}")
            return None
        if not raw:
            return None
        try:
            return CacheEntry.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Discarding corrupt cache envelope {key}: {e}")
            return None
