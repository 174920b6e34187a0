"""
Request Governor

Keeps NeoWs usage inside the API key's allowance:
- a primary budget (default 1000 requests) checked before every transport call
- an hourly sub-budget (default 800) that presentation code consults before
  starting a listing run
- in-flight dedupe so identical concurrent calls share one transport request

Counters live in the durable store so restarts do not hand out a fresh
allowance. Only successful calls are counted. Window resets are lazy:
they happen on the next check, never on a timer.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urlencode

from neowatch.core.clock import Clock, now_ms
from neowatch.core.errors import BudgetExceeded
from neowatch.services.store import KeyValueStore
from neowatch.services.transport import NeoWsTransport

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
BUDGET_PREFIX = "budget:"


class RequestBudget:
    def __init__(
        self,
        name: str,
        ceiling: int,
        store: KeyValueStore,
        window_ms: Optional[int] = None,
        clock: Clock = now_ms,
    ):
        self.name = name
        self.ceiling = ceiling
        self.store = store
        self.window_ms = window_ms
        self.clock = clock
        self.count = 0
        self.window_start = clock()
        self._loaded = False
        self._load_lock: Optional[asyncio.Lock] = None

    @property
    def key(self) -> str:
        return f"{BUDGET_PREFIX}{self.name}"

    async def _ensure_loaded(self):
        if self._loaded:
            return
        if self._load_lock is None:
            self._load_lock = asyncio.Lock()
        # callers arriving during the durable read wait for it
        async with self._load_lock:
            if self._loaded:
                return
            await self._load()
            self._loaded = True

    async def _load(self):
        try:
            raw = await self.store.read(self.key)
        except Exception as e:
            logger.warning(f"Could not read {self.name} request counter, starting from 0: {e}")
            return
        if not raw:
            return
        try:
            stored = json.loads(raw)
            self.count = max(self.count, int(stored.get("count", 0)))
            self.window_start = int(stored.get("window_start", self.window_start))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring corrupt {self.name} request counter: {e}")

    async def _persist(self):
        payload = json.dumps({"count": self.count, "window_start": self.window_start})
        try:
            await self.store.write(self.key, payload.encode("utf-8"))
        except Exception as e:
            logger.warning(f"Could not persist {self.name} request counter: {e}")

    async def _roll(self) -> None:
        await self._ensure_loaded()
        if self.window_ms is None:
            return
        now = self.clock()
        if now - self.window_start >= self.window_ms:
            logger.info(f"Resetting {self.name} request budget after {self.count} requests")
            self.count = 0
            self.window_start = now
            await self._persist()

    async def can_make_request(self) -> bool:
        await self._roll()
        return self.count < self.ceiling

    async def increment(self):
        await self._roll()
        self.count += 1
        await self._persist()

    async def remaining(self) -> int:
        await self._roll()
        return max(0, self.ceiling - self.count)

    async def reset_in_ms(self) -> Optional[int]:
        await self._roll()
        if self.window_ms is None:
            return None
        return max(0, self.window_start + self.window_ms - self.clock())


class RequestGovernor:
    def __init__(self, budget: RequestBudget, hourly: RequestBudget, transport: NeoWsTransport):
        self.budget = budget
        self.hourly = hourly
        self.transport = transport
        self._in_flight: Dict[str, "asyncio.Task[Any]"] = {}

    async def try_reserve(self) -> bool:
        return await self.budget.can_make_request()

    async def record_success(self):
        await self.budget.increment()
        await self.hourly.increment()

    async def hourly_available(self) -> bool:
        return await self.hourly.can_make_request()

    def in_flight(self) -> int:
        return len(self._in_flight)

    async def dedupe(self, key: str, producer: Callable[[], Awaitable[Any]]) -> Any:
        """
        Run ``producer`` once per key at a time.

        The task is registered before anything awaits it and removes itself
        when it settles, so a later call with the same key starts fresh.
        """
        task = self._in_flight.get(key)
        if task is None:
            async def run():
                try:
                    return await producer()
                finally:
                    self._in_flight.pop(key, None)

            task = asyncio.ensure_future(run())
            self._in_flight[key] = task
        # one caller giving up must not cancel the shared request
        return await asyncio.shield(task)

    async def guarded_fetch(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        key = path
        if params:
            key = f"{path}?{urlencode(sorted(params.items()))}"

        # joining a request already in flight costs nothing
        if key not in self._in_flight and not await self.try_reserve():
            logger.warning(f"Request budget exhausted, refusing NeoWs call to {path}")
            raise BudgetExceeded(self.budget.ceiling)

        async def call():
            data = await self.transport.get_json(path, params)
            await self.record_success()
            return data

        return await self.dedupe(key, call)
