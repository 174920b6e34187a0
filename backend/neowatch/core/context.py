"""
Process-wide wiring.

Every component gets its collaborators at construction time; nothing in the
pipeline reaches for module globals. Tests build their own context with a
MemoryStore, a fake clock and an httpx.MockTransport.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from neowatch.core.clock import Clock, now_ms
from neowatch.core.config import Settings
from neowatch.services.approach import ApproachResolver
from neowatch.services.board import UpcomingBoard
from neowatch.services.cache import ResultCache
from neowatch.services.enrichment import EnrichmentPipeline
from neowatch.services.governor import HOUR_MS, RequestBudget, RequestGovernor
from neowatch.services.neows import DetailClient, FeedClient
from neowatch.services.store import KeyValueStore, MemoryStore, RedisStore
from neowatch.services.transport import NeoWsTransport

logger = logging.getLogger(__name__)


@dataclass
class NeoContext:
    settings: Settings
    store: KeyValueStore
    cache: ResultCache
    transport: NeoWsTransport
    governor: RequestGovernor
    feed_client: FeedClient
    detail_client: DetailClient
    resolver: ApproachResolver
    pipeline: EnrichmentPipeline
    board: UpcomingBoard

    async def close(self):
        # the board must settle before the http client goes away
        await self.board.close()
        await self.transport.close()
        await self.store.close()


def build_store(settings: Settings) -> KeyValueStore:
    if settings.CACHE_BACKEND == "memory":
        logger.info("Durable cache disabled, using in-process store")
        return MemoryStore()
    return RedisStore.from_url(settings.REDIS_URL, prefix=settings.CACHE_KEY_PREFIX)


def build_context(
    settings: Settings,
    store: Optional[KeyValueStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    clock: Clock = now_ms,
) -> NeoContext:
    store = store or build_store(settings)
    cache = ResultCache(store, clock=clock)
    transport = NeoWsTransport(
        settings.NEOWS_BASE_URL,
        settings.NASA_API_KEY,
        client=http_client,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    governor = RequestGovernor(
        budget=RequestBudget(
            "total",
            settings.REQUEST_CEILING,
            store,
            window_ms=settings.REQUEST_CEILING_WINDOW_MS,
            clock=clock,
        ),
        hourly=RequestBudget("hourly", settings.HOURLY_REQUEST_CEILING, store, window_ms=HOUR_MS, clock=clock),
        transport=transport,
    )
    feed_client = FeedClient(governor, cache, ttl_ms=settings.FEED_TTL_MS)
    detail_client = DetailClient(governor, cache, ttl_ms=settings.DETAILS_TTL_MS)
    resolver = ApproachResolver(detail_client, max_iterations=settings.PROJECTION_MAX_ITERATIONS)
    pipeline = EnrichmentPipeline(
        feed_client,
        detail_client,
        resolver,
        batch_concurrency=settings.BATCH_CONCURRENCY,
        rank_size=settings.RANK_SIZE,
        density=settings.IMPACT_DENSITY,
        radius_k=settings.RADIUS_K,
        clock=clock,
    )
    board = UpcomingBoard(
        pipeline,
        window_days=settings.BOARD_WINDOW_DAYS,
        rank_size=settings.BOARD_RANK_SIZE,
        clock=clock,
    )
    return NeoContext(
        settings=settings,
        store=store,
        cache=cache,
        transport=transport,
        governor=governor,
        feed_client=feed_client,
        detail_client=detail_client,
        resolver=resolver,
        pipeline=pipeline,
        board=board,
    )
