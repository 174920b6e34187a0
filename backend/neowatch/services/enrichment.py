"""
Enrichment Pipeline

Orchestration root for presentation layers:
1. fetch the feed window
2. resolve next approaches, fetching details in fixed-size concurrent batches
3. merge by id, keep objects with a future approach, score and rank them

Batches run one after another so at most ``batch_concurrency`` detail
requests are in flight. A RateLimited or BudgetExceeded result stops any
further batches for the run.
"""

import asyncio
import enum
import logging
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from neowatch.core.clock import Clock, now_ms
from neowatch.core.errors import BudgetExceeded, RateLimited, RunCancelled
from neowatch.models.neo import EnrichedAsteroid, NearEarthObject, UpcomingResult
from neowatch.services.approach import ApproachResolver, resolve_from_feed
from neowatch.services.impact import DEFAULT_DENSITY, DEFAULT_RADIUS_K, energy_megatons, radius_km_from_energy_mt
from neowatch.services.neows import DetailClient, FeedClient

logger = logging.getLogger(__name__)

DEFAULT_BATCH_CONCURRENCY = 4
DEFAULT_RANK_SIZE = 12


class RankOrder(str, enum.Enum):
    ENERGY = "energy"
    APPROACH = "approach"


class RunToken:
    """Liveness flag for one pipeline run."""

    def __init__(self):
        self.alive = True

    def cancel(self):
        self.alive = False

    def check(self):
        if not self.alive:
            raise RunCancelled("pipeline run was cancelled")


def enrich(neo: NearEarthObject, density: float = DEFAULT_DENSITY, k: float = DEFAULT_RADIUS_K) -> EnrichedAsteroid:
    energy = energy_megatons(neo.diameter_m, neo.rel_vel_kms, density)
    return EnrichedAsteroid(**neo.model_dump(), energy_mt=energy, radius_km=radius_km_from_energy_mt(energy, k))


def rank_upcoming(
    neos: Iterable[NearEarthObject],
    now: int,
    rank_size: int,
    order: RankOrder = RankOrder.ENERGY,
    density: float = DEFAULT_DENSITY,
    k: float = DEFAULT_RADIUS_K,
) -> List[EnrichedAsteroid]:
    """Score objects with a future approach and keep the top ``rank_size``. Ties keep input order."""
    upcoming = [enrich(n, density, k) for n in neos if n.next_epoch is not None and n.next_epoch > now]
    if order == RankOrder.APPROACH:
        upcoming.sort(key=lambda a: a.next_epoch)
    else:
        upcoming.sort(key=lambda a: a.energy_mt, reverse=True)
    return upcoming[:max(0, rank_size)]


class EnrichmentPipeline:
    def __init__(
        self,
        feed_client: FeedClient,
        detail_client: DetailClient,
        resolver: ApproachResolver,
        batch_concurrency: int = DEFAULT_BATCH_CONCURRENCY,
        rank_size: int = DEFAULT_RANK_SIZE,
        density: float = DEFAULT_DENSITY,
        radius_k: float = DEFAULT_RADIUS_K,
        clock: Clock = now_ms,
    ):
        self.feed_client = feed_client
        self.detail_client = detail_client
        self.resolver = resolver
        self.batch_concurrency = max(1, batch_concurrency)
        self.rank_size = rank_size
        self.density = density
        self.radius_k = radius_k
        self.clock = clock

    async def get_details(self, neo_id: str) -> NearEarthObject:
        return await self.detail_client.fetch_details(neo_id)

    async def list_upcoming(
        self,
        window_days: int = 1,
        rank_size: Optional[int] = None,
        start_date: Optional[date] = None,
        order: RankOrder = RankOrder.ENERGY,
        run: Optional[RunToken] = None,
    ) -> UpcomingResult:
        run = run or RunToken()
        now = self.clock()
        if start_date is None:
            start_date = datetime.fromtimestamp(now / 1000, tz=timezone.utc).date()
        if rank_size is None:
            rank_size = self.rank_size

        # Feed failures propagate to the caller with their original message
        feed = await self.feed_client.fetch_feed(start_date, window_days)
        run.check()

        # dicts keep feed order, and batch results are merged by id
        results: Dict[str, NearEarthObject] = {}
        needs_details: List[NearEarthObject] = []
        for neo in feed:
            resolution = resolve_from_feed(neo, now)
            results[neo.id] = resolution.neo
            if not resolution.resolved:
                needs_details.append(neo)

        logger.info(f"{len(feed)} objects in feed, {len(needs_details)} need detail lookups")

        for i in range(0, len(needs_details), self.batch_concurrency):
            batch = needs_details[i:i + self.batch_concurrency]
            outcomes = await asyncio.gather(
                *(self.resolver.resolve(neo, now) for neo in batch),
                return_exceptions=True,
            )
            run.check()

            stop = None
            for neo, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    logger.error(f"Approach resolution crashed for {neo.id}: {outcome!r}")
                    continue
                results[outcome.neo.id] = outcome.neo
                if isinstance(outcome.failure, (RateLimited, BudgetExceeded)):
                    stop = outcome.failure

            remaining = len(needs_details) - (i + len(batch))
            if stop is not None and remaining > 0:
                logger.warning(f"Stopping detail lookups early ({stop}); {remaining} objects left unresolved")
                break

        items = rank_upcoming(results.values(), now, rank_size, order, self.density, self.radius_k)
        return UpcomingResult(items=items, empty=not items)
