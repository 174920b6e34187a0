"""
Upcoming Board

Holds the latest ranked listing for presentation layers, with exactly one of
four statuses: loading, ready, empty, error. Starting a refresh supersedes
any run still in flight; a superseded run finishes its requests but its
results are dropped.
"""

import asyncio
import logging
from typing import Optional

from neowatch.core.clock import Clock, now_ms
from neowatch.core.errors import NeoWatchError, RunCancelled
from neowatch.models.neo import BoardSnapshot, BoardStatus
from neowatch.services.enrichment import EnrichmentPipeline, RankOrder, RunToken

logger = logging.getLogger(__name__)


class UpcomingBoard:
    def __init__(
        self,
        pipeline: EnrichmentPipeline,
        window_days: int = 1,
        rank_size: int = 9,
        order: RankOrder = RankOrder.APPROACH,
        clock: Clock = now_ms,
    ):
        self.pipeline = pipeline
        self.window_days = window_days
        self.rank_size = rank_size
        self.order = order
        self.clock = clock
        self.snapshot = BoardSnapshot(status=BoardStatus.LOADING)
        self._run: Optional[RunToken] = None
        self._task: Optional[asyncio.Task] = None

    def _begin(self) -> RunToken:
        if self._run is not None:
            self._run.cancel()
        run = RunToken()
        self._run = run
        self.snapshot = self.snapshot.model_copy(update={"status": BoardStatus.LOADING, "error": None})
        return run

    async def refresh(self) -> BoardSnapshot:
        return await self._complete(self._begin())

    async def _complete(self, run: RunToken) -> BoardSnapshot:
        try:
            result = await self.pipeline.list_upcoming(
                window_days=self.window_days,
                rank_size=self.rank_size,
                order=self.order,
                run=run,
            )
        except RunCancelled:
            logger.info("Discarding results of a superseded board refresh")
            return self.snapshot
        except NeoWatchError as e:
            if not run.alive:
                return self.snapshot
            logger.error(f"Board refresh failed: {e}")
            self.snapshot = BoardSnapshot(status=BoardStatus.ERROR, error=str(e), updated_at=self.clock())
            return self.snapshot
        except Exception as e:
            if not run.alive:
                return self.snapshot
            logger.error(f"Board refresh crashed: {e!r}")
            self.snapshot = BoardSnapshot(
                status=BoardStatus.ERROR, error="unexpected error while refreshing", updated_at=self.clock()
            )
            return self.snapshot

        if not run.alive:
            return self.snapshot
        status = BoardStatus.EMPTY if result.empty else BoardStatus.READY
        self.snapshot = BoardSnapshot(status=status, items=result.items, updated_at=self.clock())
        return self.snapshot

    def start_refresh(self) -> BoardSnapshot:
        """Kick off a refresh in the background and return the loading snapshot."""
        self._task = asyncio.ensure_future(self._complete(self._begin()))
        return self.snapshot

    async def wait(self) -> BoardSnapshot:
        if self._task is not None:
            await self._task
        return self.snapshot

    def cancel(self):
        if self._run is not None:
            self._run.cancel()

    async def close(self):
        """Supersede the current run and let its in-flight requests settle."""
        self.cancel()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    @property
    def started(self) -> bool:
        return self._run is not None
