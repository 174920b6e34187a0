from fastapi import APIRouter, Depends, HTTPException, Query
from datetime import date
from typing import Optional

from neowatch.api.deps import get_context
from neowatch.core.context import NeoContext
from neowatch.models.neo import BoardSnapshot, NearEarthObject, UpcomingResult
from neowatch.services.enrichment import RankOrder
from neowatch.services.neows import MAX_FEED_WINDOW_DAYS

router = APIRouter()


@router.get("/upcoming", response_model=UpcomingResult)
async def list_upcoming(
    window_days: int = Query(default=1, ge=0, le=MAX_FEED_WINDOW_DAYS),
    rank_size: Optional[int] = Query(default=None, ge=1, le=100),
    order: RankOrder = RankOrder.ENERGY,
    start_date: Optional[date] = None,
    ctx: NeoContext = Depends(get_context),
):
    """
    Objects with an upcoming approach (explicit or estimated), ranked by
    impact energy (or by approach time with order=approach).

    `empty: true` means the feed was fetched but nothing upcoming was found.
    """
    if not await ctx.governor.hourly_available():
        reset_in = await ctx.governor.hourly.reset_in_ms()
        raise HTTPException(
            status_code=429,
            detail=f"Hourly NeoWs request budget exhausted, resets in {reset_in // 1000}s",
        )

    return await ctx.pipeline.list_upcoming(
        window_days=window_days,
        rank_size=rank_size,
        start_date=start_date,
        order=order,
    )


@router.get("/board", response_model=BoardSnapshot)
async def read_board(ctx: NeoContext = Depends(get_context)):
    """
    Latest discover-board listing. The first read starts a background refresh
    and reports `loading`.
    """
    if not ctx.board.started:
        return ctx.board.start_refresh()
    return ctx.board.snapshot


@router.post("/board/refresh", response_model=BoardSnapshot)
async def refresh_board(ctx: NeoContext = Depends(get_context)):
    return ctx.board.start_refresh()


@router.get("/{neo_id}", response_model=NearEarthObject)
async def read_asteroid(neo_id: str, ctx: NeoContext = Depends(get_context)):
    """Full NeoWs record (orbital data + every approach) for one object."""
    return await ctx.pipeline.get_details(neo_id)
