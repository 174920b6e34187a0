from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Dict, Optional

from neowatch.api.deps import get_context
from neowatch.core.context import NeoContext
from neowatch.services.governor import RequestBudget

router = APIRouter()


class BudgetOut(BaseModel):
    ceiling: int
    used: int
    remaining: int
    reset_in_ms: Optional[int] = None


async def _describe(budget: RequestBudget) -> BudgetOut:
    remaining = await budget.remaining()
    return BudgetOut(
        ceiling=budget.ceiling,
        used=budget.count,
        remaining=remaining,
        reset_in_ms=await budget.reset_in_ms(),
    )


@router.get("/", response_model=Dict[str, BudgetOut])
async def read_budget(ctx: NeoContext = Depends(get_context)):
    """NeoWs request allowance left on the total and hourly budgets."""
    return {
        "total": await _describe(ctx.governor.budget),
        "hourly": await _describe(ctx.governor.hourly),
    }
