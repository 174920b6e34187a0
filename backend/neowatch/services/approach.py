"""
Approach Resolver

Determines each object's next Earth approach, in order of preference:
1. a future approach already present in the feed record
2. a future approach in the full NeoWs record
3. a projection from the latest known approach plus whole orbital periods

Resolution never raises for transport problems. The failure is carried on
the Resolution so batch orchestration can decide whether to stop early.
"""

import enum
import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from neowatch.core.errors import NeoWatchError
from neowatch.models.neo import NearEarthObject
from neowatch.services.neows import DetailClient

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000
DEFAULT_MAX_ITERATIONS = 1000


class ApproachState(str, enum.Enum):
    UNRESOLVED = "unresolved"
    RESOLVED_EXPLICIT = "resolved_explicit"
    RESOLVED_ESTIMATED = "resolved_estimated"
    UNRESOLVABLE = "unresolvable"


@dataclass
class Resolution:
    neo: NearEarthObject
    state: ApproachState
    failure: Optional[NeoWatchError] = None

    @property
    def resolved(self) -> bool:
        return self.state in (ApproachState.RESOLVED_EXPLICIT, ApproachState.RESOLVED_ESTIMATED)


def project_epoch(
    known_epochs: List[float],
    period_days: Optional[float],
    now_ms: float,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> Optional[int]:
    """
    Step whole orbital periods forward from the latest known epoch until it
    passes ``now_ms``. None when the period is missing, non-finite or too
    short to get past ``now_ms`` within ``max_iterations`` steps.
    """
    if not known_epochs or period_days is None or not math.isfinite(period_days) or not period_days:
        return None

    period_ms = period_days * DAY_MS
    estimate = max(known_epochs)
    iterations = 0
    while estimate <= now_ms and iterations < max_iterations:
        estimate += period_ms
        iterations += 1

    if estimate > now_ms:
        return math.ceil(estimate)
    return None


def resolve_from_feed(neo: NearEarthObject, now_ms: float) -> Resolution:
    future = neo.future_epochs(now_ms)
    if future:
        resolved = neo.model_copy(update={"details": None, "next_epoch": math.ceil(min(future)), "estimated": False})
        return Resolution(resolved, ApproachState.RESOLVED_EXPLICIT)
    return Resolution(neo.model_copy(update={"details": None, "next_epoch": None}), ApproachState.UNRESOLVED)


def resolve_from_details(
    neo: NearEarthObject,
    details: NearEarthObject,
    now_ms: float,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> Resolution:
    future = details.future_epochs(now_ms)
    if future:
        resolved = neo.model_copy(update={"details": details, "next_epoch": math.ceil(min(future)), "estimated": False})
        return Resolution(resolved, ApproachState.RESOLVED_EXPLICIT)

    period = details.orbital_data.orbital_period_days if details.orbital_data else None
    estimate = project_epoch(details.known_epochs(), period, now_ms, max_iterations)
    if estimate is not None:
        resolved = neo.model_copy(update={"details": details, "next_epoch": estimate, "estimated": True})
        return Resolution(resolved, ApproachState.RESOLVED_ESTIMATED)

    return Resolution(neo.model_copy(update={"details": details, "next_epoch": None}), ApproachState.UNRESOLVABLE)


class ApproachResolver:
    def __init__(self, detail_client: DetailClient, max_iterations: int = DEFAULT_MAX_ITERATIONS):
        self.detail_client = detail_client
        self.max_iterations = max_iterations

    def needs_details(self, neo: NearEarthObject, now_ms: float) -> bool:
        return not neo.future_epochs(now_ms)

    async def resolve(self, neo: NearEarthObject, now_ms: float) -> Resolution:
        from_feed = resolve_from_feed(neo, now_ms)
        if from_feed.resolved:
            return from_feed

        try:
            details = await self.detail_client.fetch_details(neo.id)
        except NeoWatchError as e:
            logger.warning(f"fetch_details failed for {neo.id}: {e}")
            # nothing in the feed record was in the future either
            return Resolution(from_feed.neo, ApproachState.UNRESOLVABLE, failure=e)

        return resolve_from_details(neo, details, now_ms, self.max_iterations)
