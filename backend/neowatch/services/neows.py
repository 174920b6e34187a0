"""
NASA NeoWs Feed and Detail clients

Provides cached, budgeted access to:
- /feed: objects approaching within a date window (max 7 days)
- /neo/{id}: the full record for one object (orbital_data + every approach)

Raw NeoWs JSON is normalized here into NearEarthObject / ApproachEvent and
never leaves this module.
"""

import logging
import math
from datetime import date, timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from neowatch.core.errors import InvalidArgument, TransportFailure
from neowatch.models.neo import ApproachEvent, NearEarthObject, OrbitalData
from neowatch.services.cache import ResultCache, details_key, feed_key
from neowatch.services.governor import RequestGovernor

logger = logging.getLogger(__name__)

MAX_FEED_WINDOW_DAYS = 7
DEFAULT_FEED_TTL_MS = 10 * 60 * 1000
DEFAULT_DETAILS_TTL_MS = 24 * 60 * 60 * 1000


def _to_float(val) -> Optional[float]:
    """Finite float or None."""
    if val is None or isinstance(val, bool):
        return None
    try:
        f = float(val)
    except (ValueError, TypeError):
        return None
    return f if math.isfinite(f) else None


def parse_approach_event(raw: Dict[str, Any]) -> ApproachEvent:
    velocity = raw.get("relative_velocity") or {}
    miss = raw.get("miss_distance") or {}
    return ApproachEvent(
        epoch_ms=_to_float(raw.get("epoch_date_close_approach")),
        date_full=raw.get("close_approach_date_full") or None,
        date=raw.get("close_approach_date") or None,
        relative_velocity_kms=_to_float(velocity.get("kilometers_per_second")),
        miss_distance_km=_to_float(miss.get("kilometers")),
        orbiting_body=raw.get("orbiting_body"),
    )


def parse_orbital_data(raw: Optional[Dict[str, Any]]) -> Optional[OrbitalData]:
    if not raw:
        return None
    orbit_class = raw.get("orbit_class") or {}
    return OrbitalData(
        orbital_period_days=_to_float(raw.get("orbital_period")),
        orbit_class=orbit_class.get("orbit_class_type") if isinstance(orbit_class, dict) else None,
        first_observation_date=raw.get("first_observation_date"),
        last_observation_date=raw.get("last_observation_date"),
    )


def parse_neo(raw: Dict[str, Any]) -> NearEarthObject:
    """
    Normalize one NeoWs object (feed entry or full record).

    diameter_m is the midpoint of the estimated meter range; rel_vel_kms comes
    from the first approach event (0 when there is none). Raises ValueError
    for records without an id or a usable diameter estimate.
    """
    neo_id = raw.get("id") or raw.get("neo_reference_id")
    if not neo_id:
        raise ValueError("record has no id")

    meters = (raw.get("estimated_diameter") or {}).get("meters") or {}
    d_min = _to_float(meters.get("estimated_diameter_min"))
    d_max = _to_float(meters.get("estimated_diameter_max"))
    if d_min is None or d_max is None:
        raise ValueError(f"record {neo_id} has no diameter estimate")

    raw_events = raw.get("close_approach_data") or []
    events = [parse_approach_event(e) for e in raw_events if isinstance(e, dict)]
    rel_vel = events[0].relative_velocity_kms if events else None

    return NearEarthObject(
        id=str(neo_id),
        name=raw.get("name") or str(neo_id),
        diameter_m=(d_min + d_max) / 2,
        rel_vel_kms=rel_vel or 0.0,
        close_approach_data=events,
        absolute_magnitude_h=_to_float(raw.get("absolute_magnitude_h")),
        is_potentially_hazardous=bool(raw.get("is_potentially_hazardous_asteroid", False)),
        nasa_jpl_url=raw.get("nasa_jpl_url"),
        orbital_data=parse_orbital_data(raw.get("orbital_data")),
    )


def normalize_feed(data: Dict[str, Any]) -> List[NearEarthObject]:
    """
    Flatten the date-keyed feed grouping into one list.

    Dates are visited in order, duplicate ids keep their first occurrence and
    objects without a positive finite velocity are dropped.
    """
    if not isinstance(data, dict):
        raise TransportFailure("NeoWs returned an unusable feed")
    grouped = data.get("near_earth_objects") or {}
    if not isinstance(grouped, dict):
        raise TransportFailure("NeoWs returned an unusable feed")
    results = []
    seen = set()

    for day in sorted(grouped):
        records = grouped[day] or []
        if not isinstance(records, list):
            raise TransportFailure(f"NeoWs returned an unusable feed for {day}")
        for raw in records:
            try:
                neo = parse_neo(raw)
            except (ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed feed record: {e}")
                continue
            if not (neo.rel_vel_kms > 0 and math.isfinite(neo.rel_vel_kms)):
                continue
            if neo.id in seen:
                continue
            seen.add(neo.id)
            results.append(neo)

    return results


class FeedClient:
    def __init__(self, governor: RequestGovernor, cache: ResultCache, ttl_ms: int = DEFAULT_FEED_TTL_MS):
        self.governor = governor
        self.cache = cache
        self.ttl_ms = ttl_ms

    async def fetch_feed(self, start_date: date, window_days: int = 1) -> List[NearEarthObject]:
        if window_days < 0 or window_days > MAX_FEED_WINDOW_DAYS:
            raise InvalidArgument(f"window_days must be between 0 and {MAX_FEED_WINDOW_DAYS}, got {window_days}")

        start = start_date.isoformat()
        end = (start_date + timedelta(days=window_days)).isoformat()
        key = feed_key(start, end)

        cached = await self.cache.get(key)
        if cached is not None:
            return [NearEarthObject.model_validate(item) for item in cached]

        data = await self.governor.guarded_fetch("feed", {"start_date": start, "end_date": end})
        neos = normalize_feed(data)
        logger.info(f"Fetched NeoWs feed {start}..{end}: {len(neos)} objects")

        await self.cache.put(key, [neo.model_dump(mode="json") for neo in neos], self.ttl_ms)
        return neos


class DetailClient:
    def __init__(self, governor: RequestGovernor, cache: ResultCache, ttl_ms: int = DEFAULT_DETAILS_TTL_MS):
        self.governor = governor
        self.cache = cache
        self.ttl_ms = ttl_ms

    async def fetch_details(self, neo_id: str) -> NearEarthObject:
        if not neo_id or not str(neo_id).strip():
            raise InvalidArgument("missing neo id")
        neo_id = str(neo_id).strip()
        key = details_key(neo_id)

        cached = await self.cache.get(key)
        if cached is not None:
            return NearEarthObject.model_validate(cached)

        data = await self.governor.guarded_fetch(f"neo/{quote(neo_id, safe='')}")
        try:
            neo = parse_neo(data)
        except (ValueError, AttributeError) as e:
            raise TransportFailure(f"NeoWs returned an unusable record for {neo_id}: {e}") from e

        await self.cache.put(key, neo.model_dump(mode="json"), self.ttl_ms)
        return neo
