"""
Shared fixtures: a controllable clock, an in-process durable store and a
NeoWs stand-in mounted on httpx.MockTransport.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest

from neowatch.core.config import Settings
from neowatch.core.context import build_context
from neowatch.services.store import MemoryStore

DAY_MS = 24 * 60 * 60 * 1000
T0 = int(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc).timestamp() * 1000)


class FakeClock:
    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


def _date_strings(epoch_ms: int):
    dt = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%d"), dt.strftime("%Y-%b-%d %H:%M")


def raw_approach(epoch_ms: Optional[int] = None, velocity: Optional[str] = "20.0", **overrides) -> Dict[str, Any]:
    event: Dict[str, Any] = {
        "relative_velocity": {"kilometers_per_second": velocity},
        "miss_distance": {"kilometers": "7000000.0"},
        "orbiting_body": "Earth",
    }
    if epoch_ms is not None:
        day, full = _date_strings(epoch_ms)
        event.update(
            close_approach_date=day,
            close_approach_date_full=full,
            epoch_date_close_approach=epoch_ms,
        )
    event.update(overrides)
    return event


def raw_neo(
    neo_id: str,
    approaches: Optional[List[Dict[str, Any]]] = None,
    d_min: float = 100.0,
    d_max: float = 200.0,
    orbital_period: Optional[str] = None,
    name: Optional[str] = None,
) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": neo_id,
        "neo_reference_id": neo_id,
        "name": name or f"({neo_id})",
        "nasa_jpl_url": f"https://ssd.jpl.nasa.gov/tools/sbdb_lookup.html#/?sstr={neo_id}",
        "absolute_magnitude_h": 22.1,
        "estimated_diameter": {
            "meters": {"estimated_diameter_min": d_min, "estimated_diameter_max": d_max},
        },
        "is_potentially_hazardous_asteroid": False,
        "close_approach_data": approaches if approaches is not None else [],
    }
    if orbital_period is not None:
        record["orbital_data"] = {
            "orbital_period": orbital_period,
            "orbit_class": {"orbit_class_type": "APO"},
        }
    return record


class NeoWsStub:
    """Answers /feed and /neo/{id} from dicts and records every call."""

    def __init__(self):
        self.feed: Dict[str, List[Dict[str, Any]]] = {}
        self.details: Dict[str, Dict[str, Any]] = {}
        self.status: Dict[str, int] = {}
        self.payloads: Dict[str, Any] = {}
        self.delays: Dict[str, int] = {}
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0

    def add_feed(self, day: str, *records: Dict[str, Any]):
        self.feed.setdefault(day, []).extend(records)

    def feed_calls(self) -> List[str]:
        return [c for c in self.calls if c == "feed"]

    def detail_calls(self) -> List[str]:
        return [c for c in self.calls if c.startswith("neo/")]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        route = request.url.path.split("/v1/", 1)[1]
        self.calls.append(route)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            # the answer is fixed when the request arrives, latency comes after
            response = self._respond(route)
            for _ in range(self.delays.get(route, 1)):
                await asyncio.sleep(0)
            return response
        finally:
            self.active -= 1

    def _respond(self, route: str) -> httpx.Response:
        if route in self.status:
            return httpx.Response(self.status[route], json={"error": "stubbed"})
        if route in self.payloads:
            return httpx.Response(200, json=self.payloads[route])
        if route == "feed":
            count = sum(len(v) for v in self.feed.values())
            return httpx.Response(200, json={"element_count": count, "near_earth_objects": self.feed})
        neo_id = route.split("/", 1)[1]
        if neo_id in self.details:
            return httpx.Response(200, json=self.details[neo_id])
        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def neows():
    return NeoWsStub()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def settings():
    return Settings(CACHE_BACKEND="memory", NASA_API_KEY="TEST_KEY", _env_file=None)


@pytest.fixture
def http_client(neows):
    return httpx.AsyncClient(transport=httpx.MockTransport(neows.handler))


@pytest.fixture
def ctx(settings, store, http_client, clock):
    return build_context(settings, store=store, http_client=http_client, clock=clock)
