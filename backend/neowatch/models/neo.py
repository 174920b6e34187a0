from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, timezone
import enum
import math
import re

# NeoWs close_approach_date_full looks like "2024-Jan-05 13:45". Month names
# are always English, so they are matched here rather than through %b.
_MONTHS = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"), start=1
    )
}
_NEOWS_DATE = re.compile(
    r"^(\d{4})-([A-Za-z]{3})-(\d{1,2})"
    r"(?:\s+(\d{1,2}):(\d{2})(?::(\d{2})(?:\.(\d{1,6}))?)?)?$"
)


def _parse_neows_date(text: str) -> Optional[datetime]:
    match = _NEOWS_DATE.match(text)
    if not match:
        return None
    year, month_name, day, hour, minute, second, fraction = match.groups()
    month = _MONTHS.get(month_name.lower())
    if month is None:
        return None
    try:
        return datetime(
            int(year),
            month,
            int(day),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
            int((fraction or "0").ljust(6, "0")),
        )
    except ValueError:
        return None


def parse_timestamp_ms(text: Optional[str]) -> float:
    """
    Parse a NeoWs timestamp or date string to epoch milliseconds.

    Accepts the NeoWs "YYYY-Mon-DD HH:MM" layout and ISO 8601 (including
    date-only strings). Naive values are taken as UTC. Returns NaN when
    nothing parses.
    """
    if not text or not isinstance(text, str):
        return math.nan
    text = text.strip()

    parsed = _parse_neows_date(text)
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return math.nan

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp() * 1000.0


class ApproachEvent(BaseModel):
    epoch_ms: Optional[float] = None
    date_full: Optional[str] = None
    date: Optional[str] = None
    relative_velocity_kms: Optional[float] = None
    miss_distance_km: Optional[float] = None
    orbiting_body: Optional[str] = None

    class Config:
        frozen = True

    def epoch(self) -> float:
        """Resolved approach time: explicit epoch, then full timestamp, then date. NaN if none."""
        if self.epoch_ms is not None and math.isfinite(self.epoch_ms):
            return float(self.epoch_ms)
        for candidate in (self.date_full, self.date):
            value = parse_timestamp_ms(candidate)
            if math.isfinite(value):
                return value
        return math.nan


class OrbitalData(BaseModel):
    orbital_period_days: Optional[float] = None
    orbit_class: Optional[str] = None
    first_observation_date: Optional[str] = None
    last_observation_date: Optional[str] = None


class NearEarthObject(BaseModel):
    id: str
    name: str
    diameter_m: float
    rel_vel_kms: float
    close_approach_data: List[ApproachEvent] = Field(default_factory=list)
    absolute_magnitude_h: Optional[float] = None
    is_potentially_hazardous: bool = False
    nasa_jpl_url: Optional[str] = None
    orbital_data: Optional[OrbitalData] = None

    # Set by the approach resolver
    details: Optional["NearEarthObject"] = None
    next_epoch: Optional[int] = None
    estimated: bool = False

    def known_epochs(self) -> List[float]:
        epochs = (event.epoch() for event in self.close_approach_data)
        return [e for e in epochs if math.isfinite(e)]

    def future_epochs(self, now_ms: float) -> List[float]:
        return [e for e in self.known_epochs() if e > now_ms]


NearEarthObject.model_rebuild()


class EnrichedAsteroid(NearEarthObject):
    energy_mt: float
    radius_km: float


class UpcomingResult(BaseModel):
    items: List[EnrichedAsteroid] = Field(default_factory=list)
    empty: bool = True


class BoardStatus(str, enum.Enum):
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


class BoardSnapshot(BaseModel):
    status: BoardStatus
    items: List[EnrichedAsteroid] = Field(default_factory=list)
    error: Optional[str] = None
    updated_at: Optional[int] = None
