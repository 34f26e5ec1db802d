"""Data classes for Spotguide."""

import math
import time
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Optional

from .config import CONFIG

# Persisted/feed record layout. media_reference is optional and falls back
# to name_primary.
RECORD_FIELDS = (
    "latitude",
    "longitude",
    "id",
    "name_primary",
    "name_secondary",
    "radius",
    "description_primary",
    "description_secondary",
    "unlocked",
)


def parse_float(value) -> Optional[float]:
    """Parse a feed number (usually a string), None if it isn't a finite float"""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def parse_id(value) -> int:
    """Parse a spot id: an int, or a float/string holding a whole number.

    Raises ValueError for anything else (2.9 is not spot 2).
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid id: {value!r}")
    if isinstance(value, int):
        return value
    number = parse_float(value) if isinstance(value, (float, str)) else None
    if number is None or not number.is_integer():
        raise ValueError(f"invalid id: {value!r}")
    return int(number)


def parse_flag(value) -> bool:
    """Parse an unlock flag: a bool or 0/1. Raises ValueError otherwise"""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ValueError(f"invalid unlocked flag: {value!r}")


def valid_coordinates(lat, lon) -> bool:
    """True if lat/lon are finite numbers on the globe"""
    if lat is None or lon is None:
        return False
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


@dataclass
class Location:
    lat: float
    lon: float
    accuracy: Optional[float] = None
    timestamp: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Location":
        return cls(**d)


@dataclass
class Spot:
    """A geofenced point of interest bound to a media file.

    Geographic fields keep the feed's string form; the parsed values are
    computed once at construction. Only `unlocked` changes afterwards.
    """
    id: int
    latitude: str
    longitude: str
    radius: str = ""
    name_primary: str = ""
    name_secondary: str = ""
    description_primary: str = ""
    description_secondary: str = ""
    media_reference: str = ""
    unlocked: bool = False
    lat: Optional[float] = field(init=False, repr=False, compare=False)
    lon: Optional[float] = field(init=False, repr=False, compare=False)
    radius_m: float = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        self.lat = parse_float(self.latitude)
        self.lon = parse_float(self.longitude)
        if self.lat is not None and not -90 <= self.lat <= 90:
            self.lat = None
        if self.lon is not None and not -180 <= self.lon <= 180:
            self.lon = None
        radius = parse_float(self.radius)
        self.radius_m = radius if radius is not None and radius >= 0 else float(CONFIG["default_radius"])
        if not self.media_reference:
            self.media_reference = self.name_primary

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    def display_name(self, language: Optional[str] = None) -> str:
        """Name in the selected language ("ja" is the primary locale)"""
        language = language or CONFIG["default_language"]
        if language == "ja" or not self.name_secondary:
            return self.name_primary
        return self.name_secondary

    def to_record(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "id": self.id,
            "name_primary": self.name_primary,
            "name_secondary": self.name_secondary,
            "radius": self.radius,
            "description_primary": self.description_primary,
            "description_secondary": self.description_secondary,
            "unlocked": self.unlocked,
            "media_reference": self.media_reference,
        }

    @classmethod
    def from_record(cls, record: dict, strict: bool = True) -> "Spot":
        """Build a Spot from a persisted or feed record.

        strict: every field of RECORD_FIELDS must be present and non-null
        (persisted records). Feed records only need an id.

        Raises ValueError if the record can't describe a spot.
        """
        if not isinstance(record, dict):
            raise ValueError(f"record is not a mapping: {type(record).__name__}")
        required = RECORD_FIELDS if strict else ("id",)
        missing = [k for k in required if record.get(k) is None]
        if missing:
            raise ValueError(f"missing fields: {', '.join(missing)}")

        spot_id = parse_id(record["id"])

        def text(key: str) -> str:
            value = record.get(key)
            return "" if value is None else str(value)

        return cls(
            id=spot_id,
            latitude=text("latitude"),
            longitude=text("longitude"),
            radius=text("radius"),
            name_primary=text("name_primary"),
            name_secondary=text("name_secondary"),
            description_primary=text("description_primary"),
            description_secondary=text("description_secondary"),
            media_reference=text("media_reference"),
            unlocked=parse_flag(False if record.get("unlocked") is None else record["unlocked"]),
        )


@dataclass
class NearestResult:
    """The closest spot to the current position"""
    spot: Spot
    distance_meters: float


class Outcome(Enum):
    ALREADY_UNLOCKED = "already_unlocked"
    TOO_FAR = "too_far"
    OUT_OF_ORDER = "out_of_order"
    ALLOW = "allow"


@dataclass
class UnlockEvent:
    spot_id: int
    media_reference: str
    spot_name: str = ""
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class StatusEvent:
    nearest_spot_id: int
    distance_meters: float
    outcome_kind: Outcome
    nearest_spot_name: str = ""
    radius_meters: Optional[float] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["outcome_kind"] = self.outcome_kind.value
        return d


@dataclass
class SessionState:
    """Session scalars persisted next to the catalog"""
    updates_enabled: bool = True
    fake_mode: bool = False
    language: str = CONFIG["default_language"]

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "SessionState":
        known = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        return cls(**known)
