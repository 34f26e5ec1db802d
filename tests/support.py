"""Shared fixtures for the spotguide tests."""

from spotguide.geo import offset_location
from spotguide.logger import Logger
from spotguide.models import Location, Spot

# Miyajima ferry pier
BASE_LAT = 34.2959
BASE_LON = 132.3197


class RecordingLogger(Logger):
    """Logger that keeps (level, message, data) instead of printing"""

    def __init__(self):
        super().__init__(echo=False, min_level="DEBUG")
        self.records: list[tuple[str, str, dict]] = []

    def log(self, message, data=None, level="INFO"):
        self.records.append((level, message, data))

    def messages(self, level=None):
        return [m for lvl, m, _ in self.records if level is None or lvl == level]


def point(north_m: float = 0, east_m: float = 0) -> tuple[float, float]:
    return offset_location(BASE_LAT, BASE_LON, north_m, east_m)


def location_at(north_m: float = 0, east_m: float = 0) -> Location:
    lat, lon = point(north_m, east_m)
    return Location(lat=lat, lon=lon, accuracy=5)


def make_spot(spot_id: int, north_m: float = 0, east_m: float = 0, radius="100",
              unlocked: bool = False, name=None) -> Spot:
    lat, lon = point(north_m, east_m)
    name = name or f"spot{spot_id}.mp4"
    return Spot(
        id=spot_id,
        latitude=f"{lat:.8f}",
        longitude=f"{lon:.8f}",
        radius=radius,
        name_primary=name,
        name_secondary=f"Spot {spot_id}",
        description_primary=f"説明 {spot_id}",
        description_secondary=f"Description {spot_id}",
        unlocked=unlocked,
    )


class CountingSource:
    """Position source that counts reads and update switches"""

    def __init__(self, location=None):
        self.location = location
        self.reads = 0
        self.starts = 0
        self.stops = 0

    def latest_position(self):
        self.reads += 1
        return self.location

    def start_updates(self):
        self.starts += 1

    def stop_updates(self):
        self.stops += 1

    def get_status(self):
        return "counting"
