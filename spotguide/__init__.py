"""Spotguide - location-gated video tour guide."""

from .config import CONFIG
from .models import (
    Location,
    Spot,
    NearestResult,
    Outcome,
    UnlockEvent,
    StatusEvent,
    SessionState,
)
from .logger import Logger
from .geo import haversine_distance, bearing_between, bearing_to_compass, retry_with_backoff
from .catalog import SpotCatalog, DuplicateSpotError
from .proximity import evaluate
from .gate import decide
from .scheduler import UnlockScheduler
from .store import StateStore
from .feed import load_feed, parse_feed
from .media import MediaLocator
from .gps import GPS, FixedPosition, GPSRecorder, GPSPlayback
from .audio import Audio
from .debug_gui import DebugServer, WebSocketPosition
from .app import SpotGuide

__all__ = [
    "CONFIG",
    "Location",
    "Spot",
    "NearestResult",
    "Outcome",
    "UnlockEvent",
    "StatusEvent",
    "SessionState",
    "Logger",
    "haversine_distance",
    "bearing_between",
    "bearing_to_compass",
    "retry_with_backoff",
    "SpotCatalog",
    "DuplicateSpotError",
    "evaluate",
    "decide",
    "UnlockScheduler",
    "StateStore",
    "load_feed",
    "parse_feed",
    "MediaLocator",
    "GPS",
    "FixedPosition",
    "GPSRecorder",
    "GPSPlayback",
    "Audio",
    "DebugServer",
    "WebSocketPosition",
    "SpotGuide",
]
