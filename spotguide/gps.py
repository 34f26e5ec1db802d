"""Position sources: device GPS, fixed positions, recording and playback.

Every source offers the same duck-typed interface:

    latest_position() -> Optional[Location]   # cached, never blocks
    start_updates() / stop_updates()
    get_status() -> str
"""

import json
import subprocess
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from .config import CONFIG
from .models import Location


class GPS:
    """GPS access via Termux API, refreshed in a background thread"""

    def __init__(self, poll_interval: Optional[float] = None, timeout: Optional[int] = None):
        self.poll_interval = poll_interval or CONFIG["position_poll_interval"]
        self.timeout = timeout or CONFIG["position_timeout"]
        self.last_location: Optional[Location] = None
        self.consecutive_failures = 0
        self._lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    def get_location(self, timeout: Optional[int] = None) -> Optional[Location]:
        """Get current location using termux-location"""
        try:
            result = subprocess.run(
                ["termux-location", "-p", "gps", "-r", "once"],
                capture_output=True,
                text=True,
                timeout=timeout or self.timeout
            )

            if result.returncode != 0 or not result.stdout or not result.stdout.strip():
                self.consecutive_failures += 1
                return None

            data = json.loads(result.stdout)
            location = Location(
                lat=data["latitude"],
                lon=data["longitude"],
                accuracy=data.get("accuracy"),
                timestamp=time.time()
            )
            with self._lock:
                self.last_location = location
            self.consecutive_failures = 0
            return location

        except subprocess.TimeoutExpired:
            self.consecutive_failures += 1
            return None
        except (json.JSONDecodeError, KeyError):
            self.consecutive_failures += 1
            return None
        except FileNotFoundError:
            self.consecutive_failures += 1
            return None

    def latest_position(self) -> Optional[Location]:
        with self._lock:
            return self.last_location

    def start_updates(self):
        """Start refreshing the location every poll_interval seconds"""
        if self._thread and self._thread.is_alive():
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._poll, args=(self._stop_event,), daemon=True)
        self._thread.start()

    def stop_updates(self):
        if self._stop_event:
            self._stop_event.set()
        self._thread = None

    def _poll(self, stop_event: threading.Event):
        while not stop_event.is_set():
            self.get_location()
            stop_event.wait(self.poll_interval)

    def get_status(self) -> str:
        """Get GPS status string"""
        if self.consecutive_failures == 0:
            acc = f", accuracy {self.last_location.accuracy:.0f}m" if self.last_location and self.last_location.accuracy else ""
            return f"GPS OK{acc}"
        else:
            return f"GPS: {self.consecutive_failures} consecutive failures"


class FixedPosition:
    """Position source that reports a position set from outside (tests, --lat/--lon)"""

    def __init__(self, location: Optional[Location] = None):
        self.last_location = location
        self.updating = False
        self._lock = threading.Lock()

    def set_position(self, lat: float, lon: float, accuracy: Optional[float] = 0):
        with self._lock:
            self.last_location = Location(lat=lat, lon=lon, accuracy=accuracy, timestamp=time.time())

    def clear(self):
        with self._lock:
            self.last_location = None

    def latest_position(self) -> Optional[Location]:
        with self._lock:
            return self.last_location

    def start_updates(self):
        self.updating = True

    def stop_updates(self):
        self.updating = False

    def get_status(self) -> str:
        if self.last_location is None:
            return "Fixed position: not set"
        return f"Fixed position {self.last_location.lat:.5f}, {self.last_location.lon:.5f}"


class GPSRecorder:
    """Records every position read to a trace file"""

    def __init__(self, source, record_path: str):
        self.source = source
        self.record_path = record_path
        self.trace: list[dict] = []
        self.start_time = time.time()

    def latest_position(self) -> Optional[Location]:
        """Get location and record it"""
        location = self.source.latest_position()

        # Record missing readings too
        entry = {
            "elapsed": time.time() - self.start_time,
            "timestamp": time.time(),
            "location": location.to_dict() if location else None,
            "status": self.source.get_status()
        }
        self.trace.append(entry)

        return location

    def start_updates(self):
        self.source.start_updates()

    def stop_updates(self):
        self.source.stop_updates()

    def get_status(self) -> str:
        return self.source.get_status()

    def save(self):
        """Save trace to file"""
        with open(self.record_path, "w") as f:
            json.dump({
                "recorded_at": datetime.now().isoformat(),
                "trace": self.trace
            }, f, indent=2)
        print(f"GPS trace saved to {self.record_path} ({len(self.trace)} entries)")


class GPSPlayback:
    """Plays back a recorded trace in (scaled) real time.

    The reported position is the latest trace entry whose elapsed time has
    passed since start_updates(). Entries without a location report no
    position.
    """

    def __init__(self, playback_path: str, speed: float = 1.0,
                 clock: Callable[[], float] = time.monotonic):
        self.playback_path = playback_path
        self.speed = speed
        self.clock = clock
        self.started_at: Optional[float] = None
        self.index = -1
        self.last_location: Optional[Location] = None
        self.consecutive_failures = 0

        with open(playback_path) as f:
            data = json.load(f)
        self.trace: list[dict] = sorted(data["trace"], key=lambda e: e.get("elapsed", 0))
        print(f"Loaded GPS trace from {playback_path} ({len(self.trace)} entries)")

    def start_updates(self):
        if self.started_at is None:
            self.started_at = self.clock()

    def stop_updates(self):
        pass

    def _playback_elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        return (self.clock() - self.started_at) * self.speed

    def latest_position(self) -> Optional[Location]:
        """Get the trace entry current at this playback time"""
        if self.started_at is None or not self.trace:
            return None

        elapsed = self._playback_elapsed()
        index = self.index
        while index + 1 < len(self.trace) and self.trace[index + 1].get("elapsed", 0) <= elapsed:
            index += 1
        self.index = index
        if index < 0:
            return None

        entry = self.trace[index]
        if entry.get("location"):
            self.last_location = Location.from_dict(entry["location"])
            self.consecutive_failures = 0
            return self.last_location
        self.consecutive_failures += 1
        return None

    def is_finished(self) -> bool:
        """Check if playback is complete"""
        if self.started_at is None or not self.trace:
            return self.started_at is not None
        return self._playback_elapsed() > self.trace[-1].get("elapsed", 0)

    def get_status(self) -> str:
        progress = f"{max(self.index + 1, 0)}/{len(self.trace)}"
        if self.consecutive_failures == 0:
            return f"Playback OK ({progress})"
        else:
            return f"Playback: {self.consecutive_failures} failures ({progress})"
