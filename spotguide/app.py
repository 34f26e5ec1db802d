"""Main Spotguide application."""

import time
from pathlib import Path
from typing import Callable, Optional

from .audio import Audio
from .catalog import SpotCatalog
from .config import CONFIG
from .debug_gui import DebugServer, WebSocketPosition
from .geo import bearing_between, bearing_to_compass
from .gps import GPS, FixedPosition, GPSPlayback, GPSRecorder
from .logger import Logger
from .media import MediaLocator
from .models import Location, Outcome, Spot, StatusEvent, UnlockEvent
from .scheduler import UnlockScheduler
from .store import StateStore


class SpotGuide:
    """Main application.

    Owns the catalog (through the scheduler), the state store and the
    presentation side: announcements, media lookup and the debug GUI.
    """

    def __init__(self, feed_spots: Optional[list[Spot]] = None,
                 db_path: Optional[str] = None,
                 media_dir: Optional[str] = None,
                 log_path: Optional[str] = None,
                 debug_gui: bool = False,
                 logger: Optional[Logger] = None,
                 store: Optional[StateStore] = None,
                 media: Optional[MediaLocator] = None,
                 position_source=None,
                 announce: bool = True):
        self.debug_gui = debug_gui
        self.announce = announce

        self.logger = logger or Logger(log_path)
        self.audio = Audio(self.logger)

        self.store = store or StateStore(db_path or CONFIG["db_path"], logger=self.logger)
        self.media = media or MediaLocator(media_dir)
        self.position_source = position_source or GPS()

        restored, self.session = self.store.restore()
        if feed_spots:
            self.catalog = SpotCatalog(feed_spots, logger=self.logger)
            resumed = self.catalog.apply_overlay(restored)
            self.logger.log("Catalog loaded from feed", {"spots": len(self.catalog), "resumed_unlocked": resumed})
        else:
            self.catalog = SpotCatalog(restored, logger=self.logger)
            self.logger.log("Catalog restored from saved state", {"spots": len(self.catalog)})

        self.scheduler = UnlockScheduler(self.catalog, self.position_source,
                                         session=self.session, logger=self.logger)
        self.scheduler.subscribe(self.handle_event)

        self.debug_server: Optional[DebugServer] = None
        if debug_gui:
            self.start_debug_server()

        # Presentation state
        self.message = ""
        self.last_media_path: Optional[Path] = None
        self.media_not_found: list[int] = []
        self.on_media: Optional[Callable[[Path, UnlockEvent], None]] = None

        self.last_log_update = 0
        self.start_time = 0
        self._completed = False

    def start_debug_server(self):
        """Start the debug GUI and route logs and announcements to it"""
        if self.debug_server:
            return
        self.debug_server = DebugServer()
        self.debug_server.on_updates_toggled = self.set_updates_enabled
        self.debug_server.on_client_connected = self._send_spots_to_debug_server
        self.debug_server.start()
        self.logger.callback = self.debug_server.send_log
        self.audio.callback = self.debug_server.send_audio

    def set_position_source(self, source):
        """Set position source (GPS, FixedPosition, GPSRecorder, GPSPlayback, ...)"""
        self.position_source = source
        self.scheduler.set_position_source(source)

    def set_manual_mode(self, enabled: bool):
        """Manual mode: the position comes from map clicks instead of GPS"""
        self.session.fake_mode = enabled
        self.logger.log("Manual position mode " + ("on" if enabled else "off"))

    def build_position_source(self, location: Optional[Location] = None,
                              playback: Optional[str] = None, speed: float = 1.0):
        """Pick the position source for a run.

        A playback trace wins. Manual mode (saved, or the debug GUI) takes
        map clicks, starting at location if given. Otherwise a location is
        a fixed position, and without one the device GPS is used.
        """
        if playback:
            return GPSPlayback(playback, speed)
        if self.session.fake_mode or self.debug_gui:
            self.start_debug_server()
            source = WebSocketPosition(self.debug_server)
            source.last_location = location
            return source
        if location:
            return FixedPosition(location)
        return GPS(poll_interval=CONFIG["position_poll_interval"])

    def set_updates_enabled(self, enabled: bool):
        """Administrative switch, applied on the next tick"""
        self.session.updates_enabled = enabled
        self.logger.log("Position updates " + ("enabled" if enabled else "disabled"))

    def handle_event(self, event):
        if isinstance(event, UnlockEvent):
            self._handle_unlock(event)
        elif isinstance(event, StatusEvent):
            self._handle_status(event)

    def _handle_unlock(self, event: UnlockEvent):
        # The unlock stays committed even if the media file is missing
        path = self.media.resolve(event.media_reference)
        if self.debug_server:
            self.debug_server.send_unlock(event.to_dict())
        if path is None:
            self.message = f"Media not found: {event.media_reference}"
            self.media_not_found.append(event.spot_id)
            self.logger.warning("Media not found", {"spot_id": event.spot_id, "media": event.media_reference})
            self._speak(f"{event.spot_name}. Video not found")
            return

        self.message = f"Media found: {event.spot_name}"
        self.last_media_path = path
        self.logger.log("Playing media", {"spot_id": event.spot_id, "path": str(path)})
        self._speak(event.spot_name)
        if self.on_media:
            self.on_media(path, event)

    def _handle_status(self, event: StatusEvent):
        name = event.nearest_spot_name
        if event.outcome_kind is Outcome.ALREADY_UNLOCKED:
            self.message = f"Already unlocked, skipped: {name}"
        elif event.outcome_kind is Outcome.OUT_OF_ORDER:
            self.message = f"Earlier spots still locked, skipped: {name}"
        else:
            self.message = (f"Still too far (distance: {event.distance_meters:.2f} m, "
                            f"radius: {event.radius_meters:.2f} m)")
        if self.debug_server:
            self.debug_server.send_status(event.to_dict())

    def _speak(self, text: str):
        if self.announce:
            self.audio.speak(text, language=self.session.language)

    def _send_spots_to_debug_server(self):
        if not self.debug_server:
            return
        spots = []
        for spot in self.scheduler.snapshot():
            d = spot.to_record()
            d.update({"lat": spot.lat, "lon": spot.lon, "radius_m": spot.radius_m,
                      "name": spot.display_name(self.session.language)})
            spots.append(d)
        self.debug_server.send_spots(spots)

    def get_state(self) -> dict:
        """Get current state as dict for logging"""
        state = {
            "unlocked": self.catalog.unlocked_count(),
            "total": len(self.catalog),
            "updates_enabled": self.session.updates_enabled,
            "ticks": self.scheduler.tick_count,
            "dropped_ticks": self.scheduler.dropped_ticks,
            "gps_status": self.position_source.get_status() if hasattr(self.position_source, "get_status") else "unknown",
        }
        location = self.scheduler.last_position
        if location:
            state["location"] = {"lat": location.lat, "lon": location.lon, "accuracy": location.accuracy}
        status = self.scheduler.last_status
        if status:
            state["nearest"] = {"spot_id": status.nearest_spot_id,
                                "distance": round(status.distance_meters, 1),
                                "outcome": status.outcome_kind.value}
            spot = self.catalog.get(status.nearest_spot_id)
            if location and spot and spot.has_coordinates:
                bearing = bearing_between(location.lat, location.lon, spot.lat, spot.lon)
                state["nearest"]["direction"] = bearing_to_compass(bearing)
        return state

    def periodic_update(self):
        """Handle periodic status updates"""
        now = time.time()
        if now - self.last_log_update >= CONFIG["log_interval"]:
            state = self.get_state()
            self.logger.log("STATE", state)
            if self.debug_server:
                self.debug_server.send_state(state)
            self.last_log_update = now

    def is_complete(self) -> bool:
        return len(self.catalog) > 0 and self.catalog.unlocked_count() == len(self.catalog)

    def start(self, interval: Optional[float] = None):
        self.start_time = time.time()
        self._send_spots_to_debug_server()
        self.scheduler.start(interval)

    def persist(self):
        """Save catalog and session now"""
        self.store.persist(self.catalog, self.session)
        self.logger.log("State saved", {"unlocked": self.catalog.unlocked_count(), "total": len(self.catalog)})

    def on_background(self):
        self.persist()

    def on_shutdown(self):
        self.scheduler.stop()
        self.position_source.stop_updates()
        self.persist()

    def reset_progress(self):
        """Lock every spot again and save"""
        self.scheduler.stop()
        self.catalog.reset_progress()
        self.persist()
        self._completed = False

    def is_playback_finished(self) -> bool:
        if isinstance(self.position_source, GPSPlayback):
            return self.position_source.is_finished()
        return False

    def run(self, interval: Optional[float] = None, poll: float = 1.0):
        """Run until interrupted, playback ends or every spot is unlocked"""
        print("\n=== Spotguide ===")
        print(f"Spots: {len(self.catalog)} ({self.catalog.unlocked_count()} unlocked)")
        if isinstance(self.position_source, GPSPlayback):
            print(f"Playback mode: {self.position_source.speed}x speed")
        print("Press Ctrl+C to stop")
        print()

        if len(self.catalog) == 0:
            self.logger.error("No spots to visit")
            self.close()
            return

        self.start(interval)
        try:
            while True:
                self.periodic_update()
                if self.is_complete() and not self._completed:
                    self._completed = True
                    self.logger.log("All spots unlocked")
                    self._speak("All spots unlocked")
                    break
                if self.is_playback_finished():
                    print("\nPlayback finished")
                    self.logger.log("Playback finished")
                    break
                time.sleep(poll)
        except KeyboardInterrupt:
            print("\nTour interrupted")
            self.logger.log("Tour interrupted by user")
        finally:
            self.on_shutdown()

            if isinstance(self.position_source, GPSRecorder):
                self.position_source.save()

            summary = {
                "unlocked": self.catalog.unlocked_count(),
                "total": len(self.catalog),
                "ticks": self.scheduler.tick_count,
                "duration": time.time() - self.start_time if self.start_time else 0,
            }
            self.logger.log("Tour summary", summary)

            print("\nTour summary:")
            print(f"  Unlocked: {summary['unlocked']}/{summary['total']}")
            print(f"  Duration: {summary['duration']/60:.1f} minutes")

            self.close()

    def close(self):
        if self.debug_server:
            self.debug_server.stop()
        self.store.close()
        self.logger.close()
