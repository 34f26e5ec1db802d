"""Periodic unlock evaluation."""

import threading
from typing import Callable, Optional, Union

from .catalog import SpotCatalog
from .config import CONFIG
from .gate import decide
from .logger import Logger
from .models import Location, Outcome, SessionState, Spot, StatusEvent, UnlockEvent, valid_coordinates
from .proximity import evaluate

IDLE = "idle"
RUNNING = "running"

Event = Union[UnlockEvent, StatusEvent]


class UnlockScheduler:
    """Runs unlock ticks on a fixed cadence.

    The catalog is only mutated inside tick(), and at most one tick runs at
    a time: a tick that fires while another is still in flight is dropped.
    start() always stops the previous schedule first so there is never more
    than one timer thread.
    """

    def __init__(self, catalog: SpotCatalog, position_source,
                 session: Optional[SessionState] = None,
                 logger: Optional[Logger] = None):
        self.catalog = catalog
        self.position_source = position_source
        self.session = session or SessionState()
        self.logger = logger or Logger()

        self.state = IDLE
        self.interval: float = CONFIG["evaluate_interval"]
        self.tick_count = 0
        self.dropped_ticks = 0
        self.unlock_count = 0
        self.last_status: Optional[StatusEvent] = None
        self.last_position: Optional[Location] = None

        self._subscribers: list[Callable[[Event], None]] = []
        self._cycle_lock = threading.Lock()
        self._control_lock = threading.RLock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._updates_active: Optional[bool] = None

    def subscribe(self, callback: Callable[[Event], None]):
        """Register a listener for UnlockEvent and StatusEvent"""
        self._subscribers.append(callback)

    def _publish(self, event: Event):
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                self.logger.error("Event subscriber failed", {"event": type(event).__name__, "error": str(e)})

    def start(self, interval_seconds: Optional[float] = None):
        """Start (or restart) periodic evaluation"""
        with self._control_lock:
            self.stop()
            if interval_seconds is not None:
                if interval_seconds <= 0:
                    raise ValueError("interval_seconds must be positive")
                self.interval = interval_seconds
            self._sync_updates()
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(target=self._run, args=(stop_event, self.interval),
                                            name="unlock-scheduler", daemon=True)
            self.state = RUNNING
            self._thread.start()
            self.logger.log("Scheduler started", {"interval": self.interval})

    def stop(self):
        """Stop periodic evaluation. Safe to call when already stopped.

        Returns once the timer thread has exited, so an in-flight tick has
        finished and no further tick will fire.
        """
        with self._control_lock:
            if self.state == IDLE:
                return
            self._stop_event.set()
            thread = self._thread
            if thread is not None and thread is not threading.current_thread():
                thread.join()
            self._thread = None
            self._stop_event = None
            self.state = IDLE
            self.logger.log("Scheduler stopped", {"ticks": self.tick_count})

    @property
    def running(self) -> bool:
        return self.state == RUNNING

    def _run(self, stop_event: threading.Event, interval: float):
        while not stop_event.wait(interval):
            self.tick()

    def set_position_source(self, source):
        """Swap the position source; updates are (re)started on the next tick"""
        with self._cycle_lock:
            if self._updates_active:
                self.position_source.stop_updates()
            self.position_source = source
            self._updates_active = None
            self.last_position = None

    def _sync_updates(self):
        """Start/stop the position source when the enabled flag changes"""
        enabled = self.session.updates_enabled
        if enabled == self._updates_active:
            return
        if enabled:
            self.position_source.start_updates()
            self.logger.log("Position updates started")
        else:
            self.position_source.stop_updates()
            self.logger.log("Position updates stopped")
        self._updates_active = enabled

    def tick(self) -> Optional[Outcome]:
        """Run one evaluation cycle.

        Returns the gate outcome, or None when the tick was dropped, updates
        are disabled, no position is known or no spot is a candidate.
        """
        if not self._cycle_lock.acquire(blocking=False):
            self.dropped_ticks += 1
            self.logger.debug("Tick dropped, previous evaluation still running")
            return None
        try:
            self.tick_count += 1
            self._sync_updates()
            if not self.session.updates_enabled:
                return None

            position = self.position_source.latest_position()
            if position is None:
                self.logger.debug("No position yet, skipping evaluation")
                return None
            if not valid_coordinates(position.lat, position.lon):
                self.logger.debug("Unusable position, skipping evaluation",
                                  {"lat": repr(position.lat), "lon": repr(position.lon)})
                return None
            self.last_position = position

            nearest = evaluate(position, self.catalog)
            if nearest is None:
                return None

            outcome = decide(nearest, self.catalog)
            spot = nearest.spot
            if outcome is Outcome.ALLOW:
                self._unlock(spot, nearest.distance_meters)
            else:
                status = StatusEvent(
                    nearest_spot_id=spot.id,
                    distance_meters=nearest.distance_meters,
                    outcome_kind=outcome,
                    nearest_spot_name=spot.display_name(self.session.language),
                    radius_meters=spot.radius_m,
                )
                self.last_status = status
                self.logger.debug("Evaluated nearest spot", status.to_dict())
                self._publish(status)
            return outcome
        finally:
            self._cycle_lock.release()

    def _unlock(self, spot: Spot, distance: float):
        self.catalog.mark_unlocked(spot.id)
        self.unlock_count += 1
        event = UnlockEvent(
            spot_id=spot.id,
            media_reference=spot.media_reference,
            spot_name=spot.display_name(self.session.language),
        )
        self.logger.log("Spot unlocked", {"spot_id": spot.id, "distance": round(distance, 1),
                                          "media": spot.media_reference})
        self._publish(event)

    def snapshot(self) -> list[Spot]:
        """Read-only copy of the catalog for presentation"""
        return self.catalog.snapshot()
