"""Ordered spot catalog with unlock state."""

import copy
import threading
from typing import Iterable, Iterator, Optional

from .logger import Logger
from .models import Spot


class DuplicateSpotError(ValueError):
    """Raised when a catalog is built from spots sharing an id"""


class SpotCatalog:
    """Spots ordered by ascending id.

    The unlock flag is the only mutable state. It is written through
    `mark_unlocked`, which the scheduler calls from its serialized tick;
    `lock` is shared with snapshotting so readers never see a half-applied
    mutation.
    """

    def __init__(self, spots: Iterable[Spot], logger: Optional[Logger] = None):
        self.logger = logger or Logger()
        self.lock = threading.RLock()

        by_id: dict[int, Spot] = {}
        duplicates = set()
        for spot in spots:
            if spot.id in by_id:
                duplicates.add(spot.id)
            by_id[spot.id] = spot
        if duplicates:
            raise DuplicateSpotError(f"Duplicate spot ids: {sorted(duplicates)}")

        self._spots: list[Spot] = [by_id[k] for k in sorted(by_id)]
        self._by_id = by_id

        malformed = [s.id for s in self._spots if not s.has_coordinates]
        if malformed:
            self.logger.warning("Spots with unparsable coordinates excluded from proximity checks",
                                {"spot_ids": malformed})

    def __len__(self) -> int:
        return len(self._spots)

    def __iter__(self) -> Iterator[Spot]:
        return iter(self._spots)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SpotCatalog):
            return NotImplemented
        return self._spots == other._spots

    @property
    def spots(self) -> list[Spot]:
        return list(self._spots)

    @property
    def minimum_id(self) -> Optional[int]:
        return self._spots[0].id if self._spots else None

    def get(self, spot_id: int) -> Optional[Spot]:
        return self._by_id.get(spot_id)

    def prerequisites_unlocked(self, spot_id: int) -> bool:
        """True if every spot with a smaller id is unlocked"""
        for spot in self._spots:
            if spot.id >= spot_id:
                break
            if not spot.unlocked:
                return False
        return True

    def mark_unlocked(self, spot_id: int) -> Spot:
        with self.lock:
            spot = self._by_id[spot_id]
            spot.unlocked = True
            return spot

    def reset_progress(self):
        with self.lock:
            for spot in self._spots:
                spot.unlocked = False

    def unlocked_count(self) -> int:
        return sum(1 for s in self._spots if s.unlocked)

    def snapshot(self) -> list[Spot]:
        """Point-in-time deep copy of the spots"""
        with self.lock:
            return copy.deepcopy(self._spots)

    def apply_overlay(self, restored: Iterable[Spot]) -> int:
        """Copy unlock flags from restored spots onto matching ids.

        Returns the number of spots whose flag was restored as unlocked.
        """
        count = 0
        with self.lock:
            for saved in restored:
                spot = self._by_id.get(saved.id)
                if spot is None:
                    continue
                spot.unlocked = saved.unlocked
                if saved.unlocked:
                    count += 1
        return count
