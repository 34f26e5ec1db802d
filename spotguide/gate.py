"""Unlock decision for the nearest spot."""

from .catalog import SpotCatalog
from .models import NearestResult, Outcome


def decide(nearest: NearestResult, catalog: SpotCatalog) -> Outcome:
    """Decide whether the nearest spot unlocks now.

    Checked in order: already unlocked, outside radius (a distance equal to
    the radius counts as inside), lower ids still locked. The first spot of
    the catalog has no prerequisite.
    """
    spot = nearest.spot
    if spot.unlocked:
        return Outcome.ALREADY_UNLOCKED
    # NaN distances never count as inside
    if not nearest.distance_meters <= spot.radius_m:
        return Outcome.TOO_FAR
    if spot.id != catalog.minimum_id and not catalog.prerequisites_unlocked(spot.id):
        return Outcome.OUT_OF_ORDER
    return Outcome.ALLOW
