"""Nearest-spot selection."""

from typing import Iterable, Optional

from .geo import haversine_distance
from .models import Location, NearestResult, Spot, valid_coordinates


def evaluate(position: Optional[Location], catalog: Iterable[Spot]) -> Optional[NearestResult]:
    """Find the spot closest to position.

    Spots without parsable coordinates are never nearest. Ties go to the
    smallest id regardless of the order spots are given in. Returns None
    when there is no usable position (absent, non-finite or off the globe)
    or no candidate spot.
    """
    if position is None or not valid_coordinates(position.lat, position.lon):
        return None

    best: Optional[NearestResult] = None
    for spot in catalog:
        if not spot.has_coordinates:
            continue
        distance = haversine_distance(position.lat, position.lon, spot.lat, spot.lon)
        if (best is None or distance < best.distance_meters or
                (distance == best.distance_meters and spot.id < best.spot.id)):
            best = NearestResult(spot=spot, distance_meters=distance)
    return best
