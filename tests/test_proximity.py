import unittest

from spotguide.catalog import SpotCatalog
from spotguide.geo import haversine_distance
from spotguide.models import Location, Spot
from spotguide.proximity import evaluate

from tests.support import RecordingLogger, location_at, make_spot


class TestHaversine(unittest.TestCase):
    def test_zero_distance(self) -> None:
        self.assertEqual(haversine_distance(34.0, 132.0, 34.0, 132.0), 0.0)

    def test_one_degree_latitude(self) -> None:
        d = haversine_distance(34.0, 132.0, 35.0, 132.0)
        self.assertAlmostEqual(d, 111195, delta=10)


class TestEvaluate(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = RecordingLogger()

    def test_no_position(self) -> None:
        catalog = SpotCatalog([make_spot(1)], logger=self.logger)
        self.assertIsNone(evaluate(None, catalog))

    def test_empty_catalog(self) -> None:
        self.assertIsNone(evaluate(location_at(), SpotCatalog([], logger=self.logger)))

    def test_unusable_position(self) -> None:
        catalog = SpotCatalog([make_spot(1, north_m=5000), make_spot(2)], logger=self.logger)
        nan = float("nan")
        for lat, lon in ((nan, nan), (nan, 132.0), (34.0, float("inf")), (91.0, 132.0), (34.0, -181.0)):
            with self.subTest(lat=lat, lon=lon):
                self.assertIsNone(evaluate(Location(lat=lat, lon=lon), catalog))

    def test_picks_closest(self) -> None:
        catalog = SpotCatalog([
            make_spot(1, north_m=500),
            make_spot(2, north_m=0),
            make_spot(3, east_m=-300),
        ], logger=self.logger)
        result = evaluate(location_at(north_m=50), catalog)
        self.assertEqual(result.spot.id, 2)
        self.assertAlmostEqual(result.distance_meters, 50, delta=0.5)

    def test_tie_goes_to_smallest_id(self) -> None:
        a = make_spot(7, north_m=100)
        b = make_spot(3, north_m=100)
        position = location_at()
        # Same coordinates, so the distances are exactly equal
        for spots in ([a, b], [b, a]):
            self.assertEqual(evaluate(position, spots).spot.id, 3)
            self.assertEqual(evaluate(position, SpotCatalog(spots, logger=self.logger)).spot.id, 3)

    def test_unparsable_coordinates_never_nearest(self) -> None:
        broken = Spot(id=1, latitude="abc", longitude="132.3197", radius="100")
        far = make_spot(2, north_m=2000)
        result = evaluate(location_at(), SpotCatalog([broken, far], logger=self.logger))
        self.assertEqual(result.spot.id, 2)

    def test_only_unparsable_spots(self) -> None:
        broken = Spot(id=1, latitude="", longitude="", radius="100")
        self.assertIsNone(evaluate(location_at(), SpotCatalog([broken], logger=self.logger)))

    def test_deterministic(self) -> None:
        catalog = SpotCatalog([make_spot(i, north_m=i * 37, east_m=-i * 11) for i in range(1, 8)],
                              logger=self.logger)
        position = location_at(north_m=120, east_m=-40)
        first = evaluate(position, catalog)
        for _ in range(10):
            again = evaluate(position, catalog)
            self.assertIs(again.spot, first.spot)
            self.assertEqual(again.distance_meters, first.distance_meters)


if __name__ == "__main__":
    unittest.main()
