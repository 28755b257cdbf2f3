"""Tests for nearby station lookup."""

import math
import sys
import unittest
from pathlib import Path

# Add src to path so we can import nexttrain
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nexttrain.geo import distance_meters, format_walk_minutes, nearby_stops
from nexttrain.models import StopRecord

# Meters per degree of latitude on the haversine sphere
METERS_PER_DEGREE = math.radians(1) * 6_371_000


def stop_north_of_origin(stop_id: str, meters: float) -> StopRecord:
    return StopRecord(id=stop_id, name=stop_id, lat=meters / METERS_PER_DEGREE, lon=0.0)


class TestDistance(unittest.TestCase):

    def test_zero_distance(self):
        self.assertEqual(distance_meters(40.758, -73.9855, 40.758, -73.9855), 0.0)

    def test_known_distance(self):
        # Times Sq-42 St to 34 St-Penn Station, roughly 600 m
        d = distance_meters(40.75529, -73.987495, 40.750373, -73.991057)
        self.assertAlmostEqual(d, 625, delta=25)

    def test_meridian_distance(self):
        self.assertAlmostEqual(distance_meters(0, 0, 1, 0), METERS_PER_DEGREE, delta=1e-3)


class TestNearbyStops(unittest.TestCase):
    """Test the radius filter and its fallback."""

    def test_radius_filter(self):
        stops = [
            stop_north_of_origin("far", 2000),
            stop_north_of_origin("near", 100),
            stop_north_of_origin("beyond", 1300),
            stop_north_of_origin("mid", 500),
        ]
        result = nearby_stops(0.0, 0.0, stops)

        self.assertEqual([s.id for s, _ in result], ["near", "mid"])
        self.assertAlmostEqual(result[0][1], 100, places=3)
        self.assertAlmostEqual(result[1][1], 500, places=3)

    def test_fallback_when_nothing_within_radius(self):
        stops = [stop_north_of_origin(f"s{d}", d) for d in (5000, 1300, 2000, 3000)]
        result = nearby_stops(0.0, 0.0, stops)
        self.assertEqual([s.id for s, _ in result], ["s1300", "s2000", "s3000", "s5000"])

    def test_limit(self):
        stops = [stop_north_of_origin(f"s{i}", 10 * i) for i in range(30)]
        result = nearby_stops(0.0, 0.0, stops)
        self.assertEqual(len(result), 12)
        self.assertEqual(result[0][0].id, "s0")

        far = [stop_north_of_origin(f"f{i}", 5000 + i) for i in range(30)]
        self.assertEqual(len(nearby_stops(0.0, 0.0, far)), 12)

    def test_invalid_coordinates_sort_last(self):
        stops = [
            StopRecord(id="nolat", name="No lat", lat=None, lon=0.0),
            StopRecord(id="text", name="Text", lat="abc", lon="def"),
            StopRecord(id="nan", name="NaN", lat=float("nan"), lon=0.0),
            stop_north_of_origin("ok", 3000),
        ]
        result = nearby_stops(0.0, 0.0, stops)

        self.assertEqual(result[0][0].id, "ok")
        self.assertTrue(all(math.isinf(d) for _, d in result[1:]))

        stops.append(stop_north_of_origin("near", 50))
        self.assertEqual([s.id for s, _ in nearby_stops(0.0, 0.0, stops)], ["near"])

    def test_numeric_strings_accepted(self):
        stops = [StopRecord(id="s", name="S", lat="0.001", lon="0")]
        self.assertEqual(len(nearby_stops(0.0, 0.0, stops)), 1)

    def test_empty(self):
        self.assertEqual(nearby_stops(40.7, -73.9, []), [])


class TestWalkMinutes(unittest.TestCase):

    def test_labels(self):
        self.assertEqual(format_walk_minutes(50), "< 1 min")
        self.assertEqual(format_walk_minutes(80), "1 min")
        self.assertEqual(format_walk_minutes(800), "10 min")
        self.assertEqual(format_walk_minutes(math.inf), "")


if __name__ == "__main__":
    unittest.main()
