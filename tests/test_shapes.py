"""Tests for representative route shape selection."""

import sys
import unittest
from pathlib import Path

# Add src to path so we can import nexttrain
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nexttrain.models import ShapePointRow, TripRow
from nexttrain.shapes import build_route_shapes, line_color, to_feature_collection


def line_points(shape_id, n=2):
    return [ShapePointRow(shape_id, 40.7 + i * 0.01, -73.9 - i * 0.01, i) for i in range(n)]


class TestShapeSelection(unittest.TestCase):
    """Test picking one shape per (route, direction)."""

    def test_most_common_shape_wins(self):
        trips = [
            TripRow("T1", "A", "Far Rockaway", "1", "A..S55R"),
            TripRow("T2", "A", "Far Rockaway", "1", "A..S55R"),
            TripRow("T3", "A", "Lefferts Blvd", "1", "A..S57R"),
        ]
        points = line_points("A..S55R") + line_points("A..S57R")

        features = build_route_shapes(trips, points, {"A": "A"})

        self.assertEqual(len(features), 1)
        self.assertEqual(features[0].shape_id, "A..S55R")
        self.assertEqual(features[0].trips_sampled, 2)

    def test_tie_goes_to_lowest_shape_id(self):
        """Equal counts pick the lowest shape id regardless of trip order."""
        trips = [
            TripRow("T1", "L", "Canarsie", "1", "L..S02R"),
            TripRow("T2", "L", "Canarsie", "1", "L..S01R"),
        ]
        points = line_points("L..S02R") + line_points("L..S01R")

        forward = build_route_shapes(trips, points, {"L": "L"})
        backward = build_route_shapes(list(reversed(trips)), points, {"L": "L"})

        self.assertEqual(forward[0].shape_id, "L..S01R")
        self.assertEqual(backward[0].shape_id, "L..S01R")

    def test_degenerate_shape_falls_back_to_drawable_one(self):
        """A group with any drawable shape always yields exactly one feature."""
        trips = [
            TripRow("T1", "G", "Church Av", "1", "G..S14R"),
            TripRow("T2", "G", "Church Av", "1", "G..S14R"),
            TripRow("T3", "G", "Church Av", "1", "G..S15R"),
        ]
        points = line_points("G..S14R", n=1) + line_points("G..S15R", n=3)

        with self.assertLogs("nexttrain.shapes", level="WARNING"):
            features = build_route_shapes(trips, points, {"G": "G"})

        self.assertEqual(len(features), 1)
        self.assertEqual(features[0].shape_id, "G..S15R")
        self.assertEqual(len(features[0].coordinates), 3)

    def test_group_without_drawable_shape_dropped(self):
        trips = [TripRow("T1", "7", "Flushing", "0", "7..N97R")]
        with self.assertLogs("nexttrain.shapes", level="WARNING"):
            features = build_route_shapes(trips, line_points("7..N97R", n=1), {"7": "7"})
        self.assertEqual(features, [])

    def test_points_sorted_by_sequence(self):
        trips = [TripRow("T1", "J", "Jamaica Center", "0", "J..N12R")]
        points = [
            ShapePointRow("J..N12R", 40.70, -73.80, 10),
            ShapePointRow("J..N12R", 40.71, -73.81, 2),
            ShapePointRow("J..N12R", 40.72, -73.82, 5),
        ]
        features = build_route_shapes(trips, points, {"J": "J"})
        self.assertEqual(features[0].coordinates, ((-73.81, 40.71), (-73.82, 40.72), (-73.80, 40.70)))

    def test_ordering_and_colors(self):
        trips = [
            TripRow("T1", "Z", "Jamaica Center", "1", "Z1"),
            TripRow("T2", "Z", "Broad St", "0", "Z0"),
            TripRow("T3", "X9", "Somewhere", "0", "X0"),
            TripRow("T4", "A", "Inwood", "0", "A0"),
        ]
        points = line_points("Z1") + line_points("Z0") + line_points("X0") + line_points("A0")

        features = build_route_shapes(trips, points, {"Z": "Z", "A": "A"})

        self.assertEqual(
            [(f.short_name, f.direction_id) for f in features],
            [("A", "0"), ("X9", "0"), ("Z", "0"), ("Z", "1")],
        )
        self.assertEqual(features[0].color, "#0039A6")
        self.assertEqual(features[1].color, "#999999")

    def test_trips_without_shape_ignored(self):
        trips = [TripRow("T1", "S", "Grand Central", "0", "")]
        self.assertEqual(build_route_shapes(trips, [], {"S": "S"}), [])

    def test_line_color(self):
        self.assertEqual(line_color("n"), "#FCCC0A")
        self.assertEqual(line_color("SIR"), "#999999")

    def test_feature_collection(self):
        trips = [TripRow("T1", "4", "Woodlawn", "0", "4..N06R")]
        collection = to_feature_collection(build_route_shapes(trips, line_points("4..N06R"), {"4": "4"}))

        feature = collection["features"][0]
        self.assertEqual(collection["type"], "FeatureCollection")
        self.assertEqual(feature["geometry"]["coordinates"][0], [-73.9, 40.7])
        self.assertEqual(feature["properties"]["route_short_name"], "4")
        self.assertEqual(feature["properties"]["trips_sampled"], 1)


if __name__ == "__main__":
    unittest.main()
