"""Tests for StationTracker."""

import random
import sys
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

# Add src to path so we can import nexttrain
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nexttrain.exceptions import StationNotFoundError
from nexttrain.gtfs_loader import FeedIndex
from nexttrain.models import ESTIMATED, REALTIME, SCHEDULED, StopRecord, TripInfo
from nexttrain.realtime import LiveFeedClient
from nexttrain.station_tracker import StationTracker

EIGHT_AM = datetime(2026, 1, 5, 8, 0, 0)


def make_index() -> FeedIndex:
    return FeedIndex(
        stops=[
            StopRecord(id="127", name="Times Sq-42 St", lat=40.75529, lon=-73.987495),
            StopRecord(id="128", name="34 St-Penn Station", lat=40.750373, lon=-73.991057),
            StopRecord(id="A27", name="42 St-Port Authority Bus Terminal", lat=40.757308, lon=-73.989735),
        ],
        station_lines={"127": ["1", "2", "3"], "128": ["1", "2", "3"], "A27": ["A", "C", "E"]},
        station_arrivals={
            "127": {
                "1": {"South Ferry": ["08:04:00", "08:09:00"], "Van Cortlandt Park-242 St": ["08:50:00"]},
                "2": {"Flatbush Av-Brooklyn College": ["08:01:00"]},
            },
        },
        stop_to_station={"127N": "127", "127S": "127"},
        trip_info={"T1": TripInfo("1", "South Ferry", "1")},
    )


class TestStationLookup(unittest.TestCase):
    """Test finding stations."""

    def setUp(self):
        self.tracker = StationTracker(make_index())

    def test_get_station_by_id(self):
        station = self.tracker.get_station("127")
        self.assertEqual(station.name, "Times Sq-42 St")

    def test_get_station_by_name(self):
        station = self.tracker.get_station("penn")
        self.assertEqual(station.id, "128")

    def test_get_station_not_found(self):
        with self.assertRaises(StationNotFoundError):
            self.tracker.get_station("NONEXISTENT")
        with self.assertRaises(ValueError):
            self.tracker.get_station("NONEXISTENT")

    def test_find_stations_by_name(self):
        results = self.tracker.find_stations_by_name("42 St")
        self.assertEqual([s.id for s in results], ["127", "A27"])

    def test_nearby(self):
        results = self.tracker.nearby(40.758, -73.9855)
        self.assertEqual([s.id for s, _ in results], ["127", "A27", "128"])
        self.assertLess(results[0][1], 400)

    def test_lines_at(self):
        self.assertEqual(self.tracker.lines_at("A27"), ["A", "C", "E"])
        self.assertEqual(self.tracker.lines_at("unknown"), [])


class TestArrivals(unittest.TestCase):
    """Test arrivals from the schedule and the live feed."""

    def test_schedule_arrivals(self):
        tracker = StationTracker(make_index(), rng=random.Random(3))
        station = tracker.get_station("127")

        groups = tracker.get_arrivals(station, now=EIGHT_AM)

        self.assertEqual(
            [(g.line, g.headsign) for g in groups],
            [
                ("2", "Flatbush Av-Brooklyn College"),
                ("1", "South Ferry"),
                ("1", "Van Cortlandt Park-242 St"),
            ],
        )
        self.assertEqual([e.label for e in groups[1].upcoming], ["4 min", "9 min"])
        self.assertEqual(groups[1].upcoming[0].source, SCHEDULED)
        # 08:50 is not soon, so synthesized estimates lead that group
        self.assertEqual(groups[2].upcoming[0].source, ESTIMATED)
        self.assertEqual(groups[2].upcoming[-1].time_str, "08:50:00")

    def test_station_without_schedule(self):
        tracker = StationTracker(make_index())
        self.assertEqual(tracker.get_arrivals(tracker.get_station("A27"), now=EIGHT_AM), [])

    def test_live_etas_used_when_available(self):
        live_client = MagicMock(spec=LiveFeedClient)
        live_client.confirmed_etas.return_value = {("1", "South Ferry"): [30, 700]}
        index = make_index()
        tracker = StationTracker(index, live_client=live_client)

        groups = tracker.get_arrivals(tracker.get_station("127"), now=EIGHT_AM, feed_names=["gtfs"])

        live_client.confirmed_etas.assert_called_once_with(
            "127",
            index.trip_info,
            index.stop_to_station,
            feed_names=["gtfs"],
            now_ts=EIGHT_AM.timestamp(),
        )
        south_ferry = [g for g in groups if g.headsign == "South Ferry"][0]
        self.assertEqual([e.source for e in south_ferry.upcoming], [REALTIME, REALTIME])
        self.assertEqual(south_ferry.upcoming[0].label, "1 min")
        self.assertEqual(groups[0].headsign, "South Ferry")

    def test_get_station_data(self):
        tracker = StationTracker(make_index())
        data = tracker.get_station_data("Times Sq", now=EIGHT_AM)

        self.assertEqual(data.station.id, "127")
        self.assertEqual(data.lines, ["1", "2", "3"])
        self.assertEqual(len(data.arrivals), 3)
        self.assertEqual(data.last_updated, EIGHT_AM)

    def test_cleanup_clears_live_cache(self):
        live_client = MagicMock(spec=LiveFeedClient)
        StationTracker(make_index(), live_client=live_client).cleanup()
        live_client.clear_cache.assert_called_once()


if __name__ == "__main__":
    unittest.main()
