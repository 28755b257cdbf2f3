"""Example usage of GTFSLoader and StationTracker."""

import logging
import sys
from pathlib import Path

# Add src to path so we can import nexttrain
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nexttrain.exceptions import StationNotFoundError
from nexttrain.geo import format_walk_minutes
from nexttrain.gtfs_loader import FeedIndex, GTFSLoader
from nexttrain.station_tracker import StationTracker

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"

# Times Square, used when no coordinates are given
DEFAULT_LAT, DEFAULT_LON = 40.758, -73.9855


def load_index() -> FeedIndex:
    """Load prebuilt artifacts, building them from the published feed on first run."""
    try:
        return FeedIndex.load(DATA_DIR)
    except FileNotFoundError:
        print("Building indices from the GTFS feed... (this may take a minute)")
        with GTFSLoader.from_url() as loader:
            index = loader.build()
        index.write(DATA_DIR)
        return index


def print_station_data(tracker: StationTracker, station_input: str):
    """
    Display the next trains for a station.

    Args:
        tracker: StationTracker over a loaded index
        station_input: Station name or ID (e.g., "Times Sq" or "127")
    """
    station_data = tracker.get_station_data(station_input)

    print(f"\nStation: {station_data.station.name} (ID: {station_data.station.id})")
    print(f"Lines: {', '.join(station_data.lines)}")
    print(f"Updated: {station_data.last_updated.strftime('%H:%M:%S')}\n")

    if not station_data.arrivals:
        print("  No arrivals found")
        return

    for group in station_data.arrivals:
        labels = ", ".join(
            e.label if e.source != "estimated" else f"~{e.label}" for e in group.upcoming
        )
        print(f"  {group.line:>4} → {group.headsign}: {labels}")


def print_nearby(tracker: StationTracker, lat: float, lon: float):
    print(f"\n{'='*70}")
    print(f"Stations near {lat:.5f}, {lon:.5f}")
    print(f"{'='*70}")
    for stop, meters in tracker.nearby(lat, lon):
        print(f"  {stop.name} ({stop.id}): {meters:.0f} m, {format_walk_minutes(meters)} walk")


if __name__ == "__main__":
    try:
        tracker = StationTracker(load_index())
    except Exception as e:
        logger.error(f"Failed to load GTFS data: {e}", exc_info=True)
        sys.exit(1)

    if len(sys.argv) > 1:
        # Command line mode: pass station name as argument
        station_input = " ".join(sys.argv[1:])
        try:
            print_station_data(tracker, station_input)
        except StationNotFoundError as e:
            print(f"Error: {e}")
            sys.exit(1)
    else:
        print_nearby(tracker, DEFAULT_LAT, DEFAULT_LON)
        for stop, _ in tracker.nearby(DEFAULT_LAT, DEFAULT_LON)[:3]:
            print_station_data(tracker, stop.id)
