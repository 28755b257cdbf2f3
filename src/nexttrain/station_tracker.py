"""Main station tracker: nearby stations and their next trains."""

import logging
import random
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from .arrivals import ArrivalEstimator, now_seconds
from .config import REFRESH_SECONDS
from .exceptions import StationNotFoundError
from .geo import nearby_stops
from .gtfs_loader import FeedIndex
from .models import ArrivalGroup, StationData, StopRecord
from .realtime import LiveFeedClient

logger = logging.getLogger(__name__)


class StationTracker:
    """
    Answers rider questions from a prebuilt FeedIndex.

    This class provides methods to:
    - Find stations by name or ID, or near a point
    - List the lines serving a station
    - Get the next arrivals per line and headsign, from the schedule or,
      when a live client is configured, from the live feed

    Nothing is cached between calls; re-invoke get_arrivals() every
    ``refresh_interval`` seconds to keep countdowns current.
    """

    refresh_interval = REFRESH_SECONDS

    def __init__(
        self,
        index: FeedIndex,
        live_client: Optional[LiveFeedClient] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the tracker.

        Args:
            index: Indices built by GTFSLoader.build() or FeedIndex.load().
            live_client: Optional live feed client for confirmed ETAs.
            rng: Random source for synthesized estimates.
        """
        self.index = index
        self.live_client = live_client
        self.estimator = ArrivalEstimator(index.station_arrivals, rng=rng)
        self._stations = {stop.id: stop for stop in index.stops}

    def get_station(self, station_input: str) -> StopRecord:
        """
        Get a station by ID or name.

        Args:
            station_input: Either a station ID (e.g., "127") or name (e.g., "Times Sq").

        Returns:
            StopRecord for the station.

        Raises:
            StationNotFoundError: If no station matches.
        """
        if station_input in self._stations:
            return self._stations[station_input]

        stations = self.find_stations_by_name(station_input)
        if not stations:
            raise StationNotFoundError(f"No station found matching '{station_input}'")
        return stations[0]

    def find_stations_by_name(self, name: str) -> List[StopRecord]:
        """Find all stations whose name contains ``name`` (case-insensitive)."""
        name_lower = name.lower()
        return [stop for stop in self.index.stops if name_lower in stop.name.lower()]

    def nearby(self, lat: float, lon: float) -> List[Tuple[StopRecord, float]]:
        """Stations near a point, nearest first, with distances in meters."""
        return nearby_stops(lat, lon, self.index.stops)

    def lines_at(self, station_id: str) -> List[str]:
        """Sorted line names serving a station."""
        return list(self.index.station_lines.get(station_id, []))

    def get_arrivals(
        self,
        station: StopRecord,
        now: Optional[datetime] = None,
        feed_names: Optional[Iterable[str]] = None,
    ) -> List[ArrivalGroup]:
        """
        Get upcoming arrivals for a station, grouped by line and headsign.

        Live ETAs are used where the live client has them. If the live feeds
        cannot be read, the schedule is used alone.

        Args:
            station: StopRecord (from get_station() or nearby()).
            now: Current local time; defaults to datetime.now().
            feed_names: Live feeds to consult; all configured feeds by default.

        Returns:
            ArrivalGroups ordered by their earliest arrival.
        """
        now = now or datetime.now()
        confirmed = None

        if self.live_client is not None:
            confirmed = self.live_client.confirmed_etas(
                station.id,
                self.index.trip_info,
                self.index.stop_to_station,
                feed_names=feed_names,
                now_ts=now.timestamp(),
            )

        return self.estimator.arrivals_for_station(station.id, now_seconds(now), confirmed=confirmed)

    def get_station_data(self, station_input: str, now: Optional[datetime] = None) -> StationData:
        """
        Get complete data for a station.

        Args:
            station_input: Station ID or name.
            now: Current local time; defaults to datetime.now().

        Returns:
            StationData with station info, lines and arrivals.
        """
        now = now or datetime.now()
        station = self.get_station(station_input)
        return StationData(
            station=station,
            lines=self.lines_at(station.id),
            arrivals=self.get_arrivals(station, now=now),
            last_updated=now,
        )

    def cleanup(self) -> None:
        """Release resources and clear caches."""
        if self.live_client:
            self.live_client.clear_cache()
        logger.info("Cleaned up tracker resources")
