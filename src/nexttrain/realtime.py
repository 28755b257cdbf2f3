"""GTFS-Realtime client that supplies confirmed ETAs to the estimator."""

import logging
import time
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import requests
from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from .config import HTTP_TIMEOUT, LIVE_FEEDS
from .exceptions import FeedFetchError
from .feed_cache import FeedCache
from .models import TripInfo

logger = logging.getLogger(__name__)

# Predictions further in the past than this are stale
STALE_SECONDS = 60


def trip_id_tail(trip_id: str) -> str:
    """
    Strip the schedule prefix from a static trip id.

    Static ids look like "AFA25GEN-1038-Sunday-00_020600_1..S03R" while the
    live feed reports "020600_1..S03R".
    """
    return trip_id.split("_", 1)[1] if "_" in trip_id else trip_id


class LiveFeedClient:
    """Fetches, decodes and caches GTFS-Realtime feeds."""

    def __init__(
        self,
        feeds: Optional[Mapping[str, str]] = None,
        cache: Optional[FeedCache] = None,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT,
    ):
        """
        Args:
            feeds: Feed name -> URL. Defaults to the subway feeds in config.
            cache: Cache for decoded feeds; a new FeedCache by default.
            session: requests session to use for downloads.
            timeout: HTTP timeout in seconds.
        """
        self.feeds = dict(feeds or LIVE_FEEDS)
        self.cache = cache if cache is not None else FeedCache()
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_feed(self, name: str) -> gtfs_realtime_pb2.FeedMessage:
        """
        Return a decoded feed, from cache when fresh.

        Raises:
            FeedFetchError: Unknown feed name, HTTP failure, or undecodable payload.
        """
        cached = self.cache.get(name)
        if cached is not None:
            return cached

        url = self.feeds.get(name)
        if not url:
            raise FeedFetchError(f"Unknown feed: {name}")

        logger.debug(f"Fetching {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FeedFetchError(f"Failed to fetch feed {name}: {e}") from e

        feed = gtfs_realtime_pb2.FeedMessage()
        try:
            feed.ParseFromString(response.content)
        except DecodeError as e:
            raise FeedFetchError(f"Failed to decode feed {name}: {e}") from e

        self.cache.put(name, feed)
        return feed

    def trip_updates(self, name: str) -> List[gtfs_realtime_pb2.TripUpdate]:
        """TripUpdate messages of one feed."""
        feed = self.fetch_feed(name)
        return [entity.trip_update for entity in feed.entity if entity.HasField("trip_update")]

    def confirmed_etas(
        self,
        station_id: str,
        trip_info: Mapping[str, TripInfo],
        stop_to_station: Mapping[str, str],
        feed_names: Optional[Iterable[str]] = None,
        now_ts: Optional[float] = None,
    ) -> Dict[Tuple[str, str], List[int]]:
        """
        Live ETAs at a station, keyed by (line, headsign).

        Feeds that fail to load are logged and skipped. Trips the static
        index does not know are ignored.

        Args:
            station_id: Station to collect arrivals for.
            trip_info: Static trip id -> TripInfo.
            stop_to_station: Stop id -> station id.
            feed_names: Feeds to query; all configured feeds by default.
            now_ts: Current Unix time.

        Returns:
            {(line, headsign): [eta seconds, ...]} in ascending order.
        """
        now_ts = time.time() if now_ts is None else now_ts
        by_tail = {trip_id_tail(trip_id): info for trip_id, info in trip_info.items()}
        result: Dict[Tuple[str, str], List[int]] = {}

        for name in feed_names or list(self.feeds):
            try:
                updates = self.trip_updates(name)
            except FeedFetchError as e:
                logger.warning(str(e))
                continue

            for update in updates:
                trip_id = update.trip.trip_id
                info = trip_info.get(trip_id) or by_tail.get(trip_id)
                if info is None:
                    continue

                for stop_time_update in update.stop_time_update:
                    stop_id = stop_time_update.stop_id
                    if stop_to_station.get(stop_id, stop_id) != station_id:
                        continue

                    if stop_time_update.HasField("arrival"):
                        arrival_time = stop_time_update.arrival.time
                    else:
                        arrival_time = stop_time_update.departure.time
                    if not arrival_time:
                        continue

                    seconds_away = int(arrival_time - now_ts)
                    if seconds_away < -STALE_SECONDS:
                        continue

                    result.setdefault((info.line, info.headsign), []).append(max(0, seconds_away))

        for etas in result.values():
            etas.sort()
        return result

    def clear_cache(self) -> None:
        """Manually clear the cache."""
        self.cache.clear()
