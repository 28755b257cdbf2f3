"""nexttrain - nearby stations and next-train countdowns from a static GTFS feed."""

__version__ = "0.1.0"

from .models import (
    ArrivalEstimate,
    ArrivalGroup,
    RouteShapeFeature,
    StationData,
    StopRecord,
    TripInfo,
)
from .exceptions import (
    ClockParseError,
    FeedFetchError,
    MissingRelationError,
    NextTrainError,
    RowParseError,
    StationNotFoundError,
)
from .arrivals import ArrivalEstimator, eta_seconds_from_gtfs, format_eta, simulate_etas
from .geo import distance_meters, nearby_stops
from .gtfs_loader import FeedIndex, GTFSLoader
from .feed_cache import FeedCache
from .realtime import LiveFeedClient
from .station_tracker import StationTracker

__all__ = [
    "StationTracker",
    "GTFSLoader",
    "FeedIndex",
    "ArrivalEstimator",
    "LiveFeedClient",
    "FeedCache",
    "eta_seconds_from_gtfs",
    "format_eta",
    "simulate_etas",
    "distance_meters",
    "nearby_stops",
    "StopRecord",
    "TripInfo",
    "RouteShapeFeature",
    "ArrivalEstimate",
    "ArrivalGroup",
    "StationData",
    "NextTrainError",
    "MissingRelationError",
    "RowParseError",
    "ClockParseError",
    "StationNotFoundError",
    "FeedFetchError",
]
