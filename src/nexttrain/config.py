"""Configuration constants for nexttrain.

Values that depend on the deployment can be overridden with environment
variables, read once at import time.
"""

import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else default


# Static GTFS feed (zip) used by GTFSLoader.from_url()
GTFS_URL = os.environ.get("NEXTTRAIN_GTFS_URL", "https://rrgtfsfeeds.s3.amazonaws.com/gtfs_subway.zip")

# Live feed settings
CACHE_SECONDS = _env_int("NEXTTRAIN_CACHE_SECONDS", 30)
HTTP_TIMEOUT = _env_int("NEXTTRAIN_HTTP_TIMEOUT", 10)
MAX_CACHED_FEEDS = 10

# GTFS-Realtime feed URLs, keyed by feed name ("gtfs" is the 1-7/S feed)
LIVE_FEEDS = {
    "ace": "https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/nyct%2Fgtfs-ace",
    "bdfm": "https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/nyct%2Fgtfs-bdfm",
    "g": "https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/nyct%2Fgtfs-g",
    "jz": "https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/nyct%2Fgtfs-jz",
    "nqrw": "https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/nyct%2Fgtfs-nqrw",
    "l": "https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/nyct%2Fgtfs-l",
    "sir": "https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/nyct%2Fgtfs-si",
    "gtfs": "https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/nyct%2Fgtfs",
}

# Index building
MAX_TIMES_PER_HEADSIGN = 120
PROGRESS_EVERY_ROWS = 500_000

# Arrival estimation
MAX_SHOW_MIN = 90  # never show departures further away than this
SOON_WINDOW_MIN = 20  # nothing scheduled within this window -> synthesize
MAX_SCHEDULED_CANDIDATES = 5
MAX_ARRIVALS_PER_GROUP = 4
REFRESH_SECONDS = 15

# Synthesized estimate defaults (minutes)
SIM_BASE = 6
SIM_COUNT = 3
SIM_JITTER = 2
SIM_STEP = 6

# Nearby stations
NEARBY_RADIUS_M = 1200
NEARBY_LIMIT = 12
EARTH_RADIUS_M = 6_371_000
WALK_METERS_PER_MIN = 80

# Line colors (approximate MTA palette)
DEFAULT_LINE_COLOR = "#999999"
LINE_COLORS = {
    "1": "#EE352E",
    "2": "#EE352E",
    "3": "#EE352E",
    "4": "#00933C",
    "5": "#00933C",
    "6": "#00933C",
    "7": "#B933AD",
    "A": "#0039A6",
    "C": "#0039A6",
    "E": "#0039A6",
    "B": "#FF6319",
    "D": "#FF6319",
    "F": "#FF6319",
    "M": "#FF6319",
    "N": "#FCCC0A",
    "Q": "#FCCC0A",
    "R": "#FCCC0A",
    "W": "#FCCC0A",
    "J": "#996633",
    "Z": "#996633",
    "L": "#A7A9AC",
    "S": "#808183",
}
