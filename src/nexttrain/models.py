"""Data models for nexttrain."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Tuple

from .exceptions import RowParseError

logger = logging.getLogger(__name__)

# ArrivalEstimate.source values
SCHEDULED = "scheduled"
ESTIMATED = "estimated"
REALTIME = "realtime"


def _required(row: Mapping[str, str], name: str, line_number: int) -> str:
    value = (row.get(name) or "").strip()
    if not value:
        raise RowParseError(line_number, name, row.get(name))
    return value


def _optional_float(row: Mapping[str, str], name: str, line_number: int) -> Optional[float]:
    raw = (row.get(name) or "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise RowParseError(line_number, name, raw) from None


def _coordinate(row: Mapping[str, str], name: str, line_number: int) -> Optional[float]:
    """Like _optional_float, but an unparseable value reads as missing."""
    try:
        return _optional_float(row, name, line_number)
    except RowParseError as e:
        logger.warning(f"{e}; treating {name} as missing")
        return None


def _required_float(row: Mapping[str, str], name: str, line_number: int) -> float:
    value = _optional_float(row, name, line_number)
    if value is None:
        raise RowParseError(line_number, name, row.get(name))
    return value


# ---------------------------------------------------------------------------
# Typed GTFS relation records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StopRow:
    """One row of stops.txt."""
    stop_id: str
    stop_name: str
    stop_lat: Optional[float]
    stop_lon: Optional[float]
    parent_station: str = ""
    location_type: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, str], line_number: int = 0) -> "StopRow":
        return cls(
            stop_id=_required(row, "stop_id", line_number),
            stop_name=(row.get("stop_name") or "").strip(),
            stop_lat=_coordinate(row, "stop_lat", line_number),
            stop_lon=_coordinate(row, "stop_lon", line_number),
            parent_station=(row.get("parent_station") or "").strip(),
            location_type=(row.get("location_type") or "").strip(),
        )


@dataclass(frozen=True)
class RouteRow:
    """One row of routes.txt."""
    route_id: str
    route_short_name: str = ""
    route_long_name: str = ""
    route_type: str = ""
    route_color: str = ""
    route_text_color: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, str], line_number: int = 0) -> "RouteRow":
        return cls(
            route_id=_required(row, "route_id", line_number),
            route_short_name=(row.get("route_short_name") or "").strip(),
            route_long_name=(row.get("route_long_name") or "").strip(),
            route_type=(row.get("route_type") or "").strip(),
            route_color=(row.get("route_color") or "").strip(),
            route_text_color=(row.get("route_text_color") or "").strip(),
        )


@dataclass(frozen=True)
class TripRow:
    """One row of trips.txt."""
    trip_id: str
    route_id: str
    trip_headsign: str = ""
    direction_id: str = "0"  # blank in the feed defaults to "0"
    shape_id: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, str], line_number: int = 0) -> "TripRow":
        direction_id = (row.get("direction_id") or "").strip() or "0"
        if direction_id not in ("0", "1"):
            raise RowParseError(line_number, "direction_id", direction_id)
        return cls(
            trip_id=_required(row, "trip_id", line_number),
            route_id=_required(row, "route_id", line_number),
            trip_headsign=(row.get("trip_headsign") or "").strip(),
            direction_id=direction_id,
            shape_id=(row.get("shape_id") or "").strip(),
        )


@dataclass(frozen=True)
class StopTimeRow:
    """One row of stop_times.txt (only the columns the indices need)."""
    trip_id: str
    stop_id: str
    arrival_time: str = ""  # blank for non-timepoint stops

    @classmethod
    def from_row(cls, row: Mapping[str, str], line_number: int = 0) -> "StopTimeRow":
        return cls(
            trip_id=_required(row, "trip_id", line_number),
            stop_id=_required(row, "stop_id", line_number),
            arrival_time=(row.get("arrival_time") or "").strip(),
        )


@dataclass(frozen=True)
class ShapePointRow:
    """One row of shapes.txt."""
    shape_id: str
    lat: float
    lon: float
    sequence: int

    @classmethod
    def from_row(cls, row: Mapping[str, str], line_number: int = 0) -> "ShapePointRow":
        raw_seq = (row.get("shape_pt_sequence") or "").strip()
        try:
            sequence = int(raw_seq)
        except ValueError:
            raise RowParseError(line_number, "shape_pt_sequence", raw_seq) from None
        return cls(
            shape_id=_required(row, "shape_id", line_number),
            lat=_required_float(row, "shape_pt_lat", line_number),
            lon=_required_float(row, "shape_pt_lon", line_number),
            sequence=sequence,
        )


# ---------------------------------------------------------------------------
# Index and query-time models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StopRecord:
    """A station or boarding location shown to riders."""
    id: str
    name: str
    lat: Optional[float]
    lon: Optional[float]

    def to_dict(self) -> Dict:
        return {"id": self.id, "name": self.name, "lat": self.lat, "lon": self.lon}


@dataclass(frozen=True)
class TripInfo:
    """What a rider sees for a trip: line, headsign and direction."""
    line: str
    headsign: str
    direction_id: str = "0"


@dataclass(frozen=True)
class RouteShapeFeature:
    """Representative path geometry for one (route, direction)."""
    route_id: str
    short_name: str
    direction_id: str
    shape_id: str
    coordinates: Tuple[Tuple[float, float], ...]  # (lon, lat) pairs
    color: str
    trips_sampled: int

    def to_geojson(self) -> Dict:
        return {
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": [[lon, lat] for lon, lat in self.coordinates],
            },
            "properties": {
                "route_id": self.route_id,
                "route_short_name": self.short_name,
                "direction_id": self.direction_id,
                "shape_id": self.shape_id,
                "color": self.color,
                "trips_sampled": self.trips_sampled,
            },
        }

    @classmethod
    def from_geojson(cls, feature: Mapping) -> "RouteShapeFeature":
        props = feature["properties"]
        return cls(
            route_id=props["route_id"],
            short_name=props["route_short_name"],
            direction_id=str(props["direction_id"]),
            shape_id=props.get("shape_id", ""),
            coordinates=tuple((lon, lat) for lon, lat in feature["geometry"]["coordinates"]),
            color=props["color"],
            trips_sampled=int(props["trips_sampled"]),
        )


@dataclass(frozen=True)
class ArrivalEstimate:
    """A single countdown shown for a line/headsign."""
    eta_seconds: int
    label: str  # e.g. "Now", "1 min", "7 min"
    source: str  # SCHEDULED, ESTIMATED or REALTIME
    time_str: Optional[str] = None  # schedule clock, only for SCHEDULED


@dataclass(frozen=True)
class ArrivalGroup:
    """Upcoming arrivals for one line and headsign at a station."""
    line: str
    headsign: str
    upcoming: Tuple[ArrivalEstimate, ...] = ()

    @property
    def first_eta(self) -> Optional[int]:
        return self.upcoming[0].eta_seconds if self.upcoming else None


@dataclass
class StationData:
    """Complete data for a station with its lines and arrivals."""
    station: StopRecord
    lines: List[str]
    arrivals: List[ArrivalGroup] = field(default_factory=list)
    last_updated: Optional[datetime] = None
