"""Joins GTFS relations into station-level line and arrival indices."""

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .config import MAX_TIMES_PER_HEADSIGN, PROGRESS_EVERY_ROWS
from .models import RouteRow, StopRecord, StopRow, StopTimeRow, TripInfo, TripRow

logger = logging.getLogger(__name__)

StationLineIndex = Dict[str, Set[str]]
StationArrivalIndex = Dict[str, Dict[str, Dict[str, List[str]]]]


def build_stop_to_station(stops: Iterable[StopRow]) -> Dict[str, str]:
    """Map every stop id to its parent station, or to itself when it has none."""
    return {stop.stop_id: stop.parent_station or stop.stop_id for stop in stops}


def build_route_short_names(routes: Iterable[RouteRow]) -> Dict[str, str]:
    """Map route id -> upper-cased short name, falling back to the route id."""
    return {
        route.route_id: (route.route_short_name or route.route_id).upper()
        for route in routes
    }


def build_trip_info(trips: Iterable[TripRow], route_names: Dict[str, str]) -> Dict[str, TripInfo]:
    """Map trip id -> TripInfo, dropping trips without a line or headsign."""
    trip_info: Dict[str, TripInfo] = {}
    dropped = 0
    for trip in trips:
        line = route_names.get(trip.route_id)
        if not line or not trip.trip_headsign:
            dropped += 1
            continue
        trip_info[trip.trip_id] = TripInfo(
            line=line,
            headsign=trip.trip_headsign,
            direction_id=trip.direction_id,
        )

    if dropped:
        logger.debug(f"Dropped {dropped} trips without a resolvable line or headsign")
    return trip_info


def build_station_indices(
    stop_times: Iterable[StopTimeRow],
    stop_to_station: Dict[str, str],
    trip_info: Dict[str, TripInfo],
) -> Tuple[StationLineIndex, StationArrivalIndex]:
    """
    Accumulate station->lines and station->line->headsign->times in one pass.

    Rows are consumed one at a time and never retained, so memory is bounded
    by the size of the indices rather than the stop_times relation. Rows for
    unknown trips or without an arrival time are skipped; unknown stops are
    their own station.

    Returns:
        (station_lines, station_arrivals). Arrival buckets are unsorted;
        call finalize_arrivals() before publishing them.
    """
    station_lines: StationLineIndex = {}
    station_arrivals: StationArrivalIndex = {}
    seen = 0

    for stop_time in stop_times:
        info = trip_info.get(stop_time.trip_id)
        if info is None:
            continue

        station_id = stop_to_station.get(stop_time.stop_id, stop_time.stop_id)
        station_lines.setdefault(station_id, set()).add(info.line)

        if stop_time.arrival_time:
            by_line = station_arrivals.setdefault(station_id, {})
            by_line.setdefault(info.line, {}).setdefault(info.headsign, []).append(stop_time.arrival_time)

        seen += 1
        if seen % PROGRESS_EVERY_ROWS == 0:
            logger.info(f"...processed {seen:,} stop_times rows")

    logger.info(f"Indexed {seen:,} stop_times rows into {len(station_lines)} stations")
    return station_lines, station_arrivals


def finalize_arrivals(
    station_arrivals: StationArrivalIndex,
    cap: int = MAX_TIMES_PER_HEADSIGN,
) -> StationArrivalIndex:
    """Sort every time bucket ascending and keep the first ``cap`` entries."""
    # HH:MM:SS is fixed width, so string order is time order
    return {
        station_id: {
            line: {
                headsign: sorted(times)[:cap]
                for headsign, times in sorted(by_headsign.items())
            }
            for line, by_headsign in sorted(by_line.items())
        }
        for station_id, by_line in sorted(station_arrivals.items())
    }


def finalize_lines(station_lines: StationLineIndex) -> Dict[str, List[str]]:
    """Emit station->lines with sorted line names."""
    return {station_id: sorted(lines) for station_id, lines in sorted(station_lines.items())}


def build_stop_list(stops: Iterable[StopRow]) -> List[StopRecord]:
    """
    Build the rider-facing stop list.

    Keeps only parent stations (location_type 1) when the feed declares any,
    otherwise every stop.
    """
    all_stops = list(stops)
    stations = [s for s in all_stops if s.location_type == "1"]
    if not stations:
        stations = all_stops

    return [
        StopRecord(id=s.stop_id, name=s.stop_name, lat=s.stop_lat, lon=s.stop_lon)
        for s in stations
    ]


def build_route_table(routes: Iterable[RouteRow], route_types: Optional[Set[str]] = None) -> List[Dict]:
    """Build the routes artifact, optionally restricted to some route_type values."""
    table = []
    for route in routes:
        if route_types and route.route_type not in route_types:
            continue
        table.append({
            "route_id": route.route_id,
            "short_name": route.route_short_name or route.route_id,
            "long_name": route.route_long_name,
            "color": route.route_color,
            "text_color": route.route_text_color,
        })
    return table
