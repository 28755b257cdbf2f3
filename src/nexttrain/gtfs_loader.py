"""GTFS static feed loader: reads relations and builds the query indices."""

import io
import json
import logging
import os
import tempfile
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Dict, Iterator, List, Optional, Set, Union

import requests

from .config import GTFS_URL, HTTP_TIMEOUT
from .exceptions import MissingRelationError
from .joiner import (
    build_route_short_names,
    build_route_table,
    build_station_indices,
    build_stop_list,
    build_stop_to_station,
    build_trip_info,
    finalize_arrivals,
    finalize_lines,
)
from .models import (
    RouteRow,
    RouteShapeFeature,
    ShapePointRow,
    StopRecord,
    StopRow,
    StopTimeRow,
    TripInfo,
    TripRow,
)
from .shapes import build_route_shapes, to_feature_collection
from .tabular import parse_relation

logger = logging.getLogger(__name__)

REQUIRED_RELATIONS = ("stops", "routes", "trips", "stop_times")

# Output artifact file names
STOPS_FILE = "stops.json"
ROUTES_FILE = "routes.json"
STATION_LINES_FILE = "station_to_lines.json"
STATION_ARRIVALS_FILE = "station_arrivals_by_destination.json"
ROUTE_SHAPES_FILE = "route_shapes.json"
STOP_TO_STATION_FILE = "stop_to_station.json"
TRIPS_FILE = "trips.json"


@dataclass
class FeedIndex:
    """Read-only snapshot of everything built from one feed version."""
    stops: List[StopRecord] = field(default_factory=list)
    routes: List[Dict] = field(default_factory=list)
    station_lines: Dict[str, List[str]] = field(default_factory=dict)
    station_arrivals: Dict[str, Dict[str, Dict[str, List[str]]]] = field(default_factory=dict)
    route_shapes: List[RouteShapeFeature] = field(default_factory=list)
    stop_to_station: Dict[str, str] = field(default_factory=dict)
    trip_info: Dict[str, TripInfo] = field(default_factory=dict)

    def _artifacts(self) -> Dict[str, str]:
        trips = {
            trip_id: [info.line, info.headsign, info.direction_id]
            for trip_id, info in sorted(self.trip_info.items())
        }
        return {
            STOPS_FILE: json.dumps([s.to_dict() for s in self.stops], indent=2),
            ROUTES_FILE: json.dumps(self.routes, indent=2),
            STATION_LINES_FILE: json.dumps(self.station_lines, indent=2, sort_keys=True),
            STATION_ARRIVALS_FILE: json.dumps(self.station_arrivals, indent=2, sort_keys=True),
            ROUTE_SHAPES_FILE: json.dumps(to_feature_collection(self.route_shapes)),
            STOP_TO_STATION_FILE: json.dumps(self.stop_to_station, sort_keys=True),
            TRIPS_FILE: json.dumps(trips),
        }

    def write(self, out_dir: Union[str, Path]) -> None:
        """
        Write all artifacts to ``out_dir``.

        Everything is serialized and written to temporary files first; the
        existing artifacts are only replaced once every temporary file is
        complete. A failed write leaves the previous snapshot untouched.
        """
        artifacts = self._artifacts()
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)

        staged: Dict[str, str] = {}
        try:
            for name, content in artifacts.items():
                fd, tmp_path = tempfile.mkstemp(dir=out_dir, prefix=f".{name}.")
                staged[name] = tmp_path
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
        except OSError:
            for tmp_path in staged.values():
                os.unlink(tmp_path)
            raise

        for name, tmp_path in staged.items():
            os.replace(tmp_path, out_dir / name)

        logger.info(f"Wrote {len(artifacts)} artifacts to {out_dir}")

    @classmethod
    def load(cls, data_dir: Union[str, Path]) -> "FeedIndex":
        """Read artifacts written by write()."""
        data_dir = Path(data_dir)

        def read(name: str, default=None):
            path = data_dir / name
            if not path.exists():
                if default is None:
                    raise FileNotFoundError(f"Missing artifact {path}")
                return default
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)

        trips = read(TRIPS_FILE, {})
        shapes = read(ROUTE_SHAPES_FILE, {"features": []})
        return cls(
            stops=[StopRecord(**s) for s in read(STOPS_FILE)],
            routes=read(ROUTES_FILE, []),
            station_lines=read(STATION_LINES_FILE),
            station_arrivals=read(STATION_ARRIVALS_FILE),
            route_shapes=[RouteShapeFeature.from_geojson(f) for f in shapes["features"]],
            stop_to_station=read(STOP_TO_STATION_FILE, {}),
            trip_info={trip_id: TripInfo(*values) for trip_id, values in trips.items()},
        )


class GTFSLoader:
    """Reads GTFS relations from a directory or zip archive and builds a FeedIndex."""

    def __init__(self, source: Union[str, Path, bytes]):
        """
        Args:
            source: A directory of .txt relations, a path to a zip archive,
                or the zip archive's bytes.
        """
        self._dir: Optional[Path] = None
        self._zip: Optional[zipfile.ZipFile] = None
        self._zip_names: Dict[str, str] = {}

        if isinstance(source, bytes):
            self._open_zip(io.BytesIO(source))
        elif Path(source).is_dir():
            self._dir = Path(source)
        else:
            self._open_zip(source)
        self.source = "archive" if isinstance(source, bytes) else str(source)

    def _open_zip(self, file) -> None:
        self._zip = zipfile.ZipFile(file)
        # Some feeds nest their files in a folder
        for name in self._zip.namelist():
            self._zip_names.setdefault(Path(name).name, name)

    @classmethod
    def from_url(
        cls,
        url: str = GTFS_URL,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT,
    ) -> "GTFSLoader":
        """Download a zipped GTFS feed."""
        logger.info(f"Downloading GTFS data from {url}")
        session = session or requests.Session()
        try:
            response = session.get(url, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to download GTFS data: {e}")
            raise
        return cls(response.content)

    def has_relation(self, name: str) -> bool:
        filename = f"{name}.txt"
        if self._dir is not None:
            return (self._dir / filename).is_file()
        return filename in self._zip_names

    def require(self, *names: str) -> None:
        """Raise MissingRelationError for the first relation the feed lacks."""
        for name in names:
            if not self.has_relation(name):
                raise MissingRelationError(name, self.source)

    @contextmanager
    def open_relation(self, name: str) -> Iterator[IO[bytes]]:
        """Open a relation as a binary stream."""
        self.require(name)
        if self._dir is not None:
            with open(self._dir / f"{name}.txt", "rb") as f:
                yield f
        else:
            with self._zip.open(self._zip_names[f"{name}.txt"]) as f:
                yield f

    def records(self, name: str, record_type) -> Iterator:
        """Stream typed records (e.g. StopRow) from a relation."""
        with self.open_relation(name) as f:
            yield from parse_relation(f, record_type.from_row, relation=name)

    def build(self, include_shapes: bool = True, route_types: Optional[Set[str]] = None) -> FeedIndex:
        """
        Build every index from the feed.

        All required relations are checked up front, so a missing one fails
        the build before any work is done.

        Args:
            include_shapes: Also build route geometries (needs shapes.txt).
            route_types: Restrict the routes artifact to these route_type
                values (e.g. {"1"} for subway). Indices use every route.

        Raises:
            MissingRelationError: If a required relation is missing.
        """
        required = list(REQUIRED_RELATIONS) + (["shapes"] if include_shapes else [])
        self.require(*required)

        logger.info(f"Loading GTFS data from {self.source}")
        stops = list(self.records("stops", StopRow))
        routes = list(self.records("routes", RouteRow))
        trips = list(self.records("trips", TripRow))

        stop_to_station = build_stop_to_station(stops)
        route_names = build_route_short_names(routes)
        trip_info = build_trip_info(trips, route_names)

        logger.info("Streaming stop_times.txt")
        station_lines, station_arrivals = build_station_indices(
            self.records("stop_times", StopTimeRow), stop_to_station, trip_info
        )

        route_shapes: List[RouteShapeFeature] = []
        if include_shapes:
            route_shapes = build_route_shapes(trips, self.records("shapes", ShapePointRow), route_names)

        index = FeedIndex(
            stops=build_stop_list(stops),
            routes=build_route_table(routes, route_types),
            station_lines=finalize_lines(station_lines),
            station_arrivals=finalize_arrivals(station_arrivals),
            route_shapes=route_shapes,
            stop_to_station=stop_to_station,
            trip_info=trip_info,
        )
        logger.info(f"Loaded {len(index.stops)} stations and {len(routes)} routes")
        return index

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()

    def __enter__(self) -> "GTFSLoader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
