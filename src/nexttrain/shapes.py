"""Picks one representative path geometry per route and direction."""

import logging
from typing import Dict, Iterable, List, Tuple

import pandas as pd

from .config import DEFAULT_LINE_COLOR, LINE_COLORS
from .models import RouteShapeFeature, ShapePointRow, TripRow

logger = logging.getLogger(__name__)

GROUP_KEYS = ["route_id", "direction_id"]


def line_color(short_name: str) -> str:
    """Palette color for a line, gray for lines we don't know."""
    return LINE_COLORS.get(short_name.strip().upper(), DEFAULT_LINE_COLOR)


def count_shape_trips(trips: Iterable[TripRow]) -> pd.DataFrame:
    """
    Count trips per (route_id, direction_id, shape_id).

    Trips without a route or shape id are ignored. Direction is already
    defaulted to "0" by TripRow.
    """
    df = pd.DataFrame(
        [(t.route_id, t.direction_id, t.shape_id) for t in trips if t.route_id and t.shape_id],
        columns=["route_id", "direction_id", "shape_id"],
    )
    if df.empty:
        return pd.DataFrame(columns=GROUP_KEYS + ["shape_id", "trips_sampled"])

    return df.groupby(GROUP_KEYS + ["shape_id"]).size().reset_index(name="trips_sampled")


def pick_best_shapes(counts: pd.DataFrame) -> pd.DataFrame:
    """
    Keep the most-sampled shape for every (route, direction).

    Equal counts go to the lowest shape_id in string order, so the choice
    does not depend on row order in trips.txt.
    """
    ordered = counts.sort_values(
        GROUP_KEYS + ["trips_sampled", "shape_id"],
        ascending=[True, True, False, True],
        kind="mergesort",
    )
    return ordered.drop_duplicates(GROUP_KEYS, keep="first").reset_index(drop=True)


def collect_shape_points(
    points: Iterable[ShapePointRow],
    shape_ids: Iterable[str],
) -> Dict[str, List[Tuple[float, float]]]:
    """Gather (lon, lat) points for the wanted shapes, ordered by sequence."""
    wanted = set(shape_ids)
    by_shape: Dict[str, List[Tuple[int, float, float]]] = {}
    for point in points:
        if point.shape_id in wanted:
            by_shape.setdefault(point.shape_id, []).append((point.sequence, point.lon, point.lat))

    return {
        shape_id: [(lon, lat) for _, lon, lat in sorted(pts, key=lambda p: p[0])]
        for shape_id, pts in by_shape.items()
    }


def build_route_shapes(
    trips: Iterable[TripRow],
    points: Iterable[ShapePointRow],
    route_names: Dict[str, str],
) -> List[RouteShapeFeature]:
    """
    Build one RouteShapeFeature per (route, direction).

    Only shapes with at least two points are candidates, so a group is
    dropped only when none of its shapes is drawable.

    Args:
        trips: trips.txt records.
        points: shapes.txt records.
        route_names: route_id -> short name (see joiner.build_route_short_names).

    Returns:
        Features sorted by short name, then direction.
    """
    counts = count_shape_trips(trips)
    shape_points = collect_shape_points(points, counts["shape_id"].unique())

    drawable = [shape_id for shape_id, pts in shape_points.items() if len(pts) >= 2]
    degenerate = counts["shape_id"].nunique() - len(drawable)
    if degenerate:
        logger.warning(f"Ignoring {degenerate} shapes with fewer than 2 points")

    best = pick_best_shapes(counts[counts["shape_id"].isin(drawable)])

    features = []
    for row in best.itertuples(index=False):
        short = str(route_names.get(row.route_id, row.route_id)).strip()
        features.append(RouteShapeFeature(
            route_id=row.route_id,
            short_name=short,
            direction_id=row.direction_id,
            shape_id=row.shape_id,
            coordinates=tuple(shape_points[row.shape_id]),
            color=line_color(short),
            trips_sampled=int(row.trips_sampled),
        ))

    features.sort(key=lambda f: (f.short_name, int(f.direction_id)))
    logger.info(f"Built {len(features)} route shape features")
    return features


def to_feature_collection(features: Iterable[RouteShapeFeature]) -> Dict:
    """Serialize features as a GeoJSON FeatureCollection."""
    return {
        "type": "FeatureCollection",
        "features": [f.to_geojson() for f in features],
    }
