"""
Small geometric helpers that work directly in latitude/longitude.

Distances here are plain Euclidean distances over (lat, lon) degrees, which is
good enough for choosing between nearby candidates on a city block.
Nearest-point searches over many candidates go through a KDTree.
"""

import math
from typing import Iterable, List, Optional, Sequence

import numpy as np
from sklearn.neighbors import KDTree

from .models import GeoPoint

# Wall-to-primary-point angle differences treated as colinear, in degrees
COLINEAR_TOLERANCE = 15.0
OPPOSITE_TOLERANCE = 7.5
WRAPAROUND_TOLERANCE = 11.0


def distance(a: GeoPoint, b: GeoPoint) -> float:
    return math.hypot(a.lat - b.lat, a.lon - b.lon)


def angle_between(a: GeoPoint, b: GeoPoint) -> float:
    """Angle of the vector b -> a in degrees, longitude as the x axis."""
    return math.degrees(math.atan2(a.lat - b.lat, a.lon - b.lon))


def point_array(points: Iterable[GeoPoint]) -> np.ndarray:
    """(n, 2) array of [lat, lon] rows."""
    return np.array([[p.lat, p.lon] for p in points], dtype=np.float64).reshape(-1, 2)


class NearestPointIndex:
    """KDTree over a fixed set of points for nearest-neighbour queries."""

    def __init__(self, points: Iterable[GeoPoint]):
        self.points: List[GeoPoint] = list(points)
        self.tree = KDTree(point_array(self.points)) if self.points else None

    def __len__(self) -> int:
        return len(self.points)

    def nearest(self, origin: GeoPoint) -> Optional[GeoPoint]:
        if self.tree is None:
            return None
        row = point_array([origin])
        distances, indices = self.tree.query(row, k=1)
        # equidistant candidates resolve to the earliest point
        tied = self.tree.query_radius(row, r=distances[0][0])[0]
        if len(tied):
            return self.points[int(tied.min())]
        return self.points[int(indices[0][0])]

    def nearest_distances(self, origins: Sequence[GeoPoint]) -> np.ndarray:
        """Distance from each origin to its nearest indexed point."""
        distances, _ = self.tree.query(point_array(origins), k=1)
        return distances[:, 0]

    def closest_origin(self, origins: Sequence[GeoPoint]) -> GeoPoint:
        """The origin lying nearest to any indexed point; first one on ties."""
        return origins[int(np.argmin(self.nearest_distances(origins)))]


def closest_point(origin: GeoPoint, points: Iterable[GeoPoint]) -> Optional[GeoPoint]:
    return NearestPointIndex(points).nearest(origin)


def next_closest_point(
    origin: GeoPoint, closest: GeoPoint, points: Sequence[GeoPoint]
) -> Optional[GeoPoint]:
    """
    Pick the sequence neighbour of `closest` that lies nearer to `origin`.

    Points are taken in polyline order, so the result together with `closest`
    describes the stretch of line the origin faces.
    """
    prev = None
    nxt = None
    for i, point in enumerate(points):
        if point == closest:
            if i + 1 < len(points):
                nxt = points[i + 1]
            break
        prev = point

    if prev is not None and nxt is not None:
        return min((prev, nxt), key=lambda p: distance(origin, p))
    return prev if prev is not None else nxt


def perpendicular_point(origin: GeoPoint, p1: GeoPoint, p2: GeoPoint) -> GeoPoint:
    """Foot of the perpendicular from origin onto the line through p1 and p2."""
    d_lon = p2.lon - p1.lon
    d_lat = p2.lat - p1.lat
    denom = d_lon * d_lon + d_lat * d_lat
    if denom == 0:
        return p1
    t = ((origin.lon - p1.lon) * d_lon + (origin.lat - p1.lat) * d_lat) / denom
    return GeoPoint(p1.lat + t * d_lat, p1.lon + t * d_lon)


def is_colinear_angle(diff: float) -> bool:
    diff = abs(diff)
    return (
        diff < COLINEAR_TOLERANCE
        or 180 - OPPOSITE_TOLERANCE < diff < 180 + OPPOSITE_TOLERANCE
        or 360 - WRAPAROUND_TOLERANCE < diff < 360 + WRAPAROUND_TOLERANCE
    )


def nearest_wall_point(point: GeoPoint, footprint: Sequence[GeoPoint]) -> GeoPoint:
    """
    Project a point onto the nearest footprint wall it is not aligned with.

    Walls whose direction (seen from their end vertex) is within tolerance of
    the direction to the point are skipped; otherwise a point sitting on the
    extension of a long wall would snap onto that wall.
    """
    best = footprint[0]
    best_dist = math.inf
    prev = footprint[-1]
    for vertex in footprint:
        wall_angle = angle_between(prev, vertex)
        point_angle = angle_between(point, vertex)
        if not is_colinear_angle(wall_angle - point_angle):
            foot = perpendicular_point(point, prev, vertex)
            dist = distance(point, foot)
            if dist < best_dist:
                best = foot
                best_dist = dist
        prev = vertex
    return best


def bounding_box(points: Iterable[GeoPoint]):
    """(lat_min, lat_max, lon_min, lon_max) of a point set."""
    lats: List[float] = []
    lons: List[float] = []
    for p in points:
        lats.append(p.lat)
        lons.append(p.lon)
    return min(lats), max(lats), min(lons), max(lons)
