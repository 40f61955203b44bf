"""
Ordered two-level spatial index over geographic points.

Points are bucketed by latitude, then by longitude, each level kept as a
sorted key list searched with bisect. Range queries walk only the matching
slice of each level and yield lazily.
"""

from bisect import bisect_left, bisect_right, insort
from typing import Any, Dict, Generic, Iterator, List, Tuple, TypeVar

from .models import GeoPoint

T = TypeVar("T")


class _LonRow(Generic[T]):
    __slots__ = ("keys", "values")

    def __init__(self):
        self.keys: List[float] = []
        self.values: Dict[float, List[T]] = {}

    def add(self, lon: float, value: T):
        bucket = self.values.get(lon)
        if bucket is None:
            insort(self.keys, lon)
            bucket = self.values[lon] = []
        bucket.append(value)


class SpatialRangeIndex(Generic[T]):
    """Map of lat -> lon -> values supporting rectangular range queries."""

    def __init__(self):
        self._lat_keys: List[float] = []
        self._rows: Dict[float, _LonRow[T]] = {}
        self._size = 0

    def insert(self, point: GeoPoint, value: T):
        row = self._rows.get(point.lat)
        if row is None:
            insort(self._lat_keys, point.lat)
            row = self._rows[point.lat] = _LonRow()
        row.add(point.lon, value)
        self._size += 1

    def range_query(
        self, lat_min: float, lat_max: float, lon_min: float, lon_max: float
    ) -> Iterator[Tuple[GeoPoint, T]]:
        """
        Yield (point, value) pairs inside the closed rectangle.

        Results come in ascending latitude, then ascending longitude. Inverted
        ranges yield nothing.
        """
        if lat_min > lat_max or lon_min > lon_max:
            return
        lo = bisect_left(self._lat_keys, lat_min)
        hi = bisect_right(self._lat_keys, lat_max)
        for lat in self._lat_keys[lo:hi]:
            row = self._rows[lat]
            start = bisect_left(row.keys, lon_min)
            stop = bisect_right(row.keys, lon_max)
            for lon in row.keys[start:stop]:
                point = GeoPoint(lat, lon)
                for value in row.values[lon]:
                    yield point, value

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[Tuple[GeoPoint, Any]]:
        for lat in self._lat_keys:
            row = self._rows[lat]
            for lon in row.keys:
                for value in row.values[lon]:
                    yield GeoPoint(lat, lon), value
