"""Tests for the spatial range index."""

import types

import pytest

from py_voxmap.core.models import GeoPoint
from py_voxmap.core.spatial_index import SpatialRangeIndex


class TestSpatialRangeIndex:
    """Test insertion and rectangular range queries."""

    @pytest.fixture
    def index(self):
        """Index with a small grid of points and one duplicate location."""
        index = SpatialRangeIndex()
        for i in range(5):
            for j in range(5):
                index.insert(GeoPoint(47.0 + i * 0.01, -122.0 + j * 0.01), (i, j))
        index.insert(GeoPoint(47.0 + 2 * 0.01, -122.0 + 2 * 0.01), "duplicate")
        return index

    def test_len_counts_every_value(self, index):
        """Test that duplicates at one point are all counted."""
        assert len(index) == 26

    def test_query_returns_points_inside_rectangle(self, index):
        """Test a query covering a 2x2 block of points."""
        results = list(index.range_query(47.005, 47.025, -121.995, -121.975))
        values = [v for _, v in results]
        assert values == [(1, 1), (1, 2), (2, 1), (2, 2), "duplicate"]

    def test_bounds_are_inclusive(self, index):
        """Test that points on the rectangle edge are included."""
        results = list(index.range_query(47.0, 47.0, -122.0, -122.0))
        assert results == [(GeoPoint(47.0, -122.0), (0, 0))]

    def test_results_are_ordered_by_lat_then_lon(self, index):
        """Test result ordering."""
        points = [p for p, _ in index.range_query(46.0, 48.0, -123.0, -121.0)]
        assert points == sorted(points, key=lambda p: (p.lat, p.lon))

    def test_inverted_range_is_empty(self, index):
        """Test that min > max yields nothing."""
        assert list(index.range_query(47.03, 47.01, -122.0, -121.9)) == []
        assert list(index.range_query(47.0, 47.1, -121.9, -122.0)) == []

    def test_query_outside_data_is_empty(self, index):
        """Test a query that misses every point."""
        assert list(index.range_query(10.0, 11.0, 10.0, 11.0)) == []

    def test_query_is_lazy(self, index):
        """Test that range_query returns a generator."""
        result = index.range_query(46.0, 48.0, -123.0, -121.0)
        assert isinstance(result, types.GeneratorType)
        assert next(result)[1] == (0, 0)

    def test_iteration_covers_everything(self, index):
        """Test iterating the whole index."""
        assert len(list(index)) == 26

    def test_empty_index(self):
        """Test queries on an empty index."""
        index = SpatialRangeIndex()
        assert len(index) == 0
        assert list(index.range_query(-90, 90, -180, 180)) == []
