"""Shared fixtures: a calibrated grid whose anchors agree with each other."""

import pytest

from py_voxmap.core.models import Anchor, GeoPoint, GridCell
from py_voxmap.core.projection import (
    DEFAULT_SCALE_CORRECTION,
    MultilaterationConverter,
    lat_from_planar_y,
    lon_from_planar_x,
    planar_x,
    planar_y,
)
from py_voxmap.world.memory_store import MemoryVoxelStore

WORLD_SIZE = 1024
ORIGIN = GeoPoint(47.6, -122.3)
ORIGIN_CELL = GridCell(500, 500)
FLAT_HEIGHT = 64


class CalibratedGrid:
    """Linear lat/lon <-> cell mapping used to build consistent anchors."""

    def __init__(self, origin=ORIGIN, origin_cell=ORIGIN_CELL, k=DEFAULT_SCALE_CORRECTION):
        self.origin_x = planar_x(origin.lon)
        self.origin_y = planar_y(origin.lat)
        self.origin_cell = origin_cell
        self.k = k

    def geo_for_cell(self, x, z) -> GeoPoint:
        px = self.origin_x + (x - self.origin_cell.x) / self.k
        py = self.origin_y - (z - self.origin_cell.z) / self.k
        return GeoPoint(lat_from_planar_y(py), lon_from_planar_x(px))

    def anchor(self, x, z) -> Anchor:
        return Anchor(self.geo_for_cell(x, z), GridCell(x, z))

    def converter(self, size=WORLD_SIZE) -> MultilaterationConverter:
        anchors = [self.anchor(100, 100), self.anchor(900, 150), self.anchor(400, 900)]
        return MultilaterationConverter(size, size, anchors)


@pytest.fixture
def grid():
    return CalibratedGrid()


@pytest.fixture
def converter(grid):
    return grid.converter()


@pytest.fixture
def store():
    return MemoryVoxelStore(WORLD_SIZE, WORLD_SIZE, base_height=FLAT_HEIGHT)
