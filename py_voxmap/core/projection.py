"""
Coordinate projection and multi-anchor calibration.

Geographic coordinates are first projected to planar (spherical Mercator)
meters, then blended into grid cells using a set of calibration anchors.
Each anchor proposes the cell it would map the target to; the proposals are
averaged with inverse squared-distance weights so that the mapping follows
the nearest anchors closely while staying smooth between them.
"""

import math
from typing import Sequence, Tuple

import structlog

from ..errors import ProjectionError
from .models import Anchor, GeoPoint, GridCell

logger = structlog.get_logger()

EARTH_RADIUS_M = 6378137.0
DEFAULT_SCALE_CORRECTION = 1.10


def planar_y(lat: float) -> float:
    """Project a latitude in degrees to planar meters."""
    if not -90.0 < lat < 90.0:
        raise ProjectionError(f"latitude {lat} outside (-90, 90)")
    return math.log(math.tan(math.radians(lat) / 2 + math.pi / 4)) * EARTH_RADIUS_M


def planar_x(lon: float) -> float:
    """Project a longitude in degrees to planar meters."""
    return math.radians(lon) * EARTH_RADIUS_M


def lat_from_planar_y(y: float) -> float:
    return math.degrees(2 * math.atan(math.exp(y / EARTH_RADIUS_M)) - math.pi / 2)


def lon_from_planar_x(x: float) -> float:
    return math.degrees(x / EARTH_RADIUS_M)


class CoordinateProjector:
    """Spherical Mercator forward and inverse projection."""

    radius = EARTH_RADIUS_M
    planar_x = staticmethod(planar_x)
    planar_y = staticmethod(planar_y)
    lat_from_planar_y = staticmethod(lat_from_planar_y)
    lon_from_planar_x = staticmethod(lon_from_planar_x)

    @classmethod
    def project(cls, point: GeoPoint) -> Tuple[float, float]:
        return cls.planar_x(point.lon), cls.planar_y(point.lat)

    @classmethod
    def unproject(cls, x: float, y: float) -> GeoPoint:
        return GeoPoint(cls.lat_from_planar_y(y), cls.lon_from_planar_x(x))


def map_order(cell: GridCell) -> Tuple[int, int]:
    """Locality key: 32x32 tiles in row-major order."""
    return (cell.z >> 5, cell.x >> 5)


class _ProjectedAnchor:
    __slots__ = ("planar_x", "planar_y", "x", "z")

    def __init__(self, anchor: Anchor):
        self.planar_x = planar_x(anchor.point.lon)
        self.planar_y = planar_y(anchor.point.lat)
        self.x = anchor.cell.x
        self.z = anchor.cell.z


class MultilaterationConverter:
    """Maps latitude/longitude to grid cells using calibrated anchors."""

    def __init__(
        self,
        world_width: int,
        world_depth: int,
        anchors: Sequence[Anchor],
        scale_correction: float = DEFAULT_SCALE_CORRECTION,
    ):
        """
        Initialize the converter.

        Args:
            world_width: Number of cells along x
            world_depth: Number of cells along z
            anchors: Calibration anchors, at least one
            scale_correction: Empirical factor applied to planar deltas
        """
        if not anchors:
            raise ValueError("at least one anchor is required")
        self.world_width = world_width
        self.world_depth = world_depth
        self.scale_correction = scale_correction
        self.anchors = tuple(anchors)
        self._projected = [_ProjectedAnchor(a) for a in self.anchors]

        logger.debug(
            "Converter initialized",
            anchors=len(self.anchors),
            world_width=world_width,
            world_depth=world_depth,
        )

    def to_grid(self, lat: float, lon: float) -> GridCell:
        target_x = planar_x(lon)
        target_y = planar_y(lat)
        k = self.scale_correction

        total_weight = 0.0
        x_total = 0.0
        z_total = 0.0
        for anchor in self._projected:
            # north is toward smaller z
            dz = (anchor.planar_y - target_y) * k
            dx = (target_x - anchor.planar_x) * k

            dist = dz * dz + dx * dx
            weight = 1.0 if dist == 0 else 1.0 / dist
            x_total += (anchor.x + dx) * weight
            z_total += (anchor.z + dz) * weight
            total_weight += weight

        return GridCell(
            int(math.floor(x_total / total_weight + 0.5)),
            int(math.floor(z_total / total_weight + 0.5)),
        )

    def to_grid_point(self, point: GeoPoint) -> GridCell:
        return self.to_grid(point.lat, point.lon)

    def is_valid_cell(self, cell: GridCell) -> bool:
        return 0 <= cell.x < self.world_width and 0 <= cell.z < self.world_depth

    def map_order(self, point: GeoPoint) -> Tuple[int, int]:
        return map_order(self.to_grid_point(point))
