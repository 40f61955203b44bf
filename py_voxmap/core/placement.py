"""
Directional placement of signs and traffic lights around intersections.

Bearings are integer degrees in grid space: 0 points east (+x) and angles
increase toward +z, so 90 is south. Every approach to an intersection is
described by the bearing from the intersection center to the far end of the
segment that carries it.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from .intersections import Intersection
from .models import GridCell, RoadFeature, RoadSegment, SignKind
from .occupancy import OccupancyMap
from .options import RenderOptions
from .projection import MultilaterationConverter
from .repository import FeatureRepository

logger = structlog.get_logger()


class Compass(Enum):
    """16-point compass, clockwise from east in grid space."""

    E = 0
    ESE = 1
    SE = 2
    SSE = 3
    S = 4
    SSW = 5
    SW = 6
    WSW = 7
    W = 8
    WNW = 9
    NW = 10
    NNW = 11
    N = 12
    NNE = 13
    NE = 14
    ENE = 15

    @property
    def degrees(self) -> float:
        return self.value * 22.5

    @property
    def is_cardinal(self) -> bool:
        return self.value % 4 == 0

    @property
    def step(self) -> Tuple[int, int]:
        """Unit (dx, dz) toward this direction, rounded to the grid."""
        rad = math.radians(self.degrees)
        return int(round(math.cos(rad))), int(round(math.sin(rad)))

    @property
    def opposite(self) -> "Compass":
        return Compass((self.value + 8) % 16)


def normalize_bearing(bearing: float) -> int:
    return int(math.floor(bearing + 0.5)) % 360


def bearing_between(origin: GridCell, target: GridCell) -> int:
    return normalize_bearing(math.degrees(math.atan2(target.z - origin.z, target.x - origin.x)))


def quantize_bearing(bearing: float) -> Compass:
    return Compass(int(((bearing % 360) + 11.25) // 22.5) % 16)


def snap_to_cardinal(bearing: float) -> Compass:
    return Compass((int(((bearing % 360) + 45) // 90) % 4) * 4)


def bearing_difference(a: float, b: float) -> float:
    diff = abs(a - b) % 360
    return min(diff, 360 - diff)


def is_across(a: float, b: float) -> bool:
    """True when two bearings point to opposite sides, within 45 degrees."""
    return bearing_difference(a, b) >= 135


def lights_per_arm(road: RoadFeature) -> int:
    if road.one_way:
        return road.lanes or 1
    return max(1, (road.lanes or 2) // 2)


@dataclass(frozen=True)
class Approach:
    """One road entering an intersection from one direction."""

    road_key: object
    name: Optional[str]
    bearing: int
    compass: Compass
    segment: RoadSegment = field(compare=False)

    @property
    def road(self) -> RoadFeature:
        return self.segment.road


class PlacementKind(Enum):
    POST_SIGN = "post_sign"
    TRAFFIC_SIGN = "traffic_sign"
    TRAFFIC_LIGHT = "traffic_light"


@dataclass(frozen=True)
class Placement:
    """A planned sign or light; writers turn these into blocks."""

    kind: PlacementKind
    cell: GridCell
    facing: Compass
    names: Tuple[str, ...]
    approach: Approach
    sign_kind: Optional[SignKind] = None
    arm: Optional[Compass] = None
    lights: int = 0


class DirectionalPlacer:
    """Plans signs and lights for detected intersections."""

    def __init__(
        self,
        occupancy: OccupancyMap,
        converter: MultilaterationConverter,
        repository: FeatureRepository,
        options: Optional[RenderOptions] = None,
    ):
        self.occupancy = occupancy
        self.converter = converter
        self.repository = repository
        self.options = options or RenderOptions()

    def bearing_from_intersection(self, segment: RoadSegment, point: GridCell) -> int:
        """Bearing from `point` to whichever segment endpoint lies farther from it."""
        start = self.converter.to_grid_point(segment.start)
        end = self.converter.to_grid_point(segment.end)
        far = max((start, end), key=lambda c: _dist2(c, point))
        return bearing_between(point, far)

    def approaches(self, intersection: Intersection) -> List[Approach]:
        """One approach per (road, compass direction)."""
        center = intersection.center
        found: Dict[Tuple[object, Compass], Approach] = {}

        for segment in intersection.segments:
            start = self.converter.to_grid_point(segment.start)
            end = self.converter.to_grid_point(segment.end)
            if start == end:
                continue
            start_inside = intersection.bounds.contains(start)
            end_inside = intersection.bounds.contains(end)
            if start_inside and end_inside:
                # wholly inside the junction; the neighbouring segments carry the approaches
                continue
            if start_inside or end_inside:
                bearings = [self.bearing_from_intersection(segment, center)]
            else:
                # the segment runs straight through the region
                bearings = [bearing_between(center, start), bearing_between(center, end)]

            for bearing in bearings:
                compass = quantize_bearing(bearing)
                key = (segment.road_key, compass)
                if key not in found:
                    found[key] = Approach(segment.road_key, segment.name, bearing, compass, segment)

        return sorted(found.values(), key=lambda a: (a.compass.value, str(a.road_key)))

    def cross_names(self, approach: Approach, approaches: Sequence[Approach]) -> Tuple[str, ...]:
        """Names of the other roads met at the intersection, excluding ones straight across."""
        names = []
        for other in approaches:
            if not other.name or other.name == approach.name:
                continue
            if is_across(approach.bearing, other.bearing):
                continue
            if other.name not in names:
                names.append(other.name)
        return tuple(sorted(names))

    def signal_kind(self, intersection: Intersection) -> Optional[SignKind]:
        """Strongest control sign tagged at any node of the intersection."""
        kinds = set()
        for node in intersection.nodes:
            kind = self.repository.sign_at(node)
            if kind is not None:
                kinds.add(kind)
        if SignKind.TRAFFIC_SIGNAL in kinds:
            return SignKind.TRAFFIC_SIGNAL
        if SignKind.STOP in kinds:
            return SignKind.STOP
        return None

    def lights_eligible(self, intersection: Intersection, approaches: Sequence[Approach]) -> bool:
        if self.signal_kind(intersection) is not SignKind.TRAFFIC_SIGNAL:
            return False
        if len(set(intersection.segments)) > 4:
            return False
        return all(a.compass.is_cardinal for a in approaches)

    def mount_point(self, origin: GridCell, bearing: float) -> Optional[GridCell]:
        """
        Find a roadside cell in the direction of `bearing`.

        Walks outward until the first unoccupied cell, then back toward the
        origin one axis step at a time until the cell touches the road.
        """
        rad = math.radians(bearing)
        cos_b = math.cos(rad)
        sin_b = math.sin(rad)

        cell = None
        for t in range(1, self.options.mount_search_limit + 1):
            candidate = GridCell(
                int(round(origin.x + cos_b * t)), int(round(origin.z + sin_b * t))
            )
            if not self.occupancy.is_occupied(candidate):
                cell = candidate
                break
        if cell is None:
            return None

        while not self._touches_road(cell):
            dx = origin.x - cell.x
            dz = origin.z - cell.z
            if dx == 0 and dz == 0:
                break
            if abs(dx) >= abs(dz):
                nxt = cell.offset(1 if dx > 0 else -1, 0)
            else:
                nxt = cell.offset(0, 1 if dz > 0 else -1)
            if self.occupancy.is_occupied(nxt):
                break
            cell = nxt
        return cell

    def _touches_road(self, cell: GridCell) -> bool:
        return any(self.occupancy.is_occupied(n) for n in cell.neighbors4())

    def arm_facing(self, approach: Approach, approaches: Sequence[Approach]) -> Compass:
        """Cardinal direction the light arm extends: toward the cross road nearest b + 90."""
        target = (approach.bearing + 90) % 360
        cross = [
            a
            for a in approaches
            if a.road_key != approach.road_key and not is_across(approach.bearing, a.bearing)
        ]
        if cross:
            best = min(cross, key=lambda a: bearing_difference(a.bearing, target))
            return snap_to_cardinal(best.bearing)
        return snap_to_cardinal(target)

    def plan(self, intersection: Intersection) -> List[Placement]:
        approaches = self.approaches(intersection)
        if not approaches:
            return []

        sign_kind = self.signal_kind(intersection)
        use_lights = self.lights_eligible(intersection, approaches)

        placements = []
        for approach in approaches:
            names = self.cross_names(approach, approaches)
            if not names:
                continue
            cell = self.mount_point(intersection.center, approach.bearing - 45)
            if cell is None:
                logger.warning(
                    "No mount point for sign",
                    center=str(intersection.center),
                    bearing=approach.bearing,
                )
                continue

            if use_lights:
                placements.append(
                    Placement(
                        PlacementKind.TRAFFIC_LIGHT,
                        cell,
                        snap_to_cardinal(approach.bearing),
                        names,
                        approach,
                        sign_kind,
                        arm=self.arm_facing(approach, approaches),
                        lights=lights_per_arm(approach.road),
                    )
                )
            elif sign_kind is not None:
                placements.append(
                    Placement(
                        PlacementKind.TRAFFIC_SIGN,
                        cell,
                        snap_to_cardinal(approach.bearing),
                        names,
                        approach,
                        sign_kind,
                    )
                )
            else:
                placements.append(
                    Placement(
                        PlacementKind.POST_SIGN,
                        cell,
                        quantize_bearing(approach.bearing),
                        names,
                        approach,
                    )
                )
        return placements


def _dist2(a: GridCell, b: GridCell) -> int:
    return (a.x - b.x) ** 2 + (a.z - b.z) ** 2
