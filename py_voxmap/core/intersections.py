"""
Intersection topology detection.

After road rendering the occupancy map knows, for every cell, which road
segments reached it. Cells reached by two or more distinct roads are
junction cells; a 4-connected region of junction cells is one intersection.
"""

from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Set, Tuple

import structlog

from ..errors import OccupancyCorruptedError
from .models import GeoPoint, GridCell, RoadSegment
from .occupancy import OccupancyMap
from .projection import MultilaterationConverter, map_order

logger = structlog.get_logger()


@dataclass(frozen=True)
class GridRect:
    """Inclusive cell rectangle."""

    min_x: int
    min_z: int
    max_x: int
    max_z: int

    def contains(self, cell: GridCell) -> bool:
        return self.min_x <= cell.x <= self.max_x and self.min_z <= cell.z <= self.max_z

    @property
    def center(self) -> GridCell:
        return GridCell((self.min_x + self.max_x) // 2, (self.min_z + self.max_z) // 2)

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def depth(self) -> int:
        return self.max_z - self.min_z + 1


@dataclass(frozen=True)
class Intersection:
    bounds: GridRect
    segments: Tuple[RoadSegment, ...]
    cells: FrozenSet[GridCell]
    center: GridCell

    @property
    def nodes(self) -> Set[GeoPoint]:
        nodes = set()
        for segment in self.segments:
            nodes.add(segment.start)
            nodes.add(segment.end)
        return nodes

    @property
    def road_keys(self) -> Set:
        return {segment.road_key for segment in self.segments}


def _segment_order(segment: RoadSegment):
    return (str(segment.road_key), segment.road_id, segment.index)


class IntersectionTopologyDetector:
    """Finds intersections as connected regions of junction cells."""

    def __init__(self, occupancy: OccupancyMap, converter: MultilaterationConverter):
        self.occupancy = occupancy
        self.converter = converter

    def is_junction(self, cell: GridCell) -> bool:
        return self.occupancy.is_junction(cell)

    def probe(self, seed: GridCell) -> Optional[Intersection]:
        """
        Flood fill the junction region containing `seed`.

        Returns:
            The intersection, or None when seed is not a junction cell
        """
        if not self.is_junction(seed):
            return None

        visited = {seed}
        stack = [seed]
        region = []
        while stack:
            cell = stack.pop()
            region.append(cell)
            for neighbor in cell.neighbors4():
                if neighbor in visited:
                    continue
                visited.add(neighbor)
                if self.is_junction(neighbor):
                    stack.append(neighbor)

        return self._build(region)

    def detect(self) -> List[Intersection]:
        """Probe every junction cell in locality order, one region per flood fill."""
        junctions = []
        for cell, record in self.occupancy.items():
            if not record.owners:
                raise OccupancyCorruptedError(f"cell {cell} has no owners")
            if record.is_junction():
                junctions.append(cell)
        junctions.sort(key=lambda c: (map_order(c), c.z, c.x))

        found: Set[GridCell] = set()
        intersections = []
        for seed in junctions:
            if seed in found:
                continue
            intersection = self.probe(seed)
            found.update(intersection.cells)
            intersections.append(intersection)

        logger.info(
            "Intersections detected",
            junction_cells=len(junctions),
            intersections=len(intersections),
        )
        return intersections

    def _build(self, region: List[GridCell]) -> Intersection:
        bounds = GridRect(
            min(c.x for c in region),
            min(c.z for c in region),
            max(c.x for c in region),
            max(c.z for c in region),
        )

        segments = set()
        for cell in region:
            segments.update(self.occupancy.get(cell).owners)
        ordered = tuple(sorted(segments, key=_segment_order))

        return Intersection(bounds, ordered, frozenset(region), self._center(ordered, bounds))

    def _center(self, segments: Tuple[RoadSegment, ...], bounds: GridRect) -> GridCell:
        """
        Pick the cell the intersection is measured from.

        A node shared by distinct roads inside the bounds wins. Otherwise the
        segment end inside the bounds nearest the rectangle centre is used,
        which covers a road ending on the side of another. Failing both, the
        rectangle centre.
        """
        roads_at = {}
        for segment in segments:
            for node in (segment.start, segment.end):
                roads_at.setdefault(node, set()).add(segment.road_key)

        candidates = []
        for node, keys in roads_at.items():
            if len(keys) < 2:
                continue
            cell = self.converter.to_grid_point(node)
            if bounds.contains(cell):
                candidates.append(cell)

        if candidates:
            return min(candidates, key=lambda c: (c.z, c.x))

        middle = bounds.center
        ends = [c for c in (self.converter.to_grid_point(n) for n in roads_at) if bounds.contains(c)]
        if ends:
            return min(ends, key=lambda c: ((c.x - middle.x) ** 2 + (c.z - middle.z) ** 2, c.z, c.x))
        return middle
