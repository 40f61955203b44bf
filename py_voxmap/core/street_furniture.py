"""
Street furniture: lamps, bus shelters, barriers and zebra crossings.

These run after the roads of a pass are drawn and only read the occupancy
map.
"""

import math
from typing import Optional, Sequence, Set

import structlog

from ..errors import DegenerateFeatureError
from ..world.store import AUX_ACACIA, AUX_BLUE, Material, VoxelStore
from .geometry import angle_between, closest_point, next_closest_point, perpendicular_point
from .models import (
    BarrierFeature,
    BarrierKind,
    BusStopFeature,
    GridCell,
    RoadFeature,
)
from .occupancy import OccupancyMap
from .options import RenderOptions
from .placement import Compass
from .projection import MultilaterationConverter
from .rasterizer import ThickLineRasterizer
from .roads import road_style

logger = structlog.get_logger()

LAMP_HEIGHT = 8
LAMP_ARM = 3

SHELTER_WIDTH = 2  # cells either side of the center line
SHELTER_DEPTH = 3
SHELTER_WALL = 3

ZEBRA_WIDTH = 5
ZEBRA_STRIPE = Material.QUARTZ

BARRIER_STYLES = {
    BarrierKind.FENCE: (Material.FENCE, 1),
    BarrierKind.GATE: (Material.FENCE_GATE, 1),
    BarrierKind.GUARD_RAIL: (Material.NETHER_BRICK_FENCE, 1),
    BarrierKind.HEDGE: (Material.LEAVES, 2),
    BarrierKind.RETAINING_WALL: (Material.STONE_BRICK, 2),
    BarrierKind.WALL: (Material.STONE, 2),
}


class StreetFurnitureWriter:
    """Draws lamps, shelters, barriers and crossings."""

    def __init__(
        self,
        converter: MultilaterationConverter,
        store: VoxelStore,
        occupancy: OccupancyMap,
        options: Optional[RenderOptions] = None,
    ):
        self.converter = converter
        self.store = store
        self.occupancy = occupancy
        self.options = options or RenderOptions()
        self.rasterizer = ThickLineRasterizer()

    # Street lamps

    def lamp_direction(self, cell: GridCell) -> Compass:
        """Cardinal direction of the first road cell next to the lamp; east by default."""
        for facing in (Compass.W, Compass.E, Compass.N, Compass.S):
            dx, dz = facing.step
            if self.occupancy.is_occupied(cell.offset(dx, dz)):
                return facing
        return Compass.E

    def draw_street_lamp(self, cell: GridCell, direction: Optional[Compass] = None) -> bool:
        if not self.converter.is_valid_cell(cell):
            return False
        direction = direction or self.lamp_direction(cell)
        height = self.store.get_column_height(cell.x, cell.z)

        for i in range(LAMP_HEIGHT):
            self.store.set_block(cell.x, height + i, cell.z, Material.COBBLESTONE_WALL)

        dx, dz = direction.step
        for i in range(LAMP_ARM):
            x, z = cell.x + dx * i, cell.z + dz * i
            self.store.set_block(x, height + LAMP_HEIGHT, z, Material.STONE_SLAB)
            if i == LAMP_ARM - 1:
                self.store.set_block(x, height + LAMP_HEIGHT - 1, z, Material.SEA_LANTERN)
        return True

    # Bus stops

    def shelter_direction(self, stop: BusStopFeature, roads: Sequence[RoadFeature]) -> Optional[Compass]:
        """Direction from the stop toward its road, from the perpendicular foot on the nearest edge."""
        points = [p for road in roads for p in road.geometry]
        closest = closest_point(stop.point, points)
        if closest is None:
            return None
        nxt = next_closest_point(stop.point, closest, points)
        on_road = closest if nxt is None else perpendicular_point(stop.point, closest, nxt)

        angle = angle_between(stop.point, on_road)
        if -45 < angle < 45 or angle > 135 or angle < -135:
            return Compass.E if on_road.lon > stop.point.lon else Compass.W
        return Compass.S if on_road.lat < stop.point.lat else Compass.N

    def draw_bus_stop(self, stop: BusStopFeature, roads: Sequence[RoadFeature]) -> bool:
        direction = self.shelter_direction(stop, roads)
        if direction is None:
            return False
        # every facing is anchored at the stop cell; north-facing shelters get no extra z shift
        return self.draw_shelter(self.converter.to_grid_point(stop.point), direction)

    def draw_shelter(self, center: GridCell, direction: Compass) -> bool:
        """
        Glass shelter on a levelled pad.

        The pad runs SHELTER_DEPTH cells from `center` along `direction` and
        SHELTER_WIDTH cells either side of it. Sides and back are glass panes
        with a blue bottom row, the roof is a row of slabs.
        """
        fx, fz = direction.step
        px, pz = -fz, fx

        def at(depth, offset):
            return GridCell(center.x + fx * depth + px * offset, center.z + fz * depth + pz * offset)

        pad = [
            at(d, w)
            for d in range(SHELTER_DEPTH)
            for w in range(-SHELTER_WIDTH, SHELTER_WIDTH + 1)
        ]
        if not all(self.converter.is_valid_cell(c) for c in pad):
            return False

        top = max(self.store.get_column_height(c.x, c.z) for c in pad)
        for cell in pad:
            for y in range(self.store.get_column_height(cell.x, cell.z), top):
                self.store.set_block(cell.x, y, cell.z, Material.GRASS)

        def pane(cell, y):
            if y == 0:
                self.store.set_block(cell.x, top, cell.z, Material.STAINED_GLASS_PANE, AUX_BLUE)
            else:
                self.store.set_block(cell.x, top + y, cell.z, Material.GLASS_PANE)

        for d in range(SHELTER_DEPTH):
            for y in range(SHELTER_WALL):
                pane(at(d, -SHELTER_WIDTH), y)
                pane(at(d, SHELTER_WIDTH), y)
            for w in range(-SHELTER_WIDTH, SHELTER_WIDTH + 1):
                cell = at(d, w)
                self.store.set_block(cell.x, top + SHELTER_WALL, cell.z, Material.WOOD_SLAB, AUX_ACACIA)

        for w in range(-SHELTER_WIDTH + 1, SHELTER_WIDTH):
            for y in range(SHELTER_WALL):
                pane(at(0, w), y)
        return True

    # Barriers

    def draw_barrier(self, barrier: BarrierFeature, building_cells: Set[GridCell]) -> int:
        if len(barrier.geometry) < 2:
            raise DegenerateFeatureError(f"barrier {barrier.id} has a single point", barrier.id)
        material, height = BARRIER_STYLES[barrier.kind]

        drawn = 0
        corners = [self.converter.to_grid_point(p) for p in barrier.geometry]
        for start, end in zip(corners, corners[1:]):
            for raster in self.rasterizer.plot_line(start, end):
                cell = raster.cell
                if cell in building_cells or not self.converter.is_valid_cell(cell):
                    continue
                ground = self.store.get_column_height(cell.x, cell.z)
                for y in range(height):
                    self.store.set_block(cell.x, ground + y, cell.z, material)
                drawn += 1
        return drawn

    # Zebra crossings

    def crossing_line(self, road: RoadFeature) -> Optional[Sequence[GridCell]]:
        """Cells the crossing band follows; single-node crossings span the road they sit on."""
        if not road.geometry:
            return None
        if len(road.geometry) > 1:
            return [self.converter.to_grid_point(p) for p in road.geometry]

        pos = self.converter.to_grid_point(road.geometry[0])
        record = self.occupancy.get(pos)
        if record is None or record.painter is None:
            return None

        segment = record.painter
        start = self.converter.to_grid_point(segment.start)
        end = self.converter.to_grid_point(segment.end)
        length = math.hypot(end.x - start.x, end.z - start.z)
        if length == 0:
            return None
        style = road_style(segment.road, self.options)
        half = style.width if style else self.options.lane_width
        # perpendicular to the road edge
        nx = -(end.z - start.z) / length
        nz = (end.x - start.x) / length
        return [
            GridCell(int(round(pos.x + nx * half)), int(round(pos.z + nz * half))),
            GridCell(int(round(pos.x - nx * half)), int(round(pos.z - nz * half))),
        ]

    def draw_zebra(self, road: RoadFeature) -> int:
        line = self.crossing_line(road)
        if not line:
            return 0

        striped = 0
        for start, end in zip(line, line[1:]):
            for raster in self.rasterizer.plot_line(start, end, ZEBRA_WIDTH):
                if raster.row & 1 == 0:
                    continue
                record = self.occupancy.get(raster.cell)
                if record is None:
                    continue
                cell = raster.cell
                self.store.set_block(cell.x, record.height - 1, cell.z, ZEBRA_STRIPE)
                striped += 1
        return striped
