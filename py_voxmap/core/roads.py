"""
Road rendering.

Each road edge is rasterized as one band made of an optional left sidewalk,
the carriageway and an optional right sidewalk. Cells are arbitrated through
the occupancy map: every segment that reaches a cell is recorded as an
owner, but only the first writer samples terrain height and wider roads keep
their surface where they cross narrower ones.
"""

import math
from dataclasses import dataclass
from typing import Optional

import structlog

from ..errors import DegenerateFeatureError
from ..world.store import AUX_BLACK, AUX_LIGHT_GRAY, Material, VoxelStore
from .models import CrossingKind, GridCell, RoadFeature, RoadKind, RoadSegment, Surface
from .occupancy import OccupancyMap
from .options import RenderOptions
from .projection import MultilaterationConverter
from .rasterizer import ThickLineRasterizer

logger = structlog.get_logger()

SURFACE_MATERIALS = {
    Surface.COBBLESTONE: (Material.COBBLESTONE, 0),
    Surface.ASPHALT: (Material.CONCRETE, AUX_BLACK),
    Surface.CLAY: (Material.CLAY, 0),
    Surface.DIRT: (Material.DIRT, 0),
    Surface.GRAVEL: (Material.GRAVEL, 0),
    Surface.METAL: (Material.IRON_BLOCK, 0),
    Surface.STONE: (Material.STONE, 0),
    Surface.BRICK: (Material.BRICK, 0),
    Surface.SAND: (Material.SAND, 0),
    Surface.WOOD: (Material.WOOD, 0),
    Surface.GRAVEL_GRASS: (Material.MOSS_STONE, 0),
    Surface.COMPACTED: (Material.FARMLAND, 0),
    Surface.FINE_GRAVEL: (Material.GRAVEL, 0),
    Surface.GROUND: (Material.DIRT, 0),
    Surface.RAILROAD_TIES: (Material.WOOD, 0),
    Surface.CONCRETE: (Material.CONCRETE, AUX_LIGHT_GRAY),
}

RENDERED_NAMED_KINDS = {
    RoadKind.MOTORWAY,
    RoadKind.TRUNK,
    RoadKind.PRIMARY,
    RoadKind.SECONDARY,
    RoadKind.RESIDENTIAL,
    RoadKind.FOOTWAY,
    RoadKind.PATH,
}

SIDEWALK_MATERIAL = Material.STONE_SLAB


@dataclass(frozen=True)
class RoadStyle:
    material: Material
    aux: int
    width: int
    left_edge: Optional[Material] = None
    right_edge: Optional[Material] = None


def should_render(road: RoadFeature) -> bool:
    """Service roads always; otherwise named roads of a drawn kind on the ground layer."""
    if road.kind is RoadKind.SERVICE:
        return True
    return bool(road.name) and road.kind in RENDERED_NAMED_KINDS and road.layer is None


def base_width(road: RoadFeature, options: RenderOptions) -> int:
    return (road.lanes or options.default_lanes) * options.lane_width


def road_style(road: RoadFeature, options: Optional[RenderOptions] = None) -> Optional[RoadStyle]:
    """Pick surface and width for a road; None for ways that are not drawn as roads."""
    options = options or RenderOptions()
    width = base_width(road, options)
    material, aux = Material.STONE_BRICK, 0

    if road.surface in SURFACE_MATERIALS:
        material, aux = SURFACE_MATERIALS[road.surface]
    elif road.kind is RoadKind.PATH:
        material = Material.GRAVEL
    elif road.kind is RoadKind.SERVICE:
        width = 3
        material = Material.CONCRETE_POWDER
    elif road.kind is RoadKind.FOOTWAY:
        if road.crossing is CrossingKind.ZEBRA:
            return None
        if road.crossing is CrossingKind.NONE:
            width = 2
            material = Material.SANDSTONE
    elif road.kind is RoadKind.MOTORWAY:
        width = (road.lanes or options.default_lanes) * 5
        material, aux = Material.CONCRETE, AUX_LIGHT_GRAY
    else:
        material, aux = Material.CONCRETE, AUX_LIGHT_GRAY

    left = SIDEWALK_MATERIAL if road.sidewalk.left else None
    right = SIDEWALK_MATERIAL if road.sidewalk.right else None
    return RoadStyle(material, aux, width, left, right)


def angle_adjusted_width(width: int, start: GridCell, end: GridCell) -> int:
    """
    Widen a band so it keeps its perpendicular width on diagonal edges.

    The band is laid out along the minor axis, so a diagonal edge needs
    width / cos(phi) cells, phi being the angle off the dominant axis.
    """
    dx = abs(end.x - start.x)
    dz = abs(end.z - start.z)
    major = max(dx, dz)
    if major == 0:
        return width
    phi = math.atan2(min(dx, dz), major)
    return max(1, int(math.floor(width / math.cos(phi) + 0.5)))


class RoadRenderer:
    """Draws road ways into the store and records ownership in the occupancy map."""

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

    def style_for(self, road: RoadFeature) -> Optional[RoadStyle]:
        return road_style(road, self.options)

    def render(self, road: RoadFeature) -> int:
        """
        Draw one road way.

        Returns:
            Number of cells whose surface this road painted
        """
        style = self.style_for(road)
        if style is None:
            return 0
        if len(road.geometry) < 2:
            raise DegenerateFeatureError(f"road {road.id} has a single point", road.id)

        painted = 0
        for segment in road.segments():
            painted += self._render_segment(segment, style)
        return painted

    def _render_segment(self, segment: RoadSegment, style: RoadStyle) -> int:
        start = self.converter.to_grid_point(segment.start)
        end = self.converter.to_grid_point(segment.end)

        carriageway = angle_adjusted_width(style.width, start, end)
        sidewalk = angle_adjusted_width(self.options.sidewalk_width, start, end)
        left = sidewalk if style.left_edge else 0
        right = sidewalk if style.right_edge else 0
        total = left + carriageway + right

        painted = 0
        for raster in self.rasterizer.plot_line(start, end, total):
            if not self.converter.is_valid_cell(raster.cell):
                continue
            edge = None
            if raster.column < left:
                edge = style.left_edge
            elif raster.column >= total - right:
                edge = style.right_edge
            if self._paint(raster.cell, segment, style, edge):
                painted += 1
        return painted

    def _paint(
        self,
        cell: GridCell,
        segment: RoadSegment,
        style: RoadStyle,
        edge: Optional[Material],
    ) -> bool:
        record = self.occupancy.get(cell)
        if record is None:
            height = self.store.get_column_height(cell.x, cell.z)
            self.occupancy.claim(cell, height, segment, style.width, sidewalk=edge is not None)
            if edge is not None:
                self.store.set_block(cell.x, height, cell.z, edge)
                self._clear_above(cell, height + 1)
            else:
                self.store.set_block(cell.x, height - 1, cell.z, style.material, style.aux)
                self._clear_above(cell, height)
            return True

        self.occupancy.add_owner(cell, segment)
        painter = record.painter
        if painter is not None and (
            painter.road_id == segment.road_id
            or (painter.name is not None and painter.name == segment.name)
        ):
            return False
        # wider roads keep their surface
        if record.width > style.width:
            return False
        if edge is not None:
            return False

        self.occupancy.repaint(cell, segment, style.width, sidewalk=False)
        self.store.set_block(cell.x, record.height - 1, cell.z, style.material, style.aux)
        self._clear_above(cell, record.height)
        return True

    def _clear_above(self, cell: GridCell, y: int):
        for i in range(self.options.clearance):
            material, _ = self.store.get_block(cell.x, y + i, cell.z)
            if not material.is_air:
                self.store.set_block(cell.x, y + i, cell.z, Material.AIR)
