"""
Building rendering and address signage.

Footprints are drawn as single-cell walls extruded to a common roof line:
every column of a building is raised to the tallest terrain under the
footprint plus the building height, so buildings on slopes keep a flat top.
"""

import zlib
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple

import structlog

from ..errors import DegenerateFeatureError
from ..world.store import AUX_BIRCH, Material, VoxelStore
from .geometry import (
    NearestPointIndex,
    angle_between,
    nearest_wall_point,
    next_closest_point,
    perpendicular_point,
)
from .models import Amenity, BuildingFeature, GridCell, RoadFeature
from .options import RenderOptions
from .placement import Compass
from .projection import MultilaterationConverter
from .rasterizer import ThickLineRasterizer
from .signage import sign_lines

logger = structlog.get_logger()

AMENITY_MATERIALS = {
    Amenity.TRAIN_STATION: Material.BRICK,
    Amenity.FIRE_STATION: Material.BRICK,
    Amenity.SCHOOL: Material.BRICK,
    Amenity.PARKING: Material.STONE,
    Amenity.BANK: Material.SANDSTONE,
    Amenity.PLACE_OF_WORSHIP: Material.NETHER_BRICK,
    Amenity.COMMUNITY_CENTER: Material.OBSIDIAN,
    Amenity.THEATRE: Material.WOOD,
}


def colour_aux(building: BuildingFeature) -> int:
    """Stable 0-15 colour derived from the address, or from the id without one."""
    if building.street and building.house_number:
        return zlib.crc32((building.street + building.house_number).encode("utf-8")) % 16
    return building.id % 16


def building_material(building: BuildingFeature) -> Tuple[Material, int]:
    material = AMENITY_MATERIALS.get(building.amenity)
    if material is None:
        return Material.STAINED_CLAY, colour_aux(building)
    if material is Material.WOOD:
        return material, AUX_BIRCH
    return material, 0


def building_height(building: BuildingFeature, options: RenderOptions) -> int:
    stories = building.stories if building.stories is not None else 1
    return max(options.min_building_height, int(stories * options.story_height) + 2)


class BuildingRenderer:
    """Extrudes building footprints into the store."""

    def __init__(
        self,
        converter: MultilaterationConverter,
        store: VoxelStore,
        options: Optional[RenderOptions] = None,
    ):
        self.converter = converter
        self.store = store
        self.options = options or RenderOptions()
        self.rasterizer = ThickLineRasterizer()

    def outline(self, building: BuildingFeature) -> List[GridCell]:
        """Valid cells on the footprint walls, in drawing order (may repeat corners)."""
        if len(building.footprint) < 2:
            raise DegenerateFeatureError(f"building {building.id} has no walls", building.id)

        cells = []
        corners = [self.converter.to_grid_point(p) for p in building.footprint]
        for start, end in zip(corners, corners[1:]):
            for raster in self.rasterizer.plot_line(start, end):
                if self.converter.is_valid_cell(raster.cell):
                    cells.append(raster.cell)
        return cells

    def render(self, building: BuildingFeature, building_cells: Set[GridCell]) -> int:
        """
        Draw one building.

        Args:
            building: Footprint to draw
            building_cells: Cells already drawn by any building; updated in place

        Returns:
            Number of wall columns written
        """
        cells = self.outline(building)
        if not cells:
            return 0

        height = building_height(building, self.options)
        material, aux = building_material(building)
        roof_base = max(self.store.get_column_height(c.x, c.z) for c in cells)

        columns = 0
        for cell in cells:
            # duplicate footprints share walls; draw each cell once
            if cell in building_cells:
                continue
            building_cells.add(cell)

            ground = self.store.get_column_height(cell.x, cell.z)
            for j in range((roof_base - ground) + height):
                y = ground - 1 + j
                if y > self.options.max_build_height:
                    break
                self.store.set_block(cell.x, y, cell.z, material, aux)
            columns += 1
        return columns


@dataclass(frozen=True)
class AddressSign:
    cell: GridCell
    facing: Compass
    lines: Tuple[str, ...]


class AddressSignPlacer:
    """Places a house-number sign on the side of a building facing its street."""

    def __init__(self, converter: MultilaterationConverter):
        self.converter = converter

    def place(self, building: BuildingFeature, roads: Sequence[RoadFeature]) -> Optional[AddressSign]:
        if not (building.house_number or "").strip() or not (building.street or "").strip():
            return None
        if not building.footprint:
            return None

        lines = sign_lines(building.name, building.house_number)
        points = [p for road in roads for p in road.geometry]
        if not points:
            cell = self.converter.to_grid_point(building.footprint[0])
            return AddressSign(cell, Compass.S, lines)

        road_index = NearestPointIndex(points)
        closest_road = road_index.nearest(building.footprint[0])

        if building.primary_point is not None:
            sign_point = building.primary_point
            wall_point = nearest_wall_point(sign_point, building.footprint)
        else:
            sign_point = road_index.closest_origin(building.footprint)
            wall_point = sign_point

        comparison = next_closest_point(sign_point, closest_road, points)
        if comparison is None:
            on_road = closest_road
        else:
            on_road = perpendicular_point(sign_point, comparison, closest_road)

        angle = angle_between(sign_point, on_road)
        wall = self.converter.to_grid_point(wall_point)
        if -45 < angle < 45 or angle > 135 or angle < -135:
            if closest_road.lon > sign_point.lon:
                return AddressSign(wall.offset(1, 0), Compass.E, lines)
            return AddressSign(wall.offset(-1, 0), Compass.W, lines)
        if closest_road.lat < sign_point.lat:
            return AddressSign(wall.offset(0, 1), Compass.S, lines)
        return AddressSign(wall.offset(0, -1), Compass.N, lines)
