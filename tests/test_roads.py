"""Tests for road styling and rendering."""

import numpy as np
import pytest

from py_voxmap.core.models import (
    CrossingKind,
    GridCell,
    RoadFeature,
    RoadKind,
    Sidewalk,
    Surface,
)
from py_voxmap.core.occupancy import OccupancyMap
from py_voxmap.core.options import RenderOptions
from py_voxmap.core.roads import (
    RoadRenderer,
    angle_adjusted_width,
    road_style,
    should_render,
)
from py_voxmap.errors import DegenerateFeatureError
from py_voxmap.world.memory_store import MemoryVoxelStore
from py_voxmap.world.store import AUX_BLACK, AUX_LIGHT_GRAY, Material

FLAT_HEIGHT = 64
WORLD_SIZE = 1024


def road(road_id=1, points=(), **kwargs):
    return RoadFeature(road_id, tuple(points), **kwargs)


class TestRoadStyle:
    """Test the surface and width table."""

    def test_default_residential(self):
        """Test that a plain road is light gray concrete, two lanes wide."""
        style = road_style(road(name="Main Street"))
        assert style.material is Material.CONCRETE
        assert style.aux == AUX_LIGHT_GRAY
        assert style.width == 12
        assert style.left_edge is None
        assert style.right_edge is None

    def test_surface_wins(self):
        """Test that an explicit surface tag picks the material."""
        style = road_style(road(kind=RoadKind.SERVICE, surface=Surface.ASPHALT, lanes=1))
        assert (style.material, style.aux) == (Material.CONCRETE, AUX_BLACK)
        assert style.width == 6

    def test_lanes_scale_width(self):
        """Test width from lane count."""
        assert road_style(road(lanes=4)).width == 24
        assert road_style(road(lanes=1)).width == 6

    def test_service(self):
        """Test service roads are narrow concrete powder."""
        style = road_style(road(kind=RoadKind.SERVICE))
        assert style.material is Material.CONCRETE_POWDER
        assert style.width == 3

    def test_path(self):
        """Test untagged paths are gravel."""
        assert road_style(road(kind=RoadKind.PATH)).material is Material.GRAVEL

    def test_footways(self):
        """Test footway variants."""
        plain = road_style(road(kind=RoadKind.FOOTWAY))
        assert plain.material is Material.SANDSTONE
        assert plain.width == 2

        assert road_style(road(kind=RoadKind.FOOTWAY, crossing=CrossingKind.ZEBRA)) is None

        signals = road_style(road(kind=RoadKind.FOOTWAY, crossing=CrossingKind.TRAFFIC_SIGNALS))
        assert signals.material is Material.STONE_BRICK

    def test_motorway(self):
        """Test motorways use five cells per lane."""
        style = road_style(road(kind=RoadKind.MOTORWAY, lanes=3))
        assert style.width == 15
        assert style.material is Material.CONCRETE

    def test_sidewalk_edges(self):
        """Test that sidewalk tags become slab edges."""
        left = road_style(road(sidewalk=Sidewalk.LEFT))
        assert left.left_edge is Material.STONE_SLAB
        assert left.right_edge is None

        both = road_style(road(sidewalk=Sidewalk.BOTH))
        assert both.left_edge is both.right_edge is Material.STONE_SLAB

    def test_options_change_lane_width(self):
        """Test that render options feed the width."""
        assert road_style(road(), RenderOptions(lane_width=4)).width == 8


class TestShouldRender:
    """Test which road ways are drawn."""

    @pytest.mark.parametrize(
        "feature,expected",
        [
            (road(kind=RoadKind.SERVICE), True),
            (road(kind=RoadKind.RESIDENTIAL), False),
            (road(kind=RoadKind.RESIDENTIAL, name="Main Street"), True),
            (road(kind=RoadKind.PRIMARY, name="Aurora Ave", layer=1), False),
            (road(kind=RoadKind.CYCLEWAY, name="Burke-Gilman Trail"), False),
            (road(kind=RoadKind.FOOTWAY, name="Pike Place Hillclimb"), True),
        ],
    )
    def test_should_render(self, feature, expected):
        """Test the rendering filter."""
        assert should_render(feature) is expected


class TestAngleAdjustedWidth:
    """Test band widening on diagonal edges."""

    def test_axis_aligned_is_unchanged(self):
        """Test straight edges keep their width."""
        assert angle_adjusted_width(12, GridCell(0, 0), GridCell(100, 0)) == 12
        assert angle_adjusted_width(12, GridCell(0, 0), GridCell(0, -100)) == 12

    def test_diagonal_is_wider(self):
        """Test a 45 degree edge widens by sqrt(2)."""
        assert angle_adjusted_width(12, GridCell(0, 0), GridCell(10, 10)) == 17
        assert angle_adjusted_width(3, GridCell(0, 0), GridCell(-10, 10)) == 4

    def test_zero_length(self):
        """Test that a degenerate edge keeps its width."""
        assert angle_adjusted_width(6, GridCell(4, 4), GridCell(4, 4)) == 6


class TestRoadRenderer:
    """Test rasterized road drawing and occupancy arbitration."""

    @pytest.fixture
    def occupancy(self):
        return OccupancyMap()

    @pytest.fixture
    def renderer(self, converter, store, occupancy):
        return RoadRenderer(converter, store, occupancy)

    @pytest.fixture
    def line(self, grid):
        def build(*cells):
            return tuple(grid.geo_for_cell(x, z) for x, z in cells)

        return build

    def test_straight_road(self, renderer, store, occupancy, line):
        """Test the cells and blocks of an east-west road."""
        main = road(1, line((400, 500), (600, 500)), name="Main Street")
        painted = renderer.render(main)

        assert painted == 201 * 12
        assert len(occupancy) == 201 * 12
        for z in range(494, 506):
            assert occupancy.is_occupied(GridCell(500, z))
        assert not occupancy.is_occupied(GridCell(500, 493))
        assert not occupancy.is_occupied(GridCell(500, 506))

        assert store.get_block(500, FLAT_HEIGHT - 1, 500) == (Material.CONCRETE, AUX_LIGHT_GRAY)
        assert store.get_column_height(500, 500) == FLAT_HEIGHT
        assert occupancy.get(GridCell(500, 500)).height == FLAT_HEIGHT

    def test_single_point_road_is_degenerate(self, renderer, line):
        """Test that a drawable road with one node is rejected."""
        with pytest.raises(DegenerateFeatureError):
            renderer.render(road(1, line((10, 10)), name="Stub Street"))

    def test_undrawn_style_paints_nothing(self, renderer, occupancy, line):
        """Test that zebra footways are left to the crossing pass."""
        zebra = road(1, line((10, 10), (20, 10)), kind=RoadKind.FOOTWAY, crossing=CrossingKind.ZEBRA)
        assert renderer.render(zebra) == 0
        assert len(occupancy) == 0

    def test_rendering_twice_is_idempotent(self, renderer, occupancy, line):
        """Test that re-rendering a road adds no owners and paints nothing."""
        main = road(1, line((400, 500), (500, 500), (600, 500)), name="Main Street")
        renderer.render(main)
        before = {cell: set(record.owners) for cell, record in occupancy.items()}

        assert renderer.render(main) == 0
        after = {cell: set(record.owners) for cell, record in occupancy.items()}
        assert after == before
        # the shared node is owned by both edges of the same road
        assert len(occupancy.get(GridCell(500, 500)).owners) == 2
        assert not occupancy.is_junction(GridCell(500, 500))

    def test_sidewalks(self, renderer, store, occupancy, line):
        """Test that sidewalks are slabs laid on top of the terrain."""
        main = road(1, line((400, 500), (600, 500)), name="Main Street", sidewalk=Sidewalk.BOTH)
        renderer.render(main)

        # 3 + 12 + 3 cells, offsets -9..8
        for z in (491, 492, 493, 506, 507, 508):
            record = occupancy.get(GridCell(500, z))
            assert record.sidewalk
            assert store.get_block(500, FLAT_HEIGHT, z) == (Material.STONE_SLAB, 0)
            assert store.get_column_height(500, z) == FLAT_HEIGHT + 1
        for z in (494, 505):
            assert not occupancy.get(GridCell(500, z)).sidewalk
            assert store.get_block(500, FLAT_HEIGHT - 1, z)[0] is Material.CONCRETE
        assert not occupancy.is_occupied(GridCell(500, 490))

    def test_clearance_above_repainted_surface(self, renderer, store, line):
        """Test that blocks above a repainted surface are cleared."""
        renderer.render(road(1, line((500, 400), (500, 600)), name="Side Street"))
        for y in (FLAT_HEIGHT, FLAT_HEIGHT + 2, FLAT_HEIGHT + 3):
            store.set_block(500, y, 500, Material.STONE)
        renderer.render(road(2, line((400, 500), (600, 500)), name="Broadway", lanes=3))

        assert store.get_block(500, FLAT_HEIGHT, 500)[0] is Material.AIR
        assert store.get_block(500, FLAT_HEIGHT + 2, 500)[0] is Material.AIR
        assert store.get_block(500, FLAT_HEIGHT + 3, 500)[0] is Material.STONE

    def test_wider_road_repaints_narrower(self, renderer, store, occupancy, line):
        """Test that a wider road crossing later takes over the shared cells."""
        narrow = road(1, line((500, 400), (500, 600)), name="Side Street", lanes=1)
        wide = road(2, line((400, 500), (600, 500)), name="Broadway", lanes=4, surface=Surface.ASPHALT)
        renderer.render(narrow)
        renderer.render(wide)

        record = occupancy.get(GridCell(500, 500))
        assert record.painter.road_id == 2
        assert record.width == 24
        assert {owner.road_id for owner in record.owners} == {1, 2}
        assert store.get_block(500, FLAT_HEIGHT - 1, 500) == (Material.CONCRETE, AUX_BLACK)

    def test_narrower_road_keeps_wider_surface(self, renderer, store, occupancy, line):
        """Test that a narrower road crossing later leaves the wider surface."""
        wide = road(2, line((400, 500), (600, 500)), name="Broadway", lanes=4, surface=Surface.ASPHALT)
        narrow = road(1, line((500, 400), (500, 600)), name="Side Street", lanes=1)
        renderer.render(wide)
        renderer.render(narrow)

        record = occupancy.get(GridCell(500, 500))
        assert record.painter.road_id == 2
        assert {owner.road_id for owner in record.owners} == {1, 2}
        assert occupancy.is_junction(GridCell(500, 500))
        assert store.get_block(500, FLAT_HEIGHT - 1, 500) == (Material.CONCRETE, AUX_BLACK)
        # cells outside the wide band still get the narrow surface
        assert store.get_block(500, FLAT_HEIGHT - 1, 450) == (Material.CONCRETE, AUX_LIGHT_GRAY)

    def test_first_writer_keeps_height(self, renderer, store, occupancy, line):
        """Test that a later road reuses the recorded height, not the current column."""
        renderer.render(road(1, line((500, 400), (500, 600)), name="Side Street"))
        store.set_block(500, 80, 500, Material.STONE)
        renderer.render(road(2, line((400, 500), (600, 500)), name="Broadway", lanes=3))

        record = occupancy.get(GridCell(500, 500))
        assert record.height == FLAT_HEIGHT
        assert record.painter.road_id == 2
        assert store.get_block(500, FLAT_HEIGHT - 1, 500) == (Material.CONCRETE, AUX_LIGHT_GRAY)
        assert store.get_block(500, 80, 500)[0] is Material.STONE

    def test_surface_follows_terrain(self, converter, line):
        """Test that each column is paved one below its own height."""
        heights = np.full((WORLD_SIZE, WORLD_SIZE), 60, dtype=np.int32)
        heights[:, 300:] = 70
        store = MemoryVoxelStore(WORLD_SIZE, WORLD_SIZE, heightmap=heights)
        occupancy = OccupancyMap()
        renderer = RoadRenderer(converter, store, occupancy)
        renderer.render(road(1, line((250, 500), (350, 500)), name="Hill Street"))

        assert occupancy.get(GridCell(299, 500)).height == 60
        assert occupancy.get(GridCell(300, 500)).height == 70
        assert store.get_block(299, 59, 500)[0] is Material.CONCRETE
        assert store.get_block(300, 69, 500)[0] is Material.CONCRETE

    def test_cells_outside_world_are_skipped(self, renderer, occupancy, line):
        """Test that roads running off the map only claim valid cells."""
        renderer.render(road(1, line((10, 2), (30, 2)), name="Edge Road"))
        assert all(cell.z >= 0 for cell in occupancy)
        assert occupancy.is_occupied(GridCell(20, 0))
