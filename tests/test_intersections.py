"""Tests for intersection topology detection."""

import pytest

from py_voxmap.core.intersections import GridRect, IntersectionTopologyDetector
from py_voxmap.core.models import GridCell, RoadFeature
from py_voxmap.core.occupancy import OccupancyMap
from py_voxmap.core.roads import RoadRenderer
from py_voxmap.errors import OccupancyCorruptedError


class TestGridRect:
    """Test the inclusive rectangle helper."""

    def test_rect(self):
        """Test containment, size and center."""
        rect = GridRect(494, 494, 505, 505)
        assert rect.contains(GridCell(494, 505))
        assert not rect.contains(GridCell(493, 500))
        assert rect.width == 12
        assert rect.depth == 12
        assert rect.center == GridCell(499, 499)


class TestIntersectionTopologyDetector:
    """Test flood fill over junction cells."""

    @pytest.fixture
    def occupancy(self):
        return OccupancyMap()

    @pytest.fixture
    def draw(self, grid, converter, store, occupancy):
        renderer = RoadRenderer(converter, store, occupancy)

        def draw_road(road_id, name, *cells):
            geometry = tuple(grid.geo_for_cell(x, z) for x, z in cells)
            road = RoadFeature(road_id, geometry, name=name)
            renderer.render(road)
            return road

        return draw_road

    @pytest.fixture
    def crossroads(self, draw):
        draw(1, "Main Street", (400, 500), (500, 500), (600, 500))
        draw(2, "First Avenue", (500, 400), (500, 500), (500, 600))

    @pytest.fixture
    def detector(self, occupancy, converter):
        return IntersectionTopologyDetector(occupancy, converter)

    def test_four_way_crossing(self, crossroads, detector):
        """Test the region, segments and center of a plain crossing."""
        intersections = detector.detect()
        assert len(intersections) == 1

        crossing = intersections[0]
        assert crossing.bounds == GridRect(494, 494, 505, 505)
        assert len(crossing.cells) == 144
        assert crossing.center == GridCell(500, 500)
        assert crossing.road_keys == {"Main Street", "First Avenue"}
        assert [(s.road_key, s.index) for s in crossing.segments] == [
            ("First Avenue", 0),
            ("First Avenue", 1),
            ("Main Street", 0),
            ("Main Street", 1),
        ]

    @pytest.mark.parametrize(
        "seed", [GridCell(494, 494), GridCell(505, 505), GridCell(500, 500), GridCell(494, 505), GridCell(499, 503)]
    )
    def test_probe_is_seed_independent(self, crossroads, detector, seed):
        """Test that any junction cell of the region yields the same intersection."""
        assert detector.probe(seed) == detector.probe(GridCell(500, 500))

    def test_probe_outside_junction(self, crossroads, detector):
        """Test that non-junction seeds yield nothing."""
        assert detector.probe(GridCell(450, 500)) is None
        assert detector.probe(GridCell(10, 10)) is None

    def test_bend_in_one_road_is_not_an_intersection(self, draw, detector):
        """Test that segments of a single road never form a junction."""
        draw(1, "Main Street", (400, 500), (500, 500), (500, 600))
        assert detector.detect() == []

    def test_ways_of_one_street_do_not_intersect(self, draw, detector):
        """Test that two ways sharing a name count as one road."""
        draw(1, "Main Street", (400, 500), (500, 500))
        draw(2, "Main Street", (500, 500), (600, 500))
        assert detector.detect() == []

    def test_t_junction(self, draw, detector):
        """Test a road ending on another."""
        draw(1, "Main Street", (400, 500), (600, 500))
        draw(2, "First Avenue", (500, 400), (500, 500))

        (junction,) = detector.detect()
        assert junction.bounds == GridRect(494, 494, 505, 500)
        assert junction.center == GridCell(500, 500)

    def test_center_at_segment_end_nearest_middle(self, draw, detector):
        """Test that without a shared node the segment end closest to the middle is used."""
        draw(1, "Main Street", (400, 500), (498, 500), (502, 500), (600, 500))
        draw(2, "First Avenue", (500, 400), (500, 600))

        (crossing,) = detector.detect()
        assert crossing.bounds == GridRect(494, 494, 505, 505)
        assert crossing.center == GridCell(498, 500)

    def test_center_falls_back_to_bounds(self, draw, detector):
        """Test the center of a crossing without a shared node."""
        draw(1, "Main Street", (400, 500), (600, 500))
        draw(2, "First Avenue", (500, 400), (500, 600))

        (crossing,) = detector.detect()
        assert crossing.center == crossing.bounds.center == GridCell(499, 499)

    def test_regions_are_reported_in_locality_order(self, draw, detector):
        """Test that separate crossings are found once each, west to east."""
        draw(1, "Main Street", (400, 500), (700, 500))
        draw(2, "Sixth Avenue", (660, 400), (660, 600))
        draw(3, "First Avenue", (500, 400), (500, 600))

        intersections = detector.detect()
        assert [i.bounds.min_x for i in intersections] == [494, 654]
        assert intersections[0].road_keys == {"Main Street", "First Avenue"}
        assert intersections[1].road_keys == {"Main Street", "Sixth Avenue"}

    def test_ownerless_record_is_fatal(self, crossroads, occupancy, detector):
        """Test that a corrupted occupancy record aborts detection."""
        occupancy.get(GridCell(450, 500)).owners.clear()
        with pytest.raises(OccupancyCorruptedError):
            detector.detect()
