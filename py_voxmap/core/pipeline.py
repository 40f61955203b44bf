"""
Three-phase batch mapping pass.

Phase 1 is the caller's: build the FeatureRepository (and join stories) so
that the feature set is fixed before drawing starts.

Phase 2 draws features in locality order:
- roads grouped by name, with the bus stops of each group
- zebra crossings
- street lamps
- buildings with their address signs
- barriers

Phase 3 freezes the occupancy map, detects intersections and writes the
planned signs and traffic lights.

A feature that cannot be drawn is logged and skipped. A fatal error saves
whatever was already written and propagates.
"""

from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Set

import structlog

from ..errors import FatalRenderError, RecoverableFeatureError, StoreError
from ..world.store import VoxelStore
from .buildings import AddressSignPlacer, BuildingRenderer
from .intersections import IntersectionTopologyDetector
from .models import CrossingKind, GeoPoint, GridCell, RoadFeature, SignKind
from .occupancy import OccupancyMap
from .options import RenderOptions
from .placement import DirectionalPlacer, PlacementKind
from .projection import MultilaterationConverter
from .repository import FeatureRepository
from .roads import RoadRenderer, should_render
from .signage import SignWriter
from .spatial_index import SpatialRangeIndex
from .street_furniture import StreetFurnitureWriter

logger = structlog.get_logger()


@dataclass
class MapReport:
    """Counts of what a pass drew."""

    roads: int = 0
    road_cells: int = 0
    bus_stops: int = 0
    zebra_crossings: int = 0
    street_lamps: int = 0
    buildings: int = 0
    address_signs: int = 0
    barriers: int = 0
    intersections: int = 0
    street_signs: int = 0
    traffic_signs: int = 0
    traffic_lights: int = 0
    skipped: int = 0
    errors: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


class VoxelMapper:
    """Runs one mapping pass of a repository into a voxel store."""

    def __init__(
        self,
        repository: FeatureRepository,
        converter: MultilaterationConverter,
        store: VoxelStore,
        options: Optional[RenderOptions] = None,
    ):
        self.repository = repository
        self.converter = converter
        self.store = store
        self.options = options or RenderOptions()

        self.occupancy = OccupancyMap()
        self.road_renderer = RoadRenderer(converter, store, self.occupancy, self.options)
        self.building_renderer = BuildingRenderer(converter, store, self.options)
        self.address_placer = AddressSignPlacer(converter)
        self.furniture = StreetFurnitureWriter(converter, store, self.occupancy, self.options)
        self.sign_writer = SignWriter(converter, store)
        self.building_cells: Set[GridCell] = set()

    def run(self) -> MapReport:
        report = MapReport()
        logger.info(
            "Mapping started",
            roads=len(self.repository.roads),
            buildings=len(self.repository.buildings),
        )
        try:
            self.draw_roads(report)
            self.draw_zebra_crossings(report)
            self.draw_street_lamps(report)
            self.draw_buildings(report)
            self.store.save()
            self.draw_barriers(report)

            self.occupancy.freeze()
            self.draw_intersections(report)
            self.store.save()
        except FatalRenderError:
            logger.error("Mapping aborted, saving applied state", **report.as_dict())
            self._save_after_failure()
            raise

        logger.info("Mapping finished", **report.as_dict())
        return report

    def _save_after_failure(self):
        try:
            self.store.save()
        except StoreError:
            logger.exception("Save after failure did not complete")

    @contextmanager
    def _feature(self, kind: str, feature_id, report: MapReport):
        try:
            yield
        except RecoverableFeatureError as e:
            report.skipped += 1
            logger.warning("Feature skipped", kind=kind, feature_id=feature_id, reason=str(e))
        except FatalRenderError:
            raise
        except Exception:
            report.errors += 1
            logger.exception("Feature failed", kind=kind, feature_id=feature_id)

    def _order(self, point: Optional[GeoPoint]):
        if point is None:
            return (0, 0)
        return self.converter.map_order(point)

    def _flush_every(self, count: int, interval: int):
        if count % interval == 0:
            self.store.flush()

    def road_groups(self) -> List[List[RoadFeature]]:
        """
        Roads grouped by name, groups ordered by the locality of their first node.

        First nodes are bucketed in a SpatialRangeIndex, so groups starting in
        the same locality tile come out in latitude-then-longitude order
        whatever order the features arrived in.
        """
        by_name: Dict[str, List[RoadFeature]] = {}
        for road in self.repository.roads:
            by_name.setdefault(road.name or "", []).append(road)

        def first_point(group):
            for road in group:
                if road.geometry:
                    return road.geometry[0]
            return None

        index: SpatialRangeIndex[List[RoadFeature]] = SpatialRangeIndex()
        unplaced = []
        for group in by_name.values():
            point = first_point(group)
            if point is None:
                unplaced.append(group)
            else:
                index.insert(point, group)

        placed = sorted(index, key=lambda entry: self._order(entry[0]))
        return unplaced + [group for _, group in placed]

    def draw_roads(self, report: MapReport):
        count = 0
        for group in self.road_groups():
            for road in group:
                if not should_render(road):
                    continue
                count += 1
                self._flush_every(count, self.options.road_flush_interval)
                with self._feature("road", road.id, report):
                    cells = self.road_renderer.render(road)
                    report.roads += 1
                    report.road_cells += cells

            name = group[0].name
            stops = self.repository.bus_stops_by_street.get(name, ()) if name else ()
            for stop in stops:
                with self._feature("bus_stop", str(stop.point), report):
                    if self.furniture.draw_bus_stop(stop, group):
                        report.bus_stops += 1

        self.store.flush()
        logger.info("Roads drawn", roads=report.roads, cells=report.road_cells)

    def draw_zebra_crossings(self, report: MapReport):
        count = 0
        for road in self.repository.roads:
            if road.crossing is not CrossingKind.ZEBRA:
                continue
            count += 1
            self._flush_every(count, self.options.road_flush_interval)
            with self._feature("zebra", road.id, report):
                if self.furniture.draw_zebra(road):
                    report.zebra_crossings += 1

    def draw_street_lamps(self, report: MapReport):
        lamps = [s for s in self.repository.sign_features if s.kind is SignKind.STREET_LAMP]
        lamps.sort(key=lambda s: self._order(s.point))
        for count, lamp in enumerate(lamps, 1):
            self._flush_every(count, self.options.sign_flush_interval)
            with self._feature("street_lamp", str(lamp.point), report):
                cell = self.converter.to_grid_point(lamp.point)
                if self.furniture.draw_street_lamp(cell):
                    report.street_lamps += 1

    def draw_buildings(self, report: MapReport):
        buildings = sorted(
            self.repository.buildings,
            key=lambda b: self._order(b.footprint[0] if b.footprint else None),
        )
        for count, building in enumerate(buildings, 1):
            self._flush_every(count, self.options.building_flush_interval)
            with self._feature("building", building.id, report):
                self.building_renderer.render(building, self.building_cells)
                report.buildings += 1

                roads = self.repository.roads_by_name.get(building.street, ()) if building.street else ()
                sign = self.address_placer.place(building, roads)
                if sign is not None and self.sign_writer.write_address_sign(
                    sign.cell, sign.facing, sign.lines
                ):
                    report.address_signs += 1

        self.store.flush()
        logger.info("Buildings drawn", buildings=report.buildings, signs=report.address_signs)

    def draw_barriers(self, report: MapReport):
        barriers = sorted(
            self.repository.barriers,
            key=lambda b: self._order(b.geometry[0] if b.geometry else None),
        )
        for count, barrier in enumerate(barriers, 1):
            self._flush_every(count, self.options.road_flush_interval)
            with self._feature("barrier", barrier.id, report):
                self.furniture.draw_barrier(barrier, self.building_cells)
                report.barriers += 1

    def draw_intersections(self, report: MapReport):
        detector = IntersectionTopologyDetector(self.occupancy, self.converter)
        placer = DirectionalPlacer(self.occupancy, self.converter, self.repository, self.options)

        intersections = detector.detect()
        report.intersections = len(intersections)
        count = 0
        for intersection in intersections:
            with self._feature("intersection", str(intersection.center), report):
                for placement in placer.plan(intersection):
                    count += 1
                    self._flush_every(count, self.options.sign_flush_interval)
                    if not self.sign_writer.write(placement):
                        continue
                    if placement.kind is PlacementKind.TRAFFIC_LIGHT:
                        report.traffic_lights += 1
                    elif placement.kind is PlacementKind.TRAFFIC_SIGN:
                        report.traffic_signs += 1
                    else:
                        report.street_signs += 1

        logger.info(
            "Intersection signage drawn",
            intersections=report.intersections,
            street_signs=report.street_signs,
            traffic_signs=report.traffic_signs,
            traffic_lights=report.traffic_lights,
        )
