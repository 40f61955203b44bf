"""
Feature repository.

Holds the classified features for one run together with the lookup tables
the renderers need:
- roads grouped by name and by node
- signs by node
- buildings by "<number> <street>" (case-insensitive)
- bus stops by street

Point addresses are correlated with the footprints whose bounding box
contains them; each match becomes an extra building record that carries the
point as its primary coordinate.
"""

from collections import defaultdict
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

from .geometry import bounding_box
from .models import (
    AddressPoint,
    BarrierFeature,
    BuildingFeature,
    BusStopFeature,
    GeoPoint,
    RoadFeature,
    SignFeature,
    SignKind,
)
from .spatial_index import SpatialRangeIndex

logger = structlog.get_logger()


def address_key(house_number: str, street: str) -> str:
    return f"{house_number.strip()} {street.strip()}".lower()


class FeatureRepository:
    """Immutable feature set with derived indexes."""

    def __init__(
        self,
        roads: Tuple[RoadFeature, ...],
        buildings: Tuple[BuildingFeature, ...],
        signs: Tuple[SignFeature, ...],
        barriers: Tuple[BarrierFeature, ...],
        bus_stops: Tuple[BusStopFeature, ...],
    ):
        self.roads = roads
        self.buildings = buildings
        self.sign_features = signs
        self.barriers = barriers
        self.bus_stops = bus_stops

        self.signs: Dict[GeoPoint, SignKind] = {s.point: s.kind for s in signs}

        by_name: Dict[str, List[RoadFeature]] = defaultdict(list)
        by_node: Dict[GeoPoint, List[RoadFeature]] = defaultdict(list)
        for road in roads:
            if road.name:
                by_name[road.name].append(road)
            for point in road.geometry:
                by_node[point].append(road)
        self.roads_by_name = dict(by_name)
        self.roads_by_node = dict(by_node)

        self.buildings_by_address: Dict[str, BuildingFeature] = {}
        for building in buildings:
            if building.house_number and building.street:
                key = address_key(building.house_number, building.street)
                self.buildings_by_address[key] = building

        stops: Dict[str, List[BusStopFeature]] = defaultdict(list)
        for stop in bus_stops:
            stops[stop.street].append(stop)
        self.bus_stops_by_street = dict(stops)

    @classmethod
    def build(
        cls,
        roads: Iterable[RoadFeature] = (),
        buildings: Iterable[BuildingFeature] = (),
        signs: Iterable[SignFeature] = (),
        barriers: Iterable[BarrierFeature] = (),
        bus_stops: Iterable[BusStopFeature] = (),
        address_points: Iterable[AddressPoint] = (),
    ) -> "FeatureRepository":
        """
        Ingest classified features and build the lookup indexes.

        Args:
            roads: Road ways
            buildings: Building footprints
            signs: Sign nodes (stop, signal, lamp, generic)
            barriers: Barrier ways
            bus_stops: Sheltered bus stops with the street they serve
            address_points: Point addresses to attach to footprints

        Returns:
            The populated repository
        """
        buildings = list(buildings)

        index: SpatialRangeIndex[AddressPoint] = SpatialRangeIndex()
        for address in address_points:
            index.insert(address.point, address)

        derived = []
        if len(index):
            for building in buildings:
                if not building.footprint:
                    continue
                lat_min, lat_max, lon_min, lon_max = bounding_box(building.footprint)
                for point, address in index.range_query(lat_min, lat_max, lon_min, lon_max):
                    derived.append(
                        replace(
                            building,
                            id=address.id,
                            house_number=address.house_number,
                            street=address.street,
                            name=address.name or building.name,
                            primary_point=point,
                        )
                    )

        repo = cls(
            tuple(roads),
            tuple(buildings + derived),
            tuple(signs),
            tuple(barriers),
            tuple(bus_stops),
        )
        logger.info(
            "Feature repository built",
            roads=len(repo.roads),
            buildings=len(repo.buildings),
            address_buildings=len(derived),
            signs=len(repo.sign_features),
            barriers=len(repo.barriers),
            bus_stops=len(repo.bus_stops),
        )
        return repo

    def with_stories(self, stories: Mapping[str, float]) -> "FeatureRepository":
        """
        Return a copy with story counts joined on address.

        Keys are "<number> <street>" and match case-insensitively. Must run
        before rendering starts.
        """
        lookup = {k.strip().lower(): v for k, v in stories.items()}
        updated = []
        matched = 0
        for building in self.buildings:
            value: Optional[float] = None
            if building.house_number and building.street:
                value = lookup.get(address_key(building.house_number, building.street))
            if value is not None:
                building = replace(building, stories=value)
                matched += 1
            updated.append(building)

        logger.info("Stories joined", matched=matched, rows=len(lookup))
        return FeatureRepository(
            self.roads,
            tuple(updated),
            self.sign_features,
            self.barriers,
            self.bus_stops,
        )

    def sign_at(self, point: GeoPoint) -> Optional[SignKind]:
        return self.signs.get(point)

    def road_points(self, name: str) -> List[GeoPoint]:
        """All nodes of the named road's ways, in way order."""
        return [p for road in self.roads_by_name.get(name, ()) for p in road.geometry]
