"""
Value types and feature records shared by the mapping pipeline.

Feature records arrive already classified from the feature source and are
treated as immutable for the whole run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Tuple


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class GridCell:
    """Integer (x, z) cell in the horizontal plane of the voxel world."""

    x: int
    z: int

    def offset(self, dx: int, dz: int) -> "GridCell":
        return GridCell(self.x + dx, self.z + dz)

    def neighbors4(self) -> Iterator["GridCell"]:
        yield GridCell(self.x + 1, self.z)
        yield GridCell(self.x - 1, self.z)
        yield GridCell(self.x, self.z + 1)
        yield GridCell(self.x, self.z - 1)

    def __str__(self) -> str:
        return f"{self.x},{self.z}"


@dataclass(frozen=True)
class Anchor:
    """Calibration pair binding a known geographic point to a grid cell."""

    point: GeoPoint
    cell: GridCell


class RoadKind(Enum):
    SERVICE = "service"
    RESIDENTIAL = "residential"
    PATH = "path"
    FOOTWAY = "footway"
    CYCLEWAY = "cycleway"
    MOTORWAY = "motorway"
    MOTORWAY_LINK = "motorway_link"
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TRUNK = "trunk"
    CROSSING = "crossing"
    OTHER = "other"


class Surface(Enum):
    NONE = "none"
    ASPHALT = "asphalt"
    CONCRETE = "concrete"
    COBBLESTONE = "cobblestone"
    CLAY = "clay"
    DIRT = "dirt"
    GRAVEL = "gravel"
    FINE_GRAVEL = "fine_gravel"
    GRAVEL_GRASS = "gravel;grass"
    METAL = "metal"
    STONE = "stone"
    BRICK = "brick"
    SAND = "sand"
    WOOD = "wood"
    COMPACTED = "compacted"
    GROUND = "ground"
    RAILROAD_TIES = "railroad_ties"
    PAVED = "paved"


class Sidewalk(Enum):
    NONE = "none"
    LEFT = "left"
    RIGHT = "right"
    BOTH = "both"

    @property
    def left(self) -> bool:
        return self in (Sidewalk.LEFT, Sidewalk.BOTH)

    @property
    def right(self) -> bool:
        return self in (Sidewalk.RIGHT, Sidewalk.BOTH)


class CrossingKind(Enum):
    NONE = "none"
    ZEBRA = "zebra"
    TRAFFIC_SIGNALS = "traffic_signals"
    UNCONTROLLED = "uncontrolled"


class SignKind(Enum):
    STOP = "stop"
    TRAFFIC_SIGNAL = "traffic_signals"
    STREET_LAMP = "street_lamp"
    TRAFFIC_SIGN = "traffic_sign"


class Amenity(Enum):
    NONE = "none"
    SCHOOL = "school"
    PARKING = "parking"
    BANK = "bank"
    COMMUNITY_CENTER = "community_center"
    PLACE_OF_WORSHIP = "place_of_worship"
    RESTAURANT = "restaurant"
    HOSPITAL = "hospital"
    LIBRARY = "library"
    THEATRE = "theatre"
    TRAIN_STATION = "train_station"
    FIRE_STATION = "fire_station"
    POLICE = "police"
    POST_OFFICE = "post_office"


class BarrierKind(Enum):
    FENCE = "fence"
    WALL = "wall"
    GUARD_RAIL = "guard_rail"
    GATE = "gate"
    HEDGE = "hedge"
    RETAINING_WALL = "retaining_wall"


@dataclass(frozen=True)
class RoadFeature:
    """A road way: ordered polyline plus the attributes rendering needs."""

    id: int
    geometry: Tuple[GeoPoint, ...]
    kind: RoadKind = RoadKind.RESIDENTIAL
    name: Optional[str] = None
    lanes: Optional[int] = None
    surface: Surface = Surface.NONE
    sidewalk: Sidewalk = Sidewalk.NONE
    crossing: CrossingKind = CrossingKind.NONE
    layer: Optional[int] = None
    one_way: bool = False

    @property
    def key(self):
        """Identity used to tell distinct roads apart (ways of one street share it)."""
        return self.name if self.name else self.id

    def segments(self) -> Iterator["RoadSegment"]:
        for i in range(1, len(self.geometry)):
            yield RoadSegment(self, i - 1, self.geometry[i - 1], self.geometry[i])


@dataclass(frozen=True)
class BuildingFeature:
    id: int
    footprint: Tuple[GeoPoint, ...]
    street: Optional[str] = None
    house_number: Optional[str] = None
    name: Optional[str] = None
    amenity: Amenity = Amenity.NONE
    stories: Optional[float] = None
    primary_point: Optional[GeoPoint] = None

    @property
    def address(self) -> Optional[str]:
        if self.house_number and self.street:
            return f"{self.house_number} {self.street}"
        return None


@dataclass(frozen=True)
class SignFeature:
    point: GeoPoint
    kind: SignKind


@dataclass(frozen=True)
class BarrierFeature:
    id: int
    geometry: Tuple[GeoPoint, ...]
    kind: BarrierKind


@dataclass(frozen=True)
class BusStopFeature:
    point: GeoPoint
    street: str


@dataclass(frozen=True)
class AddressPoint:
    """A point address that ingestion attaches to the footprint containing it."""

    id: int
    point: GeoPoint
    house_number: str
    street: str
    name: Optional[str] = None


@dataclass(frozen=True)
class RoadSegment:
    """One edge of a road polyline; the unit of occupancy ownership."""

    road: RoadFeature = field(compare=False, repr=False)
    index: int
    start: GeoPoint
    end: GeoPoint
    road_id: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "road_id", self.road.id)

    @property
    def road_key(self):
        return self.road.key

    @property
    def name(self) -> Optional[str]:
        return self.road.name
