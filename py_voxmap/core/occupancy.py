"""
Per-cell road occupancy for one rendering pass.

The map is written by road rendering only and frozen before the topology and
signage passes read it.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Set, Tuple

from ..errors import OccupancyCorruptedError, OccupancyFrozenError
from .models import GridCell, RoadSegment


@dataclass
class OccupancyRecord:
    """What road rendering left at one cell."""

    height: int
    owners: Set[RoadSegment] = field(default_factory=set)
    sidewalk: bool = False
    width: int = 0
    painter: Optional[RoadSegment] = None

    @property
    def road_keys(self) -> Set:
        return {owner.road_key for owner in self.owners}

    def is_junction(self) -> bool:
        return len(self.road_keys) >= 2


class OccupancyMap:
    """GridCell -> OccupancyRecord with first-writer-wins height."""

    def __init__(self):
        self._records: Dict[GridCell, OccupancyRecord] = {}
        self.frozen = False

    def _check_mutable(self):
        if self.frozen:
            raise OccupancyFrozenError("occupancy map is frozen")

    def claim(
        self,
        cell: GridCell,
        height: int,
        owner: RoadSegment,
        width: int,
        sidewalk: bool = False,
    ) -> OccupancyRecord:
        """Create the record for an unclaimed cell. Heights are never replaced."""
        self._check_mutable()
        if cell in self._records:
            raise OccupancyCorruptedError(f"cell {cell} already claimed")
        record = OccupancyRecord(height, {owner}, sidewalk, width, owner)
        self._records[cell] = record
        return record

    def add_owner(self, cell: GridCell, owner: RoadSegment):
        self._check_mutable()
        self._records[cell].owners.add(owner)

    def repaint(self, cell: GridCell, painter: RoadSegment, width: int, sidewalk: bool):
        self._check_mutable()
        record = self._records[cell]
        record.painter = painter
        record.width = width
        record.sidewalk = sidewalk

    def freeze(self):
        self.frozen = True

    def get(self, cell: GridCell) -> Optional[OccupancyRecord]:
        return self._records.get(cell)

    def is_occupied(self, cell: GridCell) -> bool:
        return cell in self._records

    def is_junction(self, cell: GridCell) -> bool:
        record = self._records.get(cell)
        if record is None:
            return False
        if not record.owners:
            raise OccupancyCorruptedError(f"cell {cell} has no owners")
        return record.is_junction()

    def items(self) -> Iterator[Tuple[GridCell, OccupancyRecord]]:
        return iter(self._records.items())

    def __contains__(self, cell) -> bool:
        return cell in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[GridCell]:
        return iter(self._records)
