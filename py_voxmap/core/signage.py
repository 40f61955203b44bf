"""
Sign text layout and sign/light writers.

Signs carry up to four lines of text. Text and banner patterns are not block
materials; they travel as `Attachment` records that the store keeps next to
the block they decorate.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import structlog

from ..world.store import AUX_BLACK, AUX_POLISHED_ANDESITE, Material, VoxelStore
from .models import GridCell, SignKind
from .placement import Compass, Placement, PlacementKind
from .projection import MultilaterationConverter

logger = structlog.get_logger()

SIGN_LINE_WIDTH = 17
SIGN_MAX_LINES = 4

TRAFFIC_SIGN_HEIGHT = 4
TRAFFIC_LIGHT_HEIGHT = 7
ARM_SEGMENT = 3

# Banner base colour followed by (colour, pattern) layers
STOP_BANNER = (
    "light_gray",
    (
        ("red", "middle_rectangle"),
        ("light_gray", "top_stripe"),
        ("light_gray", "bottom_stripe"),
        ("light_gray", "border"),
    ),
)
SIGNAL_BANNER = (
    "light_gray",
    (
        ("red", "top_triangle"),
        ("green", "bottom_triangle"),
        ("yellow", "middle_circle"),
        ("black", "curly_border"),
        ("black", "border"),
    ),
)


@dataclass(frozen=True)
class Attachment:
    """Decoration placed on a block: sign text, banner pattern, button."""

    kind: str
    orientation: Optional[Compass]
    payload: Any = None


def wrap_name(name: Optional[str], width: int = SIGN_LINE_WIDTH) -> List[str]:
    """Split a name at spaces into lines of at most `width` characters."""
    lines: List[str] = []
    if name is None:
        return lines
    while len(name) > width:
        space = name[:width].rfind(" ")
        if space == -1:
            break
        lines.append(name[:space])
        name = name[space + 1:]
    if name.strip():
        lines.append(name)
    return lines


def sign_lines(*names: Optional[str], width: int = SIGN_LINE_WIDTH, max_lines: int = SIGN_MAX_LINES) -> Tuple[str, ...]:
    lines: List[str] = []
    for name in names:
        lines.extend(wrap_name(name, width))
    return tuple(line[:width] for line in lines[:max_lines])


class SignWriter:
    """Turns placements into blocks and attachments."""

    def __init__(self, converter: MultilaterationConverter, store: VoxelStore):
        self.converter = converter
        self.store = store

    def _valid(self, cell: GridCell) -> bool:
        if self.converter.is_valid_cell(cell):
            return True
        logger.debug("Sign outside world skipped", cell=str(cell))
        return False

    def write(self, placement: Placement) -> bool:
        if placement.kind is PlacementKind.TRAFFIC_LIGHT:
            lines = sign_lines(*placement.names)
            return self.write_traffic_light(
                placement.cell, placement.arm, placement.facing, lines, placement.lights
            )
        if placement.kind is PlacementKind.TRAFFIC_SIGN:
            return self.write_traffic_sign(
                placement.cell, placement.facing, sign_lines(*placement.names), placement.sign_kind
            )
        return self.write_post_sign(placement.cell, placement.facing, sign_lines(*placement.names))

    def write_post_sign(self, cell: GridCell, facing: Compass, lines: Sequence[str]) -> bool:
        if not self._valid(cell):
            return False
        height = self.store.get_column_height(cell.x, cell.z)
        self.store.set_block(cell.x, height, cell.z, Material.SIGN_POST)
        self.store.add_attachment(cell.x, height, cell.z, Attachment("sign_text", facing, tuple(lines)))
        return True

    def write_address_sign(self, cell: GridCell, facing: Compass, lines: Sequence[str]) -> bool:
        return self.write_post_sign(cell, facing, lines)

    def write_traffic_sign(
        self, cell: GridCell, facing: Compass, lines: Sequence[str], sign_kind: Optional[SignKind]
    ) -> bool:
        """Pole with a street name plate and a stop or signal banner on top."""
        if not self._valid(cell):
            return False
        height = self.store.get_column_height(cell.x, cell.z)
        for i in range(TRAFFIC_SIGN_HEIGHT):
            self.store.set_block(cell.x, height + i, cell.z, Material.COBBLESTONE_WALL)

        dx, dz = facing.step
        sx, sz = cell.x + dx, cell.z + dz
        self.store.set_block(sx, height + 2, sz, Material.WALL_SIGN)
        self.store.add_attachment(sx, height + 2, sz, Attachment("sign_text", facing, tuple(lines)))

        top = height + TRAFFIC_SIGN_HEIGHT
        banner = STOP_BANNER if sign_kind is SignKind.STOP else SIGNAL_BANNER
        self.store.set_block(cell.x, top, cell.z, Material.STANDING_BANNER)
        self.store.add_attachment(cell.x, top, cell.z, Attachment("banner", facing, banner))
        return True

    def write_traffic_light(
        self,
        cell: GridCell,
        arm: Compass,
        heads: Compass,
        lines: Sequence[str],
        lights: int,
    ) -> bool:
        """
        Signal pole with an overhead arm.

        The arm runs from the pole along `arm`: three pole pieces, then for
        each lane a two-block light head followed by three more pieces. Heads
        and the street name plate face `heads`.
        """
        if not self._valid(cell):
            return False
        height = self.store.get_column_height(cell.x, cell.z)
        store = self.store

        store.set_block(cell.x, height, cell.z, Material.STONE, AUX_POLISHED_ANDESITE)
        store.add_attachment(cell.x, height, cell.z, Attachment("crossing_button", arm))
        store.set_block(cell.x, height + 1, cell.z, Material.ANVIL, 1)
        for i in range(2, TRAFFIC_LIGHT_HEIGHT):
            store.set_block(cell.x, height + i, cell.z, Material.COBBLESTONE_WALL)

        arm_y = height + TRAFFIC_LIGHT_HEIGHT - 1
        ax, az = arm.step
        hx, hz = heads.step
        x, z = cell.x + ax, cell.z + az
        for _ in range(ARM_SEGMENT):
            store.set_block(x, arm_y, z, Material.COBBLESTONE_WALL)
            x, z = x + ax, z + az

        for lane in range(max(1, lights)):
            for i in range(2):
                store.set_block(x, arm_y - i, z, Material.WOOL, AUX_BLACK)
            store.set_block(x + hx, arm_y, z + hz, Material.WALL_BANNER)
            store.add_attachment(x + hx, arm_y, z + hz, Attachment("banner", heads, SIGNAL_BANNER))
            x, z = x + ax, z + az

            for _ in range(ARM_SEGMENT):
                store.set_block(x, arm_y, z, Material.COBBLESTONE_WALL)
                x, z = x + ax, z + az

            if lane == 0:
                # name plate on the middle of the arm run just drawn
                px, pz = x - 2 * ax + hx, z - 2 * az + hz
                store.set_block(px, arm_y, pz, Material.WALL_SIGN)
                store.add_attachment(px, arm_y, pz, Attachment("sign_text", heads, tuple(lines)))
        return True
