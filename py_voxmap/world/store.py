"""
Voxel store boundary.

The renderer only needs column heights, single block reads and writes,
decorative attachments, and the two persistence hooks. Everything else about
the world (chunk paging, file formats) lives behind this protocol.
"""

from enum import Enum
from typing import Any, Protocol, Tuple, runtime_checkable


class Material(Enum):
    """Block vocabulary used by the renderers."""

    AIR = "air"
    STONE = "stone"
    GRASS = "grass"
    DIRT = "dirt"
    COBBLESTONE = "cobblestone"
    MOSS_STONE = "mossy_cobblestone"
    GRAVEL = "gravel"
    SAND = "sand"
    SANDSTONE = "sandstone"
    STONE_BRICK = "stone_bricks"
    BRICK = "bricks"
    NETHER_BRICK = "nether_bricks"
    CONCRETE = "concrete"
    CONCRETE_POWDER = "concrete_powder"
    CLAY = "clay"
    STAINED_CLAY = "stained_clay"
    IRON_BLOCK = "iron_block"
    QUARTZ = "quartz_block"
    OBSIDIAN = "obsidian"
    WOOD = "planks"
    FARMLAND = "farmland"
    LEAVES = "leaves"
    WOOL = "wool"
    STONE_SLAB = "stone_slab"
    WOOD_SLAB = "wooden_slab"
    COBBLESTONE_WALL = "cobblestone_wall"
    FENCE = "fence"
    FENCE_GATE = "fence_gate"
    NETHER_BRICK_FENCE = "nether_brick_fence"
    GLASS_PANE = "glass_pane"
    STAINED_GLASS_PANE = "stained_glass_pane"
    SEA_LANTERN = "sea_lantern"
    ANVIL = "anvil"
    SIGN_POST = "standing_sign"
    WALL_SIGN = "wall_sign"
    STANDING_BANNER = "standing_banner"
    WALL_BANNER = "wall_banner"

    @property
    def is_air(self) -> bool:
        return self is Material.AIR


# Colour and variant aux values
AUX_BLACK = 15
AUX_LIGHT_GRAY = 8
AUX_BLUE = 11
AUX_ACACIA = 4
AUX_BIRCH = 2
AUX_POLISHED_ANDESITE = 6

Block = Tuple[Material, int]


@runtime_checkable
class VoxelStore(Protocol):
    """What the renderers require of a voxel world."""

    def get_column_height(self, x: int, z: int) -> int:
        """Y of the first air block above the column's topmost solid block."""
        ...

    def get_block(self, x: int, y: int, z: int) -> Block:
        ...

    def set_block(self, x: int, y: int, z: int, material: Material, aux: int = 0) -> None:
        ...

    def add_attachment(self, x: int, y: int, z: int, attachment: Any) -> None:
        ...

    def flush(self) -> None:
        """Write dirty chunks out; called periodically during long passes."""
        ...

    def save(self) -> None:
        ...
