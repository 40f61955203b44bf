"""
In-memory voxel store.

Terrain is a numpy heightmap: every column is solid up to its height (grass
on top, stone below). Blocks written by the renderers are kept sparsely on
top of the terrain, and writes mark their 16x16 chunk dirty until the next
flush. Writes outside the world footprint are dropped, the way an unloaded
region would drop them.
"""

from typing import Any, Dict, Optional, Set, Tuple

import numpy as np
import structlog

from ..errors import StoreError
from .store import Block, Material

logger = structlog.get_logger()

CHUNK_SHIFT = 4


class MemoryVoxelStore:
    """VoxelStore backed by a numpy heightmap and a sparse block dict."""

    def __init__(
        self,
        width: int,
        depth: int,
        base_height: int = 64,
        max_height: int = 256,
        heightmap: Optional[np.ndarray] = None,
    ):
        """
        Initialize the store.

        Args:
            width: World extent along x
            depth: World extent along z
            base_height: Terrain height used when no heightmap is given
            max_height: Exclusive upper bound for block y
            heightmap: Optional (depth, width) integer terrain heights
        """
        self.width = width
        self.depth = depth
        self.max_height = max_height

        if heightmap is None:
            terrain = np.full((depth, width), base_height, dtype=np.int32)
        else:
            terrain = np.asarray(heightmap, dtype=np.int32)
            if terrain.shape != (depth, width):
                raise ValueError(
                    f"heightmap shape {terrain.shape} does not match ({depth}, {width})"
                )
            terrain = terrain.copy()

        self.terrain = terrain
        self._tops = terrain.copy()
        self._blocks: Dict[Tuple[int, int, int], Block] = {}
        self.attachments: Dict[Tuple[int, int, int], Any] = {}
        self._dirty: Set[Tuple[int, int]] = set()
        self.flush_count = 0
        self.save_count = 0
        self.closed = False

    def _in_world(self, x: int, z: int) -> bool:
        return 0 <= x < self.width and 0 <= z < self.depth

    def _check_open(self):
        if self.closed:
            raise StoreError("store is closed")

    def _terrain_block(self, x: int, y: int, z: int) -> Block:
        ground = int(self.terrain[z, x])
        if y < ground - 1:
            return Material.STONE, 0
        if y == ground - 1:
            return Material.GRASS, 0
        return Material.AIR, 0

    def get_column_height(self, x: int, z: int) -> int:
        self._check_open()
        if not self._in_world(x, z):
            return 0
        return int(self._tops[z, x])

    def get_block(self, x: int, y: int, z: int) -> Block:
        self._check_open()
        if not self._in_world(x, z):
            return Material.AIR, 0
        block = self._blocks.get((x, y, z))
        if block is not None:
            return block
        return self._terrain_block(x, y, z)

    def set_block(self, x: int, y: int, z: int, material: Material, aux: int = 0):
        self._check_open()
        if not self._in_world(x, z) or not 0 <= y < self.max_height:
            logger.debug("Dropped write outside world", x=x, y=y, z=z)
            return

        self._blocks[(x, y, z)] = (material, aux)
        self._dirty.add((x >> CHUNK_SHIFT, z >> CHUNK_SHIFT))

        top = int(self._tops[z, x])
        if not material.is_air:
            if y + 1 > top:
                self._tops[z, x] = y + 1
        elif y == top - 1:
            while y > 0 and self.get_block(x, y - 1, z)[0].is_air:
                y -= 1
            self._tops[z, x] = y

    def add_attachment(self, x: int, y: int, z: int, attachment: Any):
        self._check_open()
        if not self._in_world(x, z):
            return
        self.attachments[(x, y, z)] = attachment
        self._dirty.add((x >> CHUNK_SHIFT, z >> CHUNK_SHIFT))

    @property
    def dirty_chunks(self) -> int:
        return len(self._dirty)

    def flush(self):
        self._check_open()
        logger.debug("Flushing chunks", dirty=len(self._dirty))
        self._dirty.clear()
        self.flush_count += 1

    def save(self):
        self.flush()
        self.save_count += 1
        logger.info("World saved", blocks=len(self._blocks), attachments=len(self.attachments))

    def close(self):
        self.closed = True

    def count(self, material: Material) -> int:
        """Number of explicitly written blocks of a material."""
        return sum(1 for block in self._blocks.values() if block[0] is material)
