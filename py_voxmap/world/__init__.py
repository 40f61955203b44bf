"""
Voxel store boundary and the in-memory implementation.
"""

from .store import Material, VoxelStore
from .memory_store import MemoryVoxelStore

__all__ = ['Material', 'VoxelStore', 'MemoryVoxelStore']
