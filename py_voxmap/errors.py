"""
Error hierarchy for the voxel mapping pipeline.

Recoverable errors describe a single feature that cannot be drawn; the pass
logs them and moves on. Fatal errors mean the shared state of the pass
(occupancy map or store handle) can no longer be trusted and abort the pass.
"""


class VoxmapError(Exception):
    """Base class for all py_voxmap errors."""


class RecoverableFeatureError(VoxmapError):
    """A single feature could not be rendered; skip it and continue."""

    def __init__(self, message: str, feature_id=None):
        super().__init__(message)
        self.feature_id = feature_id


class DegenerateFeatureError(RecoverableFeatureError):
    """Feature geometry has too few points to derive width or orientation."""


class FatalRenderError(VoxmapError):
    """Shared pass state is unusable; the pass must stop."""


class OccupancyCorruptedError(FatalRenderError):
    """Occupancy map holds a record that violates its invariants."""


class OccupancyFrozenError(FatalRenderError):
    """Mutation attempted after the occupancy map was frozen."""


class StoreError(FatalRenderError):
    """The voxel store handle failed."""


class ProjectionError(VoxmapError, ValueError):
    """Coordinates outside the domain of the projection."""
