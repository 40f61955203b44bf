"""
Core feature-to-voxel conversion functionality.
"""

from .models import GeoPoint, GridCell, Anchor, RoadFeature, BuildingFeature, SignFeature
from .projection import CoordinateProjector, MultilaterationConverter, map_order
from .rasterizer import ThickLineRasterizer, RasterCell
from .repository import FeatureRepository
from .options import RenderOptions
from .pipeline import VoxelMapper, MapReport

__all__ = ['GeoPoint', 'GridCell', 'Anchor', 'RoadFeature', 'BuildingFeature', 'SignFeature',
           'CoordinateProjector', 'MultilaterationConverter', 'map_order',
           'ThickLineRasterizer', 'RasterCell', 'FeatureRepository', 'RenderOptions',
           'VoxelMapper', 'MapReport']
