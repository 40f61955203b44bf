"""
Vector map features to voxel world conversion.
"""

__version__ = "0.1.0"
