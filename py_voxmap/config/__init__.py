"""
Configuration for the voxel mapper.
"""

from .config import AnchorSetting, RenderOptions, Settings, settings

__all__ = ['AnchorSetting', 'RenderOptions', 'Settings', 'settings']
