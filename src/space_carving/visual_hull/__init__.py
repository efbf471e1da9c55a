"""
Visual Hull: Space Carving from Calibrated Silhouettes

Fuse per-view signed distance evidence into a voxel grid with a running
minimum, then extract the zero level-set as a triangle mesh.
"""

from .build import (
    Voxel,
    IsosurfaceBackend,
    MarchingCubesBackend,
    VoxelCarving,
    build_visual_hull,
)

__all__ = [
    'Voxel', 'IsosurfaceBackend', 'MarchingCubesBackend',
    'VoxelCarving', 'build_visual_hull',
]
