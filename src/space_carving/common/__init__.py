"""
Common building blocks shared by the visual hull pipeline.

Coordinate model:
- World units are whatever the camera calibration uses
- Grid index (i, j, k) maps to world (z, y, x)
- Signed evidence: positive inside a silhouette, negative outside
"""

from .config import CarvingConfig, MeshMetadata
from .errors import CarvingError, InvalidInput, PreconditionViolation
from .voxel import BoundingBox3D, GridParameters, VoxelGrid, compute_grid_parameters
from .camera import Camera
from .segmentation import DistanceMapBackend, EuclideanDistanceBackend, create_distance_map
from .mesh_ops import Mesh, compute_surface_normal, compute_surface_normals, compute_mesh_stats
from .io import MeshWriter, TrimeshObjWriter, ViewSet, load_views, load_mesh

__all__ = [
    'CarvingConfig', 'MeshMetadata',
    'CarvingError', 'InvalidInput', 'PreconditionViolation',
    'BoundingBox3D', 'GridParameters', 'VoxelGrid', 'compute_grid_parameters',
    'Camera',
    'DistanceMapBackend', 'EuclideanDistanceBackend', 'create_distance_map',
    'Mesh', 'compute_surface_normal', 'compute_surface_normals', 'compute_mesh_stats',
    'MeshWriter', 'TrimeshObjWriter', 'ViewSet', 'load_views', 'load_mesh',
]
