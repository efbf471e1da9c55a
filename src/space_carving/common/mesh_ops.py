"""
Mesh utilities.

Triangle soup container, flat surface normals and mesh statistics.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Any
import logging

import trimesh

logger = logging.getLogger(__name__)


@dataclass
class Mesh:
    """
    Triangle soup with one normal per triangle corner.

    triangles: (T, 3, 3) vertex positions
    normals: (3T, 3), normals[3t + c] belongs to corner c of triangle t
    """
    triangles: np.ndarray = field(default_factory=lambda: np.empty((0, 3, 3), dtype=np.float32))
    normals: np.ndarray = field(default_factory=lambda: np.empty((0, 3), dtype=np.float32))

    @property
    def n_triangles(self) -> int:
        return len(self.triangles)

    @property
    def is_empty(self) -> bool:
        return self.n_triangles == 0

    @property
    def vertices(self) -> np.ndarray:
        """(3T, 3) corner positions in triangle order."""
        return self.triangles.reshape(-1, 3)

    @property
    def faces(self) -> np.ndarray:
        """(T, 3) indices into vertices."""
        return np.arange(3 * self.n_triangles, dtype=np.int64).reshape(-1, 3)


def compute_surface_normal(v1: np.ndarray, v2: np.ndarray, v3: np.ndarray) -> np.ndarray:
    """Unnormalised face normal (v2 - v1) x (v3 - v1)."""
    return compute_surface_normals(np.array([[v1, v2, v3]], dtype=np.float64))[0]


def compute_surface_normals(triangles: np.ndarray) -> np.ndarray:
    """
    Compute one flat normal per triangle and repeat it for each corner.

    Normals are not unit length; the magnitude is twice the triangle area.

    Args:
        triangles: (T, 3, 3) vertex positions

    Returns:
        (3T, 3) normals, three identical rows per triangle
    """
    triangles = np.asarray(triangles)
    if len(triangles) == 0:
        return np.empty((0, 3), dtype=np.float32)

    v1 = triangles[:, 0]
    v2 = triangles[:, 1]
    v3 = triangles[:, 2]

    n = np.empty((len(triangles), 3), dtype=np.result_type(triangles.dtype, np.float32))
    n[:, 0] = (v2[:, 1] - v1[:, 1]) * (v3[:, 2] - v1[:, 2]) - (v3[:, 1] - v1[:, 1]) * (v2[:, 2] - v1[:, 2])
    n[:, 1] = (v2[:, 2] - v1[:, 2]) * (v3[:, 0] - v1[:, 0]) - (v2[:, 0] - v1[:, 0]) * (v3[:, 2] - v1[:, 2])
    n[:, 2] = (v2[:, 0] - v1[:, 0]) * (v3[:, 1] - v1[:, 1]) - (v3[:, 0] - v1[:, 0]) * (v2[:, 1] - v1[:, 1])

    return np.repeat(n, 3, axis=0)


def to_trimesh(mesh: Mesh) -> "trimesh.Trimesh":
    """Unmerged trimesh view of the triangle soup."""
    return trimesh.Trimesh(
        vertices=mesh.vertices,
        faces=mesh.faces,
        process=False
    )


def compute_mesh_stats(mesh: Mesh) -> Dict[str, Any]:
    """
    Compute mesh statistics.

    Args:
        mesh: Extracted mesh

    Returns:
        Dictionary of mesh statistics
    """
    if mesh.is_empty:
        return {"n_vertices": 0, "n_faces": 0}

    tm = to_trimesh(mesh)
    bounds = tm.bounds
    extents = tm.extents

    return {
        "n_vertices": len(tm.vertices),
        "n_faces": len(tm.faces),
        "bounds": {
            "min": bounds[0].tolist(),
            "max": bounds[1].tolist()
        },
        "extents": extents.tolist(),
        "max_extent": float(max(extents)),
        "surface_area": float(tm.area),
    }
