"""
Data I/O utilities.

Loads calibrated views from a JSON manifest and writes meshes through a
pluggable MeshWriter. Manifest format:

    {
        "bbox": [xmin, xmax, ymin, ymax, zmin, zmax],
        "resolution": 64,
        "cameras": [
            {"name": "cam0", "mask": "masks/cam0.png",
             "projection": [[...4], [...4], [...4]]}
        ]
    }

Mask paths are resolved relative to the manifest.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Protocol, Tuple, Union
from dataclasses import dataclass
import numpy as np

import trimesh
from skimage import io as skio

from .camera import Camera
from .config import MeshMetadata
from .errors import InvalidInput
from .mesh_ops import Mesh
from .voxel import BoundingBox3D

logger = logging.getLogger(__name__)


@dataclass
class ViewSet:
    """Cameras plus the region they observe."""
    bbox: BoundingBox3D
    cameras: List[Camera]
    resolution: Optional[int] = None

    @property
    def n_views(self) -> int:
        return len(self.cameras)


class MeshWriter(Protocol):
    """Anything that persists a triangle soup with per-corner normals."""

    def write_mesh(self, triangles: np.ndarray, normals: np.ndarray, destination: Union[str, Path]) -> None:
        ...


class TrimeshObjWriter:
    """Write Wavefront OBJ (positions, vertex normals, faces) with trimesh."""

    def write_mesh(self, triangles: np.ndarray, normals: np.ndarray, destination: Union[str, Path]) -> None:
        mesh = Mesh(triangles=np.asarray(triangles), normals=np.asarray(normals))
        if len(mesh.normals) != len(mesh.vertices):
            raise InvalidInput(
                f"Expected {len(mesh.vertices)} normals, got {len(mesh.normals)}"
            )

        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)

        tm = trimesh.Trimesh(
            vertices=mesh.vertices,
            faces=mesh.faces,
            vertex_normals=mesh.normals,
            process=False
        )
        tm.export(str(path), file_type="obj", include_normals=True)
        logger.info(f"Saved mesh: {path} ({len(mesh.vertices)} verts, {mesh.n_triangles} tris)")


def save_metadata(mesh_path: Union[str, Path], metadata: MeshMetadata) -> Path:
    """Write the metadata sidecar next to a mesh file."""
    meta_path = Path(mesh_path).with_suffix('.json')
    metadata.save(meta_path)
    logger.info(f"Saved metadata: {meta_path}")
    return meta_path


def load_mesh(path: Union[str, Path]) -> Tuple["trimesh.Trimesh", Optional[MeshMetadata]]:
    """
    Load mesh and its metadata sidecar.

    Args:
        path: Path to mesh file

    Returns:
        Tuple of (mesh, metadata) - metadata may be None if not found
    """
    path = Path(path)
    mesh = trimesh.load(str(path), process=False, force="mesh")

    meta_path = path.with_suffix('.json')
    metadata = None
    if meta_path.exists():
        with open(meta_path) as f:
            metadata = MeshMetadata.from_dict(json.load(f))

    return mesh, metadata


def load_mask(path: Union[str, Path]) -> np.ndarray:
    """
    Read a silhouette image as a uint8 mask (1 = object).

    Colour images count a pixel as object when any colour channel is set;
    an alpha channel is ignored.
    """
    image = np.asarray(skio.imread(str(path)))
    if image.ndim == 3:
        if image.shape[-1] in (2, 4):
            image = image[..., :-1]
        image = image.max(axis=-1)
    if image.ndim != 2:
        raise InvalidInput(f"Unsupported mask image shape {image.shape}: {path}")
    return (image > 0).astype(np.uint8)


def load_views(manifest_path: Union[str, Path]) -> ViewSet:
    """
    Load cameras and bounding box from a JSON manifest.

    Args:
        manifest_path: Path to the manifest file

    Returns:
        ViewSet with one Camera per entry
    """
    manifest_path = Path(manifest_path)
    with open(manifest_path) as f:
        try:
            manifest = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidInput(f"Malformed manifest {manifest_path}: {e}") from e

    if not isinstance(manifest, dict):
        raise InvalidInput(f"Manifest must be a JSON object: {manifest_path}")
    for key in ("bbox", "cameras"):
        if key not in manifest:
            raise InvalidInput(f"Manifest {manifest_path} is missing '{key}'")

    bbox = BoundingBox3D.from_sequence(manifest["bbox"])
    bbox.validate()

    cameras = []
    for idx, entry in enumerate(manifest["cameras"]):
        name = entry.get("name", f"camera_{idx}")
        if "mask" not in entry or "projection" not in entry:
            raise InvalidInput(f"{name}: camera entries need 'mask' and 'projection'")

        mask_path = Path(entry["mask"])
        if not mask_path.is_absolute():
            mask_path = manifest_path.parent / mask_path

        try:
            projection = np.asarray(entry["projection"], dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidInput(f"{name}: projection is not a numeric matrix") from e

        cameras.append(Camera(
            mask=load_mask(mask_path),
            projection=projection,
            name=name
        ))

    if not cameras:
        raise InvalidInput(f"Manifest {manifest_path} lists no cameras")

    logger.info(f"Loaded {len(cameras)} views from {manifest_path}")

    return ViewSet(
        bbox=bbox,
        cameras=cameras,
        resolution=manifest.get("resolution")
    )
