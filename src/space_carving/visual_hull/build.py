"""
Visual Hull: Space Carving from Calibrated Silhouettes

Reconstruct an object from silhouette views by fusing per-view signed
distance evidence into a voxel grid and extracting its zero level-set.

Algorithm:
V1. Place an n^3 grid around the bounding box (X/Y margins, Z from 0)
V2. Per camera: project every voxel, read the distance map, sign it by
    the mask (negative outside the silhouette, -1 out of frame)
V3. Fuse by running minimum, an approximate AND over the views
V4. Marching cubes at level 0
V5. Flat per-face normals, export

Core idea: hull = {x : min_views(S_view(x)) >= 0}
"""

import numpy as np
from pathlib import Path
from typing import Optional, Protocol, Union
from dataclasses import dataclass
import logging

from skimage import measure

from ..common.camera import Camera, inside_image
from ..common.config import CarvingConfig, MeshMetadata
from ..common.errors import InvalidInput, PreconditionViolation
from ..common.io import MeshWriter, TrimeshObjWriter, ViewSet
from ..common.mesh_ops import Mesh, compute_surface_normals, compute_mesh_stats
from ..common.segmentation import DistanceMapBackend, EuclideanDistanceBackend
from ..common.voxel import BoundingBox3D, GridParameters, VoxelGrid, compute_grid_parameters

logger = logging.getLogger(__name__)


@dataclass
class Voxel:
    """World position of one grid cell."""
    xpos: float
    ypos: float
    zpos: float
    value: float = 1.0


class IsosurfaceBackend(Protocol):
    """Anything that turns a placed scalar volume into triangles."""

    def extract_isosurface(self, volume: np.ndarray, params: GridParameters, level: float) -> np.ndarray:
        ...


class MarchingCubesBackend:
    """Lewiner marching cubes from scikit-image."""

    def extract_isosurface(self, volume: np.ndarray, params: GridParameters, level: float) -> np.ndarray:
        """
        Extract the level-set of a grid as world-space triangles.

        Args:
            volume: (n, n, n) field indexed (i, j, k) = (z, y, x)
            params: Grid placement
            level: Isovalue

        Returns:
            (T, 3, 3) triangles, empty if the level never crosses the field
        """
        # Writable copy; the grid only hands out read-only views
        volume = np.array(volume, dtype=np.float32)
        try:
            verts, faces, _, _ = measure.marching_cubes(
                volume,
                level=level,
                spacing=(params.voxel_depth, params.voxel_height, params.voxel_width),
                allow_degenerate=False
            )
        except ValueError as e:
            logger.warning(f"Marching cubes found no surface: {e}")
            return np.empty((0, 3, 3), dtype=np.float32)

        world = np.column_stack([
            verts[:, 2] + params.origin_x,
            verts[:, 1] + params.origin_y,
            verts[:, 0] + params.origin_z,
        ]).astype(np.float32)

        return world[faces]


class VoxelCarving:
    """
    Space carving engine.

    Owns the voxel grid. Cameras must be carved one after another; each
    carve only lowers cell values.
    """

    def __init__(
        self,
        bbox: BoundingBox3D,
        resolution: Optional[int] = None,
        config: Optional[CarvingConfig] = None,
        distance_backend: Optional[DistanceMapBackend] = None,
        isosurface_backend: Optional[IsosurfaceBackend] = None,
        mesh_writer: Optional[MeshWriter] = None
    ):
        self.config = config or CarvingConfig()
        self.bbox = bbox
        self.resolution = resolution if resolution is not None else self.config.voxel_resolution

        self.params = compute_grid_parameters(
            bbox, self.resolution,
            margin_x=self.config.margin_x,
            margin_y=self.config.margin_y
        )
        self.grid = VoxelGrid(self.resolution)

        self.distance_backend = distance_backend or EuclideanDistanceBackend()
        self.isosurface_backend = isosurface_backend or MarchingCubesBackend()
        self.mesh_writer = mesh_writer or TrimeshObjWriter()

        self.visual_hull = Mesh()
        self.n_views = 0

    def voxel_position(self, i: int, j: int, k: int) -> Voxel:
        """World position of cell (i, j, k)."""
        self.grid.linear_index(i, j, k)
        return Voxel(
            xpos=self.params.origin_x + k * self.params.voxel_width,
            ypos=self.params.origin_y + j * self.params.voxel_height,
            zpos=self.params.origin_z + i * self.params.voxel_depth,
        )

    def carve(self, camera: Camera) -> None:
        """
        Fuse one camera's silhouette evidence into the grid.

        Evidence per voxel is the distance map value at its projection,
        negated on background pixels, or out_of_frame_value when it misses
        the image. Cells keep the minimum of old value and evidence.
        """
        mask = np.asarray(camera.get_mask())
        if mask.ndim != 2 or 0 in mask.shape:
            raise InvalidInput(f"Mask must be a non-empty 2D image, got shape {mask.shape}")

        distances = np.asarray(self.distance_backend.compute_distance_map(mask))
        if distances.shape != mask.shape:
            raise InvalidInput(
                f"Distance map shape {distances.shape} does not match mask shape {mask.shape}"
            )

        chunk_size = max(1, int(self.config.chunk_size))
        n_inside = 0
        n_outside = 0
        n_off_frame = 0

        for start in range(0, self.grid.size, chunk_size):
            stop = min(start + chunk_size, self.grid.size)

            positions = self.grid.world_positions(self.params, start, stop)
            coords = camera.project(positions)
            in_frame, rows, cols = inside_image(coords, mask.shape)

            evidence = np.full(stop - start, self.config.out_of_frame_value, dtype=np.float32)
            rows = rows[in_frame]
            cols = cols[in_frame]
            dist = distances[rows, cols].astype(np.float32)
            background = mask[rows, cols] == 0
            evidence[in_frame] = np.where(background, -dist, dist)

            self.grid.fuse(start, evidence)

            n_outside += int(background.sum())
            n_inside += len(background) - int(background.sum())
            n_off_frame += int((~in_frame).sum())
            logger.debug(f"Carved voxels [{start}, {stop})")

        self.n_views += 1
        logger.info(
            f"View {self.n_views}: {n_inside} inside, {n_outside} outside, "
            f"{n_off_frame} out of frame"
        )

    def create_visual_hull(self) -> Mesh:
        """Extract the zero level-set of the fused grid and attach normals."""
        triangles = self.isosurface_backend.extract_isosurface(
            self.grid.values, self.params, self.config.iso_level
        )
        triangles = np.asarray(triangles).reshape(-1, 3, 3)

        self.visual_hull = Mesh(
            triangles=triangles,
            normals=compute_surface_normals(triangles)
        )
        logger.info(f"Extracted visual hull: {self.visual_hull.n_triangles} triangles")
        return self.visual_hull

    def export_to_disk(self, path: Optional[Union[str, Path]] = None) -> Path:
        """
        Write the visual hull through the mesh writer.

        Raises:
            PreconditionViolation: no triangles have been extracted
        """
        if self.visual_hull.is_empty:
            raise PreconditionViolation("Visual hull is empty, run create_visual_hull() first")

        destination = Path(path) if path is not None else Path(self.config.output_path)
        self.mesh_writer.write_mesh(self.visual_hull.triangles, self.visual_hull.normals, destination)
        return destination

    def metadata(self) -> MeshMetadata:
        return MeshMetadata(
            n_triangles=self.visual_hull.n_triangles,
            n_vertices=len(self.visual_hull.vertices),
            n_views=self.n_views,
            resolution=self.resolution,
            grid_parameters=self.params.to_dict(),
            bbox=self.bbox.to_dict(),
            mesh_stats=compute_mesh_stats(self.visual_hull),
        )


def build_visual_hull(
    views: ViewSet,
    config: Optional[CarvingConfig] = None,
    **backends
) -> VoxelCarving:
    """
    Carve every view and extract the hull.

    Args:
        views: Cameras and bounding box
        config: Carving configuration (defaults to CarvingConfig())
        **backends: distance_backend / isosurface_backend / mesh_writer overrides

    Returns:
        VoxelCarving holding the grid and extracted mesh
    """
    config = config or CarvingConfig()
    resolution = views.resolution if views.resolution is not None else config.voxel_resolution

    logger.info("=" * 60)
    logger.info("Visual hull: space carving")
    logger.info("=" * 60)
    logger.info(f"{views.n_views} views, resolution {resolution}")

    carving = VoxelCarving(views.bbox, resolution, config=config, **backends)
    logger.info(f"Grid parameters: {carving.params.to_dict()}")

    for camera in views.cameras:
        logger.info(f"Carving {camera.name}")
        carving.carve(camera)

    carving.create_visual_hull()
    return carving
