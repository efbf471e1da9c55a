"""
Voxel grid utilities for space carving.

The grid is a dense n x n x n float32 volume stored in C order, so cell
(i, j, k) lives at flat index k + j*n + i*n**2. i runs along world Z,
j along world Y and k along world X.
"""

import math
import numpy as np
from typing import Dict, Sequence, Tuple
from dataclasses import dataclass
import logging

from .config import MARGIN_X, MARGIN_Y
from .errors import InvalidInput

logger = logging.getLogger(__name__)

# Value of a cell no view has constrained yet
UNCARVED = np.finfo(np.float32).max


@dataclass(frozen=True)
class BoundingBox3D:
    """World-space region to reconstruct."""
    xmin: float
    xmax: float
    ymin: float
    ymax: float
    zmin: float
    zmax: float

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> "BoundingBox3D":
        """Build from (xmin, xmax, ymin, ymax, zmin, zmax)."""
        values = list(values)
        if len(values) != 6:
            raise InvalidInput(f"Bounding box needs 6 values, got {len(values)}")
        return cls(*(float(v) for v in values))

    @property
    def extents(self) -> Tuple[float, float, float]:
        return (
            abs(self.xmax - self.xmin),
            abs(self.ymax - self.ymin),
            abs(self.zmax - self.zmin),
        )

    def validate(self) -> None:
        """Raise InvalidInput for non-finite values or an empty axis."""
        values = (self.xmin, self.xmax, self.ymin, self.ymax, self.zmin, self.zmax)
        if not all(math.isfinite(v) for v in values):
            raise InvalidInput(f"Bounding box has non-finite values: {values}")
        for axis, lo, hi in (("x", self.xmin, self.xmax),
                             ("y", self.ymin, self.ymax),
                             ("z", self.zmin, self.zmax)):
            if hi <= lo:
                raise InvalidInput(f"Degenerate bounding box on {axis}: [{lo}, {hi}]")

    def to_dict(self) -> Dict[str, float]:
        return {
            "xmin": self.xmin, "xmax": self.xmax,
            "ymin": self.ymin, "ymax": self.ymax,
            "zmin": self.zmin, "zmax": self.zmax,
        }


@dataclass(frozen=True)
class GridParameters:
    """Placement of the voxel grid in world space."""
    origin_x: float
    origin_y: float
    origin_z: float
    voxel_width: float   # along X
    voxel_height: float  # along Y
    voxel_depth: float   # along Z

    def to_dict(self) -> Dict[str, float]:
        return {
            "origin_x": self.origin_x,
            "origin_y": self.origin_y,
            "origin_z": self.origin_z,
            "voxel_width": self.voxel_width,
            "voxel_height": self.voxel_height,
            "voxel_depth": self.voxel_depth,
        }


def _check_resolution(resolution: int) -> int:
    if isinstance(resolution, bool) or not isinstance(resolution, (int, np.integer)):
        raise InvalidInput(f"Resolution must be an integer, got {resolution!r}")
    if resolution < 1:
        raise InvalidInput(f"Resolution must be positive, got {resolution}")
    return int(resolution)


def compute_grid_parameters(
    bbox: BoundingBox3D,
    resolution: int,
    margin_x: float = MARGIN_X,
    margin_y: float = MARGIN_Y
) -> GridParameters:
    """
    Place a voxel grid around a bounding box.

    X and Y are widened by the margin fraction on each side so silhouettes
    do not touch the grid boundary, keeping the widened box centred on the
    original. Z is used as is and starts at 0.

    Args:
        bbox: Region to reconstruct
        resolution: Voxels per axis
        margin_x: Fraction of the X extent added on each side
        margin_y: Fraction of the Y extent added on each side

    Returns:
        GridParameters for the grid
    """
    n = _check_resolution(resolution)
    bbox.validate()
    if margin_x < 0 or margin_y < 0:
        raise InvalidInput(f"Margins must be non-negative, got ({margin_x}, {margin_y})")

    extent_x, extent_y, extent_z = bbox.extents
    width = extent_x * (1.0 + 2.0 * margin_x)
    height = extent_y * (1.0 + 2.0 * margin_y)
    depth = extent_z

    offset_x = (width - extent_x) / 2.0
    offset_y = (height - extent_y) / 2.0

    params = GridParameters(
        origin_x=bbox.xmin - offset_x,
        origin_y=bbox.ymin - offset_y,
        origin_z=0.0,
        voxel_width=width / n,
        voxel_height=height / n,
        voxel_depth=depth / n,
    )
    logger.debug(f"Grid parameters: {params}")
    return params


class VoxelGrid:
    """
    Dense cubic grid of signed distance values.

    The grid owns its buffer. Readers get read-only views; the only
    mutation path is fuse().
    """

    def __init__(self, resolution: int):
        self.resolution = _check_resolution(resolution)
        n = self.resolution
        self._data = np.full((n, n, n), UNCARVED, dtype=np.float32)
        logger.info(f"Creating voxel grid: {self.shape} ({self.size} cells)")

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self._data.shape

    @property
    def size(self) -> int:
        return self._data.size

    @property
    def values(self) -> np.ndarray:
        """Read-only (i, j, k) view of the grid."""
        view = self._data.view()
        view.flags.writeable = False
        return view

    @property
    def flat(self) -> np.ndarray:
        """Read-only flat view, indexed by linear_index()."""
        view = self._data.reshape(-1)
        view.flags.writeable = False
        return view

    def linear_index(self, i: int, j: int, k: int) -> int:
        n = self.resolution
        if not (0 <= i < n and 0 <= j < n and 0 <= k < n):
            raise IndexError(f"Voxel ({i}, {j}, {k}) outside grid of size {n}")
        return k + j * n + i * n * n

    def get(self, i: int, j: int, k: int) -> float:
        return float(self._data.reshape(-1)[self.linear_index(i, j, k)])

    def set(self, i: int, j: int, k: int, value: float) -> None:
        self._data.reshape(-1)[self.linear_index(i, j, k)] = value

    def indices(self, start: int, stop: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """(i, j, k) index arrays for the flat range [start, stop)."""
        n = self.resolution
        flat = np.arange(start, stop, dtype=np.int64)
        return flat // (n * n), (flat // n) % n, flat % n

    def world_positions(self, params: GridParameters, start: int, stop: int) -> np.ndarray:
        """
        World coordinates of the cells in the flat range [start, stop).

        Returns:
            (stop - start, 3) array of (x, y, z)
        """
        i, j, k = self.indices(start, stop)
        return np.column_stack([
            params.origin_x + k * params.voxel_width,
            params.origin_y + j * params.voxel_height,
            params.origin_z + i * params.voxel_depth,
        ])

    def fuse(self, start: int, evidence: np.ndarray) -> None:
        """Running minimum of evidence into the flat range starting at start."""
        flat = self._data.reshape(-1)
        stop = start + len(evidence)
        if start < 0 or stop > flat.size:
            raise IndexError(f"Range [{start}, {stop}) outside grid of {flat.size} cells")
        np.minimum(flat[start:stop], evidence.astype(np.float32, copy=False),
                   out=flat[start:stop])
