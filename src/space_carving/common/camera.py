"""
Calibrated camera view: silhouette mask plus pinhole projection.
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple
import logging

from .errors import InvalidInput

logger = logging.getLogger(__name__)


@dataclass
class Camera:
    """
    One calibrated view.

    mask: (H, W) binary silhouette, non-zero = object
    projection: (3, 4) matrix mapping homogeneous world points to pixels
    """
    mask: np.ndarray
    projection: np.ndarray
    name: str = "camera"

    def __post_init__(self):
        self.mask = np.asarray(self.mask)
        self.projection = np.asarray(self.projection, dtype=np.float64)
        self.validate()

    @property
    def image_size(self) -> Tuple[int, int]:
        """(height, width) of the mask."""
        return self.mask.shape[0], self.mask.shape[1]

    def validate(self) -> None:
        if self.mask.ndim != 2 or 0 in self.mask.shape:
            raise InvalidInput(f"{self.name}: mask must be a non-empty 2D image, got shape {self.mask.shape}")
        if self.projection.shape != (3, 4):
            raise InvalidInput(f"{self.name}: projection must be 3x4, got {self.projection.shape}")
        if not np.all(np.isfinite(self.projection)):
            raise InvalidInput(f"{self.name}: projection has non-finite entries")

    def get_mask(self) -> np.ndarray:
        return self.mask

    def project(self, points: np.ndarray) -> np.ndarray:
        """
        Project world points into the image.

        Points on or behind the camera plane come back as NaN.

        Args:
            points: (N, 3) world coordinates

        Returns:
            (N, 2) pixel coordinates (u = column, v = row)
        """
        points = np.atleast_2d(np.asarray(points, dtype=np.float64))
        homogeneous = np.column_stack([points, np.ones(len(points))])
        uvw = homogeneous @ self.projection.T

        w = uvw[:, 2]
        coords = np.full((len(points), 2), np.nan)
        in_front = w > 0
        coords[in_front] = uvw[in_front, :2] / w[in_front, np.newaxis]
        return coords


def inside_image(coords: np.ndarray, image_size: Tuple[int, int]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Map projected coordinates to pixel indices.

    A coordinate is in frame when 0 <= u < W and 0 <= v < H. It then hits
    the nearest pixel (round(v), round(u)), clamped to the image.

    Returns:
        (inside, rows, cols); rows/cols are only meaningful where inside is True
    """
    height, width = image_size
    with np.errstate(invalid="ignore"):
        u = coords[:, 0]
        v = coords[:, 1]
        inside = (u >= 0) & (u < width) & (v >= 0) & (v < height)
    cols = np.clip(np.rint(np.where(inside, u, 0)), 0, width - 1).astype(np.int64)
    rows = np.clip(np.rint(np.where(inside, v, 0)), 0, height - 1).astype(np.int64)
    return inside, rows, cols
