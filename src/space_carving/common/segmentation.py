"""
Distance maps from silhouette masks.

Every pixel gets its unsigned Euclidean distance to the silhouette boundary:
foreground pixels measure to the nearest background pixel and background
pixels to the nearest foreground pixel. The carving engine applies the sign.
"""

import numpy as np
from typing import Protocol
import logging

from scipy.ndimage import distance_transform_edt

from .errors import InvalidInput

logger = logging.getLogger(__name__)


class DistanceMapBackend(Protocol):
    """Anything that turns a binary mask into an unsigned distance map."""

    def compute_distance_map(self, mask: np.ndarray) -> np.ndarray:
        ...


class EuclideanDistanceBackend:
    """Exact Euclidean distance transform via scipy."""

    def compute_distance_map(self, mask: np.ndarray) -> np.ndarray:
        return create_distance_map(mask)


def create_distance_map(mask: np.ndarray) -> np.ndarray:
    """
    Compute the unsigned distance-to-boundary map of a mask.

    A mask with only one class has no boundary; every pixel then gets
    max(H, W), farther than any in-image distance.

    Args:
        mask: (H, W) array, non-zero = foreground

    Returns:
        (H, W) float32 distance map
    """
    mask = np.asarray(mask)
    if mask.ndim != 2 or 0 in mask.shape:
        raise InvalidInput(f"Mask must be a non-empty 2D image, got shape {mask.shape}")

    foreground = mask != 0
    n_foreground = int(foreground.sum())
    if n_foreground == 0 or n_foreground == foreground.size:
        logger.warning("Mask has no silhouette boundary, using constant distance map")
        return np.full(mask.shape, float(max(mask.shape)), dtype=np.float32)

    inside = distance_transform_edt(foreground)
    outside = distance_transform_edt(~foreground)
    return np.where(foreground, inside, outside).astype(np.float32)
