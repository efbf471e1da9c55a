"""
Shared fixtures: a synthetic two-camera scene observing a sphere-like blob.

Both cameras are affine (w = 1), 64x64 pixels, 16 pixels per world unit:
- top view:  u = 16x + 32, v = 16y + 32
- side view: u = 16x + 32, v = 16z + 16
"""

import json
import sys
from pathlib import Path

import numpy as np
import pytest
from skimage import io as skio

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from space_carving.common.camera import Camera
from space_carving.common.voxel import BoundingBox3D

IMAGE_SIZE = 64
DISC_RADIUS_PX = 12

TOP_PROJECTION = [
    [16.0, 0.0, 0.0, 32.0],
    [0.0, 16.0, 0.0, 32.0],
    [0.0, 0.0, 0.0, 1.0],
]
SIDE_PROJECTION = [
    [16.0, 0.0, 0.0, 32.0],
    [0.0, 0.0, 16.0, 16.0],
    [0.0, 0.0, 0.0, 1.0],
]


def disc_mask(size: int = IMAGE_SIZE, radius: float = DISC_RADIUS_PX) -> np.ndarray:
    rows, cols = np.mgrid[0:size, 0:size]
    centre = size / 2.0
    return ((rows - centre) ** 2 + (cols - centre) ** 2 <= radius ** 2).astype(np.uint8)


class UniformDistanceBackend:
    """Distance map with the same value everywhere."""

    def __init__(self, value: float):
        self.value = value

    def compute_distance_map(self, mask):
        return np.full(np.asarray(mask).shape, self.value, dtype=np.float32)


class RecordingWriter:
    """Mesh writer that remembers what it was given."""

    def __init__(self):
        self.calls = []

    def write_mesh(self, triangles, normals, destination):
        self.calls.append((triangles, normals, destination))


@pytest.fixture
def unit_bbox():
    return BoundingBox3D(xmin=-1.0, xmax=1.0, ymin=-1.0, ymax=1.0, zmin=0.0, zmax=2.0)


@pytest.fixture
def top_camera():
    return Camera(mask=disc_mask(), projection=np.array(TOP_PROJECTION), name="top")


@pytest.fixture
def side_camera():
    return Camera(mask=disc_mask(), projection=np.array(SIDE_PROJECTION), name="side")


@pytest.fixture
def recording_writer():
    return RecordingWriter()


@pytest.fixture
def manifest_path(tmp_path):
    """Manifest for the two-camera scene with masks saved as PNG."""
    mask_dir = tmp_path / "masks"
    mask_dir.mkdir()
    mask = (disc_mask() * 255).astype(np.uint8)
    skio.imsave(str(mask_dir / "top.png"), mask, check_contrast=False)
    skio.imsave(str(mask_dir / "side.png"), mask, check_contrast=False)

    manifest = {
        "bbox": [-1.0, 1.0, -1.0, 1.0, 0.0, 2.0],
        "resolution": 16,
        "cameras": [
            {"name": "top", "mask": "masks/top.png", "projection": TOP_PROJECTION},
            {"name": "side", "mask": "masks/side.png", "projection": SIDE_PROJECTION},
        ],
    }
    path = tmp_path / "views.json"
    with open(path, "w") as f:
        json.dump(manifest, f)
    return path
