"""
Configuration and constants for visual hull reconstruction.

Grid placement margins (fraction of the bounding box extent, per side):
- X: 6%
- Y: 20%
- Z: none, the volume sits on the z = 0 reference plane
"""

from dataclasses import dataclass, field, fields
from typing import Optional, Dict, Any
import json
from pathlib import Path

from .errors import InvalidInput


# Margin fractions added on each side of the bounding box
MARGIN_X = 0.06
MARGIN_Y = 0.20

# Evidence written for voxels that project outside a camera image
OUT_OF_FRAME_VALUE = -1.0

DEFAULT_OUTPUT_PATH = Path("export.obj")


@dataclass
class MeshMetadata:
    """
    Metadata written next to every exported mesh.
    """
    n_triangles: int
    n_vertices: int
    n_views: int
    resolution: int
    grid_parameters: Dict[str, float] = field(default_factory=dict)
    bbox: Optional[Dict[str, float]] = None
    mesh_stats: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_triangles": self.n_triangles,
            "n_vertices": self.n_vertices,
            "n_views": self.n_views,
            "resolution": self.resolution,
            "grid_parameters": self.grid_parameters,
            "bbox": self.bbox,
            "mesh_stats": self.mesh_stats,
        }

    def save(self, path: Path) -> None:
        """Save metadata to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeshMetadata":
        return cls(**data)


@dataclass
class CarvingConfig:
    """
    Global configuration for space carving.

    The margins and the out-of-frame value shape the reconstructed geometry;
    the defaults reproduce the reference carving behaviour.
    """

    # Voxels per axis
    voxel_resolution: int = 64

    # Grid placement
    margin_x: float = MARGIN_X
    margin_y: float = MARGIN_Y

    # Fusion / extraction
    out_of_frame_value: float = OUT_OF_FRAME_VALUE
    iso_level: float = 0.0

    # Voxels processed per vectorised carving step
    chunk_size: int = 262144

    output_path: Path = field(default_factory=lambda: DEFAULT_OUTPUT_PATH)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voxel_resolution": self.voxel_resolution,
            "margin_x": self.margin_x,
            "margin_y": self.margin_y,
            "out_of_frame_value": self.out_of_frame_value,
            "iso_level": self.iso_level,
            "chunk_size": self.chunk_size,
            "output_path": str(self.output_path),
        }

    @classmethod
    def from_json(cls, path: Path) -> "CarvingConfig":
        """Load config from JSON file."""
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise InvalidInput(f"Malformed config {path}: {e}") from e

        if not isinstance(data, dict):
            raise InvalidInput(f"Config must be a JSON object: {path}")
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise InvalidInput(f"Unknown config keys in {path}: {sorted(unknown)}")

        data["output_path"] = Path(data.get("output_path", DEFAULT_OUTPUT_PATH))
        return cls(**data)

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

