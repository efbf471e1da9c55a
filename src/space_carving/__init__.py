"""
Space Carving - visual hull reconstruction from calibrated silhouettes.

Pipeline:
- Place a voxel grid around the bounding box
- Carve each camera view into the grid (running minimum of signed distances)
- Extract the zero level-set with marching cubes, attach flat normals
- Export as OBJ

Usage:
    space-carving --manifest data/views.json --output export.obj
"""

__version__ = "1.0.0"
