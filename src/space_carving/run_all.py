#!/usr/bin/env python3
"""
Space Carving - Orchestrator

Carve every view listed in a manifest, extract the visual hull and export it.

Usage:
    space-carving --manifest data/views.json
    python -m space_carving.run_all --manifest data/views.json --resolution 128 -o out/hull.obj
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional
from datetime import datetime

from .common.config import CarvingConfig
from .common.errors import CarvingError
from .common.io import load_views, save_metadata
from .visual_hull.build import build_visual_hull

logger = logging.getLogger(__name__)


def run(manifest: Path, config: CarvingConfig, resolution: Optional[int] = None) -> dict:
    """
    Run the full reconstruction for one manifest.

    Args:
        manifest: Path to the views manifest
        config: Configuration
        resolution: Overrides the manifest / config resolution

    Returns:
        Summary dictionary
    """
    views = load_views(manifest)
    if resolution is not None:
        views.resolution = resolution

    carving = build_visual_hull(views, config)
    mesh_path = carving.export_to_disk(config.output_path)

    metadata = carving.metadata()
    save_metadata(mesh_path, metadata)

    return {
        "timestamp": datetime.now().isoformat(),
        "manifest": str(manifest),
        "config": config.to_dict(),
        "mesh": str(mesh_path),
        "metadata": metadata.to_dict(),
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Space Carving - Reconstruct a visual hull from calibrated silhouettes"
    )
    parser.add_argument(
        "--manifest", "-m",
        type=Path,
        required=True,
        help="JSON manifest with bbox, resolution and cameras"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Optional JSON config file"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        help="Output mesh path (default: export.obj)"
    )
    parser.add_argument(
        "--resolution", "-r",
        type=int,
        default=None,
        help="Voxels per axis (overrides the manifest)"
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Voxels projected per vectorised step"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging"
    )

    args = parser.parse_args(argv)

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        # Build config
        config = CarvingConfig.from_json(args.config) if args.config else CarvingConfig()
        if args.output is not None:
            config.output_path = args.output
        if args.chunk_size is not None:
            config.chunk_size = args.chunk_size

        summary = run(args.manifest, config, resolution=args.resolution)
    except (CarvingError, OSError) as e:
        logger.error(f"Reconstruction failed: {e}")
        return 1

    # Save summary
    summary_path = Path(summary["mesh"]).parent / "run_summary.json"
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2)

    logger.info(f"Summary saved to: {summary_path}")
    logger.info(f"COMPLETE: {summary['metadata']['n_triangles']} triangles -> {summary['mesh']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
