#!/usr/bin/env python3
"""
Inspect Tiles Tool
==================

Diagnostic tool to check a generated tile set (or a whole batch output):
1. Manifest parses and has a supported version
2. Preview and every tile implied by the level geometry exist
3. Tile pixel sizes match the clipped grid (with --deep)

Usage:
    python scripts/inspect_tiles.py <tiles_dir> [--deep]
"""

import argparse
import sys
from pathlib import Path
from typing import List

from PIL import Image
from rich.console import Console
from rich.table import Table

# Add parent directory to path to import tilegen
sys.path.append(str(Path(__file__).parent.parent))

from tilegen.errors import ManifestError
from tilegen.manifest import (
    BATCH_MANIFEST_FILENAME,
    MANIFEST_FILENAME,
    load_manifest,
    validate_tile_set,
)
from tilegen.slicer import tile_path
from utils.geometry import iter_tile_rects

console = Console()


def check_tile_sizes(tiles_dir: Path) -> List[str]:
    """Open every tile and compare its size with the expected clipped rect."""
    manifest = load_manifest(tiles_dir / MANIFEST_FILENAME)
    errors = []
    for level in manifest.levels:
        for row, col, (left, top, right, bottom) in iter_tile_rects(level.width, level.height, level.tile_size):
            path = tile_path(tiles_dir, level.level, row, col, manifest.format)
            if not path.exists():
                continue
            with Image.open(path) as tile:
                if tile.size != (right - left, bottom - top):
                    errors.append(f"{path.relative_to(tiles_dir)}: {tile.size[0]}x{tile.size[1]}, "
                                  f"expected {right - left}x{bottom - top}")
    return errors


def inspect_tile_set(tiles_dir: Path, deep: bool = False) -> bool:
    errors = validate_tile_set(tiles_dir)
    if not errors and deep:
        errors = check_tile_sizes(tiles_dir)

    try:
        manifest = load_manifest(tiles_dir / MANIFEST_FILENAME)
    except ManifestError:
        manifest = None

    if manifest:
        table = Table(title=f"{tiles_dir.name} (manifest v{manifest.version})")
        for column in ("Level", "Name", "Size", "Grid", "Tiles"):
            table.add_column(column)
        for level in manifest.levels:
            table.add_row(
                str(level.level),
                level.name,
                f"{level.width}x{level.height}",
                f"{level.cols}x{level.rows}",
                str(level.tile_count),
            )
        console.print(table)

    if errors:
        console.print(f"[red]{tiles_dir}: {len(errors)} problem(s)[/red]")
        for error in errors:
            console.print(f"  [red]• {error}[/red]")
        return False

    console.print(f"[green]{tiles_dir}: complete[/green]")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Inspect generated panorama tiles")
    parser.add_argument("input", help="Tile set directory or batch output directory")
    parser.add_argument("--deep", action="store_true", help="Also verify tile pixel sizes")

    args = parser.parse_args()
    input_dir = Path(args.input)

    if (input_dir / BATCH_MANIFEST_FILENAME).exists():
        tile_dirs = sorted(p.parent for p in input_dir.glob(f"*/{MANIFEST_FILENAME}"))
    else:
        tile_dirs = [input_dir]

    results = [inspect_tile_set(d, deep=args.deep) for d in tile_dirs]
    sys.exit(0 if results and all(results) else 1)
