"""
Single-Image Tiling Pipeline

Runs one panorama through every stage:

1. Load - validate the input and read its header
2. Decode - full pixel decode
3. Plan - choose resolution levels
4. Slice - write the tile grid of each level
5. Preview - write the blur-up placeholder
6. Manifest - write manifest.json, only after everything above succeeded
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from rich.console import Console

from utils.validation import TilerConfig
from .deadline import Deadline
from .levels import plan_levels
from .manifest import TileManifest, build_manifest, write_manifest, remove_manifest
from .preview import generate_preview, PREVIEW_FILENAME
from .slicer import slice_level
from .source import load_source, decode_source, check_aspect_ratio

console = Console()


@dataclass
class TileResult:
    """Outcome of a successful single-image run."""
    manifest: TileManifest
    manifest_path: Path
    output_dir: Path
    total_tiles: int
    duration: float


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    return f"{seconds:.1f}s"


def generate_tiles_for_image(
    input_path: Path,
    output_dir: Path,
    config: Optional[TilerConfig] = None,
    deadline: Optional[Deadline] = None,
    quiet: bool = False,
    prefix: str = "",
) -> TileResult:
    """
    Generate the full tile pyramid for one panorama.

    Args:
        input_path: Source panorama
        output_dir: Output root for this panorama
        config: Tiler configuration
        deadline: Optional per-image deadline
        quiet: Suppress per-level progress output
        prefix: Label prepended to progress lines (e.g. "[2/5] ")

    Returns:
        TileResult describing the written tile set
    """
    config = config or TilerConfig()
    start_time = time.time()

    source = load_source(input_path)

    if not quiet:
        console.print(f"\n[bold]{prefix}Processing: {source.filename}[/bold]")
        console.print(f"  Original: {source.width}x{source.height} ({source.format})")
        console.print(f"  Output:   {output_dir}")

    check_aspect_ratio(source, config.aspect_tolerance, quiet=quiet)
    levels = plan_levels(source.width, config)

    if not quiet:
        names = ", ".join(level.name for level in levels)
        console.print(f"  Levels:   {len(levels)} ({names})")

    output_dir.mkdir(parents=True, exist_ok=True)
    # An old manifest next to partially regenerated tiles would look complete
    if remove_manifest(output_dir) and not quiet:
        console.print("  [yellow]Removed previous manifest[/yellow]")

    image = decode_source(source)
    if deadline:
        deadline.check("decode")

    total_tiles = 0
    try:
        for geometry in levels:
            written = slice_level(image, geometry, output_dir, config, deadline=deadline)
            total_tiles += written
            if not quiet:
                console.print(
                    f"  Level {geometry.level}: {geometry.width}x{geometry.height} "
                    f"({geometry.cols}x{geometry.rows} = {written} tiles)"
                )

        if deadline:
            deadline.check("preview")
        _, (preview_w, preview_h) = generate_preview(
            image,
            output_dir / PREVIEW_FILENAME,
            width=config.preview_width,
            quality=config.preview_quality,
        )
        if not quiet:
            console.print(f"  Preview:  {preview_w}x{preview_h}")
    finally:
        image.close()

    if deadline:
        deadline.check("manifest")
    manifest = build_manifest(source, config, levels)
    manifest_path = write_manifest(manifest, output_dir)

    duration = time.time() - start_time
    if not quiet:
        console.print(f"  Total:    {total_tiles} tiles in {format_duration(duration)}")

    return TileResult(
        manifest=manifest,
        manifest_path=manifest_path,
        output_dir=output_dir,
        total_tiles=total_tiles,
        duration=duration,
    )
