"""
Tile Slicing Stage

Resamples a panorama to one level's resolution and cuts it into a grid of
square WebP tiles:

    <output>/level-<N>/row-<R>/tile-<C>.webp
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Optional
from PIL import Image

from utils.geometry import iter_tile_rects, Rect
from utils.validation import TilerConfig
from .deadline import Deadline
from .errors import TileWriteError
from .levels import LevelGeometry

TileCallback = Callable[[int, int, Path], None]


def level_dir(output_dir: Path, level: int) -> Path:
    return output_dir / f"level-{level}"


def tile_path(output_dir: Path, level: int, row: int, col: int, fmt: str = "webp") -> Path:
    """Destination of tile (level, row, col) under an image's output root."""
    return level_dir(output_dir, level) / f"row-{row}" / f"tile-{col}.{fmt}"


def resample_level(image: Image.Image, geometry: LevelGeometry) -> Image.Image:
    """
    Resize the full panorama to the level raster.

    Stretches to exactly width x height; equirectangular tiles must keep the
    full angular coverage, so nothing is cropped even if the source is not 2:1.
    """
    size = (geometry.width, geometry.height)
    if image.size == size:
        return image
    return image.resize(size, Image.Resampling.LANCZOS)


def save_tile(tile: Image.Image, path: Path, quality: int) -> None:
    """Encode one tile as lossy WebP, overwriting any previous file."""
    tile.save(path, 'WEBP', quality=quality)


def _write_tile(level_image: Image.Image, rect: Rect, path: Path, quality: int) -> None:
    try:
        tile = level_image.crop(rect)
        save_tile(tile, path, quality)
    except (OSError, ValueError) as e:
        raise TileWriteError(f"Failed to write tile {path}: {e}")


def slice_level(
    image: Image.Image,
    geometry: LevelGeometry,
    output_dir: Path,
    config: TilerConfig,
    deadline: Optional[Deadline] = None,
    on_tile: Optional[TileCallback] = None,
) -> int:
    """
    Generate every tile of one level.

    Args:
        image: Decoded full-resolution panorama
        geometry: Planned raster and grid for this level
        output_dir: Output root of the image (level directories go inside)
        config: Tiler configuration (quality, tile workers)
        deadline: Optional per-image deadline, checked before each tile
        on_tile: Optional callback(row, col, path) after each tile is written

    Returns:
        Number of tiles written
    """
    level_image = resample_level(image, geometry)

    jobs = []
    for row, col, rect in iter_tile_rects(geometry.width, geometry.height, geometry.tile_size):
        path = tile_path(output_dir, geometry.level, row, col, config.format)
        jobs.append((row, col, rect, path))

    for row in range(geometry.rows):
        try:
            (level_dir(output_dir, geometry.level) / f"row-{row}").mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TileWriteError(f"Cannot create row directory for level {geometry.level}: {e}")

    if config.tile_workers <= 1:
        for row, col, rect, path in jobs:
            if deadline:
                deadline.check(f"level {geometry.level} tile ({row}, {col})")
            _write_tile(level_image, rect, path, config.quality)
            if on_tile:
                on_tile(row, col, path)
        return len(jobs)

    def run(job):
        row, col, rect, path = job
        if deadline:
            deadline.check(f"level {geometry.level} tile ({row}, {col})")
        _write_tile(level_image, rect, path, config.quality)
        return row, col, path

    # Pillow releases the GIL while encoding, so threads scale here
    with ThreadPoolExecutor(max_workers=config.tile_workers) as executor:
        futures = [executor.submit(run, job) for job in jobs]
        try:
            for future in as_completed(futures):
                row, col, path = future.result()
                if on_tile:
                    on_tile(row, col, path)
        except Exception:
            for future in futures:
                future.cancel()
            raise

    return len(jobs)
