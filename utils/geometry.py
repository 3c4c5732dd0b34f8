"""Tile grid geometry for equirectangular levels.

All coordinates are integer pixels with the origin at the top-left corner.
A rectangle is ``(left, top, right, bottom)`` with exclusive right/bottom,
matching ``PIL.Image.crop``.
"""

import math
from typing import Iterator, Tuple

Rect = Tuple[int, int, int, int]


def level_height(width: int) -> int:
    """
    Height of a 2:1 equirectangular raster of the given width.

    Rounds half up, so an odd width of 4097 gives 2049.
    """
    return (width + 1) // 2


def grid_dimensions(width: int, height: int, tile_size: int) -> Tuple[int, int]:
    """Return (cols, rows) needed to cover a width x height raster."""
    if tile_size <= 0:
        raise ValueError(f"Tile size must be positive, got {tile_size}")
    cols = math.ceil(width / tile_size)
    rows = math.ceil(height / tile_size)
    return cols, rows


def tile_rect(row: int, col: int, width: int, height: int, tile_size: int) -> Rect:
    """
    Pixel rectangle of tile (row, col).

    Edge tiles are clipped to the raster, never padded.
    """
    left = col * tile_size
    top = row * tile_size
    if left >= width or top >= height or left < 0 or top < 0:
        raise ValueError(f"Tile ({row}, {col}) is outside a {width}x{height} raster")
    right = left + min(tile_size, width - left)
    bottom = top + min(tile_size, height - top)
    return left, top, right, bottom


def iter_tile_rects(width: int, height: int, tile_size: int) -> Iterator[Tuple[int, int, Rect]]:
    """Yield (row, col, rect) for every tile in row-major order."""
    cols, rows = grid_dimensions(width, height, tile_size)
    for row in range(rows):
        for col in range(cols):
            yield row, col, tile_rect(row, col, width, height, tile_size)


def aspect_ratio(width: int, height: int) -> float:
    return width / height if height else float('inf')
