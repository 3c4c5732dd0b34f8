"""
Level Planning

Decides which resolution levels of the static table to materialize for a
given source width. Levels never meaningfully upscale the source, and every
panorama gets at least two tiers for progressive loading.
"""

from typing import List, Sequence
from pydantic import BaseModel, Field

from utils.geometry import level_height, grid_dimensions
from utils.validation import ConfigurationError, ResolutionLevel, TilerConfig
from .errors import InvalidInputError

# A level may exceed the source width by this factor and still be kept
UPSCALE_TOLERANCE = 1.1

MIN_LEVELS = 2


class LevelGeometry(BaseModel):
    """A resolution level realized for one source image."""
    level: int = Field(..., ge=0)
    name: str
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    cols: int = Field(..., gt=0)
    rows: int = Field(..., gt=0)
    tile_size: int = Field(..., gt=0, alias="tileSize")

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def tile_count(self) -> int:
        return self.cols * self.rows


def select_levels(source_width: int, levels: Sequence[ResolutionLevel]) -> List[ResolutionLevel]:
    """
    Select the levels worth generating for a source image.

    Args:
        source_width: Source image width in pixels
        levels: Static level table

    Returns:
        Levels in ascending max_width order
    """
    if not levels:
        raise ConfigurationError("Level table is empty")
    if source_width <= 0:
        raise InvalidInputError(f"Source width must be positive, got {source_width}")

    ordered = sorted(levels, key=lambda level: level.max_width)
    selected = [
        level for level in ordered
        if level.max_width <= source_width * UPSCALE_TOLERANCE
    ]

    # Small sources still get a progressive load
    if len(selected) < MIN_LEVELS:
        return ordered[:MIN_LEVELS]

    return selected


def plan_level(index: int, level: ResolutionLevel, source_width: int, tile_size: int) -> LevelGeometry:
    """Compute the concrete raster and grid for one selected level."""
    width = min(level.max_width, source_width)
    height = level_height(width)
    cols, rows = grid_dimensions(width, height, tile_size)
    return LevelGeometry(
        level=index,
        name=level.name,
        width=width,
        height=height,
        cols=cols,
        rows=rows,
        tile_size=tile_size,
    )


def plan_levels(source_width: int, config: TilerConfig) -> List[LevelGeometry]:
    """Select levels for a source and realize their geometry, level 0 first."""
    return [
        plan_level(index, level, source_width, config.tile_size)
        for index, level in enumerate(select_levels(source_width, config.levels))
    ]
