"""Utility functions for the panorama tile generator."""

from .geometry import (
    level_height,
    grid_dimensions,
    tile_rect,
    iter_tile_rects,
    aspect_ratio,
)
from .validation import (
    ConfigurationError,
    ResolutionLevel,
    TilerConfig,
    DEFAULT_LEVELS,
    make_config,
    load_config,
)

__all__ = [
    "level_height",
    "grid_dimensions",
    "tile_rect",
    "iter_tile_rects",
    "aspect_ratio",
    "ConfigurationError",
    "ResolutionLevel",
    "TilerConfig",
    "DEFAULT_LEVELS",
    "make_config",
    "load_config",
]
