"""Tests for grid geometry, level planning and configuration."""

import json

import numpy as np
import pytest

from utils.geometry import (
    level_height,
    grid_dimensions,
    tile_rect,
    iter_tile_rects,
)
from utils.validation import (
    ConfigurationError,
    ResolutionLevel,
    TilerConfig,
    DEFAULT_LEVELS,
    make_config,
    load_config,
)
from tilegen.errors import InvalidInputError
from tilegen.levels import select_levels, plan_level, plan_levels, UPSCALE_TOLERANCE


class TestGridDimensions:
    """Tests for grid size calculation."""

    def test_exact_multiple(self):
        """4096x2048 at 512px tiles is an 8x4 grid."""
        assert grid_dimensions(4096, 2048, 512) == (8, 4)

    def test_partial_edge(self):
        """4100x2050 needs a ninth column and a fifth row."""
        assert grid_dimensions(4100, 2050, 512) == (9, 5)

    def test_smaller_than_tile(self):
        """A raster smaller than one tile is a single tile."""
        assert grid_dimensions(300, 150, 512) == (1, 1)

    def test_invalid_tile_size(self):
        with pytest.raises(ValueError):
            grid_dimensions(4096, 2048, 0)


class TestLevelHeight:
    """Tests for 2:1 height calculation."""

    def test_even_width(self):
        assert level_height(4100) == 2050

    def test_odd_width_rounds_up(self):
        assert level_height(4097) == 2049
        assert level_height(1) == 1


class TestTileRect:
    """Tests for tile rectangle clipping."""

    def test_interior_tile(self):
        assert tile_rect(1, 2, 4096, 2048, 512) == (1024, 512, 1536, 1024)

    def test_clipped_last_column(self):
        """Last column of a 4100px raster is 4px wide."""
        left, top, right, bottom = tile_rect(0, 8, 4100, 2050, 512)
        assert right - left == 4100 - 8 * 512
        assert bottom - top == 512

    def test_clipped_last_row(self):
        """Last row of a 2050px raster is 2px high."""
        left, top, right, bottom = tile_rect(4, 0, 4100, 2050, 512)
        assert right - left == 512
        assert bottom - top == 2050 - 4 * 512

    def test_corner_tile(self):
        assert tile_rect(4, 8, 4100, 2050, 512) == (4096, 2048, 4100, 2050)

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            tile_rect(0, 9, 4100, 2050, 512)

    def test_row_major_order(self):
        coords = [(row, col) for row, col, _ in iter_tile_rects(1024, 512, 256)]
        assert coords[:5] == [(0, 0), (0, 1), (0, 2), (0, 3), (1, 0)]
        assert len(coords) == 8


class TestGridCompleteness:
    """Tiles must cover the raster exactly once."""

    @pytest.mark.parametrize("width,height,tile_size", [
        (4096, 2048, 512),
        (4100, 2050, 512),
        (1000, 500, 256),
        (257, 129, 64),
        (100, 50, 512),
    ])
    def test_tiles_partition_raster(self, width, height, tile_size):
        coverage = np.zeros((height, width), dtype=np.uint8)
        for _, _, (left, top, right, bottom) in iter_tile_rects(width, height, tile_size):
            assert right - left <= tile_size
            assert bottom - top <= tile_size
            coverage[top:bottom, left:right] += 1

        assert coverage.min() == 1
        assert coverage.max() == 1


class TestLevelPlanner:
    """Tests for resolution level selection."""

    def test_4k_source(self):
        """A 4096px source gets low and medium."""
        names = [level.name for level in select_levels(4096, DEFAULT_LEVELS)]
        assert names == ["low", "medium"]

    def test_11k_source(self):
        """11000px is within tolerance of the 11264px ultra level."""
        names = [level.name for level in select_levels(11000, DEFAULT_LEVELS)]
        assert names == ["low", "medium", "high", "ultra"]

    def test_tolerance_boundary(self):
        """High (8192px) is kept once it is within 110% of the source width."""
        names = [level.name for level in select_levels(7447, DEFAULT_LEVELS)]
        assert names == ["low", "medium"]
        names = [level.name for level in select_levels(7448, DEFAULT_LEVELS)]
        assert names == ["low", "medium", "high"]

    def test_minimum_fills_in_below_tolerance(self):
        """At 3723px only low qualifies; medium comes from the two-level minimum."""
        names = [level.name for level in select_levels(3723, DEFAULT_LEVELS)]
        assert names == ["low", "medium"]

    def test_small_source_gets_two_levels(self):
        """Sources below every level still get the two smallest levels."""
        levels = select_levels(800, DEFAULT_LEVELS)
        assert [level.name for level in levels] == ["low", "medium"]

    def test_unsorted_table(self):
        table = [
            ResolutionLevel(name="b", max_width=4000),
            ResolutionLevel(name="a", max_width=1000),
            ResolutionLevel(name="c", max_width=9000),
        ]
        assert [level.name for level in select_levels(5000, table)] == ["a", "b"]

    def test_empty_table(self):
        with pytest.raises(ConfigurationError):
            select_levels(4096, [])

    def test_invalid_width(self):
        with pytest.raises(InvalidInputError):
            select_levels(0, DEFAULT_LEVELS)

    @pytest.mark.parametrize("width", [1, 100, 2047, 2048, 4096, 5000, 8192, 11264, 16384, 30000])
    def test_minimum_two_levels(self, width):
        assert len(select_levels(width, DEFAULT_LEVELS)) >= 2

    @pytest.mark.parametrize("width", [1, 100, 2047, 2048, 4096, 5000, 8192, 11264, 16384, 30000])
    def test_no_upscaling(self, width):
        for geometry in plan_levels(width, TilerConfig()):
            assert geometry.width <= width * UPSCALE_TOLERANCE
            assert geometry.height == level_height(geometry.width)

    def test_plan_medium_level(self):
        """4096x2048 at the medium level is 8x4 = 32 full tiles."""
        geometry = plan_level(1, DEFAULT_LEVELS[1], 4096, 512)
        assert (geometry.width, geometry.height) == (4096, 2048)
        assert (geometry.cols, geometry.rows) == (8, 4)
        assert geometry.tile_count == 32

    def test_plan_clamps_to_source(self):
        """A level within tolerance above the source uses the source width."""
        geometry = plan_level(1, DEFAULT_LEVELS[1], 4000, 512)
        assert geometry.width == 4000
        assert geometry.height == 2000

    def test_plan_indices_match_position(self):
        levels = plan_levels(16384, TilerConfig())
        assert [g.level for g in levels] == list(range(len(levels)))
        assert [g.width for g in levels] == sorted(g.width for g in levels)


class TestConfig:
    """Tests for configuration validation."""

    def test_defaults(self):
        config = TilerConfig()
        assert config.tile_size == 512
        assert config.quality == 85
        assert config.format == "webp"
        assert [level.name for level in config.levels] == ["low", "medium", "high", "ultra", "max"]

    def test_invalid_tile_size(self):
        with pytest.raises(ConfigurationError, match="tile_size"):
            make_config(tile_size=0)

    def test_invalid_quality(self):
        with pytest.raises(ConfigurationError):
            make_config(quality=101)

    def test_empty_levels(self):
        with pytest.raises(ConfigurationError, match="at least one level"):
            make_config(levels=[])

    def test_duplicate_level_names(self):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            make_config(levels=[
                {"name": "low", "max_width": 1024},
                {"name": "low", "max_width": 2048},
            ])

    def test_levels_sorted(self):
        config = make_config(levels=[
            {"name": "big", "max_width": 8000},
            {"name": "small", "max_width": 1000},
        ])
        assert [level.name for level in config.levels] == ["small", "big"]

    def test_none_values_ignored(self):
        config = make_config(tile_size=None, quality=70)
        assert config.tile_size == 512
        assert config.quality == 70

    def test_load_config(self, tmp_path):
        path = tmp_path / "tiler.json"
        path.write_text(json.dumps({"tile_size": 256, "quality": 70}))

        config = load_config(path, quality=90, preview_width=None)

        assert config.tile_size == 256
        assert config.quality == 90
        assert config.preview_width == 256

    def test_load_missing_config(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.json")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "tiler.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_config(path)
