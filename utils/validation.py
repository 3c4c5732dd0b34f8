"""Validation utilities for tiler configuration."""

import json
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator


class ConfigurationError(Exception):
    """Invalid tiler configuration. Fatal before any image is touched."""
    pass


# Pydantic models for tiler configuration


class ResolutionLevel(BaseModel):
    name: str = Field(..., min_length=1)
    max_width: int = Field(..., gt=0)


DEFAULT_LEVELS = [
    ResolutionLevel(name="low", max_width=2048),
    ResolutionLevel(name="medium", max_width=4096),     # 4K
    ResolutionLevel(name="high", max_width=8192),       # 8K
    ResolutionLevel(name="ultra", max_width=11264),     # 11K
    ResolutionLevel(name="max", max_width=16384),       # 16K
]

SUPPORTED_FORMATS = {"webp"}


class TilerConfig(BaseModel):
    """Static configuration shared by every run of the tiling pipeline."""

    tile_size: int = Field(default=512, gt=0)
    quality: int = Field(default=85, ge=0, le=100)
    format: str = Field(default="webp")

    preview_width: int = Field(default=256, gt=0)
    preview_quality: int = Field(default=60, ge=0, le=100)

    levels: List[ResolutionLevel] = Field(default_factory=lambda: list(DEFAULT_LEVELS))

    # Concurrency
    tile_workers: int = Field(default=4, ge=1)
    image_workers: Optional[int] = Field(default=None, ge=1)
    image_timeout: Optional[float] = Field(default=None, gt=0)

    # Warn when width/height deviates from 2.0 by more than this
    aspect_tolerance: float = Field(default=0.2, ge=0)

    model_config = {"frozen": True}

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        v = v.lower()
        if v not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported tile format: {v}. Must be one of {SUPPORTED_FORMATS}")
        return v

    @field_validator("levels")
    @classmethod
    def validate_levels(cls, v):
        if not v:
            raise ValueError("Level table must contain at least one level")
        names = [level.name for level in v]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate level names: {names}")
        return sorted(v, key=lambda level: level.max_width)


def make_config(**kwargs) -> TilerConfig:
    """
    Build a TilerConfig, converting validation failures to ConfigurationError.

    Keys whose value is None are dropped so callers can pass unset CLI options
    straight through.
    """
    values = {k: v for k, v in kwargs.items() if v is not None}
    try:
        return TilerConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(_format_errors(e))


def load_config(config_path: Path, **overrides) -> TilerConfig:
    """
    Load a TilerConfig from a JSON file.

    Args:
        config_path: Path to a JSON document with TilerConfig fields
        overrides: Field values that replace the file's (None is ignored)

    Returns:
        Validated configuration
    """
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError("Config must be a JSON object")

    data.update({k: v for k, v in overrides.items() if v is not None})
    return make_config(**data)


def _format_errors(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "Invalid configuration: " + "; ".join(parts)
