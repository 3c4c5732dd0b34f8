"""
Manifest Writing Stage

Serializes tile-set geometry so a viewer can address every tile, plus the
batch-level index over several tile sets.

Manifest schema versions:
    v1: version, created, original{width, height, format}, tileSize, format,
        preview, previewWidth, levels[]
    v2: v1 + original.filename, quality

Bump MANIFEST_VERSION whenever level geometry or tile addressing changes.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from utils.validation import TilerConfig
from .errors import ManifestError
from .levels import LevelGeometry
from .preview import PREVIEW_FILENAME
from .slicer import tile_path
from .source import SourceImage

MANIFEST_VERSION = 2
SUPPORTED_MANIFEST_VERSIONS = {1, 2}
BATCH_MANIFEST_VERSION = 1

MANIFEST_FILENAME = "manifest.json"
BATCH_MANIFEST_FILENAME = "batch-manifest.json"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class OriginalInfo(BaseModel):
    filename: Optional[str] = None   # v2+
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    format: str


class TileManifest(BaseModel):
    """Pydantic model for a per-image tile manifest."""

    version: int
    created: str
    original: OriginalInfo
    tile_size: int = Field(..., gt=0, alias="tileSize")
    format: str
    quality: Optional[int] = Field(default=None, ge=0, le=100)   # v2+
    preview: str
    preview_width: int = Field(..., gt=0, alias="previewWidth")
    levels: List[LevelGeometry]

    model_config = {"populate_by_name": True}

    @field_validator("version")
    @classmethod
    def validate_version(cls, v):
        if v not in SUPPORTED_MANIFEST_VERSIONS:
            raise ValueError(f"Unsupported manifest version: {v}")
        return v

    @field_validator("levels")
    @classmethod
    def validate_levels(cls, v):
        if not v:
            raise ValueError("Manifest must list at least one level")
        for position, level in enumerate(v):
            if level.level != position:
                raise ValueError(f"Level index {level.level} does not match position {position}")
        return v

    @model_validator(mode="after")
    def validate_v2_fields(self):
        if self.version >= 2 and (self.original.filename is None or self.quality is None):
            raise ValueError("Version 2 manifests require original.filename and quality")
        return self

    @property
    def total_tiles(self) -> int:
        return sum(level.tile_count for level in self.levels)

    def to_json(self) -> str:
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return json.dumps(data, indent=2)


class BatchEntry(BaseModel):
    id: str
    path: str
    filename: Optional[str] = None
    width: int
    height: int
    format: str
    levels: int


class BatchManifest(BaseModel):
    version: int = BATCH_MANIFEST_VERSION
    created: str = Field(default_factory=utc_timestamp)
    panoramas: List[BatchEntry] = Field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json", exclude_none=True), indent=2)


def build_manifest(
    source: SourceImage,
    config: TilerConfig,
    levels: Sequence[LevelGeometry],
) -> TileManifest:
    """
    Create the manifest record for a fully tiled image.

    Args:
        source: Source image metadata
        config: Tiler configuration used for the run
        levels: Geometry of every generated level, level 0 first

    Returns:
        Validated TileManifest at the current schema version
    """
    try:
        return TileManifest(
            version=MANIFEST_VERSION,
            created=utc_timestamp(),
            original=OriginalInfo(**source.to_dict()),
            tile_size=config.tile_size,
            format=config.format,
            quality=config.quality,
            preview=PREVIEW_FILENAME,
            preview_width=config.preview_width,
            levels=list(levels),
        )
    except ValidationError as e:
        raise ManifestError(f"Invalid manifest for {source.filename}: {e}")


def _write_json_atomic(content: str, path: Path) -> Path:
    """Write via a temp file in the same directory, then rename over path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, 'w') as f:
            f.write(content)
            f.write("\n")
        os.replace(tmp_name, path)
    except OSError:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return path


def write_manifest(manifest: TileManifest, output_dir: Path) -> Path:
    """
    Write manifest.json for one tile set.

    Only call this once every tile and the preview exist; the manifest is the
    marker a viewer uses to decide a tile set is complete.

    Returns:
        Path to the written manifest
    """
    try:
        return _write_json_atomic(manifest.to_json(), output_dir / MANIFEST_FILENAME)
    except OSError as e:
        raise ManifestError(f"Failed to write manifest in {output_dir}: {e}")


def remove_manifest(output_dir: Path) -> bool:
    """Delete a stale manifest before regenerating. Returns True if one existed."""
    manifest_path = output_dir / MANIFEST_FILENAME
    if not manifest_path.exists():
        return False
    try:
        manifest_path.unlink()
    except OSError as e:
        raise ManifestError(f"Failed to remove stale manifest in {output_dir}: {e}")
    return True


def load_manifest(manifest_path: Path) -> TileManifest:
    """Parse and validate a v1 or v2 manifest."""
    if not manifest_path.exists():
        raise ManifestError(f"Manifest not found: {manifest_path}")

    try:
        with open(manifest_path, 'r') as f:
            data = json.load(f)
        return TileManifest(**data)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON in manifest: {e}")
    except (ValidationError, TypeError) as e:
        raise ManifestError(f"Failed to parse manifest: {e}")


def build_batch_manifest(entries: Sequence[Tuple[str, TileManifest]]) -> BatchManifest:
    """
    Index successfully tiled panoramas.

    Args:
        entries: (image id, manifest) pairs; the id is also the subdirectory name

    Returns:
        BatchManifest with one entry per pair
    """
    panoramas = [
        BatchEntry(
            id=image_id,
            path=f"{image_id}/",
            filename=manifest.original.filename,
            width=manifest.original.width,
            height=manifest.original.height,
            format=manifest.original.format,
            levels=len(manifest.levels),
        )
        for image_id, manifest in entries
    ]
    return BatchManifest(panoramas=panoramas)


def write_batch_manifest(batch_manifest: BatchManifest, output_dir: Path) -> Path:
    try:
        return _write_json_atomic(batch_manifest.to_json(), output_dir / BATCH_MANIFEST_FILENAME)
    except OSError as e:
        raise ManifestError(f"Failed to write batch manifest in {output_dir}: {e}")


def validate_tile_set(output_dir: Path) -> List[str]:
    """
    Check that a tile set is complete.

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    try:
        manifest = load_manifest(output_dir / MANIFEST_FILENAME)
    except ManifestError as e:
        return [str(e)]

    if not (output_dir / manifest.preview).exists():
        errors.append(f"Missing preview: {manifest.preview}")

    for level in manifest.levels:
        if level.tile_size != manifest.tile_size:
            errors.append(f"Level {level.level} tile size {level.tile_size} != {manifest.tile_size}")
        missing = [
            (row, col)
            for row in range(level.rows)
            for col in range(level.cols)
            if not tile_path(output_dir, level.level, row, col, manifest.format).exists()
        ]
        if missing:
            errors.append(f"Level {level.level} ({level.name}) missing {len(missing)} tile(s), "
                          f"first at row {missing[0][0]}, col {missing[0][1]}")

    return errors
