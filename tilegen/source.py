"""
Source Loading Stage

Validates input panoramas, reads their metadata and decodes pixels.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List
from PIL import Image, UnidentifiedImageError
from rich.console import Console

from utils.geometry import aspect_ratio
from .errors import InvalidInputError, DecodeError

console = Console()

SUPPORTED_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.webp', '.tiff', '.tif')

EQUIRECT_RATIO = 2.0


@dataclass(frozen=True)
class SourceImage:
    """Metadata of an input panorama. Pixels are decoded separately."""
    path: Path
    filename: str
    width: int
    height: int
    format: str
    mode: str

    @property
    def aspect_ratio(self) -> float:
        return aspect_ratio(self.width, self.height)

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "width": self.width,
            "height": self.height,
            "format": self.format,
        }


def is_supported(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def discover_images(input_dir: Path) -> List[Path]:
    """
    Find supported images directly inside a directory.

    Subdirectories and files with other extensions are ignored.

    Returns:
        Sorted list of image paths
    """
    if not input_dir.is_dir():
        raise InvalidInputError(f"Input directory not found: {input_dir}")

    return sorted(
        p for p in input_dir.iterdir()
        if p.is_file() and is_supported(p)
    )


def load_source(input_path: Path) -> SourceImage:
    """
    Read the header of an input panorama.

    Args:
        input_path: Path to the image file

    Returns:
        SourceImage with dimensions and codec
    """
    if not input_path.exists():
        raise InvalidInputError(f"Input file not found: {input_path}")
    if not input_path.is_file():
        raise InvalidInputError(f"Input is not a file: {input_path}")
    if not is_supported(input_path):
        raise InvalidInputError(
            f"Unsupported file type: {input_path.suffix or '(none)'}. "
            f"Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}"
        )

    try:
        with Image.open(input_path) as img:
            width, height = img.size
            fmt = (img.format or input_path.suffix.lstrip('.')).lower()
            mode = img.mode
    except UnidentifiedImageError as e:
        raise DecodeError(f"Cannot identify image {input_path.name}: {e}")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Cannot read image {input_path.name}: {e}")

    if width <= 0 or height <= 0:
        raise DecodeError(f"Image has no usable dimensions: {width}x{height}")

    return SourceImage(
        path=input_path,
        filename=input_path.name,
        width=width,
        height=height,
        format=fmt,
        mode=mode,
    )


def decode_source(source: SourceImage) -> Image.Image:
    """
    Fully decode a source image into an RGB or RGBA raster.

    Truncated or corrupt pixel data surfaces here rather than in load_source,
    which only reads the header.
    """
    try:
        with Image.open(source.path) as img:
            img.load()
            if img.mode in ('RGBA', 'LA') or (img.mode == 'P' and 'transparency' in img.info):
                return img.convert('RGBA')
            return img.convert('RGB')
    except (OSError, ValueError, SyntaxError) as e:
        raise DecodeError(f"Failed to decode {source.filename}: {e}")


def check_aspect_ratio(source: SourceImage, tolerance: float, quiet: bool = False) -> bool:
    """
    Warn when a source is not close to 2:1.

    The pipeline still stretches it to 2:1; this only flags inputs that will
    be visibly distorted.

    Returns:
        True if the aspect ratio is within tolerance
    """
    ratio = source.aspect_ratio
    if abs(ratio - EQUIRECT_RATIO) > tolerance:
        if quiet:
            return False
        console.print(
            f"[yellow]Warning: {source.filename} has aspect ratio {ratio:.2f}, not 2:1. "
            f"It will be stretched to fit the equirectangular grid.[/yellow]"
        )
        return False
    return True
