"""
Preview Generation Stage

Writes the small blur-up placeholder a viewer shows while tiles stream in.
"""

from pathlib import Path
from typing import Tuple
from PIL import Image

from .errors import PreviewError

PREVIEW_FILENAME = "preview.webp"


def generate_preview(
    image: Image.Image,
    output_path: Path,
    width: int = 256,
    quality: int = 60,
) -> Tuple[Path, Tuple[int, int]]:
    """
    Downsample the whole panorama to a single small WebP.

    Args:
        image: Decoded full-resolution panorama
        output_path: Destination file
        width: Preview width in pixels (height keeps the source aspect)
        quality: WebP quality (0-100)

    Returns:
        Tuple of (output path, (width, height))
    """
    src_w, src_h = image.size
    height = max(1, round(width * src_h / src_w))

    try:
        preview = image.resize((width, height), Image.Resampling.LANCZOS)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        preview.save(output_path, 'WEBP', quality=quality)
    except (OSError, ValueError) as e:
        raise PreviewError(f"Failed to generate preview {output_path}: {e}")

    return output_path, (width, height)
