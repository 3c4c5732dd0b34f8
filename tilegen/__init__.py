"""
Panorama Tile Generator

Converts equirectangular panoramas into multi-resolution tile pyramids for
progressive, viewport-driven loading in a 360° viewer.

Pipeline stages:
1. Load - Validate input and read the image header
2. Plan - Select resolution levels without upscaling
3. Slice - Resample once per level and cut the WebP tile grid
4. Preview - Small blur-up placeholder image
5. Manifest - Versioned manifest.json describing tile addressing

Batch mode runs the pipeline over a directory and writes batch-manifest.json.

Importing this package raises Pillow's process-wide decompression bomb limit
(PIL.Image.MAX_IMAGE_PIXELS) to MAX_PANORAMA_PIXELS, since a 16384x8192
panorama is already 134M pixels. A higher limit, or a limit disabled with
None, is left untouched.
"""

from PIL import Image

__version__ = "0.1.0"

MAX_PANORAMA_PIXELS = 700_000_000

if Image.MAX_IMAGE_PIXELS is not None and Image.MAX_IMAGE_PIXELS < MAX_PANORAMA_PIXELS:
    Image.MAX_IMAGE_PIXELS = MAX_PANORAMA_PIXELS
