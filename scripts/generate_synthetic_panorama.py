#!/usr/bin/env python3
"""
Generate a synthetic equirectangular panorama.

Draws a latitude/longitude grid with labelled meridians so tile seams and
level alignment are easy to check by eye in a viewer.

Usage:
    python scripts/generate_synthetic_panorama.py [output_path] [width]

Then run the tiler:
    generate-tiles synthetic_pano.jpg
"""

import sys
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw


# ── Grid settings ────────────────────────────────────────────────────

MERIDIAN_STEP = 30   # degrees of longitude between lines
PARALLEL_STEP = 15   # degrees of latitude between lines
LINE_COLOR = (255, 255, 255)
EQUATOR_COLOR = (255, 60, 60)


def sky_ground_gradient(width: int, height: int) -> np.ndarray:
    """Blue sky fading to brown ground, split at the horizon."""
    t = np.linspace(0.0, 1.0, height)[:, None]
    sky = np.array([70, 130, 220]) * (1 - t) + np.array([200, 220, 255]) * t
    ground = np.array([150, 110, 70]) * (1 - t) + np.array([60, 40, 20]) * t
    rows = np.where(t < 0.5, sky, ground)
    return np.repeat(rows[:, None, :], width, axis=1).astype(np.uint8)


def generate_panorama(output_path: Path, width: int = 4096) -> Path:
    height = width // 2
    img = Image.fromarray(sky_ground_gradient(width, height))
    draw = ImageDraw.Draw(img)
    line_width = max(1, width // 1024)

    for lon in range(-180, 181, MERIDIAN_STEP):
        x = int((lon + 180) / 360 * (width - 1))
        draw.line([(x, 0), (x, height)], fill=LINE_COLOR, width=line_width)
        draw.text((x + 4, height // 2 + 4), f"{lon}°", fill=LINE_COLOR)

    for lat in range(-90 + PARALLEL_STEP, 90, PARALLEL_STEP):
        y = int((90 - lat) / 180 * (height - 1))
        color = EQUATOR_COLOR if lat == 0 else LINE_COLOR
        draw.line([(0, y), (width, y)], fill=color, width=line_width)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    img.save(output_path, quality=90)
    print(f"Wrote {width}x{height} panorama to {output_path}")
    return output_path


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("synthetic_pano.jpg")
    size = int(sys.argv[2]) if len(sys.argv) > 2 else 4096
    generate_panorama(out, size)
