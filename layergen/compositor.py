"""
compositor.py — Stacks the selected layer images into one RGBA edition.

  canvas  size × size, fully transparent
  for each image, bottom layer first:
      decode → RGBA → (resize if enabled and width differs) → clip → over (0, 0)

Later images draw over earlier ones with source-over blending. Images that are
smaller than the canvas are placed at the origin at native size.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Union

from PIL import Image, UnidentifiedImageError

from .errors import CompositeError

TRANSPARENT = (0, 0, 0, 0)
RESAMPLE = Image.LANCZOS

PathLike = Union[str, Path]


def _load_layer(path: PathLike) -> Image.Image:
    try:
        with Image.open(path) as img:
            return img.convert("RGBA")
    except (OSError, UnidentifiedImageError) as e:
        raise CompositeError(f"Couldn't decode layer image: {e}", path) from e


def _fit(layer: Image.Image, size: int, resize: bool) -> Image.Image:
    # only resize on width mismatch
    if resize and layer.width != size:
        layer = layer.resize((size, size), RESAMPLE)
    if layer.width > size or layer.height > size:
        layer = layer.crop((0, 0, min(layer.width, size), min(layer.height, size)))
    return layer


def composite(
    paths: Iterable[PathLike],
    size: int,
    resize: bool = False,
) -> Image.Image:
    """
    Overlay `paths` in order onto a transparent size × size canvas.

    Args:
        paths:  Layer images, bottom first.
        size:   Canvas width and height in pixels.
        resize: Scale images whose width differs from `size` to size × size.

    Returns:
        RGBA Pillow image.

    Raises:
        CompositeError: an image could not be decoded.
    """
    if size <= 0:
        raise CompositeError(f"Canvas size must be positive, got {size}")

    canvas = Image.new("RGBA", (size, size), TRANSPARENT)
    for path in paths:
        layer = _fit(_load_layer(path), size, resize)
        canvas.alpha_composite(layer, dest=(0, 0))
    return canvas

