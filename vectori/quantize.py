"""Nearest-palette-color classification and image quantization."""
import logging
from typing import Sequence

import numpy as np

from vectori.types import Bitmap, Color, Palette, luma_map

logger = logging.getLogger(__name__)

# Pixel-palette distance pairs computed per vectorized step
CHUNK_SIZE = 1 << 20


def _palette_array(palette: Sequence[Color]) -> np.ndarray:
    return np.asarray([tuple(c)[:3] for c in palette], dtype=np.int64).reshape(-1, 3)


def nearest_color(color: Color, palette: Palette) -> Color:
    """
    Find the palette entry closest to color in Euclidean RGB distance.

    Ties go to the entry that appears first in the palette. An empty
    palette maps every color to itself.

    Args:
        color: Color to classify
        palette: Candidate colors

    Returns:
        The closest palette color, or color itself if palette is empty
    """
    if not palette:
        return color

    target = np.asarray(tuple(color)[:3], dtype=np.int64)
    distances = ((_palette_array(palette) - target) ** 2).sum(axis=1)
    return palette[int(np.argmin(distances))]


def nearest_indices(bitmap: Bitmap, palette: Palette) -> np.ndarray:
    """
    Index of the nearest palette entry for every pixel.

    Squared integer distances keep ties exact, and argmin returns the
    first minimum, matching nearest_color. Pixels are processed in chunks
    sized so that each distance array stays bounded however long the
    palette is.

    Returns:
        (H, W) array of palette indices
    """
    if not palette:
        raise ValueError("nearest_indices requires a non-empty palette")

    h, w = bitmap.shape[:2]
    pixels = bitmap[..., :3].reshape(-1, 3)
    colors = _palette_array(palette).reshape(1, -1, 3)

    step = max(1, CHUNK_SIZE // len(palette))
    indices = np.empty(len(pixels), dtype=np.int64)
    for start in range(0, len(pixels), step):
        chunk = pixels[start:start + step].astype(np.int64).reshape(-1, 1, 3)
        distances = ((chunk - colors) ** 2).sum(axis=2)
        indices[start:start + step] = np.argmin(distances, axis=1)

    return indices.reshape(h, w)


def quantize_image(bitmap: Bitmap, palette: Palette) -> Bitmap:
    """
    Replace every pixel with its nearest palette color.

    The input bitmap is left untouched; the result is a new array.

    Args:
        bitmap: Source bitmap (H, W, 3)
        palette: Target colors

    Returns:
        Quantized bitmap with the same shape
    """
    if not palette:
        logger.warning("Empty palette, quantization leaves the image unchanged")
        return bitmap.copy()

    indices = nearest_indices(bitmap, palette)
    colors = _palette_array(palette).astype(np.uint8)
    quantized = colors[indices]

    logger.debug(f"Quantized {bitmap.shape[1]}x{bitmap.shape[0]} image to {len(palette)} colors")
    return quantized


def to_greyscale(bitmap: Bitmap) -> Bitmap:
    """Set every pixel to the grey of its luma."""
    lumas = luma_map(bitmap).astype(np.uint8)
    return np.repeat(lumas[..., np.newaxis], 3, axis=2)
