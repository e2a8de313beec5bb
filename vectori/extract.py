"""Layer extraction: per-color masks and per-luma bands."""
import asyncio
import logging
from typing import List

import numpy as np

from vectori.types import WHITE, Bitmap, Color, Layer, Palette, luma, luma_map

logger = logging.getLogger(__name__)

DEFAULT_LUMA_TOLERANCE = 5


def create_color_mask(bitmap: Bitmap, color: Color) -> Bitmap:
    """Create a mask bitmap keeping only pixels that exactly match color.

    Args:
        bitmap: Quantized bitmap (H, W, 3)
        color: Color to keep

    Returns:
        New bitmap where every other pixel is white
    """
    mask = bitmap.copy()
    match = np.all(bitmap[..., :3] == np.asarray(color[:3], dtype=bitmap.dtype), axis=2)
    mask[~match] = WHITE
    return mask


def create_luma_mask(bitmap: Bitmap, target: int, tolerance: int = DEFAULT_LUMA_TOLERANCE) -> Bitmap:
    """Create a mask bitmap for one luma band.

    Pixels whose luma lies within tolerance of target are snapped to the
    grey of target; everything else turns white.
    """
    mask = np.empty_like(bitmap)
    in_band = np.abs(luma_map(bitmap) - int(target)) <= tolerance
    mask[in_band] = (target, target, target)
    mask[~in_band] = WHITE
    return mask


def separate_by_color(bitmap: Bitmap, palette: Palette) -> List[Layer]:
    """Extract one layer per palette entry.

    Run this on an already quantized bitmap so that every pixel matches
    exactly one entry.

    Args:
        bitmap: Quantized bitmap (H, W, 3)
        palette: Palette the bitmap was quantized to

    Returns:
        Layers index-aligned with palette
    """
    return [
        Layer(index=i, color=tuple(color), mask=create_color_mask(bitmap, color))
        for i, color in enumerate(palette)
    ]


def separate_by_luma(
    bitmap: Bitmap, luma_palette: Palette, tolerance: int = DEFAULT_LUMA_TOLERANCE
) -> List[Layer]:
    """Extract one luma band per palette entry.

    Bands may overlap, so a pixel can appear in more than one layer.

    Args:
        bitmap: Source bitmap (H, W, 3)
        luma_palette: Grey colors whose luma values are the band centers
        tolerance: Half-width of each band

    Returns:
        Layers index-aligned with luma_palette
    """
    layers = []
    for i, color in enumerate(luma_palette):
        target = luma(color)
        layers.append(
            Layer(index=i, color=(target, target, target), mask=create_luma_mask(bitmap, target, tolerance))
        )
    return layers


async def separate_by_color_async(bitmap: Bitmap, palette: Palette) -> List[Layer]:
    """Concurrent separate_by_color: one worker task per palette entry."""
    masks = await asyncio.gather(
        *(asyncio.to_thread(create_color_mask, bitmap, color) for color in palette)
    )
    logger.debug(f"Extracted {len(masks)} color layers")
    return [Layer(index=i, color=tuple(color), mask=mask) for i, (color, mask) in enumerate(zip(palette, masks))]


async def separate_by_luma_async(
    bitmap: Bitmap, luma_palette: Palette, tolerance: int = DEFAULT_LUMA_TOLERANCE
) -> List[Layer]:
    """Concurrent separate_by_luma: one worker task per luma band."""
    targets = [luma(color) for color in luma_palette]
    masks = await asyncio.gather(
        *(asyncio.to_thread(create_luma_mask, bitmap, target, tolerance) for target in targets)
    )
    logger.debug(f"Extracted {len(masks)} luma layers (tolerance={tolerance})")
    return [Layer(index=i, color=(t, t, t), mask=mask) for i, (t, mask) in enumerate(zip(targets, masks))]
