"""Palette building: median-cut / K-means clustering and exhaustive scans."""
import logging
from typing import List

import numpy as np

from vectori.types import (
    Bitmap,
    ClusterMethod,
    Palette,
    PaletteStrategy,
    color_to_hex,
    grey,
    luma_map,
)

logger = logging.getLogger(__name__)


def _sample_pixels(bitmap: Bitmap, quality: int) -> np.ndarray:
    """Flatten a bitmap to (N, 3) pixels, keeping every quality-th one."""
    pixels = bitmap[..., :3].reshape(-1, 3)
    if quality > 1:
        pixels = pixels[::quality]
    return pixels


def _pad_cyclic(colors: Palette, k: int) -> Palette:
    """Repeat colors in order until the palette holds exactly k entries."""
    if not colors:
        return []
    return [colors[i % len(colors)] for i in range(k)]


def _split_bucket(bucket: np.ndarray):
    """
    Split a bucket along its widest channel at the median.

    Pixels sharing the median value stay on the same side, so both halves
    are non-empty whenever the channel range is positive.
    """
    ranges = bucket.max(axis=0).astype(np.int32) - bucket.min(axis=0).astype(np.int32)
    channel = int(np.argmax(ranges))

    order = np.argsort(bucket[:, channel], kind="stable")
    ordered = bucket[order]
    values = ordered[:, channel]

    median = values[len(values) // 2]
    side = "right" if values[0] == median else "left"
    cut = int(np.searchsorted(values, median, side=side))

    return ordered[:cut], ordered[cut:]


def _bucket_range(bucket: np.ndarray) -> int:
    return int((bucket.max(axis=0).astype(np.int32) - bucket.min(axis=0)).max())


def median_cut(pixels: np.ndarray, k: int) -> Palette:
    """
    Cluster pixels into at most k colors with median-cut bucket splitting.

    Buckets are split, widest range first, until k buckets exist or none
    can be split. Each bucket contributes its rounded mean color; the
    result is ordered by bucket population, largest first.

    Args:
        pixels: (N, 3) array of colors
        k: Number of buckets to aim for

    Returns:
        Palette with at most k distinct-bucket colors
    """
    if k <= 0 or len(pixels) == 0:
        return []

    buckets: List[np.ndarray] = [pixels]

    while len(buckets) < k:
        ranges = [_bucket_range(b) for b in buckets]
        widest = int(np.argmax(ranges))
        if ranges[widest] == 0:
            break

        lower, upper = _split_bucket(buckets[widest])
        buckets[widest:widest + 1] = [lower, upper]

    order = sorted(range(len(buckets)), key=lambda i: -len(buckets[i]))
    palette = []
    for i in order:
        mean = np.floor(buckets[i].astype(np.float64).mean(axis=0) + 0.5)
        palette.append(tuple(int(c) for c in np.clip(mean, 0, 255)))

    return palette


def kmeans_palette(pixels: np.ndarray, k: int, random_state: int = 42) -> Palette:
    """
    Cluster pixels into at most k colors using K-means.

    The cluster count is capped at the number of distinct colors so small
    or flat images do not produce empty clusters.
    """
    from sklearn.cluster import KMeans

    if k <= 0 or len(pixels) == 0:
        return []

    n_clusters = min(k, len(np.unique(pixels, axis=0)))
    kmeans = KMeans(n_clusters=n_clusters, random_state=random_state, n_init=10)
    labels = kmeans.fit_predict(pixels.astype(np.float32))

    counts = np.bincount(labels, minlength=n_clusters)
    centers = np.clip(np.floor(kmeans.cluster_centers_ + 0.5), 0, 255).astype(np.uint8)
    order = np.argsort(-counts, kind="stable")

    return [tuple(int(c) for c in centers[i]) for i in order]


def build_clustered_palette(
    bitmap: Bitmap,
    k: int,
    method: ClusterMethod = ClusterMethod.MEDIAN_CUT,
    quality: int = 1,
) -> Palette:
    """
    Cluster the pixels of a bitmap into exactly k representative colors.

    The same bitmap and k always give the same palette. When the image has
    fewer distinct colors than k the clustered colors are repeated in order
    to fill the palette.

    Args:
        bitmap: Source bitmap (H, W, 3)
        k: Palette size
        method: Clustering algorithm
        quality: Sample every quality-th pixel (1 = every pixel)

    Returns:
        Palette of length k, or [] for k == 0 or an empty bitmap

    Raises:
        ValueError: If k < 0 or quality < 1
    """
    if k < 0:
        raise ValueError(f"k must be >= 0, got {k}")
    if quality < 1:
        raise ValueError(f"quality must be >= 1, got {quality}")

    pixels = _sample_pixels(bitmap, quality)

    method = ClusterMethod(method)
    if method is ClusterMethod.KMEANS:
        colors = kmeans_palette(pixels, k)
    else:
        colors = median_cut(pixels, k)

    if 0 < len(colors) < k:
        logger.debug(f"Only {len(colors)} clusters for k={k}, repeating entries")

    return _pad_cyclic(colors, k)


def extract_exhaustive_color_palette(bitmap: Bitmap) -> Palette:
    """Every distinct color of the bitmap, in first-seen raster order."""
    pixels = bitmap[..., :3].reshape(-1, 3)
    if len(pixels) == 0:
        return []

    _, first_seen = np.unique(pixels, axis=0, return_index=True)
    return [tuple(int(c) for c in pixels[i]) for i in np.sort(first_seen)]


def extract_exhaustive_luma_palette(bitmap: Bitmap) -> Palette:
    """Every distinct luma of the bitmap as a grey color, in first-seen order."""
    lumas = luma_map(bitmap).reshape(-1)
    if len(lumas) == 0:
        return []

    _, first_seen = np.unique(lumas, return_index=True)
    return [grey(lumas[i]) for i in np.sort(first_seen)]


def build_palette(
    strategy: PaletteStrategy,
    bitmap: Bitmap,
    k: int,
    method: ClusterMethod = ClusterMethod.MEDIAN_CUT,
    quality: int = 1,
) -> Palette:
    """Build a palette with the given strategy."""
    strategy = PaletteStrategy(strategy)

    if strategy is PaletteStrategy.CLUSTERED:
        palette = build_clustered_palette(bitmap, k, method, quality)
    elif strategy is PaletteStrategy.EXHAUSTIVE_COLOR:
        palette = extract_exhaustive_color_palette(bitmap)
    else:
        palette = extract_exhaustive_luma_palette(bitmap)

    logger.info(f"Built {strategy.value} palette with {len(palette)} colors")
    return palette


def palette_to_hex(palette: Palette) -> List[str]:
    """Convert palette colors to #rrggbb strings."""
    return [color_to_hex(color) for color in palette]
