"""Core types for the layer vectorization pipeline."""
import math
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

# Type aliases
Bitmap = np.ndarray  # (H, W, 3) uint8
Color = Tuple[int, int, int]
Palette = List[Color]

WHITE: Color = (255, 255, 255)

# Luma weights
LUMA_R = 0.3
LUMA_G = 0.59
LUMA_B = 0.11


class FillMode(Enum):
    """Selector for the precomputed variants of a result."""
    COLOR = "color"
    GREYSCALE = "greyscale"
    OUTLINE = "outline"
    COLOR_OUTLINE = "color-outline"
    GREYSCALE_OUTLINE = "greyscale-outline"


class PaletteStrategy(Enum):
    """How a palette is derived from a bitmap."""
    CLUSTERED = "clustered"
    EXHAUSTIVE_COLOR = "exhaustive-color"
    EXHAUSTIVE_LUMA = "exhaustive-luma"


class ClusterMethod(Enum):
    """Clustering algorithm behind the clustered palette."""
    MEDIAN_CUT = "median-cut"
    KMEANS = "kmeans"


def color_to_hex(color) -> str:
    """Format an (R, G, B) color as a lowercase #rrggbb string."""
    r, g, b = (int(round(float(c))) for c in color[:3])
    return f"#{r:02x}{g:02x}{b:02x}"


def hex_to_color(hex_string: str) -> Color:
    """Parse a #rrggbb string into an (R, G, B) tuple."""
    value = hex_string.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Expected #rrggbb color, got {hex_string!r}")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def luma(color) -> int:
    """Perceptual brightness of a color, rounded half up to an integer."""
    r, g, b = (float(c) for c in color[:3])
    return int(math.floor(LUMA_R * r + LUMA_G * g + LUMA_B * b + 0.5))


def luma_map(bitmap: Bitmap) -> np.ndarray:
    """Vectorized luma for every pixel of a bitmap, shape (H, W)."""
    rgb = bitmap[..., :3].astype(np.float64)
    weighted = LUMA_R * rgb[..., 0] + LUMA_G * rgb[..., 1] + LUMA_B * rgb[..., 2]
    return np.floor(weighted + 0.5).astype(np.int32)


def grey(value: int) -> Color:
    """Grey color with all channels equal to value."""
    return (int(value), int(value), int(value))


@dataclass(frozen=True)
class Frame:
    """Coordinate frame of a vector fragment (viewBox semantics)."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def empty(cls) -> "Frame":
        return cls(0.0, 0.0, 0.0, 0.0)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, other: "Frame") -> bool:
        """True if other lies entirely within this frame."""
        return (
            self.x <= other.x
            and self.y <= other.y
            and self.right >= other.right
            and self.bottom >= other.bottom
        )


@dataclass(frozen=True)
class Layer:
    """One palette entry and its isolated mask."""
    index: int
    color: Color
    mask: Bitmap

    @property
    def hex(self) -> str:
        return color_to_hex(self.color)


@dataclass(frozen=True)
class VectorFragment:
    """Traced SVG text for a single layer."""
    svg: str
    color: Optional[str] = None

    @property
    def frame(self) -> Optional[Frame]:
        """Declared coordinate frame, or None when the root declares none."""
        from vectori.merge import parse_frame

        return parse_frame(self.svg)


@dataclass(frozen=True)
class MergedDocument:
    """Union of several fragments in one shared coordinate frame."""
    frame: Frame
    content: str

    @property
    def svg(self) -> str:
        from vectori.merge import render_document

        return render_document(self)


@dataclass
class PipelineConfig:
    """Configuration for the layer vectorization pipeline."""

    # Palette building
    n_colors: int = 6
    cluster_method: ClusterMethod = ClusterMethod.MEDIAN_CUT
    palette_quality: int = 1  # sample every Nth pixel when clustering

    # Strategy per fill mode
    color_palette: PaletteStrategy = PaletteStrategy.CLUSTERED
    greyscale_palette: PaletteStrategy = PaletteStrategy.EXHAUSTIVE_LUMA

    # Luma banding
    luma_tolerance: int = 5

    # Tracing
    trace_timeout: Optional[float] = None  # seconds per layer, None = wait forever

    def __post_init__(self):
        """Normalize enum fields and validate ranges."""
        self.cluster_method = ClusterMethod(self.cluster_method)
        self.color_palette = PaletteStrategy(self.color_palette)
        self.greyscale_palette = PaletteStrategy(self.greyscale_palette)

        if self.n_colors < 0:
            raise ValueError(f"n_colors must be >= 0, got {self.n_colors}")
        if self.palette_quality < 1:
            raise ValueError(f"palette_quality must be >= 1, got {self.palette_quality}")
        if self.luma_tolerance < 0:
            raise ValueError(f"luma_tolerance must be >= 0, got {self.luma_tolerance}")
        if self.trace_timeout is not None and self.trace_timeout <= 0:
            raise ValueError(f"trace_timeout must be positive, got {self.trace_timeout}")

        if self.color_palette is PaletteStrategy.EXHAUSTIVE_COLOR:
            warnings.warn(
                "Exhaustive color palettes are unbounded; every distinct color "
                "becomes its own traced layer."
            )


class VectorizationError(Exception):
    """Base exception for vectorization errors."""

    pass


class DecodeError(VectorizationError):
    """Exception raised when input bytes cannot be decoded into a bitmap."""

    pass


class TracerError(VectorizationError):
    """Exception raised when tracing a layer fails."""

    pass
