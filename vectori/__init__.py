"""vectori: flat-color layer separation and SVG merging for raster images.

Clusters image colors into a palette, splits the image into per-color and
per-luma masks, traces every mask and merges the traced fragments into
color, greyscale and outline documents.
"""
from vectori.pipeline import Pipeline, process_image, vectorize
from vectori.result import ResultView
from vectori.tracer import ContourTracer, Tracer
from vectori.types import (
    ClusterMethod,
    DecodeError,
    FillMode,
    PaletteStrategy,
    PipelineConfig,
    TracerError,
    VectorizationError,
)

__version__ = "0.1.0"
__all__ = [
    "Pipeline",
    "process_image",
    "vectorize",
    "ResultView",
    "ContourTracer",
    "Tracer",
    "ClusterMethod",
    "DecodeError",
    "FillMode",
    "PaletteStrategy",
    "PipelineConfig",
    "TracerError",
    "VectorizationError",
]
