"""Main pipeline orchestrator for vectori."""
import asyncio
import logging
from typing import Optional, Tuple

from vectori.extract import separate_by_color_async, separate_by_luma_async
from vectori.palette import (
    build_palette,
    extract_exhaustive_color_palette,
    extract_exhaustive_luma_palette,
    palette_to_hex,
)
from vectori.quantize import quantize_image, to_greyscale
from vectori.raster_ingest import Source, bitmap_to_data_uri, load_bitmap, to_data_uri
from vectori.result import ResultView, assemble_result
from vectori.tracer import ContourTracer, Tracer, encode_layers, trace_layers
from vectori.types import Bitmap, Palette, PaletteStrategy, PipelineConfig

logger = logging.getLogger(__name__)


class Pipeline:
    """Layer separation + tracing pipeline."""

    def __init__(self, config: Optional[PipelineConfig] = None, tracer: Optional[Tracer] = None):
        """Initialize pipeline with configuration.

        Args:
            config: Pipeline configuration. Uses defaults if None.
            tracer: Tracer collaborator. Uses ContourTracer if None.
        """
        self.config = config or PipelineConfig()
        self.tracer = tracer or ContourTracer()

    async def process(self, source: Source) -> ResultView:
        """Process an image through the pipeline.

        Args:
            source: Encoded image bytes, a path, or a binary file object

        Returns:
            ResultView with every fill-mode variant computed

        Raises:
            FileNotFoundError: If a path is given and doesn't exist
            DecodeError: If the image cannot be decoded
            TracerError: If tracing any layer fails
        """
        bitmap = await asyncio.to_thread(load_bitmap, source)
        greyscale = to_greyscale(bitmap)

        # Step 1: Palettes
        color_palette, greyscale_palette = self._build_palettes(bitmap, greyscale)
        all_colors = extract_exhaustive_color_palette(bitmap)
        all_lumas = extract_exhaustive_luma_palette(bitmap)

        # Step 2: Quantize a copy of the source
        if self.config.color_palette is PaletteStrategy.EXHAUSTIVE_COLOR:
            # Every pixel already has an exact palette entry
            quantized = bitmap.copy()
        else:
            quantized = await asyncio.to_thread(quantize_image, bitmap, color_palette)

        # Step 3: Layer separation, one task per layer
        color_layers, greyscale_layers = await asyncio.gather(
            separate_by_color_async(quantized, color_palette),
            separate_by_luma_async(bitmap, greyscale_palette, self.config.luma_tolerance),
        )

        color_pngs, greyscale_pngs = await asyncio.gather(
            encode_layers(color_layers),
            encode_layers(greyscale_layers),
        )

        # Step 4: Trace both batches; each batch fails as a whole
        color_fragments, greyscale_fragments = await asyncio.gather(
            trace_layers(color_layers, self.tracer, self.config.trace_timeout, images=color_pngs),
            trace_layers(greyscale_layers, self.tracer, self.config.trace_timeout, images=greyscale_pngs),
        )

        # Step 5: Outlines, merges and the final view
        result = assemble_result(
            color_image=bitmap_to_data_uri(quantized),
            greyscale_image=bitmap_to_data_uri(greyscale),
            color_palette=palette_to_hex(color_palette),
            greyscale_palette=palette_to_hex(greyscale_palette),
            all_colors=palette_to_hex(all_colors),
            all_lumas=palette_to_hex(all_lumas),
            color_images=[to_data_uri(png) for png in color_pngs],
            greyscale_images=[to_data_uri(png) for png in greyscale_pngs],
            color_fragments=color_fragments,
            greyscale_fragments=greyscale_fragments,
        )

        logger.info(
            f"Vectorized {bitmap.shape[1]}x{bitmap.shape[0]} image: "
            f"{len(color_layers)} color layers, {len(greyscale_layers)} greyscale layers"
        )
        return result

    def _build_palettes(self, bitmap: Bitmap, greyscale: Bitmap) -> Tuple[Palette, Palette]:
        """Palettes driving the color and greyscale layer batches."""
        config = self.config
        color_palette = build_palette(
            config.color_palette, bitmap, config.n_colors, config.cluster_method, config.palette_quality
        )

        # Built from the greyscale bitmap so every strategy yields grey entries
        greyscale_palette = build_palette(
            config.greyscale_palette, greyscale, config.n_colors, config.cluster_method, config.palette_quality
        )
        return color_palette, greyscale_palette


async def vectorize(
    source: Source,
    config: Optional[PipelineConfig] = None,
    tracer: Optional[Tracer] = None,
) -> ResultView:
    """Vectorize an image inside a running event loop.

    Example:
        >>> result = await vectorize(open("input.png", "rb").read())
        >>> result.svg("color-outline")
    """
    return await Pipeline(config, tracer).process(source)


def process_image(
    source: Source,
    config: Optional[PipelineConfig] = None,
    tracer: Optional[Tracer] = None,
) -> ResultView:
    """Vectorize an image from synchronous code.

    Convenience function for one-off processing.

    Example:
        >>> result = process_image("input.jpg")
        >>> result.palette.popular("color")
        >>> svg = process_image("input.jpg", PipelineConfig(n_colors=12)).svg("color")
    """
    return asyncio.run(vectorize(source, config, tracer))
