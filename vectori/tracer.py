"""Tracer collaborators and concurrent per-layer tracing."""
import asyncio
import inspect
import logging
from typing import Callable, List, Optional, Protocol, Sequence, Union, runtime_checkable

import cv2
import numpy as np

from vectori.merge import format_number
from vectori.raster_ingest import encode_png
from vectori.types import Layer, TracerError, VectorFragment

logger = logging.getLogger(__name__)


@runtime_checkable
class Tracer(Protocol):
    """Turns one PNG-encoded mask into SVG text filled with color.

    The returned root <svg> element must declare a viewBox and/or
    width/height. Implementations may define trace as a coroutine.
    """

    def trace(self, image: bytes, color: str) -> str:
        ...


def clean_mask(mask: np.ndarray, min_area: int = 10) -> np.ndarray:
    """Remove connected regions smaller than min_area pixels."""
    from scipy import ndimage

    labeled, num_features = ndimage.label(mask)
    if num_features == 0:
        return mask

    sizes = np.bincount(labeled.ravel())
    small = sizes < min_area
    small[0] = False  # background label
    cleaned = mask.copy()
    cleaned[small[labeled]] = False
    return cleaned


def simplify_contour(contour: np.ndarray, epsilon_factor: float) -> np.ndarray:
    """Douglas-Peucker simplification with epsilon relative to the perimeter."""
    if len(contour) < 3 or epsilon_factor <= 0:
        return contour

    perimeter = cv2.arcLength(contour.astype(np.float32), closed=True)
    simplified = cv2.approxPolyDP(contour.astype(np.float32), epsilon_factor * perimeter, closed=True)
    return simplified.reshape(-1, 2)


def contour_to_path(contour: np.ndarray, precision: int = 2) -> str:
    """Closed polyline path data for one contour."""
    points = [f"{format_number(x, precision)} {format_number(y, precision)}" for x, y in contour]
    return "M" + " L".join(points) + " Z"


class ContourTracer:
    """Contour-following tracer built on OpenCV.

    Every non-white pixel of the mask is foreground. Outer boundaries and
    holes go into one compound path rendered with the even-odd rule, so
    holes stay transparent.
    """

    METHODS = {
        "simple": cv2.CHAIN_APPROX_SIMPLE,
        "none": cv2.CHAIN_APPROX_NONE,
        "tc89_l1": cv2.CHAIN_APPROX_TC89_L1,
        "tc89_kcos": cv2.CHAIN_APPROX_TC89_KCOS,
    }

    def __init__(
        self,
        epsilon_factor: float = 0.002,
        min_area: int = 0,
        contour_method: str = "simple",
        precision: int = 2,
    ):
        if contour_method not in self.METHODS:
            raise ValueError(f"Unknown contour method: {contour_method}")
        self.epsilon_factor = epsilon_factor
        self.min_area = min_area
        self.contour_method = contour_method
        self.precision = precision

    def _decode(self, image: bytes) -> np.ndarray:
        buffer = np.frombuffer(image, dtype=np.uint8)
        try:
            decoded = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
        except cv2.error as e:
            raise TracerError(f"Tracer could not decode mask image: {e}") from e
        if decoded is None:
            raise TracerError("Tracer could not decode mask image")
        return decoded

    def foreground(self, image: bytes) -> np.ndarray:
        """Boolean foreground mask of an encoded layer image."""
        pixels = self._decode(image)
        mask = np.any(pixels != 255, axis=2)
        if self.min_area > 0:
            mask = clean_mask(mask, self.min_area)
        return mask

    def trace(self, image: bytes, color: str) -> str:
        mask = self.foreground(image)
        height, width = mask.shape[:2]

        try:
            contours, _ = cv2.findContours(
                mask.astype(np.uint8) * 255,
                cv2.RETR_CCOMP,
                self.METHODS[self.contour_method],
            )
        except cv2.error as e:
            raise TracerError(f"Contour detection failed: {e}") from e

        subpaths = []
        for contour in contours:
            contour = simplify_contour(contour.reshape(-1, 2), self.epsilon_factor)
            if len(contour) >= 3:
                subpaths.append(contour_to_path(contour, self.precision))

        body = ""
        if subpaths:
            body = (
                f'\t<path d="{" ".join(subpaths)}" stroke="none" '
                f'fill="{color}" fill-rule="evenodd"/>\n'
            )

        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" '
            f'viewBox="0 0 {width} {height}" version="1.1">\n'
            f"{body}</svg>"
        )


def _is_async(trace: Callable) -> bool:
    return inspect.iscoroutinefunction(trace) or inspect.iscoroutinefunction(
        getattr(trace, "__call__", None)
    )


async def _call_tracer(tracer: Union[Tracer, Callable], image: bytes, color: str) -> str:
    trace = getattr(tracer, "trace", tracer)
    if _is_async(trace):
        result = await trace(image, color)
    else:
        result = await asyncio.to_thread(trace, image, color)

    # Sync wrappers may still hand back a coroutine or future
    if inspect.isawaitable(result):
        result = await result

    if isinstance(result, bytes):
        result = result.decode("utf-8")
    if not isinstance(result, str):
        raise TracerError(f"Tracer returned {type(result).__name__}, expected SVG text")
    return result


async def trace_image(
    tracer: Tracer, image: bytes, color: str, timeout: Optional[float] = None
) -> VectorFragment:
    """Trace a single encoded mask into a fragment."""
    try:
        svg = await asyncio.wait_for(_call_tracer(tracer, image, color), timeout)
    except asyncio.TimeoutError as e:
        raise TracerError(f"Tracing layer {color} timed out after {timeout}s") from e
    return VectorFragment(svg=svg, color=color)


async def trace_images(
    images: Sequence[bytes],
    colors: Sequence[str],
    tracer: Tracer,
    timeout: Optional[float] = None,
) -> List[VectorFragment]:
    """
    Trace a batch of encoded masks concurrently.

    Results come back in input order whatever order the calls finish in.
    The batch is all-or-nothing: the first failure propagates and no
    fragments are returned.

    Args:
        images: PNG-encoded masks
        colors: Fill color (hex) for each mask, index-aligned with images
        tracer: Tracer collaborator
        timeout: Optional per-call timeout in seconds

    Returns:
        Fragments index-aligned with images
    """
    if len(images) != len(colors):
        raise ValueError(f"Got {len(images)} images but {len(colors)} colors")

    fragments = await asyncio.gather(
        *(trace_image(tracer, image, color, timeout) for image, color in zip(images, colors))
    )
    logger.info(f"Traced {len(fragments)} layers")
    return list(fragments)


async def encode_layers(layers: Sequence[Layer]) -> List[bytes]:
    """PNG-encode layer masks in worker threads, index-aligned with layers."""
    images = await asyncio.gather(*(asyncio.to_thread(encode_png, layer.mask) for layer in layers))
    return list(images)


async def trace_layers(
    layers: Sequence[Layer],
    tracer: Tracer,
    timeout: Optional[float] = None,
    images: Optional[Sequence[bytes]] = None,
) -> List[VectorFragment]:
    """Trace a batch of layers, index-aligned with layers.

    Pass images to reuse masks that were already PNG-encoded; otherwise
    they are encoded here.
    """
    if images is None:
        images = await encode_layers(layers)
    return await trace_images(images, [layer.hex for layer in layers], tracer, timeout)
