"""Merging independently traced SVG fragments into one document."""
import logging
import math
import re
from typing import Iterable, Optional

from vectori.types import Frame, MergedDocument, VectorFragment

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"

_ROOT_TAG = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)
_CONTENT = re.compile(r"<svg\b[^>]*>(.*)</svg\s*>", re.IGNORECASE | re.DOTALL)
_LENGTH = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*(?:px)?\s*$")


def format_number(x: float, precision: int = 6) -> str:
    """
    Format number with given precision.

    Args:
        x: Number to format
        precision: Decimal places

    Returns:
        Formatted string without trailing zeros
    """
    formatted = f"{float(x):.{precision}f}"
    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")
    if formatted in ("-0", ""):
        formatted = "0"
    return formatted


def _attribute(tag: str, name: str) -> Optional[str]:
    match = re.search(r'(?<![\w:.-])' + re.escape(name) + r'\s*=\s*(["\'])(.*?)\1', tag, re.DOTALL)
    return match.group(2) if match else None


def _parse_length(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    match = _LENGTH.match(value)
    if not match:
        return None
    number = float(match.group(1))
    return number if math.isfinite(number) else None


def _parse_view_box(value: Optional[str]) -> Optional[Frame]:
    if value is None:
        return None
    parts = [p for p in re.split(r"[\s,]+", value.strip()) if p]
    if len(parts) != 4:
        return None
    try:
        numbers = [float(p) for p in parts]
    except ValueError:
        return None
    if not all(math.isfinite(n) for n in numbers):
        return None
    return Frame(*numbers)


def parse_frame(svg: str) -> Optional[Frame]:
    """
    Read the coordinate frame declared by the root <svg> element.

    A four-number viewBox wins. Otherwise width and height give a frame
    anchored at the origin. Malformed values count as missing.

    Returns:
        Declared Frame, or None when the root declares neither
    """
    root = _ROOT_TAG.search(svg)
    if root is None:
        return None
    tag = root.group(0)

    frame = _parse_view_box(_attribute(tag, "viewBox"))
    if frame is not None:
        return frame

    width = _parse_length(_attribute(tag, "width"))
    height = _parse_length(_attribute(tag, "height"))
    if width is not None and height is not None:
        return Frame(0.0, 0.0, width, height)

    return None


def fragment_frame(fragment: VectorFragment) -> Frame:
    """Frame of a fragment, zero-sized at the origin when none is declared."""
    frame = parse_frame(fragment.svg)
    if frame is None:
        logger.debug(f"Fragment {fragment.color or ''} declares no frame, using zero-sized frame")
        return Frame.empty()
    return frame


def strip_wrapper(svg: str) -> str:
    """Inner content of the root <svg> element.

    Leading and trailing whitespace around the content is stripped, so
    merged documents join fragments with exactly one newline.
    """
    match = _CONTENT.search(svg)
    return match.group(1).strip() if match else ""


def merge_fragments(fragments: Iterable[VectorFragment]) -> MergedDocument:
    """
    Merge fragments into a single document.

    The document frame is the union of every fragment frame; fragment
    content keeps its absolute coordinates and is concatenated in input
    order, so later fragments paint over earlier ones.

    Args:
        fragments: Fragments to merge

    Returns:
        MergedDocument; an empty input gives a zero-sized empty document
    """
    fragments = list(fragments)
    if not fragments:
        return MergedDocument(frame=Frame.empty(), content="")

    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    contents = []

    for fragment in fragments:
        frame = fragment_frame(fragment)
        min_x = min(min_x, frame.x)
        min_y = min(min_y, frame.y)
        max_x = max(max_x, frame.right)
        max_y = max(max_y, frame.bottom)
        contents.append(strip_wrapper(fragment.svg))

    frame = Frame(min_x, min_y, max_x - min_x, max_y - min_y)
    logger.debug(
        f"Merged {len(fragments)} fragments into frame "
        f"{frame.x} {frame.y} {frame.width} {frame.height}"
    )
    return MergedDocument(frame=frame, content="\n".join(contents))


def render_document(document: MergedDocument) -> str:
    """Render a merged document as SVG text."""
    frame = document.frame
    x, y = format_number(frame.x), format_number(frame.y)
    width, height = format_number(frame.width), format_number(frame.height)
    header = (
        f'<svg xmlns="{SVG_NS}" viewBox="{x} {y} {width} {height}" '
        f'width="{width}" height="{height}">'
    )
    return f"{header}\n{document.content}\n</svg>"
