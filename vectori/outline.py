"""Outline variant of traced fragments: no fill, thin black stroke."""
import re
from typing import Iterable, List

from vectori.types import VectorFragment

_FILL = re.compile(r'(?<![\w:.-])fill="[^"]*"')
_STROKE = re.compile(r'(?<![\w:.-])stroke="[^"]*"')
_STROKE_WIDTH = re.compile(r'\s+stroke-width="[^"]*"')


def outline_svg(svg: str) -> str:
    """Rewrite paint attributes of SVG text to a stroke-only style.

    Geometry is untouched. Applying it twice gives the same text as once.
    """
    svg = _FILL.sub('fill="none"', svg)
    svg = _STROKE_WIDTH.sub("", svg)
    return _STROKE.sub('stroke="black" stroke-width="1"', svg)


def to_outline(fragment: VectorFragment) -> VectorFragment:
    """Outline version of a filled fragment."""
    return VectorFragment(svg=outline_svg(fragment.svg), color=fragment.color)


def to_outlines(fragments: Iterable[VectorFragment]) -> List[VectorFragment]:
    return [to_outline(fragment) for fragment in fragments]
