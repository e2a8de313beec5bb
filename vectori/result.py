"""Immutable, fill-mode addressable view of a vectorization run."""
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

from vectori.merge import merge_fragments
from vectori.outline import to_outlines
from vectori.types import FillMode, VectorFragment

FillArg = Union[FillMode, str]


def _mode(fill: FillArg, allowed: Tuple[FillMode, ...]) -> FillMode:
    try:
        mode = FillMode(fill)
    except ValueError:
        mode = None
    if mode not in allowed:
        names = ", ".join(m.value for m in allowed)
        raise ValueError(f"Unsupported fill mode {fill!r}, expected one of: {names}")
    return mode


_IMAGE_MODES = (FillMode.COLOR, FillMode.GREYSCALE)
_COMPONENT_SVG_MODES = (FillMode.COLOR, FillMode.GREYSCALE, FillMode.OUTLINE)
_SVG_MODES = tuple(FillMode)


@dataclass(frozen=True)
class PaletteView:
    """Hex palettes for the color and greyscale variants."""
    popular_color: Tuple[str, ...]
    popular_greyscale: Tuple[str, ...]
    all_color: Tuple[str, ...]
    all_greyscale: Tuple[str, ...]

    def popular(self, fill: FillArg = FillMode.COLOR) -> Tuple[str, ...]:
        """Palette that drove layer separation."""
        if _mode(fill, _IMAGE_MODES) is FillMode.GREYSCALE:
            return self.popular_greyscale
        return self.popular_color

    def all(self, fill: FillArg = FillMode.COLOR) -> Tuple[str, ...]:
        """Every distinct color (or luma) in the source image."""
        if _mode(fill, _IMAGE_MODES) is FillMode.GREYSCALE:
            return self.all_greyscale
        return self.all_color


@dataclass(frozen=True)
class ComponentsView:
    """Per-layer masks and traced fragments."""
    color_images: Tuple[str, ...]
    greyscale_images: Tuple[str, ...]
    color_svgs: Tuple[str, ...]
    greyscale_svgs: Tuple[str, ...]
    outline_svgs: Tuple[str, ...]

    def image(self, fill: FillArg = FillMode.COLOR) -> Tuple[str, ...]:
        """Mask images as PNG data URIs."""
        if _mode(fill, _IMAGE_MODES) is FillMode.GREYSCALE:
            return self.greyscale_images
        return self.color_images

    def svg(self, fill: FillArg = FillMode.COLOR) -> Tuple[str, ...]:
        """Traced fragments as SVG text."""
        mode = _mode(fill, _COMPONENT_SVG_MODES)
        if mode is FillMode.GREYSCALE:
            return self.greyscale_svgs
        if mode is FillMode.OUTLINE:
            return self.outline_svgs
        return self.color_svgs


@dataclass(frozen=True)
class ResultView:
    """Everything produced for one source image."""
    color_image: str
    greyscale_image: str
    palette: PaletteView
    components: ComponentsView
    color_svg: str
    greyscale_svg: str
    outline_svg: str
    color_outline_svg: str
    greyscale_outline_svg: str

    def image(self, fill: FillArg = FillMode.COLOR) -> str:
        """Quantized color or greyscale image as a PNG data URI."""
        if _mode(fill, _IMAGE_MODES) is FillMode.GREYSCALE:
            return self.greyscale_image
        return self.color_image

    def svg(self, fill: FillArg = FillMode.COLOR) -> str:
        """Merged SVG document for a fill mode."""
        mode = _mode(fill, _SVG_MODES)
        if mode is FillMode.GREYSCALE:
            return self.greyscale_svg
        if mode is FillMode.OUTLINE:
            return self.outline_svg
        if mode is FillMode.COLOR_OUTLINE:
            return self.color_outline_svg
        if mode is FillMode.GREYSCALE_OUTLINE:
            return self.greyscale_outline_svg
        return self.color_svg


def assemble_result(
    color_image: str,
    greyscale_image: str,
    color_palette: Sequence[str],
    greyscale_palette: Sequence[str],
    all_colors: Sequence[str],
    all_lumas: Sequence[str],
    color_images: Sequence[str],
    greyscale_images: Sequence[str],
    color_fragments: Sequence[VectorFragment],
    greyscale_fragments: Sequence[VectorFragment],
) -> ResultView:
    """
    Build the result view, computing outline and merged variants eagerly.

    Outlines are derived from the color fragments; the combined modes
    paint the filled layers first and the outlines on top.
    """
    outline_fragments = to_outlines(color_fragments)

    return ResultView(
        color_image=color_image,
        greyscale_image=greyscale_image,
        palette=PaletteView(
            popular_color=tuple(color_palette),
            popular_greyscale=tuple(greyscale_palette),
            all_color=tuple(all_colors),
            all_greyscale=tuple(all_lumas),
        ),
        components=ComponentsView(
            color_images=tuple(color_images),
            greyscale_images=tuple(greyscale_images),
            color_svgs=tuple(f.svg for f in color_fragments),
            greyscale_svgs=tuple(f.svg for f in greyscale_fragments),
            outline_svgs=tuple(f.svg for f in outline_fragments),
        ),
        color_svg=merge_fragments(color_fragments).svg,
        greyscale_svg=merge_fragments(greyscale_fragments).svg,
        outline_svg=merge_fragments(outline_fragments).svg,
        color_outline_svg=merge_fragments([*color_fragments, *outline_fragments]).svg,
        greyscale_outline_svg=merge_fragments([*greyscale_fragments, *outline_fragments]).svg,
    )
