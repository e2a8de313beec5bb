"""Tests for the contour tracer and concurrent batch tracing."""
import asyncio
from xml.etree import ElementTree as ET

import numpy as np
import pytest

from conftest import RED, make_png
from vectori.extract import separate_by_color
from vectori.merge import parse_frame
from vectori.tracer import ContourTracer, Tracer, clean_mask, encode_layers, trace_images, trace_layers
from vectori.types import Frame, TracerError


class TestContourTracer:
    """Test cases for ContourTracer."""

    def test_square_is_traced(self):
        mask = np.full((20, 30, 3), 255, dtype=np.uint8)
        mask[5:15, 5:15] = RED

        svg = ContourTracer().trace(make_png(mask), "#ff0000")

        root = ET.fromstring(svg)
        assert root.tag.endswith("svg")
        assert parse_frame(svg) == Frame(0, 0, 30, 20)
        paths = root.findall("{http://www.w3.org/2000/svg}path")
        assert len(paths) == 1
        assert paths[0].get("fill") == "#ff0000"
        assert paths[0].get("stroke") == "none"
        assert paths[0].get("fill-rule") == "evenodd"
        assert paths[0].get("d").startswith("M")
        assert paths[0].get("d").endswith("Z")

    def test_hole_becomes_subpath(self):
        """A ring traces as one compound path with outer and inner loops."""
        mask = np.full((30, 30, 3), 255, dtype=np.uint8)
        mask[5:25, 5:25] = 0
        mask[12:18, 12:18] = 255

        svg = ContourTracer().trace(make_png(mask), "#000000")

        path = ET.fromstring(svg).find("{http://www.w3.org/2000/svg}path")
        assert path.get("d").count("M") == 2

    def test_blank_mask_has_no_path(self):
        mask = np.full((10, 10, 3), 255, dtype=np.uint8)

        svg = ContourTracer().trace(make_png(mask), "#ffffff")

        assert "<path" not in svg
        assert parse_frame(svg) == Frame(0, 0, 10, 10)

    def test_min_area_drops_specks(self):
        mask = np.full((30, 30, 3), 255, dtype=np.uint8)
        mask[2:4, 2:4] = 0
        mask[10:25, 10:25] = 0

        svg = ContourTracer(min_area=10).trace(make_png(mask), "#000000")

        path = ET.fromstring(svg).find("{http://www.w3.org/2000/svg}path")
        assert path.get("d").count("M") == 1

    def test_undecodable_mask(self):
        with pytest.raises(TracerError):
            ContourTracer().trace(b"not a png", "#000000")

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown contour method"):
            ContourTracer(contour_method="spline")

    def test_is_a_tracer(self):
        assert isinstance(ContourTracer(), Tracer)


class TestCleanMask:
    """Test cases for clean_mask."""

    def test_clean_small_regions(self):
        mask = np.zeros((50, 50), dtype=bool)
        mask[10:40, 10:40] = True
        mask[0, 0] = True
        mask[1, 1] = True

        cleaned = clean_mask(mask, min_area=10)

        assert not cleaned[0, 0]
        assert not cleaned[1, 1]
        assert cleaned[10:40, 10:40].all()


class DelayedTracer:
    """Async tracer where earlier calls finish last."""

    def __init__(self, delays):
        self.delays = delays
        self.finished = []

    async def trace(self, image, color):
        await asyncio.sleep(self.delays[color])
        self.finished.append(color)
        return f'<svg viewBox="0 0 1 1"><path fill="{color}"/></svg>'


class FailingTracer:
    """Sync tracer that fails for one color."""

    def __init__(self, bad_color):
        self.bad_color = bad_color

    def trace(self, image, color):
        if color == self.bad_color:
            raise TracerError(f"cannot trace {color}")
        return f'<svg viewBox="0 0 1 1"><path fill="{color}"/></svg>'


class TestTraceImages:
    """Test cases for concurrent batch tracing."""

    @pytest.mark.asyncio
    async def test_results_keep_input_order(self):
        colors = ["#000001", "#000002", "#000003", "#000004"]
        tracer = DelayedTracer({c: 0.2 - 0.05 * i for i, c in enumerate(colors)})

        fragments = await trace_images([b""] * 4, colors, tracer)

        assert tracer.finished == colors[::-1]
        assert [f.color for f in fragments] == colors
        for fragment, color in zip(fragments, colors):
            assert f'fill="{color}"' in fragment.svg

    @pytest.mark.asyncio
    async def test_one_failure_fails_batch(self):
        with pytest.raises(TracerError, match="#000002"):
            await trace_images([b""] * 3, ["#000001", "#000002", "#000003"], FailingTracer("#000002"))

    @pytest.mark.asyncio
    async def test_plain_callable_tracer(self):
        def trace(image, color):
            return f'<svg width="3" height="4"><g fill="{color}"/></svg>'

        fragments = await trace_images([b""], ["#123456"], trace)

        assert fragments[0].frame == Frame(0, 0, 3, 4)

    @pytest.mark.asyncio
    async def test_async_callable_tracer(self):
        """Objects with an async __call__ are awaited, not run in a thread."""

        class AsyncTracer:
            async def __call__(self, image, color):
                await asyncio.sleep(0)
                return f'<svg viewBox="0 0 2 2"><path fill="{color}"/></svg>'

        fragments = await trace_images([b"", b""], ["#000001", "#000002"], AsyncTracer())

        assert [f.color for f in fragments] == ["#000001", "#000002"]
        assert fragments[1].frame == Frame(0, 0, 2, 2)

    @pytest.mark.asyncio
    async def test_sync_tracer_returning_coroutine(self):
        async def render(color):
            return f'<svg width="1" height="1"><g fill="{color}"/></svg>'

        fragments = await trace_images([b""], ["#abcdef"], lambda image, color: render(color))

        assert 'fill="#abcdef"' in fragments[0].svg

    @pytest.mark.asyncio
    async def test_timeout(self):
        tracer = DelayedTracer({"#000001": 1.0})

        with pytest.raises(TracerError, match="timed out"):
            await trace_images([b""], ["#000001"], tracer, timeout=0.01)

    @pytest.mark.asyncio
    async def test_mismatched_lengths(self):
        with pytest.raises(ValueError):
            await trace_images([b"", b""], ["#000000"], FailingTracer(None))

    @pytest.mark.asyncio
    async def test_non_text_result(self):
        with pytest.raises(TracerError, match="expected SVG text"):
            await trace_images([b""], ["#000000"], lambda image, color: 42)

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        assert await trace_images([], [], ContourTracer()) == []

    @pytest.mark.asyncio
    async def test_trace_layers(self, squares_image):
        layers = separate_by_color(squares_image, [(255, 255, 255), RED, (0, 0, 255)])

        fragments = await trace_layers(layers, ContourTracer())

        assert len(fragments) == 3
        assert [f.color for f in fragments] == ["#ffffff", "#ff0000", "#0000ff"]
        assert "<path" not in fragments[0].svg
        assert 'fill="#ff0000"' in fragments[1].svg
        assert 'fill="#0000ff"' in fragments[2].svg

    @pytest.mark.asyncio
    async def test_trace_layers_reuses_encoded_images(self, squares_image):
        layers = separate_by_color(squares_image, [RED, (0, 0, 255)])
        images = await encode_layers(layers)
        seen = []

        def trace(image, color):
            seen.append(image)
            return '<svg viewBox="0 0 40 40"></svg>'

        fragments = await trace_layers(layers, trace, images=images)

        assert [f.color for f in fragments] == ["#ff0000", "#0000ff"]
        assert sorted(seen) == sorted(images)
