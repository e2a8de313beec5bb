"""Tests for nearest-color classification and quantization."""
import math

import numpy as np

from conftest import BLUE, GREEN, RED
import vectori.quantize
from vectori.palette import extract_exhaustive_color_palette
from vectori.quantize import nearest_color, nearest_indices, quantize_image, to_greyscale
from vectori.types import luma


def distance(a, b):
    return math.sqrt(sum((int(x) - int(y)) ** 2 for x, y in zip(a, b)))


class TestNearestColor:
    """Test cases for nearest_color."""

    def test_exact_match(self):
        assert nearest_color(BLUE, [RED, GREEN, BLUE]) == BLUE

    def test_closest_wins(self):
        assert nearest_color((200, 30, 30), [RED, GREEN, BLUE]) == RED

    def test_empty_palette_is_identity(self):
        assert nearest_color((12, 34, 56), []) == (12, 34, 56)

    def test_ties_go_to_first_entry(self):
        """Equidistant entries resolve to the earlier one."""
        palette = [(0, 0, 0), (20, 0, 0)]
        assert nearest_color((10, 0, 0), palette) == (0, 0, 0)
        assert nearest_color((10, 0, 0), palette[::-1]) == (20, 0, 0)

    def test_member_and_minimal(self):
        """Result is a palette member and no member is strictly closer."""
        rng = np.random.default_rng(11)
        palette = [tuple(int(c) for c in row) for row in rng.integers(0, 256, (7, 3))]

        for color in rng.integers(0, 256, (50, 3)):
            color = tuple(int(c) for c in color)
            result = nearest_color(color, palette)

            assert result in palette
            best = distance(result, color)
            assert all(distance(p, color) >= best for p in palette)


class TestQuantizeImage:
    """Test cases for quantize_image."""

    def test_pixels_map_to_nearest(self):
        rng = np.random.default_rng(2)
        image = rng.integers(0, 256, (12, 9, 3), dtype=np.uint8)
        palette = [RED, GREEN, BLUE, (255, 255, 255)]

        quantized = quantize_image(image, palette)

        assert quantized.shape == image.shape
        assert quantized.dtype == np.uint8
        for y in range(image.shape[0]):
            for x in range(image.shape[1]):
                expected = nearest_color(tuple(int(c) for c in image[y, x]), palette)
                assert tuple(int(c) for c in quantized[y, x]) == expected

    def test_source_untouched(self, four_pixel_image):
        before = four_pixel_image.copy()
        quantized = quantize_image(four_pixel_image, [(250, 10, 10)])

        np.testing.assert_array_equal(four_pixel_image, before)
        assert (quantized == (250, 10, 10)).all()

    def test_empty_palette_returns_copy(self, four_pixel_image):
        quantized = quantize_image(four_pixel_image, [])

        np.testing.assert_array_equal(quantized, four_pixel_image)
        assert quantized is not four_pixel_image

    def test_nearest_indices(self, four_pixel_image):
        indices = nearest_indices(four_pixel_image, [RED, BLUE, GREEN])
        np.testing.assert_array_equal(indices, [[0, 0], [1, 2]])

    def test_large_palette_is_identity(self):
        """Thousands of palette entries quantize an image to itself."""
        idx = np.arange(4096)
        image = np.stack([idx % 16 * 16, idx // 16 % 16 * 16, idx // 256 * 16], axis=1)
        image = image.astype(np.uint8).reshape(64, 64, 3)
        palette = extract_exhaustive_color_palette(image)

        quantized = quantize_image(image, palette)

        assert len(palette) == 4096
        np.testing.assert_array_equal(quantized, image)

    def test_chunks_smaller_than_palette(self, monkeypatch):
        """Chunking never changes the result, even below one pixel per palette."""
        rng = np.random.default_rng(5)
        image = rng.integers(0, 256, (7, 5, 3), dtype=np.uint8)
        palette = [tuple(int(c) for c in row) for row in rng.integers(0, 256, (6, 3))]
        expected = nearest_indices(image, palette)

        for chunk_size in (1, 4, 13):
            monkeypatch.setattr(vectori.quantize, "CHUNK_SIZE", chunk_size)
            np.testing.assert_array_equal(nearest_indices(image, palette), expected)


class TestGreyscale:
    """Test cases for to_greyscale."""

    def test_greyscale_pixels(self, four_pixel_image):
        grey = to_greyscale(four_pixel_image)

        assert grey.shape == four_pixel_image.shape
        assert tuple(grey[0, 0]) == (luma(RED),) * 3
        assert tuple(grey[1, 1]) == (luma(GREEN),) * 3
