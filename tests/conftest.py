"""Pytest configuration and fixtures."""

import io

import numpy as np
import pytest
from PIL import Image

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


def make_png(pixels: np.ndarray) -> bytes:
    """Encode an array as PNG bytes."""
    buffer = io.BytesIO()
    Image.fromarray(np.asarray(pixels, dtype=np.uint8)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def four_pixel_image():
    """2x2 image: red, red on top, blue, green below."""
    return np.array([[RED, RED], [BLUE, GREEN]], dtype=np.uint8)


@pytest.fixture
def white_image():
    """Solid 10x10 white image."""
    return np.full((10, 10, 3), 255, dtype=np.uint8)


@pytest.fixture
def squares_image():
    """40x40 white image with a red and a blue 10x10 square."""
    image = np.full((40, 40, 3), 255, dtype=np.uint8)
    image[5:15, 5:15] = RED
    image[20:30, 20:30] = BLUE
    return image


@pytest.fixture
def squares_png(squares_image):
    """PNG bytes of squares_image."""
    return make_png(squares_image)
