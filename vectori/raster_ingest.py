"""Raster image ingestion and PNG encoding."""
import base64
import io
import logging
from pathlib import Path
from typing import BinaryIO, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from vectori.types import Bitmap, DecodeError

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, memoryview, str, Path, BinaryIO]

DATA_URI_PREFIX = "data:image/png;base64,"


def read_source(source: Source) -> bytes:
    """
    Read raw image bytes from a buffer, a path or a binary file object.

    Raises:
        FileNotFoundError: If a path is given and doesn't exist
        DecodeError: If the source type is not supported
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)

    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {path}")
        if not path.is_file():
            raise DecodeError(f"Path is not a file: {path}")
        return path.read_bytes()

    if hasattr(source, "read"):
        data = source.read()
        if isinstance(data, str):
            raise DecodeError("File object must be opened in binary mode")
        return bytes(data)

    raise DecodeError(f"Unsupported image source: {type(source).__name__}")


def load_bitmap(source: Source) -> Bitmap:
    """
    Decode an image into an RGB bitmap.

    Transparent images are composited on a white background; alpha is
    not carried through the pipeline.

    Args:
        source: Encoded image bytes, a path, or a binary file object

    Returns:
        Bitmap of shape (H, W, 3), dtype uint8

    Raises:
        FileNotFoundError: If a path is given and doesn't exist
        DecodeError: If the data cannot be decoded
    """
    data = read_source(source)
    if not data:
        raise DecodeError("Cannot decode empty image data")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img = ImageOps.exif_transpose(img)

            if img.mode in ("RGBA", "LA", "P", "PA"):
                img = img.convert("RGBA")
                background = Image.new("RGB", img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[3])
                img = background
            elif img.mode != "RGB":
                img = img.convert("RGB")

            bitmap = np.array(img, dtype=np.uint8)

    except UnidentifiedImageError as e:
        raise DecodeError(f"Unsupported or malformed image data: {e}") from e
    except (IOError, OSError, ValueError) as e:
        raise DecodeError(f"Failed to decode image: {e}") from e

    logger.info(f"Decoded {bitmap.shape[1]}x{bitmap.shape[0]} image ({len(data)} bytes)")
    return bitmap


def encode_png(bitmap: Bitmap) -> bytes:
    """Encode a bitmap as PNG bytes."""
    buffer = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(bitmap, dtype=np.uint8)).save(
        buffer, format="PNG"
    )
    return buffer.getvalue()


def to_data_uri(png: bytes) -> str:
    """Wrap PNG bytes in a base64 data URI."""
    return DATA_URI_PREFIX + base64.b64encode(png).decode("ascii")


def data_uri_to_bytes(uri: str) -> bytes:
    """Extract the payload bytes of a base64 data URI."""
    header, _, payload = uri.partition(",")
    if not payload or not header.endswith(";base64"):
        raise DecodeError(f"Not a base64 data URI: {uri[:40]!r}")
    return base64.b64decode(payload)


def bitmap_to_data_uri(bitmap: Bitmap) -> str:
    """Encode a bitmap as a PNG data URI."""
    return to_data_uri(encode_png(bitmap))
