"""Loading and saving RGBA PNG images."""

from __future__ import annotations

import enum

import numpy as np
from PIL import Image, UnidentifiedImageError


class OriginLocation(enum.Enum):
    """Which image row comes first in pixel data."""

    LOWER_LEFT = "lower_left"
    UPPER_LEFT = "upper_left"


_SIXTEEN_BIT_MODES = {"I;16", "I;16L", "I;16B", "I"}


def _to_rgba(img: Image.Image) -> np.ndarray:
    if img.mode in _SIXTEEN_BIT_MODES:
        gray = (np.asarray(img, dtype=np.int64) >> 8).clip(0, 255).astype(np.uint8)
        alpha = np.full(gray.shape, 0xFF, dtype=np.uint8)
        return np.stack([gray, gray, gray, alpha], axis=-1)
    return np.asarray(img.convert("RGBA"), dtype=np.uint8)


def load_png(filename, origin: OriginLocation = OriginLocation.UPPER_LEFT):
    """Read a PNG as 8-bit RGBA.

    Returns ``((width, height), pixels)`` where ``pixels`` has shape
    ``(height, width, 4)`` and row 0 is the row at ``origin``.
    """
    with open(filename, "rb") as stream:
        try:
            with Image.open(stream) as img:
                if img.format != "PNG":
                    raise ValueError(f"Failed to read PNG image from '{filename}'.")
                img.load()
                pixels = _to_rgba(img)
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise ValueError(f"Failed to read PNG image from '{filename}'.") from exc
    if origin is OriginLocation.LOWER_LEFT:
        pixels = pixels[::-1]
    height, width = pixels.shape[:2]
    return (width, height), np.ascontiguousarray(pixels)


def save_png(filename, size, data, origin: OriginLocation = OriginLocation.UPPER_LEFT) -> None:
    """Write ``width * height`` RGBA pixels, ordered from ``origin``, as a PNG."""
    width, height = (int(v) for v in size)
    pixels = np.asarray(data, dtype=np.uint8)
    if pixels.size != width * height * 4:
        raise ValueError(
            f"pixel data holds {pixels.size} values, expected {width * height * 4}"
        )
    pixels = pixels.reshape(height, width, 4)
    if origin is OriginLocation.LOWER_LEFT:
        pixels = pixels[::-1]
    Image.fromarray(np.ascontiguousarray(pixels)).save(filename, format="PNG")