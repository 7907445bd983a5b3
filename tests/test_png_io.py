import numpy as np
import pytest
from PIL import Image

from neonchase.png_io import OriginLocation, load_png, save_png


def _pixels(width, height):
    values = np.arange(width * height * 4, dtype=np.uint32) % 256
    return values.astype(np.uint8).reshape(height, width, 4)


def test_round_trip_upper_left(tmp_path):
    path = tmp_path / "image.png"
    pixels = _pixels(5, 3)
    save_png(path, (5, 3), pixels, OriginLocation.UPPER_LEFT)
    size, loaded = load_png(path, OriginLocation.UPPER_LEFT)
    assert size == (5, 3)
    assert np.array_equal(loaded, pixels)


def test_round_trip_lower_left(tmp_path):
    path = tmp_path / "image.png"
    pixels = _pixels(4, 6)
    save_png(path, (4, 6), pixels.reshape(-1, 4), OriginLocation.LOWER_LEFT)
    size, loaded = load_png(path, OriginLocation.LOWER_LEFT)
    assert size == (4, 6)
    assert np.array_equal(loaded, pixels)


def test_origins_flip_rows(tmp_path):
    path = tmp_path / "image.png"
    pixels = _pixels(3, 4)
    save_png(path, (3, 4), pixels, OriginLocation.LOWER_LEFT)
    _, loaded = load_png(path, OriginLocation.UPPER_LEFT)
    assert np.array_equal(loaded, pixels[::-1])


def test_written_file_has_png_signature(tmp_path):
    path = tmp_path / "image.png"
    save_png(path, (2, 2), _pixels(2, 2), OriginLocation.UPPER_LEFT)
    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_grayscale_becomes_opaque_rgba(tmp_path):
    path = tmp_path / "gray.png"
    gray = np.array([[0, 100], [200, 255]], dtype=np.uint8)
    Image.fromarray(gray).save(path)
    size, loaded = load_png(path, OriginLocation.UPPER_LEFT)
    assert size == (2, 2)
    assert np.array_equal(loaded[..., 0], gray)
    assert np.array_equal(loaded[..., 1], gray)
    assert np.array_equal(loaded[..., 2], gray)
    assert np.all(loaded[..., 3] == 255)


def test_rgb_gets_opaque_alpha(tmp_path):
    path = tmp_path / "rgb.png"
    rgb = _pixels(3, 2)[..., :3]
    Image.fromarray(np.ascontiguousarray(rgb)).save(path)
    _, loaded = load_png(path, OriginLocation.UPPER_LEFT)
    assert np.array_equal(loaded[..., :3], rgb)
    assert np.all(loaded[..., 3] == 255)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_png(tmp_path / "absent.png", OriginLocation.UPPER_LEFT)


def test_non_png_raises(tmp_path):
    path = tmp_path / "bogus.png"
    path.write_bytes(b"this is not an image")
    with pytest.raises(ValueError):
        load_png(path, OriginLocation.UPPER_LEFT)


def test_size_mismatch_on_save_raises(tmp_path):
    with pytest.raises(ValueError):
        save_png(tmp_path / "bad.png", (3, 3), _pixels(2, 2), OriginLocation.UPPER_LEFT)