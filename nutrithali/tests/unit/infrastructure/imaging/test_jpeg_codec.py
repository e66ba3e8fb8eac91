"""
Unit tests for the Pillow image codec.

Images are generated in memory; random noise stands in for a photo
because it does not compress well.
"""

import base64
import io
import os

import pytest
from PIL import Image

from nutrithali.infrastructure.imaging.jpeg_codec import PillowImageCodec


def encode(img: Image.Image, fmt: str) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def noisy_png(width: int = 600, height: int = 600) -> bytes:
    img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    return encode(img, "PNG")


class TestEncodeForTransport:
    def test_returns_base64_jpeg(self, photo_bytes: bytes) -> None:
        encoded = PillowImageCodec().encode_for_transport(photo_bytes)

        decoded = base64.b64decode(encoded)
        assert Image.open(io.BytesIO(decoded)).format == "JPEG"

    def test_transparent_png_is_flattened(self) -> None:
        png = encode(Image.new("RGBA", (32, 32), (255, 0, 0, 0)), "PNG")

        decoded = base64.b64decode(PillowImageCodec().encode_for_transport(png))
        img = Image.open(io.BytesIO(decoded))

        assert img.mode == "RGB"
        r, g, b = img.getpixel((16, 16))
        assert min(r, g, b) > 240

    def test_palette_image(self) -> None:
        gif = encode(Image.new("P", (16, 16)), "GIF")

        assert PillowImageCodec().encode_for_transport(gif)

    def test_garbage_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            PillowImageCodec().encode_for_transport(b"definitely not an image")


class TestCompressForStorage:
    def test_small_image_kept_at_start_quality(self, photo_bytes: bytes) -> None:
        codec = PillowImageCodec()

        stored = codec.compress_for_storage(photo_bytes)

        assert codec.size_in_kb(stored) < 150
        assert Image.open(io.BytesIO(stored)).format == "JPEG"

    def test_compresses_under_target(self) -> None:
        codec = PillowImageCodec(target_size_kb=150)
        source = noisy_png(400, 400)

        stored = codec.compress_for_storage(source)

        assert codec.size_in_kb(stored) <= 150

    def test_stops_at_floor_quality(self) -> None:
        codec = PillowImageCodec(target_size_kb=0.5)

        stored = codec.compress_for_storage(noisy_png(200, 200))

        # target unreachable; still returns the lowest-quality encoding
        assert Image.open(io.BytesIO(stored)).size == (200, 200)

    def test_garbage_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            PillowImageCodec().compress_for_storage(b"\x00\x01")
