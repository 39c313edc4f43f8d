"""Tests for the image encoder."""

import base64
import io

import pytest
from PIL import Image

from body_tracker.domain.entries import ImageUpload
from body_tracker.domain.errors import ValidationFailure
from body_tracker.services.images import JpegImageEncoder, to_data_url


def _image_bytes(size: tuple[int, int], mode: str = "RGB", fmt: str = "PNG") -> bytes:
    output = io.BytesIO()
    Image.new(mode, size, (200, 80, 40, 128)[: len(mode)]).save(output, format=fmt)
    return output.getvalue()


def _decode(data_url: str) -> Image.Image:
    header, encoded = data_url.split(",", 1)
    assert header == "data:image/jpeg;base64"
    return Image.open(io.BytesIO(base64.b64decode(encoded)))


def test_large_upload_is_downsized_to_jpeg() -> None:
    upload = ImageUpload(name="front.png", content=_image_bytes((2400, 1600)))

    asset = JpegImageEncoder().encode(upload)

    assert asset.original_name == "front.png"
    full = _decode(asset.full)
    thumb = _decode(asset.thumbnail)
    assert full.format == "JPEG"
    assert full.size == (1200, 800)
    assert thumb.size == (150, 100)


def test_portrait_upload_fits_on_height() -> None:
    upload = ImageUpload(name="side.jpg", content=_image_bytes((900, 1800), fmt="JPEG"))

    asset = JpegImageEncoder().encode(upload)

    assert _decode(asset.full).size == (600, 1200)
    assert _decode(asset.thumbnail).size == (75, 150)


def test_small_upload_is_not_enlarged() -> None:
    upload = ImageUpload(name="tiny.png", content=_image_bytes((100, 60)))

    asset = JpegImageEncoder().encode(upload)

    assert _decode(asset.full).size == (100, 60)
    assert _decode(asset.thumbnail).size == (100, 60)


def test_transparent_upload_is_flattened() -> None:
    upload = ImageUpload(name="alpha.png", content=_image_bytes((40, 40), mode="RGBA"))

    asset = JpegImageEncoder().encode(upload)

    assert _decode(asset.full).mode == "RGB"


def test_unreadable_upload_is_rejected() -> None:
    upload = ImageUpload(name="notes.txt", content=b"not an image")

    with pytest.raises(ValidationFailure) as excinfo:
        JpegImageEncoder().encode(upload)

    assert "notes.txt" in excinfo.value.reason


def test_to_data_url_detects_png() -> None:
    url = to_data_url(b"\x89PNG\r\n\x1a\nrest")

    assert url.startswith("data:image/png;base64,")


def test_to_data_url_defaults_to_jpeg() -> None:
    url = to_data_url(b"unknown")

    assert url == "data:image/jpeg;base64,dW5rbm93bg=="
