"""Image encoding for entry photos."""

import base64
import io
from dataclasses import dataclass
from typing import Protocol

from PIL import Image, ImageOps, UnidentifiedImageError

from body_tracker.domain.entries import ImageAsset, ImageUpload
from body_tracker.domain.errors import ValidationFailure

FULL_MAX_SIZE = 1200
FULL_QUALITY = 80
THUMBNAIL_SIZE = 150
THUMBNAIL_QUALITY = 60


class ImageEncoder(Protocol):
    """Interface for turning an uploaded file into a stored image asset."""

    def encode(self, upload: ImageUpload) -> ImageAsset:
        """Return the full-size and thumbnail encodings of an upload."""


@dataclass
class JpegImageEncoder(ImageEncoder):
    """Encoder that downsizes uploads and stores them as JPEG data URLs.

    The full image fits within ``max_size`` pixels on its longest side and the
    thumbnail within ``thumbnail_size``. Neither is ever enlarged.
    """

    max_size: int = FULL_MAX_SIZE
    quality: int = FULL_QUALITY
    thumbnail_size: int = THUMBNAIL_SIZE
    thumbnail_quality: int = THUMBNAIL_QUALITY

    def encode(self, upload: ImageUpload) -> ImageAsset:
        """Decode the upload and return resized JPEG encodings."""
        try:
            with Image.open(io.BytesIO(upload.content)) as source:
                img = _to_rgb(ImageOps.exif_transpose(source))
        except (UnidentifiedImageError, OSError) as exc:
            raise ValidationFailure(f"{upload.name} is not a readable image") from exc
        img.thumbnail((self.max_size, self.max_size), Image.Resampling.LANCZOS)
        thumb = img.copy()
        thumb.thumbnail(
            (self.thumbnail_size, self.thumbnail_size), Image.Resampling.LANCZOS
        )
        full_bytes = _jpeg_bytes(img, self.quality)
        thumb_bytes = _jpeg_bytes(thumb, self.thumbnail_quality)
        return ImageAsset(
            full=to_data_url(full_bytes, "image/jpeg"),
            thumbnail=to_data_url(thumb_bytes, "image/jpeg"),
            original_name=upload.name,
        )


def to_data_url(image_bytes: bytes, content_type: str | None = None) -> str:
    """Convert bytes to a base64 data URL."""
    mime_type = content_type or _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _to_rgb(img: Image.Image) -> Image.Image:
    # JPEG has no alpha; flatten transparency onto white
    if img.mode in ("RGBA", "LA", "P"):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img.copy()


def _jpeg_bytes(img: Image.Image, quality: int) -> bytes:
    output = io.BytesIO()
    img.save(output, format="JPEG", quality=quality)
    return output.getvalue()


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return "image/jpeg"
