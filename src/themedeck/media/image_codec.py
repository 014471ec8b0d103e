"""Pillow-backed decode / resize / re-encode for uploaded theme images."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from ..uploads.uploads_errors import InvalidImageError

COVER_MIME_TYPES = {
    "image/jpeg": ("JPEG", ".jpg"),
    "image/png": ("PNG", ".png"),
    "image/webp": ("WEBP", ".webp"),
}
COVER_MIN_DIMENSION = 128


def _open(data: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise InvalidImageError("invalid image or unsupported format") from exc
    return ImageOps.exif_transpose(img)


def _webp_ready(img: Image.Image) -> Image.Image:
    if img.mode in ("RGB", "RGBA"):
        return img
    if img.mode in ("LA", "PA") or (img.mode == "P" and "transparency" in img.info):
        return img.convert("RGBA")
    return img.convert("RGB")


def fit_within(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Scale ``(width, height)`` down to ``max_dimension`` keeping aspect ratio."""
    if width <= max_dimension and height <= max_dimension:
        return width, height
    ratio = min(max_dimension / width, max_dimension / height)
    return max(1, int(width * ratio)), max(1, int(height * ratio))


@dataclass(slots=True)
class ImageCodec:
    """Normalize uploads to WebP at a bounded size."""

    max_dimension: int = 1200
    webp_quality: int = 50

    def normalize(self, data: bytes) -> bytes:
        """Decode ``data``, shrink if needed and return WebP bytes."""
        img = _webp_ready(_open(data))
        target = fit_within(img.width, img.height, self.max_dimension)
        if target != img.size:
            img = img.resize(target, Image.Resampling.BOX)
        output = BytesIO()
        img.save(output, format="WEBP", quality=self.webp_quality, method=0)
        return output.getvalue()

    def encode_cover(self, data: bytes, mime: str) -> tuple[bytes, str]:
        """Re-encode a theme cover in its own format; returns ``(bytes, suffix)``."""
        fmt, suffix = COVER_MIME_TYPES[mime.lower()]
        img = _open(data)
        if img.width < COVER_MIN_DIMENSION or img.height < COVER_MIN_DIMENSION:
            raise InvalidImageError(
                f"image too small (minimum {COVER_MIN_DIMENSION}x{COVER_MIN_DIMENSION})"
            )
        if fmt == "JPEG" and img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        elif fmt == "WEBP":
            img = _webp_ready(img)
        output = BytesIO()
        save_kwargs: dict = {"format": fmt}
        if fmt in ("JPEG", "WEBP"):
            save_kwargs["quality"] = 75
        img.save(output, **save_kwargs)
        return output.getvalue(), suffix
