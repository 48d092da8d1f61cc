"""Image pipeline: re-encode uploads to compact JPEGs and store documents.

Compression is best effort. An image Pillow cannot process is passed
through untouched and reported with ``success=False``.
"""

from __future__ import annotations

import io
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Iterable, Sequence

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from PIL import Image, ImageOps

from souqify_backend import errors

logger = logging.getLogger("souqify.images")

MAX_DIMENSION = 1600
START_QUALITY = 80
QUALITY_STEP = 10
MAX_ATTEMPTS = 5
# Accept results up to 20% over the target before trying a lower quality.
TARGET_TOLERANCE = 1.2


@dataclass(frozen=True)
class CompressionResult:
    name: str
    success: bool
    original_bytes: int
    compressed_bytes: int
    error: str = ""

    @property
    def saved_bytes(self) -> int:
        return max(self.original_bytes - self.compressed_bytes, 0)

    @property
    def saved_percent(self) -> float:
        if not self.original_bytes:
            return 0.0
        return round(self.saved_bytes * 100.0 / self.original_bytes, 1)


def validate_upload(upload) -> None:
    content_type = str(getattr(upload, "content_type", "") or "")
    if not content_type.startswith("image/"):
        raise errors.ValidationError("Only image files are allowed")
    if (upload.size or 0) > settings.IMAGE_MAX_UPLOAD_BYTES:
        raise errors.ValidationError("Each image must be 5MB or smaller")


def _encode(image: Image.Image, quality: int) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=quality, optimize=True, progressive=True)
    return buf.getvalue()


def compress_image(upload, target_kb: int | None = None) -> tuple[object, CompressionResult]:
    target_kb = target_kb or settings.IMAGE_TARGET_SIZE_KB
    name = os.path.basename(getattr(upload, "name", "") or "image")
    original_bytes = int(getattr(upload, "size", 0) or 0)

    try:
        upload.seek(0)
        with Image.open(upload) as src:
            image = ImageOps.exif_transpose(src).convert("RGB")
        image.thumbnail((MAX_DIMENSION, MAX_DIMENSION))

        limit = int(target_kb * 1024 * TARGET_TOLERANCE)
        quality = START_QUALITY
        data = _encode(image, quality)
        for _ in range(MAX_ATTEMPTS - 1):
            if len(data) <= limit:
                break
            quality = max(quality - QUALITY_STEP, 10)
            data = _encode(image, quality)
    except Exception as exc:
        failure = errors.DependencyError(f"image compression failed: {exc}")
        logger.warning(str(failure), exc_info=True)
        upload.seek(0)
        return upload, CompressionResult(name, False, original_bytes, original_bytes, error=str(exc))

    stem = os.path.splitext(name)[0] or "image"
    compressed = ContentFile(data, name=f"{stem}.jpg")
    return compressed, CompressionResult(name, True, original_bytes, len(data))


def compress_images(uploads: Iterable, target_kb: int | None = None) -> list[tuple[object, CompressionResult]]:
    results = [compress_image(upload, target_kb) for upload in uploads]

    if results:
        saved = sum(r.saved_bytes for _, r in results)
        failed = sum(1 for _, r in results if not r.success)
        logger.info(
            "images compressed: %s files, %s bytes saved, %s failed",
            len(results),
            saved,
            failed,
        )
    return results


def store_document_images(user, documents: Sequence) -> list[str]:
    """Compress and save identity documents, returning storage names."""

    names: list[str] = []
    for compressed, _ in compress_images(documents):
        ext = os.path.splitext(getattr(compressed, "name", "") or "")[1] or ".jpg"
        path = f"verifications/{user.id}/{uuid.uuid4().hex}{ext}"
        names.append(default_storage.save(path, compressed))
    return names


def delete_stored_files(names: Iterable[str]) -> None:
    for name in names:
        if not name:
            continue
        try:
            default_storage.delete(name)
        except Exception:
            logger.warning("could not delete stored file %s", name, exc_info=True)
