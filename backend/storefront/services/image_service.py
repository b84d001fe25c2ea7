"""
Storefront Backend — Image Normalization Service
==================================================

What:  Validates uploaded images and normalizes them to bounded JPEGs before
       they are forwarded to the asset host.
Why:   Admins upload straight from cameras and design tools (5000px PNGs);
       storing those as-is makes every storefront page slow.
How:   1. Declared MIME type must be image/jpeg or image/png
       2. Pillow reads the native size and the decoded format
       3. Target size is computed (max 1440 wide, max 1080 high, ratio kept)
       4. Re-encoded as JPEG (quality 70) by the configured UploadSource
Who:   Called by the content services for every attached image.
When:  After form validation and business pre-checks, before upload.

Sizing rule:
    width  = min(1440, native width)
    height = round(width / ratio)
    if height > 1080: height = 1080; width = round(1080 × ratio)

    Narrow images are never upscaled in width; very tall ones are clamped by
    height instead. Rounding is half-up, each side at least 1px.
"""

import logging
import math
from contextlib import asynccontextmanager
from typing import AsyncIterator, BinaryIO, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError
from starlette.datastructures import UploadFile

from storefront.config import settings
from storefront.exceptions import InvalidFormatError
from storefront.services.upload_source import (
    NormalizedImage,
    UploadSource,
    build_upload_source,
)

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
# Declared MIME type → Pillow format name the decoded bytes must match
ALLOWED_MIME_TYPES = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ImageService:
    """
    Image validation and normalization.

    Args:
        source:     Staging strategy; defaults to the one selected by MEMORY
        max_width:  Width bound in pixels (default 1440)
        max_height: Height bound in pixels (default 1080)
        quality:    JPEG quality for the re-encode (default 70)
    """

    def __init__(
        self,
        source: Optional[UploadSource] = None,
        max_width: Optional[int] = None,
        max_height: Optional[int] = None,
        quality: Optional[int] = None,
    ):
        self.source = source or build_upload_source(settings.memory_uploads, settings.temp_dir)
        self.max_width = max_width or settings.max_image_width
        self.max_height = max_height or settings.max_image_height
        self.quality = quality or settings.jpeg_quality
        logger.info(
            "ImageService initialized: source=%s bounds=%dx%d quality=%d",
            self.source.name,
            self.max_width,
            self.max_height,
            self.quality,
        )

    def validate_mime_type(self, upload: UploadFile, label: str = "Image") -> str:
        """
        Check the declared content type of an upload.

        Returns:
            The accepted MIME type.

        Raises:
            InvalidFormatError: anything other than JPEG or PNG (→ 400)
        """
        mime_type = (upload.content_type or "").split(";")[0].strip().lower()
        if mime_type not in ALLOWED_MIME_TYPES:
            raise InvalidFormatError(
                message=f"{label} invalid image format",
                field=label,
                context={"declared_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    def compute_target_size(self, width: int, height: int) -> Tuple[int, int]:
        """Bounded output size preserving the aspect ratio (see module docstring)."""
        width = width or 1
        height = height or 1
        ratio = width / height

        new_width = min(self.max_width, width)
        new_height = _round_half_up(new_width / ratio)
        if new_height > self.max_height:
            new_height = self.max_height
            new_width = _round_half_up(new_height * ratio)

        return max(1, new_width), max(1, new_height)

    def normalize(
        self,
        src: Union[str, BinaryIO],
        dst: Union[str, BinaryIO],
        expected_format: Optional[str] = None,
    ) -> Tuple[int, int]:
        """
        Resize and re-encode one image (blocking; run in a worker thread).

        Raises:
            InvalidFormatError: bytes are not a decodable JPEG/PNG, or do not
                                match the declared type
        """
        try:
            with Image.open(src) as img:
                if img.format not in ALLOWED_MIME_TYPES.values():
                    raise InvalidFormatError(
                        message="Invalid image format",
                        context={"detected_format": img.format},
                    )
                if expected_format and img.format != expected_format:
                    logger.info(
                        "Declared type %s but content is %s; accepting",
                        expected_format,
                        img.format,
                    )
                target = self.compute_target_size(*img.size)
                rgb = img if img.mode == "RGB" else img.convert("RGB")
                resized = rgb.resize(target, Image.Resampling.LANCZOS)
                resized.save(dst, format="JPEG", quality=self.quality)
        except InvalidFormatError:
            raise
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise InvalidFormatError(
                message="Invalid image format",
                context={"error": str(e)},
            )

        logger.debug("Image normalized to %dx%d", *target)
        return target

    @asynccontextmanager
    async def process_upload(self, upload: UploadFile, label: str = "Image") -> AsyncIterator[NormalizedImage]:
        """
        Validate and normalize one upload.

        Usage:
            async with image_service.process_upload(file, "Thumbnail") as image:
                url = await asset_service.upload_file(image)

        Temporary artifacts are removed when the block exits.
        """
        mime_type = self.validate_mime_type(upload, label)
        expected = ALLOWED_MIME_TYPES[mime_type]

        def _normalize(src, dst):
            try:
                return self.normalize(src, dst, expected_format=expected)
            except InvalidFormatError as e:
                e.message = f"{label} invalid image format"
                raise

        async with self.source.process(upload, _normalize) as image:
            logger.info(
                "%s normalized: %s → %dx%d (%d bytes)",
                label,
                upload.filename or "upload",
                image.width,
                image.height,
                image.size_bytes,
            )
            yield image


image_service = ImageService()
