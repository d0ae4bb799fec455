from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

INITIAL_QUALITY = 80
MIN_QUALITY = 10
QUALITY_STEP = 10


class ImagePreparationError(Exception):
    """The captured photo could not be decoded or encoded."""


@dataclass(frozen=True)
class PreparedImage:
    data: bytes
    width: int
    height: int
    quality: int

    @property
    def size_kb(self) -> float:
        return len(self.data) / 1024


class ImagePreparer:
    """Downscale a photo and search for a JPEG quality under the size ceiling."""

    def __init__(
        self,
        *,
        max_dimension: int = 512,
        max_kb: int = 500,
        initial_quality: int = INITIAL_QUALITY,
        min_quality: int = MIN_QUALITY,
        quality_step: int = QUALITY_STEP,
    ) -> None:
        self._max_dimension = max_dimension
        self._max_bytes = max_kb * 1024
        self._initial_quality = initial_quality
        self._min_quality = min_quality
        self._quality_step = max(1, quality_step)

    def prepare(self, image: Image.Image | bytes) -> PreparedImage:
        source = self._load(image)
        resized = self._fit(source)

        quality = self._initial_quality
        data = self._encode(resized, quality)
        while len(data) > self._max_bytes and quality > self._min_quality:
            quality = max(self._min_quality, quality - self._quality_step)
            data = self._encode(resized, quality)

        if len(data) > self._max_bytes:
            logger.warning(
                "photo still above size ceiling at minimum quality",
                extra={"extra_fields": {"bytes": len(data), "quality": quality}},
            )
        return PreparedImage(data=data, width=resized.width, height=resized.height, quality=quality)

    async def prepare_async(self, image: Image.Image | bytes) -> PreparedImage:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.prepare, image)

    @staticmethod
    def _load(image: Image.Image | bytes) -> Image.Image:
        if isinstance(image, Image.Image):
            return image
        try:
            loaded = Image.open(io.BytesIO(image))
            loaded.load()
        except (UnidentifiedImageError, OSError, TypeError) as exc:
            raise ImagePreparationError("Failed to prepare image") from exc
        return loaded

    def _fit(self, image: Image.Image) -> Image.Image:
        fitted = image.convert("RGB") if image.mode != "RGB" else image.copy()
        # thumbnail keeps the aspect ratio and never upscales
        fitted.thumbnail((self._max_dimension, self._max_dimension), Image.Resampling.LANCZOS)
        return fitted

    @staticmethod
    def _encode(image: Image.Image, quality: int) -> bytes:
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=quality)
        return buffer.getvalue()


__all__ = [
    "ImagePreparationError",
    "ImagePreparer",
    "PreparedImage",
]
