from __future__ import annotations

import io
import os

import pytest
from PIL import Image

from moodmirror.app.services.imaging import ImagePreparationError, ImagePreparer


def _noisy_image(width: int, height: int) -> Image.Image:
    # random pixels compress badly, which forces the quality search to run
    return Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))


def test_prepare_downscales_preserving_aspect_ratio() -> None:
    preparer = ImagePreparer(max_dimension=512, max_kb=500)

    prepared = preparer.prepare(Image.new("RGB", (2048, 1024), color=(200, 120, 40)))

    assert (prepared.width, prepared.height) == (512, 256)
    with Image.open(io.BytesIO(prepared.data)) as decoded:
        assert decoded.format == "JPEG"
        assert decoded.size == (512, 256)


def test_prepare_never_upscales() -> None:
    prepared = ImagePreparer(max_dimension=512).prepare(Image.new("RGB", (100, 60)))
    assert (prepared.width, prepared.height) == (100, 60)
    assert prepared.quality == 80


def test_quality_steps_down_until_under_ceiling() -> None:
    preparer = ImagePreparer(max_dimension=512, max_kb=40)

    prepared = preparer.prepare(_noisy_image(600, 600))

    assert prepared.quality < 80
    assert prepared.quality >= 10
    assert prepared.size_kb <= 40 or prepared.quality == 10


def test_prepare_accepts_encoded_bytes_and_converts_mode() -> None:
    buffer = io.BytesIO()
    Image.new("RGBA", (64, 64), color=(0, 0, 255, 128)).save(buffer, format="PNG")

    prepared = ImagePreparer().prepare(buffer.getvalue())

    with Image.open(io.BytesIO(prepared.data)) as decoded:
        assert decoded.mode == "RGB"


def test_undecodable_bytes_raise() -> None:
    with pytest.raises(ImagePreparationError):
        ImagePreparer().prepare(b"definitely not an image")


@pytest.mark.anyio
async def test_prepare_async_matches_sync() -> None:
    preparer = ImagePreparer(max_dimension=128)
    prepared = await preparer.prepare_async(Image.new("RGB", (256, 256)))
    assert (prepared.width, prepared.height) == (128, 128)
