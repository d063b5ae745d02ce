"""Decoding image files into Pillow bitmaps for the annotation backends."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from PIL import Image, ImageFile, UnidentifiedImageError
from PIL.Image import DecompressionBombError

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIDE = 4096
# Raised from Pillow's ~1.79e8 so large scans still decode.
DEFAULT_BOMB_CAP = 350_000_000


@contextmanager
def _decoder_limits(pixel_cap: Optional[int], allow_truncated: bool) -> Iterator[None]:
    saved = Image.MAX_IMAGE_PIXELS, ImageFile.LOAD_TRUNCATED_IMAGES
    if pixel_cap is not None:
        Image.MAX_IMAGE_PIXELS = int(pixel_cap)
    ImageFile.LOAD_TRUNCATED_IMAGES = allow_truncated
    try:
        yield
    finally:
        Image.MAX_IMAGE_PIXELS, ImageFile.LOAD_TRUNCATED_IMAGES = saved


def _load_scaled(image: Image.Image, max_side: int) -> Image.Image:
    try:
        image.draft("RGB", (max_side, max_side))
    except (AttributeError, ValueError):
        # only JPEG supports reduced-scale decoding
        pass
    image.load()
    if max(image.size) > max_side:
        image.thumbnail((max_side, max_side), Image.Resampling.LANCZOS)
    return image


def decode_image_file(
    source: str | Path,
    *,
    max_side: int = DEFAULT_MAX_SIDE,
    bomb_pixel_cap: Optional[int] = DEFAULT_BOMB_CAP,
    rgb: bool = True,
    allow_truncated: bool = True,
) -> Image.Image | None:
    """Return the decoded bitmap of ``source`` or ``None`` if it cannot be decoded.

    A zero-sized image counts as undecodable. The result is scaled down so its
    longest side is at most ``max_side``.
    """
    with _decoder_limits(bomb_pixel_cap, allow_truncated):
        try:
            image = Image.open(source)
        except (UnidentifiedImageError, DecompressionBombError, OSError) as exc:
            logger.warning("Cannot open image %s: %s", source, exc)
            return None

        width, height = image.size
        if width <= 0 or height <= 0:
            logger.warning("Image %s has empty dimensions %dx%d", source, width, height)
            image.close()
            return None

        try:
            image = _load_scaled(image, max_side)
        except DecompressionBombError as exc:
            logger.warning("Rejected oversized image %s: %s", source, exc)
            image.close()
            return None
        except MemoryError:
            logger.error("Out of memory decoding %s (%dx%d)", source, width, height)
            image.close()
            return None
        except OSError as exc:
            logger.warning("Failed to decode %s: %s", source, exc)
            image.close()
            return None

    if rgb and image.mode != "RGB":
        image = image.convert("RGB")
    return image


__all__ = ["DEFAULT_MAX_SIDE", "decode_image_file"]
