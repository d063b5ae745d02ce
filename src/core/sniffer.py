"""Header-based detection of the image formats the annotators can handle."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

HEADER_SIZE = 30

JPEG_EXTENSIONS = frozenset({".jpg", ".jpeg"})
PNG_EXTENSIONS = frozenset({".png"})
WEBP_EXTENSIONS = frozenset({".webp"})
IMAGE_EXTENSIONS = JPEG_EXTENSIONS | PNG_EXTENSIONS | WEBP_EXTENSIONS

_JPEG_MAGIC = b"\xff\xd8\xff"
_JPEG_MARKERS = (0xE0, 0xE1)
_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
# VP8X flags byte, bit 1 marks an animated WebP
_WEBP_ANIMATION_FLAG = 0x02


class ImageKind(Enum):
    NOT_IMAGE = "not_image"
    JPEG = "jpeg"
    PNG = "png"
    STATIC_WEBP = "static_webp"
    ANIMATED_WEBP = "animated_webp"


SUPPORTED_KINDS = frozenset({ImageKind.JPEG, ImageKind.PNG, ImageKind.STATIC_WEBP})


def has_image_extension(path: str | Path) -> bool:
    """Return whether ``path`` carries one of the candidate image extensions."""
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS


def _read_header(path: Path) -> bytes | None:
    try:
        with open(path, "rb") as handle:
            return handle.read(HEADER_SIZE)
    except OSError as exc:
        logger.error("Unable to open file %s: %s", path, exc)
        return None


def sniff_header(header: bytes) -> ImageKind:
    """Classify raw header bytes without looking at any file name."""
    if len(header) >= 4 and header.startswith(_JPEG_MAGIC) and header[3] in _JPEG_MARKERS:
        return ImageKind.JPEG
    if header.startswith(_PNG_SIGNATURE):
        return ImageKind.PNG
    if len(header) >= 12 and header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        if header[12:16] == b"VP8X":
            if len(header) <= 20:
                return ImageKind.NOT_IMAGE
            if header[20] & _WEBP_ANIMATION_FLAG:
                return ImageKind.ANIMATED_WEBP
        return ImageKind.STATIC_WEBP
    return ImageKind.NOT_IMAGE


def classify(path: str | Path) -> ImageKind:
    """Classify ``path`` by extension first, then by its header bytes.

    The header must agree with the extension: a ``.png`` file holding JPEG
    bytes is not an image as far as indexing is concerned. Never raises.
    """
    candidate = Path(path)
    suffix = candidate.suffix.lower()
    if suffix not in IMAGE_EXTENSIONS:
        return ImageKind.NOT_IMAGE

    header = _read_header(candidate)
    if header is None:
        return ImageKind.NOT_IMAGE

    kind = sniff_header(header)
    if suffix in JPEG_EXTENSIONS and kind is ImageKind.JPEG:
        return kind
    if suffix in PNG_EXTENSIONS and kind is ImageKind.PNG:
        return kind
    if suffix in WEBP_EXTENSIONS and kind in (ImageKind.STATIC_WEBP, ImageKind.ANIMATED_WEBP):
        return kind
    return ImageKind.NOT_IMAGE


def is_supported(kind: ImageKind) -> bool:
    return kind in SUPPORTED_KINDS


def is_supported_image(path: str | Path) -> bool:
    """Return whether ``path`` is an image the annotation backends accept."""
    return is_supported(classify(path))


__all__ = [
    "HEADER_SIZE",
    "IMAGE_EXTENSIONS",
    "ImageKind",
    "SUPPORTED_KINDS",
    "classify",
    "has_image_extension",
    "is_supported",
    "is_supported_image",
    "sniff_header",
]
