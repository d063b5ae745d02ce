"""OCR backend driven by the Tesseract binary through pytesseract."""

from __future__ import annotations

import logging

import pytesseract
from PIL import Image

from annotators.base import OcrBackend, OcrLine, VisualAnnotation

logger = logging.getLogger(__name__)


class TesseractOcr(OcrBackend):
    """Recognise text lines with Tesseract."""

    def __init__(self, *, lang: str = "eng", tesseract_cmd: str | None = None) -> None:
        self._lang = lang
        self._tesseract_cmd = tesseract_cmd
        self._version: str | None = None

    def _configure(self) -> None:
        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd

    def is_ready(self) -> bool:
        if self._version is not None:
            return True
        self._configure()
        try:
            self._version = str(pytesseract.get_tesseract_version())
        except (pytesseract.TesseractNotFoundError, OSError) as exc:
            logger.debug("Tesseract not available yet: %s", exc)
            return False
        logger.info("Tesseract %s ready (lang=%s)", self._version, self._lang)
        return True

    def perform_ocr(self, image: Image.Image) -> VisualAnnotation:
        self._configure()
        text = pytesseract.image_to_string(image, lang=self._lang)
        lines = [OcrLine(text=line.strip()) for line in text.splitlines() if line.strip()]
        return VisualAnnotation(lines=lines)

    def disconnect(self) -> None:
        # Each call spawns its own tesseract process; nothing stays resident.
        pass


__all__ = ["TesseractOcr"]
