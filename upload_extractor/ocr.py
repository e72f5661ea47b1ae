"""Tesseract OCR engine scoped to a single extraction call."""

import io
import os
from contextlib import contextmanager
from typing import Iterator, Optional, Union

import pytesseract
from PIL import Image, ImageEnhance, ImageOps

from upload_extractor.config import OCRConfig
from upload_extractor.exceptions import OCRUnavailableError
from upload_extractor.logger import Timer, get_logger

logger = get_logger(__name__)


class OCREngine:
    """Acquire/use/release wrapper around pytesseract.

    An engine is opened at the start of an OCR step and closed on every exit
    path; images it decodes are tracked and released on close. Engines are
    never shared between extraction calls.
    """

    def __init__(self, config: Optional[OCRConfig] = None):
        self.config = config or OCRConfig()
        self.version: Optional[str] = None
        self._images: list[Image.Image] = []
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> "OCREngine":
        """Point pytesseract at the configured binary and check it runs.

        Raises:
            OCRUnavailableError: If the tesseract binary cannot be executed
        """
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd
        if self.config.tessdata_prefix:
            os.environ["TESSDATA_PREFIX"] = self.config.tessdata_prefix

        try:
            self.version = str(pytesseract.get_tesseract_version())
        except (pytesseract.TesseractNotFoundError, OSError) as exc:
            logger.warning(
                "Tesseract is not available",
                extra_data={
                    "tesseract_cmd": self.config.tesseract_cmd,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            raise OCRUnavailableError(f"Tesseract not available: {exc}") from exc

        self._open = True
        logger.debug(
            "OCR engine acquired",
            extra_data={
                "tesseract_version": self.version,
                "languages": self.config.languages,
            },
        )
        return self

    def close(self) -> None:
        for image in self._images:
            try:
                image.close()
            except Exception as exc:
                logger.debug(
                    "Failed to close OCR image", extra_data={"error": str(exc)}
                )
        released = len(self._images)
        self._images.clear()
        if self._open:
            logger.debug("OCR engine released", extra_data={"images_released": released})
        self._open = False

    def __enter__(self) -> "OCREngine":
        return self.open()

    def __exit__(self, *args):
        self.close()

    def load_image(self, image_bytes: bytes) -> Image.Image:
        """Decode image bytes; the image is closed with the engine."""
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
        self._images.append(image)
        return image

    def preprocess(self, image: Image.Image) -> Image.Image:
        """Grayscale plus contrast boost, when enabled in the config."""
        if not self.config.enable_image_preprocessing:
            return image

        processed = ImageOps.grayscale(image)
        self._images.append(processed)
        if self.config.contrast_enhancement != 1.0:
            processed = ImageEnhance.Contrast(processed).enhance(
                self.config.contrast_enhancement
            )
            self._images.append(processed)
        return processed

    def recognize(self, image: Union[Image.Image, bytes]) -> str:
        """Run tesseract on one image and return stripped text."""
        if not self._open:
            raise OCRUnavailableError("OCR engine used before open()")

        if isinstance(image, (bytes, bytearray)):
            image = self.load_image(bytes(image))

        prepared = self.preprocess(image)

        with Timer("ocr_recognize") as timer:
            text = pytesseract.image_to_string(
                prepared,
                lang=self.config.languages,
                config=self.config.tesseract_config(),
                timeout=self.config.timeout_seconds,
            )

        result = (text or "").strip()
        logger.debug(
            "OCR recognized image",
            extra_data={
                "image_width": image.size[0],
                "image_height": image.size[1],
                "characters_extracted": len(result),
                "ocr_time_ms": timer.get_elapsed_ms(),
            },
        )
        return result


@contextmanager
def ocr_engine(config: Optional[OCRConfig] = None) -> Iterator[OCREngine]:
    """Yield an open engine; it is closed whether the block succeeds or fails."""
    engine = OCREngine(config)
    try:
        engine.open()
        yield engine
    finally:
        engine.close()
