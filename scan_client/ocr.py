"""Tesseract OCR wrapper used by the scan flow.

Each call opens the image, runs a single recognition and releases the image
again. Progress is reported as coarse integer percentages.
"""
import io
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

import pytesseract
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

NO_TEXT_MESSAGE = "No text found in the image. Try a clearer image with better lighting."
RETRY_MESSAGE = "Failed to extract text from image. Please try again."

ProgressCallback = Callable[[int], None]


class OCRError(Exception):
    """Recognition failed; the caller should offer a retry."""

    def __init__(self, message: str = RETRY_MESSAGE):
        super().__init__(message)
        self.message = message


@dataclass
class OCRResult:
    text: str
    language: str

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


def _report(on_progress: Optional[ProgressCallback], percent: int) -> None:
    if on_progress is not None:
        on_progress(percent)


def extract_text(
    image: Union[bytes, str],
    lang: str = "eng",
    on_progress: Optional[ProgressCallback] = None,
    timeout: int = 0,
    tesseract_cmd: Optional[str] = None,
) -> OCRResult:
    """Recognize the text in one image.

    Args:
        image: Encoded image bytes or a path to an image file.
        lang: Tesseract language code.
        on_progress: Receives 0, 10 and 100 as recognition advances.
        timeout: Seconds before Tesseract is killed; 0 disables the limit.
        tesseract_cmd: Path to the Tesseract executable, if not on PATH.

    Returns:
        The recognized text. Empty or whitespace-only text is a normal
        result; check ``has_text``.

    Raises:
        OCRError: The engine is missing, the image cannot be decoded, or
            recognition failed or timed out.
    """
    if tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    _report(on_progress, 0)
    pil_image = None
    try:
        source = io.BytesIO(image) if isinstance(image, bytes) else image
        pil_image = Image.open(source)
        pil_image.load()
        _report(on_progress, 10)

        text = pytesseract.image_to_string(pil_image, lang=lang, timeout=timeout)
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError,
            UnidentifiedImageError, OSError, RuntimeError) as exc:
        # RuntimeError is pytesseract's timeout signal
        logger.error(f"OCR processing error: {str(exc)}")
        raise OCRError() from exc
    finally:
        if pil_image is not None:
            pil_image.close()

    _report(on_progress, 100)
    result = OCRResult(text=text, language=lang)
    if result.has_text:
        logger.info(f"OCR extracted {len(text.strip())} characters")
    else:
        logger.info("OCR found no text")
    return result
