import logging
from dataclasses import dataclass, field
from typing import Optional

from . import config, ocr
from .api import ApiError, DocumentClient
from .capture import CapturedImage

logger = logging.getLogger(__name__)


@dataclass
class ScanSession:
    """Scan flow for one user: recognize an image, then persist it.

    ``user_id`` is the owner of every document saved through the session.
    """

    client: DocumentClient
    user_id: str = config.SCAN_USER_ID
    lang: str = config.OCR_LANG
    ocr_timeout: int = config.OCR_TIMEOUT
    tesseract_cmd: Optional[str] = field(default=config.TESSERACT_CMD)

    def recognize(self, image: CapturedImage, on_progress=None) -> ocr.OCRResult:
        return ocr.extract_text(
            image.data,
            lang=self.lang,
            on_progress=on_progress,
            timeout=self.ocr_timeout,
            tesseract_cmd=self.tesseract_cmd,
        )

    def save(self, image: CapturedImage, extracted_text: str) -> dict:
        """Upload the image, then create its record.

        Upload and record creation are separate requests. When the record
        cannot be created the uploaded blob is removed again, best-effort,
        and the original error is re-raised.
        """
        upload = self.client.upload_image(image.data, image.filename, image.content_type)
        object_key = upload["objectKey"]
        try:
            return self.client.create_document(self.user_id, object_key, extracted_text)
        except ApiError:
            logger.warning(f"Record creation failed, removing uploaded blob {object_key}")
            try:
                self.client.delete_upload(object_key)
            except ApiError as cleanup_error:
                logger.error(f"Failed to remove orphaned blob {object_key}: {cleanup_error.message}")
            raise
