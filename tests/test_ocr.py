"""Tests for the OCR wrapper (Tesseract mocked)."""
from unittest.mock import patch

import pytest
import pytesseract

from conftest import make_image_bytes
from scan_client.ocr import NO_TEXT_MESSAGE, RETRY_MESSAGE, OCRError, OCRResult, extract_text


class TestOCRResult:
    def test_has_text(self):
        assert OCRResult(text="Hello\n", language="eng").has_text

    @pytest.mark.parametrize("text", ["", "   ", "\n\t\f"])
    def test_whitespace_is_no_text(self, text):
        assert not OCRResult(text=text, language="eng").has_text


class TestExtractText:
    @patch("scan_client.ocr.pytesseract.image_to_string")
    def test_extract_text(self, mock_image_to_string):
        mock_image_to_string.return_value = "Hello World\n"
        progress = []

        result = extract_text(make_image_bytes("PNG"), lang="deu", on_progress=progress.append)

        assert result.text == "Hello World\n"
        assert result.language == "deu"
        assert progress == [0, 10, 100]
        _, kwargs = mock_image_to_string.call_args
        assert kwargs["lang"] == "deu"

    @patch("scan_client.ocr.pytesseract.image_to_string")
    def test_extract_text_from_path(self, mock_image_to_string, tmp_path):
        mock_image_to_string.return_value = "From disk"
        path = tmp_path / "page.jpg"
        path.write_bytes(make_image_bytes("JPEG"))

        assert extract_text(str(path)).text == "From disk"

    @patch("scan_client.ocr.pytesseract.image_to_string")
    def test_empty_result_is_not_an_error(self, mock_image_to_string):
        mock_image_to_string.return_value = "  \n"

        result = extract_text(make_image_bytes("PNG"))

        assert not result.has_text
        assert NO_TEXT_MESSAGE.startswith("No text found")

    @pytest.mark.parametrize("error", [
        pytesseract.TesseractError(1, "bad input"),
        pytesseract.TesseractNotFoundError(),
        RuntimeError("Tesseract process timeout"),
    ])
    @patch("scan_client.ocr.pytesseract.image_to_string")
    def test_engine_failures_become_retry_prompt(self, mock_image_to_string, error):
        mock_image_to_string.side_effect = error
        progress = []

        with pytest.raises(OCRError) as exc_info:
            extract_text(make_image_bytes("PNG"), on_progress=progress.append)

        assert exc_info.value.message == RETRY_MESSAGE
        assert 100 not in progress

    def test_undecodable_image(self):
        with pytest.raises(OCRError):
            extract_text(b"definitely not an image")

    @patch("scan_client.ocr.pytesseract.image_to_string")
    def test_custom_tesseract_cmd(self, mock_image_to_string, monkeypatch):
        mock_image_to_string.return_value = "x"
        monkeypatch.setattr(pytesseract.pytesseract, "tesseract_cmd", "tesseract")

        extract_text(make_image_bytes("PNG"), tesseract_cmd="/opt/tesseract/bin/tesseract")

        assert pytesseract.pytesseract.tesseract_cmd == "/opt/tesseract/bin/tesseract"
