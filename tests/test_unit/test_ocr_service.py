"""
Unit tests for the OCR service (pytesseract mocked).
"""
import pytest
import pytesseract
from unittest.mock import patch
from PIL import Image

from docrag.errors import OcrFailure
from docrag.services.ocr_service import OcrService


class TestOcrService:

    def test_returns_tesseract_text(self):
        image = Image.new("RGB", (10, 10))
        with patch("docrag.services.ocr_service.pytesseract.image_to_string", return_value="World\n") as ocr:
            text = OcrService(lang="eng").image_to_text(image)

        assert text == "World\n"
        ocr.assert_called_once_with(image, lang="eng")

    def test_tesseract_error_is_wrapped(self):
        error = pytesseract.TesseractError(1, "bad image")
        with patch("docrag.services.ocr_service.pytesseract.image_to_string", side_effect=error):
            with pytest.raises(OcrFailure) as exc_info:
                OcrService().image_to_text(Image.new("RGB", (10, 10)))

        assert exc_info.value.provider_name == "tesseract"
        assert exc_info.value.__cause__ is error

    def test_missing_binary_is_wrapped(self):
        with patch(
            "docrag.services.ocr_service.pytesseract.image_to_string",
            side_effect=pytesseract.TesseractNotFoundError(),
        ):
            with pytest.raises(OcrFailure):
                OcrService().image_to_text(Image.new("RGB", (10, 10)))
