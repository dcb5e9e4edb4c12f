"""
OCR Service
Runs Tesseract (via pytesseract) on page renders and uploaded images.
"""
from typing import Optional
import structlog
import pytesseract
from PIL import Image

from docrag.config import get_settings
from docrag.errors import OcrFailure

logger = structlog.get_logger()


class OcrService:
    """Thin wrapper around pytesseract."""

    def __init__(self, lang: Optional[str] = None, tesseract_cmd: Optional[str] = None):
        settings = get_settings()
        self.lang = lang or settings.tesseract_lang
        cmd = tesseract_cmd or settings.tesseract_cmd
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd

    def image_to_text(self, image: Image.Image) -> str:
        """
        Extract text from a decoded image.

        Raises:
            OcrFailure: If Tesseract errors or is not installed
        """
        try:
            return pytesseract.image_to_string(image, lang=self.lang)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
            logger.error("OCR failed", error=str(e))
            raise OcrFailure(f"OCR failed: {e}") from e


# Singleton instance
_ocr_service: Optional[OcrService] = None


def get_ocr_service() -> OcrService:
    """Get singleton OCR service instance."""
    global _ocr_service
    if _ocr_service is None:
        _ocr_service = OcrService()
    return _ocr_service
