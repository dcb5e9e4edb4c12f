"""
Text Extractor Service
Turns uploaded bytes into a single text string based on the declared content type.
"""
import io
from typing import List, Optional
import fitz  # PyMuPDF
import magic
import structlog
from PIL import Image, UnidentifiedImageError

from docrag.config import get_settings
from docrag.errors import InvalidInput, OcrFailure, UnsupportedType
from docrag.services.ocr_service import OcrService, get_ocr_service

logger = structlog.get_logger()

OCR_MARKER = "----OCR below----"


class TextExtractor:
    """Extracts text from plain text, PDF and image uploads."""

    # Supported content types and the strategy used for each
    SUPPORTED_TYPES = {
        "text/plain": "text",
        "application/pdf": "pdf",
        "image/jpeg": "image",
        "image/jpg": "image",
        "image/png": "image",
    }

    # Declared types that carry no information; the bytes are sniffed instead
    GENERIC_TYPES = {"", "application/octet-stream"}

    def __init__(self, ocr_service: Optional[OcrService] = None, dpi: Optional[int] = None):
        self.ocr_service = ocr_service or get_ocr_service()
        self.dpi = dpi or get_settings().ocr_dpi

    def resolve_type(self, content: bytes, content_type: Optional[str]) -> str:
        """
        Map a declared content type to an extraction strategy.

        Args:
            content: Raw file bytes (used only when the declared type is generic)
            content_type: Declared MIME type, possibly with parameters

        Returns:
            One of "text", "pdf", "image"

        Raises:
            UnsupportedType: If the type is not supported
        """
        mime_type = (content_type or "").split(";")[0].strip().lower()

        if mime_type in self.GENERIC_TYPES:
            mime_type = magic.from_buffer(content, mime=True)
            logger.info("Sniffed content type", mime_type=mime_type)

        if mime_type not in self.SUPPORTED_TYPES:
            raise UnsupportedType(f"Unsupported file type: {content_type}")

        return self.SUPPORTED_TYPES[mime_type]

    async def extract(self, content: bytes, content_type: Optional[str]) -> str:
        """
        Extract text from an uploaded file.

        Args:
            content: Raw file bytes
            content_type: Declared MIME type

        Returns:
            Extracted text (may be blank; the caller decides what blank means)
        """
        kind = self.resolve_type(content, content_type)
        logger.info("Extracting text", kind=kind, size_bytes=len(content))

        if kind == "pdf":
            return self._extract_pdf(content)
        if kind == "image":
            return self._extract_image(content)
        return self._extract_text(content)

    def _extract_text(self, content: bytes) -> str:
        # Invalid byte sequences become U+FFFD
        return content.decode("utf-8", errors="replace")

    def _extract_image(self, content: bytes) -> str:
        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise OcrFailure(f"OCR failed: could not decode image ({e})") from e
        return self.ocr_service.image_to_text(image)

    def _extract_pdf(self, content: bytes) -> str:
        """Selectable text first, then OCR of every page rendered at the configured DPI."""
        try:
            pdf = fitz.open(stream=content, filetype="pdf")
        except RuntimeError as e:
            raise InvalidInput(f"Could not read PDF: {e}") from e

        parts: List[str] = []
        with pdf:
            pdf_text = "".join(page.get_text() for page in pdf)
            if pdf_text.strip():
                parts.append(pdf_text.strip())
                parts.append(OCR_MARKER)

            for index, page in enumerate(pdf):
                page_image = self._render_page(page)
                try:
                    ocr_text = self.ocr_service.image_to_text(page_image)
                except OcrFailure as e:
                    raise OcrFailure(f"OCR failed for PDF page {index}", page=index) from e
                if ocr_text and ocr_text.strip():
                    parts.append(ocr_text.strip())

            logger.info("PDF extracted", pages=pdf.page_count, has_text_layer=bool(pdf_text.strip()))

        return "\n".join(parts)

    def _render_page(self, page: "fitz.Page") -> Image.Image:
        pix = page.get_pixmap(dpi=self.dpi, alpha=False)
        return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)


# Singleton instance
_text_extractor: Optional[TextExtractor] = None


def get_text_extractor() -> TextExtractor:
    """Get singleton text extractor instance."""
    global _text_extractor
    if _text_extractor is None:
        _text_extractor = TextExtractor()
    return _text_extractor
