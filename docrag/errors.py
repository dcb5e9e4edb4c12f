"""
Error Taxonomy
Request-level failures raised by the ingestion and query pipelines.

    DocRagError
    +-- UnsupportedType          (upload content type not recognised)
    +-- InvalidInput             (nothing usable to ingest or query)
    +-- OcrFailure               (Tesseract failed on an image or PDF page)
    +-- ExternalServiceFailure   (embedding, generation or vector store call)
"""
from typing import Optional


class DocRagError(Exception):
    """Base error carrying a message and the external provider involved, if any."""

    status_code = 500

    def __init__(self, message: str, provider_name: Optional[str] = None):
        self.message = message
        self.provider_name = provider_name
        super().__init__(message)

    def __str__(self) -> str:
        if self.provider_name:
            return f"[{self.provider_name}] {self.message}"
        return self.message


class UnsupportedType(DocRagError):
    status_code = 415


class InvalidInput(DocRagError):
    status_code = 400


class OcrFailure(DocRagError):
    """OCR failed; ``page`` is set when the failure happened on a PDF page."""

    status_code = 422

    def __init__(self, message: str, page: Optional[int] = None):
        self.page = page
        super().__init__(message, provider_name="tesseract")


class ExternalServiceFailure(DocRagError):
    status_code = 502
