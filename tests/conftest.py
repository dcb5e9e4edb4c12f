"""
Shared Test Fixtures for RAG Service Tests

This file contains:
- FastAPI TestClient setup with service dependencies overridden
- Fake embedder / chat model / OCR fixtures
- Test document generators
"""
import pytest
from typing import Generator, List
from unittest.mock import AsyncMock, Mock
from fastapi.testclient import TestClient
import fitz
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from docrag.main import app
from docrag.services.chunking_service import ChunkingService
from docrag.services.ingestion_service import IngestionService, get_ingestion_service
from docrag.services.query_service import QueryService, get_query_service
from docrag.services.text_extractor import TextExtractor
from docrag.services.vector_store import InMemoryVectorStore


def fake_embedding(text: str) -> List[float]:
    """Deterministic 4-dimensional embedding based on a few letter counts."""
    lowered = text.lower()
    return [
        float(lowered.count("a")) + 1.0,
        float(lowered.count("e")),
        float(lowered.count("o")),
        float(len(lowered) % 7),
    ]


# ═══════════════════════════════════════════════════════════════
# MOCK FIXTURES
# ═══════════════════════════════════════════════════════════════

@pytest.fixture
def mock_embedder():
    """Embedder returning deterministic vectors."""
    embedder = Mock()
    embedder.embed = AsyncMock(side_effect=fake_embedding)
    return embedder


@pytest.fixture
def mock_generator():
    """Chat model echoing a fixed answer."""
    generator = Mock()
    generator.generate = AsyncMock(return_value="Generated answer")
    return generator


@pytest.fixture
def mock_ocr():
    """OCR service returning empty text unless a test says otherwise."""
    ocr = Mock()
    ocr.image_to_text = Mock(return_value="")
    return ocr


@pytest.fixture
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def extractor(mock_ocr) -> TextExtractor:
    return TextExtractor(ocr_service=mock_ocr, dpi=72)


@pytest.fixture
def ingestion_service(extractor, mock_embedder, memory_store) -> IngestionService:
    return IngestionService(
        extractor=extractor,
        chunker=ChunkingService(chunk_size=1000, chunk_overlap=200),
        embedder=mock_embedder,
        store=memory_store,
        namespace="docs",
        scratch_namespace="scratch",
    )


@pytest.fixture
def query_service(mock_embedder, memory_store, mock_generator) -> QueryService:
    return QueryService(
        embedder=mock_embedder,
        store=memory_store,
        generator=mock_generator,
        document_generator=mock_generator,
        namespace="docs",
        scratch_namespace="scratch",
    )


# ═══════════════════════════════════════════════════════════════
# FASTAPI CLIENT FIXTURES
# ═══════════════════════════════════════════════════════════════

@pytest.fixture
def client(ingestion_service, query_service) -> Generator[TestClient, None, None]:
    """FastAPI test client wired to in-memory services."""
    app.dependency_overrides[get_ingestion_service] = lambda: ingestion_service
    app.dependency_overrides[get_query_service] = lambda: query_service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ═══════════════════════════════════════════════════════════════
# FILE FIXTURES
# ═══════════════════════════════════════════════════════════════

@pytest.fixture
def two_page_pdf_bytes() -> bytes:
    """PDF whose first page has a text layer ("Hello") and whose second page has none."""
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Hello")
    doc.new_page()
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def png_bytes() -> bytes:
    """Small valid PNG."""
    from io import BytesIO
    from PIL import Image
    buffer = BytesIO()
    Image.new("RGB", (40, 20), (255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def corrupted_pdf_bytes() -> bytes:
    """Invalid/corrupted PDF bytes."""
    return b"This is not a valid PDF file content"
