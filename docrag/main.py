"""
FastAPI Application
Document upload + retrieval-augmented question answering.
"""
from fastapi import Depends, FastAPI, File, Header, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from typing import List, Optional
import logging
import structlog

from docrag.config import get_settings
from docrag.errors import DocRagError, InvalidInput
from docrag.models.schemas import EmbedRequest, SearchRequest
from docrag.services.ingestion_service import IngestionService, get_ingestion_service
from docrag.services.query_service import QueryService, get_query_service

settings = get_settings()

# Configure logging for terminal readability
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.processors.TimeStamper(fmt="%H:%M:%S"),
        structlog.dev.ConsoleRenderer()  # Human-readable format in terminal
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

# Create FastAPI app
app = FastAPI(
    title="Document RAG Service",
    description="Upload documents, ask questions about them",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DocRagError)
async def docrag_error_handler(request: Request, exc: DocRagError):
    logger.error("Request failed", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


def parse_tags(header: Optional[str]) -> List[str]:
    """Split a comma-separated ``metadata`` header into clean tags."""
    if not header:
        return []
    return [tag.strip() for tag in header.split(",") if tag.strip()]


# ─────────────────────────────────────────────────────────────
# Raw text: embed + quick search
# ─────────────────────────────────────────────────────────────

@app.post("/embed", response_class=PlainTextResponse)
async def embed_text(
    request: EmbedRequest,
    ingestion: IngestionService = Depends(get_ingestion_service),
):
    """Embed raw text as a single vector."""
    await ingestion.ingest_text(request.id, request.text)
    return "ok"


@app.post("/search", response_class=PlainTextResponse)
async def quick_search(
    request: SearchRequest,
    queries: QueryService = Depends(get_query_service),
):
    """Answer a question from text stored through /embed."""
    return await queries.quick_answer(request.query, request.k)


# ─────────────────────────────────────────────────────────────
# Documents: upload + tagged search
# ─────────────────────────────────────────────────────────────

@app.post("/api/documents/upload", response_class=PlainTextResponse)
async def upload_document(
    file: UploadFile = File(...),
    metadata: Optional[str] = Header(default=None),
    ingestion: IngestionService = Depends(get_ingestion_service),
):
    """
    Extract, chunk, embed and store an uploaded document.

    The optional ``metadata`` header holds comma-separated tags.
    """
    content = await file.read()
    chunk_count = await ingestion.ingest(
        content=content,
        content_type=file.content_type,
        file_name=file.filename or "",
        tags=parse_tags(metadata),
    )
    return f"Document processed and stored as {chunk_count} chunk(s)"


@app.get("/api/documents/search", response_class=PlainTextResponse)
async def search_documents(
    q: str = Query(...),
    k: Optional[int] = Query(default=None, ge=1),
    metadata: Optional[str] = Header(default=None),
    queries: QueryService = Depends(get_query_service),
):
    """
    Answer a question from uploaded documents.

    The ``metadata`` header (comma-separated tags) is required.
    """
    tags = parse_tags(metadata)
    if not tags:
        raise InvalidInput("The 'metadata' header with at least one tag is required")

    return await queries.answer(q, k if k is not None else settings.default_search_k, tags)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("docrag.main:app", host="0.0.0.0", port=8000, reload=True)
