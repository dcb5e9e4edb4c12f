"""
Ingestion Service
Upload -> extract -> chunk -> embed -> store, one chunk at a time.
"""
from typing import List, Optional
import structlog

from docrag.config import get_settings
from docrag.errors import InvalidInput
from docrag.services.chunking_service import ChunkingService, get_chunking_service
from docrag.services.embedding_service import EmbeddingService, get_embedding_service
from docrag.services.text_extractor import TextExtractor, get_text_extractor
from docrag.services.vector_store import VectorStore, get_vector_store

logger = structlog.get_logger()


class IngestionService:
    """
    Stores documents in the vector store.

    Chunks are written in order with no transaction around them: if a later
    chunk fails, the earlier ones stay stored.
    """

    def __init__(
        self,
        extractor: Optional[TextExtractor] = None,
        chunker: Optional[ChunkingService] = None,
        embedder: Optional[EmbeddingService] = None,
        store: Optional[VectorStore] = None,
        namespace: Optional[str] = None,
        scratch_namespace: Optional[str] = None,
    ):
        settings = get_settings()
        self.extractor = extractor or get_text_extractor()
        self.chunker = chunker or get_chunking_service()
        self.embedder = embedder or get_embedding_service()
        self.store = store or get_vector_store()
        self.namespace = namespace or settings.pinecone_namespace
        self.scratch_namespace = scratch_namespace or settings.scratch_namespace

    async def ingest(
        self,
        content: bytes,
        content_type: Optional[str],
        file_name: str,
        tags: Optional[List[str]] = None,
    ) -> int:
        """
        Extract, chunk, embed and store an uploaded file.

        Args:
            content: Raw file bytes
            content_type: Declared MIME type
            file_name: Original file name, stored on every chunk
            tags: Optional tags, stored on every chunk

        Returns:
            Number of chunks stored
        """
        logger.info(f"Stage: Extracting text from '{file_name}'", content_type=content_type)
        text = await self.extractor.extract(content, content_type)

        if not text or not text.strip():
            raise InvalidInput("No text extracted from the uploaded file")

        chunks = self.chunker.chunk(text, file_name=file_name, tags=tags)

        logger.info(f"Stage: Embedding and storing {len(chunks)} chunks...")
        for chunk in chunks:
            embedding = await self.embedder.embed(chunk.content)
            await self.store.add(
                embedding=embedding,
                text=chunk.content,
                metadata=chunk.to_metadata(),
                namespace=self.namespace,
            )

        logger.info(f"Stage: Ingestion complete! Total chunks stored: {len(chunks)}", file_name=file_name)
        return len(chunks)

    async def ingest_text(self, doc_id: str, text: str) -> str:
        """
        Embed raw text as a single vector in the scratch namespace.

        The text is not chunked. The embedder only sees the first
        MAX_TOKENS_PER_REQUEST * 4 characters of very long input, while the
        stored text is always complete.

        Args:
            doc_id: Caller-supplied id, used as vector id and file name
            text: Text to store as-is

        Returns:
            The stored vector id
        """
        if not text or not text.strip():
            raise InvalidInput("Text must not be empty")

        embedding = await self.embedder.embed(text)
        vector_id = await self.store.add(
            embedding=embedding,
            text=text,
            metadata={"file_name": doc_id, "chunk_index": "0"},
            namespace=self.scratch_namespace,
            vector_id=doc_id,
        )
        logger.info("Raw text embedded", id=vector_id, length=len(text))
        return vector_id


# Singleton instance
_ingestion_service: Optional[IngestionService] = None


def get_ingestion_service() -> IngestionService:
    """Get singleton ingestion service instance."""
    global _ingestion_service
    if _ingestion_service is None:
        _ingestion_service = IngestionService()
    return _ingestion_service
