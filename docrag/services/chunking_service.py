"""
Chunking Service
Splits extracted text into overlapping fixed-size character windows.
"""
from typing import List, Optional
import structlog

from docrag.config import get_settings
from docrag.models.schemas import ChunkData

logger = structlog.get_logger()


def chunk_text(text: str, max_chars: int, overlap: int) -> List[str]:
    """
    Split text into windows of at most ``max_chars`` characters.

    Consecutive windows share ``overlap`` characters. Each window is trimmed
    and dropped if it ends up empty. Assumes ``0 <= overlap < max_chars``.

    Args:
        text: Text to split
        max_chars: Maximum characters per window
        overlap: Characters shared by consecutive windows

    Returns:
        Ordered list of non-empty, trimmed chunks
    """
    chunks: List[str] = []
    if not text or not text.strip():
        return chunks

    start = 0
    length = len(text)
    while start < length:
        end = min(start + max_chars, length)
        chunk = text[start:end].strip()
        if chunk:
            chunks.append(chunk)
        if end == length:
            break
        start = max(0, end - overlap)
    return chunks


class ChunkingService:
    """Chunks documents with the configured window size and overlap."""

    def __init__(self, chunk_size: Optional[int] = None, chunk_overlap: Optional[int] = None):
        settings = get_settings()
        self.chunk_size = chunk_size if chunk_size is not None else settings.chunk_size
        self.chunk_overlap = chunk_overlap if chunk_overlap is not None else settings.chunk_overlap

        if self.chunk_size <= 0 or not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError(
                f"Invalid chunking parameters: size={self.chunk_size}, overlap={self.chunk_overlap}"
            )

    def chunk(self, text: str, file_name: str = "", tags: Optional[List[str]] = None) -> List[ChunkData]:
        """
        Chunk a document's text.

        Args:
            text: Extracted document text
            file_name: Source file name recorded on every chunk
            tags: Tags recorded on every chunk

        Returns:
            List of ChunkData in document order
        """
        pieces = chunk_text(text, self.chunk_size, self.chunk_overlap)

        logger.info(
            "Chunking complete",
            chunk_count=len(pieces),
            max_characters=self.chunk_size,
            overlap=self.chunk_overlap
        )

        return [
            ChunkData(content=piece, chunk_index=idx, file_name=file_name, tags=tags or [])
            for idx, piece in enumerate(pieces)
        ]


# Singleton
_chunking_service: Optional[ChunkingService] = None


def get_chunking_service() -> ChunkingService:
    """Get singleton chunking service instance."""
    global _chunking_service
    if _chunking_service is None:
        _chunking_service = ChunkingService()
    return _chunking_service
