"""
Data models for the RAG pipeline.
"""
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from uuid import uuid4

class ChunkData(BaseModel):
    """Internal model for document chunks during ingestion."""
    content: str
    chunk_index: int
    file_name: str = ""
    tags: List[str] = []

    def to_metadata(self) -> Dict[str, Any]:
        """Metadata stored next to the chunk's vector."""
        metadata: Dict[str, Any] = {
            "file_name": self.file_name,
            "chunk_index": str(self.chunk_index),
        }
        if self.tags:
            metadata["tags"] = ",".join(self.tags)
            metadata["tag_list"] = list(self.tags)
        return metadata

class StoredVector(BaseModel):
    """A persisted (embedding, text, metadata) triple."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    embedding: List[float]
    text: str
    metadata: Dict[str, Any] = {}

class SearchMatch(BaseModel):
    """Model for search results returned from a vector query."""
    text: str
    score: float
    file_name: str = ""
    chunk_index: str = ""
    tags: Optional[str] = None

    @property
    def label(self) -> str:
        return f"[doc={self.file_name} chunk={self.chunk_index}]"

class EmbedRequest(BaseModel):
    id: str
    text: str

class SearchRequest(BaseModel):
    query: str
    k: int = 3
