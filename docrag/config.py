"""
Application Configuration
Loads environment variables and provides typed configuration.
"""
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Embedding model
    embedding_provider: str = Field(default="ollama")
    embedding_url: Optional[str] = Field(default=None)
    embedding_model: str = Field(default="nomic-embed-text")
    embedding_dimensions: int = Field(default=768)

    # Chat models
    chat_model: str = Field(default="llama3")
    document_chat_model: str = Field(default="gemini")
    ollama_url: str = Field(default="http://localhost:11434")
    openai_api_key: str = Field(default="dummy")
    openai_chat_model: str = Field(default="gpt-4o-mini")
    google_api_key: Optional[str] = Field(default=None)
    model_timeout_seconds: float = Field(default=180.0)
    gemini_timeout_seconds: float = Field(default=120.0)

    # Vector store
    vector_store: str = Field(default="pinecone")
    pinecone_api_key: Optional[str] = Field(default=None)
    pinecone_index: str = Field(default="ai-docs")
    pinecone_namespace: str = Field(default="docs")
    scratch_namespace: str = Field(default="scratch")
    pinecone_create_index: bool = Field(default=False)
    pinecone_cloud: str = Field(default="aws")
    pinecone_region: str = Field(default="us-east-1")

    # OCR
    ocr_dpi: int = Field(default=300)
    tesseract_cmd: Optional[str] = Field(default=None)
    tesseract_lang: str = Field(default="eng")

    # App Settings
    log_level: str = Field(default="INFO")
    chunk_size: int = Field(default=1000)
    chunk_overlap: int = Field(default=200)
    default_search_k: int = Field(default=20)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @model_validator(mode="after")
    def check_chunking(self) -> "Settings":
        # the chunker relies on overlap < size to make progress
        if self.chunk_size <= 0:
            raise ValueError("CHUNK_SIZE must be positive")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("CHUNK_OVERLAP must be >= 0 and smaller than CHUNK_SIZE")
        if self.ocr_dpi <= 0:
            raise ValueError("OCR_DPI must be positive")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
