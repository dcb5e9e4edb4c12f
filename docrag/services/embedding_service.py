"""
Embedding Service
Maps text to vectors through an OpenAI-compatible embeddings API.

Backends are registered by name; EMBEDDING_PROVIDER picks one at startup.
"""
from typing import Callable, Dict, List, Optional
import structlog
import openai
from openai import AsyncOpenAI

from docrag.config import Settings, get_settings
from docrag.errors import ExternalServiceFailure, InvalidInput

logger = structlog.get_logger()


class EmbeddingService:
    """Generates embeddings with any OpenAI-compatible embeddings endpoint."""

    # Maximum tokens per request (model limit)
    MAX_TOKENS_PER_REQUEST = 8191

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 180.0,
        provider_name: str = "openai",
    ):
        self.model = model
        self.provider_name = provider_name
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def embed(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector
        """
        if not text or not text.strip():
            raise InvalidInput("Cannot embed empty text")

        # Truncate if too long (rough estimate: 4 chars per token)
        max_chars = self.MAX_TOKENS_PER_REQUEST * 4
        if len(text) > max_chars:
            logger.warning("Text truncated for embedding", original_length=len(text))
            text = text[:max_chars]

        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=text,
            )
        except openai.APIError as e:
            logger.error("Embedding failed", provider=self.provider_name, error=str(e))
            raise ExternalServiceFailure(
                f"Embedding request failed: {e}", provider_name=self.provider_name
            ) from e

        return response.data[0].embedding


def _build_ollama(settings: Settings) -> EmbeddingService:
    # Ollama serves an OpenAI-compatible API under /v1 and ignores the key
    return EmbeddingService(
        model=settings.embedding_model,
        api_key="ollama",
        base_url=f"{(settings.embedding_url or settings.ollama_url).rstrip('/')}/v1",
        timeout=settings.model_timeout_seconds,
        provider_name="ollama",
    )


def _build_openai(settings: Settings) -> EmbeddingService:
    return EmbeddingService(
        model=settings.embedding_model,
        api_key=settings.openai_api_key,
        base_url=settings.embedding_url,
        timeout=settings.model_timeout_seconds,
        provider_name="openai",
    )


EMBEDDERS: Dict[str, Callable[[Settings], EmbeddingService]] = {
    "ollama": _build_ollama,
    "openai": _build_openai,
}


def create_embedding_service(settings: Settings) -> EmbeddingService:
    """Build the embedding backend named by ``settings.embedding_provider``."""
    try:
        factory = EMBEDDERS[settings.embedding_provider]
    except KeyError:
        raise ValueError(
            f"Unknown embedding provider '{settings.embedding_provider}'. "
            f"Available: {sorted(EMBEDDERS)}"
        )
    logger.info("Embedding service initialized", provider=settings.embedding_provider, model=settings.embedding_model)
    return factory(settings)


# Singleton instance
_embedding_service = None


def get_embedding_service() -> EmbeddingService:
    """Get singleton embedding service instance."""
    global _embedding_service
    if _embedding_service is None:
        _embedding_service = create_embedding_service(get_settings())
    return _embedding_service
