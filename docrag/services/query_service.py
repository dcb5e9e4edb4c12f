"""
Query Service
Answers questions from stored chunks: embed -> search -> build context -> generate.
"""
from typing import Dict, List, Optional
import structlog

from docrag.config import get_settings
from docrag.models.schemas import SearchMatch
from docrag.prompts import DOCUMENT_QA_PROMPT, QUICK_QA_PROMPT
from docrag.services.embedding_service import EmbeddingService, get_embedding_service
from docrag.services.generation_service import ChatGenerator, get_generator
from docrag.services.vector_store import VectorStore, get_vector_store

logger = structlog.get_logger()

# /search never retrieves fewer chunks than this
MIN_QUICK_RESULTS = 3


def build_document_context(matches: List[SearchMatch]) -> Dict[str, str]:
    """
    Group labelled chunks by source file, in first-seen order.

    Returns:
        file name -> that file's chunks, each as "[doc=.. chunk=..]\\n<text>"
    """
    grouped: Dict[str, str] = {}
    for match in matches:
        block = f"{match.label}\n{match.text}"
        grouped[match.file_name] = grouped.get(match.file_name, "") + "\n" + block
    return grouped


class QueryService:
    """One retrieval and one generation round trip per question."""

    def __init__(
        self,
        embedder: Optional[EmbeddingService] = None,
        store: Optional[VectorStore] = None,
        generator: Optional[ChatGenerator] = None,
        document_generator: Optional[ChatGenerator] = None,
        namespace: Optional[str] = None,
        scratch_namespace: Optional[str] = None,
    ):
        settings = get_settings()
        self.embedder = embedder or get_embedding_service()
        self.store = store or get_vector_store()
        self.generator = generator or get_generator(settings.chat_model)
        self.document_generator = document_generator or get_generator(settings.document_chat_model)
        self.namespace = namespace or settings.pinecone_namespace
        self.scratch_namespace = scratch_namespace or settings.scratch_namespace

    async def answer(self, query: str, k: int, tags: List[str]) -> str:
        """
        Answer a question from tagged documents.

        Args:
            query: The user's question
            k: Number of chunks to retrieve
            tags: Only chunks carrying at least one of these tags are used

        Returns:
            The chat model's answer, verbatim
        """
        embedding = await self.embedder.embed(query)
        matches = await self.store.search(embedding, top_k=k, namespace=self.namespace, tags=tags)

        grouped = build_document_context(matches)
        logger.info(f"[Referred Docs = {','.join(grouped)}]")

        prompt = DOCUMENT_QA_PROMPT.format(context="\n".join(grouped.values()), question=query)
        return await self.document_generator.generate(prompt)

    async def quick_answer(self, query: str, k: int) -> str:
        """
        Answer a question from raw text stored through /embed.

        Retrieves at least MIN_QUICK_RESULTS chunks, without any filter.
        """
        embedding = await self.embedder.embed(query)
        matches = await self.store.search(
            embedding,
            top_k=max(k, MIN_QUICK_RESULTS),
            namespace=self.scratch_namespace,
        )

        context = "\n\n".join(match.text for match in matches)
        prompt = QUICK_QA_PROMPT.format(context=context, question=query)
        return await self.generator.generate(prompt)


# Singleton instance
_query_service: Optional[QueryService] = None


def get_query_service() -> QueryService:
    """Get singleton query service instance."""
    global _query_service
    if _query_service is None:
        _query_service = QueryService()
    return _query_service
