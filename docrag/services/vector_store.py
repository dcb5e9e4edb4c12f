"""
Vector Store Service
Stores (embedding, text, metadata) triples and runs filtered similarity search.

Two backends: Pinecone (default) and an in-process store for local runs.
"""
import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional
import structlog
from pinecone import Pinecone, ServerlessSpec
from pinecone.exceptions import PineconeException
from urllib3.exceptions import HTTPError as TransportError

from docrag.config import Settings, get_settings
from docrag.errors import ExternalServiceFailure
from docrag.models.schemas import SearchMatch, StoredVector

logger = structlog.get_logger()


def _to_match(text: str, score: float, metadata: Dict[str, Any]) -> SearchMatch:
    return SearchMatch(
        text=text,
        score=score,
        file_name=metadata.get("file_name", ""),
        chunk_index=str(metadata.get("chunk_index", "")),
        tags=metadata.get("tags"),
    )


class VectorStore(ABC):
    """Capability shared by every vector store backend."""

    @abstractmethod
    async def add(
        self,
        embedding: List[float],
        text: str,
        metadata: Dict[str, Any],
        namespace: str,
        vector_id: Optional[str] = None,
    ) -> str:
        """Store one vector and return its id."""

    @abstractmethod
    async def search(
        self,
        embedding: List[float],
        top_k: int,
        namespace: str,
        tags: Optional[List[str]] = None,
    ) -> List[SearchMatch]:
        """
        Return the ``top_k`` nearest vectors, best first.

        When ``tags`` is given, only vectors whose tag list intersects it match.
        """


class PineconeVectorStore(VectorStore):
    """Pinecone index; chunk text and metadata live in the vector's metadata."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.pc = Pinecone(api_key=settings.pinecone_api_key)

        if settings.pinecone_create_index and not self.pc.has_index(settings.pinecone_index):
            logger.info(
                "Creating Pinecone index",
                index=settings.pinecone_index,
                dimension=settings.embedding_dimensions
            )
            self.pc.create_index(
                name=settings.pinecone_index,
                dimension=settings.embedding_dimensions,
                metric="cosine",
                spec=ServerlessSpec(cloud=settings.pinecone_cloud, region=settings.pinecone_region),
            )

        self.index = self.pc.Index(settings.pinecone_index)

        logger.info(
            "Vector store initialized",
            backend="pinecone",
            index=settings.pinecone_index
        )

    async def add(
        self,
        embedding: List[float],
        text: str,
        metadata: Dict[str, Any],
        namespace: str,
        vector_id: Optional[str] = None,
    ) -> str:
        vector = StoredVector(embedding=embedding, text=text, metadata=metadata)
        if vector_id:
            vector.id = vector_id

        try:
            self.index.upsert(
                vectors=[{
                    "id": vector.id,
                    "values": vector.embedding,
                    "metadata": {**vector.metadata, "text": vector.text},
                }],
                namespace=namespace,
            )
        except (PineconeException, TransportError) as e:
            logger.error("Upsert failed", namespace=namespace, error=str(e))
            raise ExternalServiceFailure(f"Vector upsert failed: {e}", provider_name="pinecone") from e

        return vector.id

    async def search(
        self,
        embedding: List[float],
        top_k: int,
        namespace: str,
        tags: Optional[List[str]] = None,
    ) -> List[SearchMatch]:
        logger.info("Querying vectors", namespace=namespace, top_k=top_k, tags=tags)

        kwargs: Dict[str, Any] = {
            "namespace": namespace,
            "vector": embedding,
            "top_k": top_k,
            "include_metadata": True,
        }
        if tags:
            kwargs["filter"] = {"tag_list": {"$in": tags}}

        try:
            results = self.index.query(**kwargs)
        except (PineconeException, TransportError) as e:
            logger.error("Query failed", namespace=namespace, error=str(e))
            raise ExternalServiceFailure(f"Vector query failed: {e}", provider_name="pinecone") from e

        matches = []
        for match in results.matches:
            metadata = match.metadata or {}
            matches.append(_to_match(metadata.get("text", ""), match.score, metadata))

        logger.info("Query complete", results=len(matches))
        return matches


class InMemoryVectorStore(VectorStore):
    """Process-local store ranked by cosine similarity. Contents die with the process."""

    def __init__(self):
        self._namespaces: Dict[str, List[StoredVector]] = {}

    async def add(
        self,
        embedding: List[float],
        text: str,
        metadata: Dict[str, Any],
        namespace: str,
        vector_id: Optional[str] = None,
    ) -> str:
        vector = StoredVector(embedding=embedding, text=text, metadata=dict(metadata))
        if vector_id:
            vector.id = vector_id
        self._namespaces.setdefault(namespace, []).append(vector)
        return vector.id

    async def search(
        self,
        embedding: List[float],
        top_k: int,
        namespace: str,
        tags: Optional[List[str]] = None,
    ) -> List[SearchMatch]:
        wanted = set(tags or [])
        scored = []
        for vector in self._namespaces.get(namespace, []):
            if wanted and not wanted.intersection(vector.metadata.get("tag_list", [])):
                continue
            scored.append((_cosine(embedding, vector.embedding), vector))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [_to_match(v.text, score, v.metadata) for score, v in scored[:top_k]]

    def count(self, namespace: str) -> int:
        return len(self._namespaces.get(namespace, []))


def _cosine(a: List[float], b: List[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / norm


VECTOR_STORES: Dict[str, Callable[[Settings], VectorStore]] = {
    "pinecone": PineconeVectorStore,
    "memory": lambda settings: InMemoryVectorStore(),
}


def create_vector_store(settings: Settings) -> VectorStore:
    """Build the backend named by ``settings.vector_store``."""
    try:
        factory = VECTOR_STORES[settings.vector_store]
    except KeyError:
        raise ValueError(
            f"Unknown vector store '{settings.vector_store}'. Available: {sorted(VECTOR_STORES)}"
        )
    return factory(settings)


# Singleton instance
_vector_store: Optional[VectorStore] = None


def get_vector_store() -> VectorStore:
    """Get singleton vector store instance."""
    global _vector_store
    if _vector_store is None:
        _vector_store = create_vector_store(get_settings())
    return _vector_store
