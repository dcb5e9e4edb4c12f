"""
Unit tests for the vector store backends.
"""
import pytest
from unittest.mock import Mock, patch
from pinecone.exceptions import PineconeException
from urllib3.exceptions import MaxRetryError

from docrag.config import Settings
from docrag.errors import ExternalServiceFailure
from docrag.services.vector_store import (
    InMemoryVectorStore,
    PineconeVectorStore,
    create_vector_store,
)


def _settings(**overrides) -> Settings:
    values = {"pinecone_api_key": "test-key", "pinecone_index": "test-index"}
    values.update(overrides)
    return Settings(**values)


class TestInMemoryVectorStore:

    @pytest.mark.asyncio
    async def test_ranks_by_cosine_similarity(self):
        store = InMemoryVectorStore()
        await store.add([1.0, 0.0], "east", {"file_name": "a.txt", "chunk_index": "0"}, "docs")
        await store.add([0.0, 1.0], "north", {"file_name": "b.txt", "chunk_index": "0"}, "docs")
        await store.add([0.7, 0.7], "north-east", {"file_name": "c.txt", "chunk_index": "3"}, "docs")

        matches = await store.search([1.0, 0.1], top_k=2, namespace="docs")

        assert [m.text for m in matches] == ["east", "north-east"]
        assert matches[0].score > matches[1].score
        assert matches[1].label == "[doc=c.txt chunk=3]"

    @pytest.mark.asyncio
    async def test_tag_filter_requires_intersection(self):
        store = InMemoryVectorStore()
        await store.add([1.0], "hr doc", {"tags": "hr,policy", "tag_list": ["hr", "policy"]}, "docs")
        await store.add([1.0], "finance doc", {"tags": "finance", "tag_list": ["finance"]}, "docs")
        await store.add([1.0], "untagged doc", {}, "docs")

        matches = await store.search([1.0], top_k=10, namespace="docs", tags=["policy", "legal"])

        assert [m.text for m in matches] == ["hr doc"]
        assert matches[0].tags == "hr,policy"

    @pytest.mark.asyncio
    async def test_no_match_returns_empty(self):
        store = InMemoryVectorStore()
        await store.add([1.0], "hr doc", {"tag_list": ["hr"]}, "docs")

        assert await store.search([1.0], top_k=5, namespace="docs", tags=["nope"]) == []
        assert await store.search([1.0], top_k=5, namespace="other") == []

    @pytest.mark.asyncio
    async def test_namespaces_are_isolated_and_ids_kept(self):
        store = InMemoryVectorStore()
        vector_id = await store.add([1.0], "raw", {}, "scratch", vector_id="doc-1")

        assert vector_id == "doc-1"
        assert store.count("scratch") == 1
        assert store.count("docs") == 0


class TestPineconeVectorStore:

    @pytest.fixture
    def mock_pinecone(self):
        with patch("docrag.services.vector_store.Pinecone") as mock:
            yield mock

    @pytest.mark.asyncio
    async def test_add_upserts_text_in_metadata(self, mock_pinecone):
        store = PineconeVectorStore(_settings())
        index = mock_pinecone.return_value.Index.return_value

        vector_id = await store.add([0.1, 0.2], "chunk text", {"file_name": "a.pdf", "chunk_index": "0"}, "docs")

        index.upsert.assert_called_once()
        kwargs = index.upsert.call_args.kwargs
        assert kwargs["namespace"] == "docs"
        vector = kwargs["vectors"][0]
        assert vector["id"] == vector_id
        assert vector["values"] == [0.1, 0.2]
        assert vector["metadata"] == {"file_name": "a.pdf", "chunk_index": "0", "text": "chunk text"}

    @pytest.mark.asyncio
    async def test_search_with_tags_uses_in_filter(self, mock_pinecone):
        index = mock_pinecone.return_value.Index.return_value
        index.query.return_value = Mock(matches=[
            Mock(score=0.9, metadata={"text": "hit", "file_name": "a.pdf", "chunk_index": "2", "tags": "hr"}),
        ])
        store = PineconeVectorStore(_settings())

        matches = await store.search([0.1], top_k=5, namespace="docs", tags=["hr", "it"])

        kwargs = index.query.call_args.kwargs
        assert kwargs["filter"] == {"tag_list": {"$in": ["hr", "it"]}}
        assert kwargs["top_k"] == 5
        assert kwargs["include_metadata"] is True
        assert matches[0].text == "hit"
        assert matches[0].label == "[doc=a.pdf chunk=2]"

    @pytest.mark.asyncio
    async def test_search_without_tags_has_no_filter(self, mock_pinecone):
        index = mock_pinecone.return_value.Index.return_value
        index.query.return_value = Mock(matches=[])
        store = PineconeVectorStore(_settings())

        assert await store.search([0.1], top_k=3, namespace="scratch") == []
        assert "filter" not in index.query.call_args.kwargs

    @pytest.mark.asyncio
    async def test_client_errors_become_external_failures(self, mock_pinecone):
        index = mock_pinecone.return_value.Index.return_value
        index.upsert.side_effect = PineconeException("index unavailable")
        store = PineconeVectorStore(_settings())

        with pytest.raises(ExternalServiceFailure) as exc_info:
            await store.add([0.1], "text", {}, "docs")

        assert exc_info.value.provider_name == "pinecone"

    @pytest.mark.asyncio
    async def test_transport_errors_become_external_failures(self, mock_pinecone):
        index = mock_pinecone.return_value.Index.return_value
        index.query.side_effect = MaxRetryError(None, "/query", reason="connection refused")
        store = PineconeVectorStore(_settings())

        with pytest.raises(ExternalServiceFailure) as exc_info:
            await store.search([0.1], top_k=3, namespace="docs")

        assert exc_info.value.provider_name == "pinecone"

    def test_creates_missing_index_when_enabled(self, mock_pinecone):
        mock_pinecone.return_value.has_index.return_value = False

        PineconeVectorStore(_settings(pinecone_create_index=True, embedding_dimensions=768))

        kwargs = mock_pinecone.return_value.create_index.call_args.kwargs
        assert kwargs["name"] == "test-index"
        assert kwargs["dimension"] == 768
        assert kwargs["metric"] == "cosine"

    def test_does_not_create_index_by_default(self, mock_pinecone):
        PineconeVectorStore(_settings())

        mock_pinecone.return_value.create_index.assert_not_called()


class TestVectorStoreRegistry:

    def test_memory_backend(self):
        assert isinstance(create_vector_store(_settings(vector_store="memory")), InMemoryVectorStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_vector_store(_settings(vector_store="faiss"))
