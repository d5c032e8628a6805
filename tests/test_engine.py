"""Tests for VectorRetrievalEngine."""

import pytest

from kb_vector.core.config import RemoteIndexConfig, VectorDBConfig
from kb_vector.core.engine import VectorRetrievalEngine
from kb_vector.core.models import SearchFilters, SearchQuery
from kb_vector.core.scoring import DistanceMetric
from kb_vector.core.storage.chroma import ChromaVectorStore
from kb_vector.core.storage.memory import InMemoryVectorStore
from kb_vector.errors import ExternalAPIError, NotFoundError, ValidationError


def create_engine(dimensions: int = 3, **kwargs) -> VectorRetrievalEngine:
    return VectorRetrievalEngine(VectorDBConfig(dimensions=dimensions, **kwargs))


class FailingStore(InMemoryVectorStore):
    """In-memory store whose writes always fail."""

    async def upsert(self, documents) -> None:
        raise ExternalAPIError("chroma", "unavailable")

    async def delete(self, ids) -> None:
        raise ExternalAPIError("chroma", "unavailable")


class TestVectorRetrievalEngine:
    """Test cases for VectorRetrievalEngine."""

    def test_defaults_to_in_memory_backend(self) -> None:
        engine = VectorRetrievalEngine()
        assert engine.backend == "in-memory"
        assert engine.dimensions == 768
        assert engine.metric is DistanceMetric.COSINE
        assert isinstance(engine.store, InMemoryVectorStore)

    @pytest.mark.asyncio
    async def test_upsert_then_search_round_trip(self, make_document) -> None:
        engine = create_engine()
        await engine.upsert(make_document("kb-1", [0.2, 0.5, 0.9]))

        results = await engine.search(SearchQuery(embedding=[0.2, 0.5, 0.9], top_k=1))
        assert len(results) == 1
        assert results[0].document.id == "kb-1"
        assert results[0].score == pytest.approx(1.0)
        assert results[0].distance == pytest.approx(0.0, abs=1e-9)

    @pytest.mark.asyncio
    async def test_search_empty_store(self) -> None:
        engine = create_engine()
        assert await engine.search(SearchQuery(embedding=[1.0, 0.0, 0.0])) == []

    @pytest.mark.asyncio
    async def test_near_duplicates(self, make_document) -> None:
        engine = create_engine()
        await engine.upsert(make_document("A", [1.0, 0.0, 0.0]))
        await engine.upsert(make_document("B", [0.99, 0.01, 0.0]))

        results = await engine.search(SearchQuery(embedding=[1.0, 0.0, 0.0], top_k=2))
        assert [r.document.id for r in results] == ["A", "B"]
        assert results[0].score == pytest.approx(1.0)
        assert results[1].score == pytest.approx(0.9999, abs=1e-4)
        assert results[0].score > results[1].score

    @pytest.mark.asyncio
    async def test_dimension_mismatch_leaves_store_unchanged(self, make_document) -> None:
        engine = create_engine(dimensions=768)
        await engine.upsert(make_document("ok", [0.1] * 768))

        with pytest.raises(ValidationError):
            await engine.upsert(make_document("bad", [0.1] * 512))
        assert await engine.count() == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "embedding",
        [[1.0, float("nan"), 0.0], [float("inf"), 0.0, 0.0], [1.0, "x", 0.0], None],
    )
    async def test_invalid_embeddings_rejected(self, make_document, embedding) -> None:
        engine = create_engine()
        with pytest.raises(ValidationError):
            await engine.upsert(make_document("bad", embedding))

    @pytest.mark.asyncio
    async def test_query_validation(self) -> None:
        engine = create_engine()
        with pytest.raises(ValidationError):
            await engine.search(SearchQuery(embedding=[1.0, 0.0, 0.0], top_k=0))
        with pytest.raises(ValidationError):
            await engine.search(SearchQuery(embedding=[1.0, 0.0, 0.0], min_score=1.5))
        with pytest.raises(ValidationError):
            await engine.search(SearchQuery(embedding=[1.0, 0.0]))

    @pytest.mark.asyncio
    async def test_dot_product_allows_unbounded_min_score(self, make_document) -> None:
        engine = create_engine(distance_metric=DistanceMetric.DOT_PRODUCT)
        await engine.upsert(make_document("big", [3.0, 0.0, 0.0]))
        await engine.upsert(make_document("small", [1.0, 0.0, 0.0]))

        results = await engine.search(SearchQuery(embedding=[1.0, 0.0, 0.0], min_score=2.0))
        assert [r.document.id for r in results] == ["big"]
        assert results[0].score == pytest.approx(3.0)
        assert results[0].distance == pytest.approx(-3.0)

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, make_document) -> None:
        engine = create_engine()
        await engine.upsert(make_document("a", [1.0, 0.0, 0.0]))
        await engine.upsert(make_document("b", [0.0, 1.0, 0.0]))

        await engine.delete("a")
        assert await engine.count() == 1
        await engine.delete("a")
        assert await engine.count() == 1
        await engine.delete("never-existed")
        assert await engine.count() == 1

    @pytest.mark.asyncio
    async def test_get(self, make_document) -> None:
        engine = create_engine()
        await engine.upsert(make_document("a", [1.0, 0.0, 0.0], content="hello"))
        assert (await engine.get("a")).content == "hello"
        with pytest.raises(NotFoundError):
            await engine.get("missing")

    @pytest.mark.asyncio
    async def test_upsert_batch_itemizes_invalid_documents(self, make_document) -> None:
        engine = create_engine()
        result = await engine.upsert_batch(
            [make_document("valid", [1.0, 0.0, 0.0]), make_document("invalid", [1.0, 0.0])]
        )
        assert result.success is False
        assert result.processed_count == 1
        assert result.failed_count == 1
        assert result.processed_count + result.failed_count == 2
        assert result.failed_ids == ["invalid"]
        assert await engine.count() == 1

    @pytest.mark.asyncio
    async def test_upsert_batch_itemizes_backend_failure(self, make_document) -> None:
        engine = VectorRetrievalEngine(VectorDBConfig(dimensions=3), store=FailingStore())
        result = await engine.upsert_batch(
            [make_document("a", [1.0, 0.0, 0.0]), make_document("b", [0.0, 1.0, 0.0])]
        )
        assert result.processed_count == 0
        assert sorted(result.failed_ids) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_delete_batch(self, make_document) -> None:
        engine = create_engine()
        await engine.upsert_batch(
            [make_document("a", [1.0, 0.0, 0.0]), make_document("b", [0.0, 1.0, 0.0])]
        )
        result = await engine.delete_batch(["a", "b", "missing"])
        assert result.success is True
        assert result.processed_count == 3
        assert await engine.count() == 0

        failing = VectorRetrievalEngine(VectorDBConfig(dimensions=3), store=FailingStore())
        result = await failing.delete_batch(["x", "y"])
        assert result.failed_ids == ["x", "y"]

    @pytest.mark.asyncio
    async def test_filtered_search_and_count(self, make_document) -> None:
        engine = create_engine()
        await engine.upsert(make_document("d", [1.0, 0.0, 0.0], audience={"donors"}))
        await engine.upsert(make_document("g", [1.0, 0.1, 0.0], audience={"guardians"}))
        await engine.upsert(make_document("all", [1.0, 0.2, 0.0], audience={"all"}))

        filters = SearchFilters(audience={"guardians"})
        results = await engine.search(
            SearchQuery(embedding=[1.0, 0.0, 0.0], top_k=5, filters=filters)
        )
        assert [r.document.id for r in results] == ["g", "all"]
        assert await engine.count(filters) == 2

    @pytest.mark.asyncio
    async def test_clear_and_context_manager(self, make_document) -> None:
        async with create_engine() as engine:
            await engine.upsert(make_document("a", [1.0, 0.0, 0.0]))
            await engine.clear()
            assert await engine.count() == 0

    def test_remote_backend_requires_configuration(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            VectorRetrievalEngine(VectorDBConfig(backend="remote", dimensions=3))
        assert "index_id" in str(exc_info.value)

    def test_remote_backend_selected_from_config(self) -> None:
        config = VectorDBConfig(
            backend="remote",
            dimensions=3,
            remote=RemoteIndexConfig(
                project_id="rescue",
                index_id="knowledge-base",
                index_endpoint_id="http://localhost:8000",
            ),
        )
        engine = VectorRetrievalEngine(config)
        assert engine.backend == "remote"
        assert isinstance(engine.store, ChromaVectorStore)
