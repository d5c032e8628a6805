"""Knowledge retrieval for the conversational agents.

Sits between the agents and the vector engine: embeds text, indexes
knowledge-base items and turns a user message into ranked context chunks.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from kb_vector.core.engine import VectorRetrievalEngine
from kb_vector.core.models import (
    BatchError,
    BatchOperationResult,
    DocumentMetadata,
    SearchFilters,
    SearchQuery,
    SearchResult,
    VectorDocument,
    _CountUnsupported,
)
from kb_vector.core.utils import generate_cache_key, validate_embedding
from kb_vector.embedding.base import EmbeddingFunction
from kb_vector.errors import AppError, ExternalAPIError
from kb_vector.knowledge.models import (
    KnowledgeChunk,
    KnowledgeItem,
    RetrievalQuery,
    RetrievalResult,
)

if TYPE_CHECKING:
    from kb_vector.core.storage.config import CacheType

logger = logging.getLogger(__name__)


class KnowledgeRetrievalOrchestrator:
    """
    Retrieval-augmented lookup over the knowledge base.

    Retrieval is an enhancement to the conversation, never a requirement:
    ``retrieve`` returns an empty, ``degraded`` result instead of raising.

    Ranking:
    - Candidates are fetched with ``top_k = max_results * candidate_multiplier``
      and restricted to the requesting agent's type.
    - Entries aimed at the query's audience get their score multiplied by
      ``audience_boost`` before the final sort.

    Example:
        engine = VectorRetrievalEngine(VectorDBConfig())
        kb = KnowledgeRetrievalOrchestrator(engine, embedding_cache=EmbeddingCache())
        await kb.add_knowledge_items(items)
        result = await kb.retrieve(RetrievalQuery("how do I donate?", agent_type="CaseAgent"))
        prompt_context = kb.format_context(result.chunks)
    """

    def __init__(
        self,
        engine: VectorRetrievalEngine,
        embedding_func: EmbeddingFunction | None = None,
        embedding_cache: CacheType | None = None,
        min_score: float = 0.5,
        audience_boost: float = 1.2,
        candidate_multiplier: int = 3,
        usage_cache_size: int = 100,
    ) -> None:
        if candidate_multiplier < 1:
            raise ValueError("candidate_multiplier must be >= 1")
        if usage_cache_size < 1:
            raise ValueError("usage_cache_size must be >= 1")
        self.engine = engine
        self._embedding_func = embedding_func
        self._cache = embedding_cache
        self.min_score = min_score
        self.audience_boost = audience_boost
        self.candidate_multiplier = candidate_multiplier
        self._usage_cache_size = usage_cache_size
        self._usage: dict[str, int] = {}
        self._stats = {"queries": 0, "degraded": 0, "embeddings": 0}

    @property
    def embedding_func(self) -> EmbeddingFunction:
        """Lazily create the default embedding function."""
        if self._embedding_func is None:
            from kb_vector.embedding.default import DefaultEmbedding

            self._embedding_func = DefaultEmbedding()
        return self._embedding_func

    def _cache_get(self, key: str) -> list[float] | None:
        if self._cache is None:
            return None
        try:
            return self._cache.get(key)
        except AppError as exc:
            logger.warning("Embedding cache read failed: %s", exc)
            return None

    def _cache_set(self, key: str, embedding: list[float]) -> None:
        if self._cache is None:
            return
        try:
            self._cache.set(key, embedding)
        except AppError as exc:
            logger.warning("Embedding cache write failed: %s", exc)

    async def embed(self, text: str) -> list[float]:
        """Embed ``text``, consulting the embedding cache first.

        Raises:
            ExternalAPIError: If the embedding service fails
            ValidationError: If it returns a vector of the wrong length
        """
        func = self.embedding_func
        key = generate_cache_key(text, func.model_name)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        try:
            raw = await func.aembed(text)
        except AppError:
            raise
        except Exception as exc:
            raise ExternalAPIError(
                "embedding", f"Failed to generate embedding: {exc}"
            ) from exc
        self._stats["embeddings"] += 1

        embedding = validate_embedding(raw, self.engine.dimensions, "embedding")
        self._cache_set(key, embedding)
        return embedding

    def to_document(self, item: KnowledgeItem, embedding: list[float]) -> VectorDocument:
        """Map a knowledge item onto a vector document."""
        extra = dict(item.metadata)
        extra["title"] = item.title
        extra["usage_count"] = item.usage_count
        return VectorDocument(
            id=item.id,
            embedding=embedding,
            content=item.content,
            metadata=DocumentMetadata(
                category=item.category,
                audience=set(item.audience),
                source=str(item.metadata.get("source", "admin")),
                timestamp=item.last_updated,
                tags=set(item.agent_types),
                extra=extra,
            ),
        )

    async def add_knowledge_items(
        self, items: Iterable[KnowledgeItem]
    ) -> BatchOperationResult:
        """Embed and index knowledge items.

        Items carrying an embedding are indexed as-is. Embedding failures are
        itemized alongside the engine's own batch errors.
        """
        errors: list[BatchError] = []
        documents: list[VectorDocument] = []
        usage_counts: dict[str, int] = {}
        for item in items:
            try:
                embedding = item.embedding
                if embedding is None:
                    embedding = await self.embed(f"{item.title}\n{item.content}")
                documents.append(self.to_document(item, embedding))
                usage_counts[item.id] = item.usage_count
            except AppError as exc:
                logger.error("Failed to embed knowledge item %s: %s", item.id, exc)
                errors.append(BatchError(id=item.id, error=str(exc)))

        result = await self.engine.upsert_batch(documents)
        failed = set(result.failed_ids)
        for item_id, usage_count in usage_counts.items():
            if item_id not in failed:
                self._seed_usage(item_id, usage_count)
        errors.extend(result.errors)
        return BatchOperationResult.from_outcome(result.processed_count, errors)

    async def update_item(self, item: KnowledgeItem) -> None:
        """Re-embed and fully replace a single item."""
        embedding = await self.embed(f"{item.title}\n{item.content}")
        await self.engine.upsert(self.to_document(item, embedding))
        self._seed_usage(item.id, max(item.usage_count, self.usage_count(item.id)))
        logger.info("Updated knowledge item %s", item.id)

    async def delete_item(self, item_id: str) -> None:
        await self.engine.delete(item_id)
        self._usage.pop(item_id, None)

    async def delete_items(self, item_ids: list[str]) -> BatchOperationResult:
        result = await self.engine.delete_batch(item_ids)
        failed = set(result.failed_ids)
        for item_id in item_ids:
            if item_id not in failed:
                self._usage.pop(item_id, None)
        return result

    def _boost(self, result: SearchResult, audience: str | None) -> float:
        if audience and audience in result.document.metadata.audience:
            return result.score * self.audience_boost
        return result.score

    def _to_chunk(self, result: SearchResult, score: float) -> KnowledgeChunk:
        document = result.document
        metadata = document.metadata
        return KnowledgeChunk(
            id=document.id,
            title=str(metadata.extra.get("title", "")),
            content=document.content,
            category=metadata.category,
            agent_types=sorted(metadata.tags or ()),
            audience=sorted(metadata.audience),
            score=score,
            last_updated=metadata.timestamp,
            usage_count=self._usage.get(document.id, 0),
        )

    async def retrieve(self, query: RetrievalQuery) -> RetrievalResult:
        """Find the knowledge chunks most relevant to a user message.

        Never raises; failures are logged and yield an empty result with
        ``degraded=True``.
        """
        self._stats["queries"] += 1
        if not query.query.strip() or query.max_results <= 0:
            return RetrievalResult.empty(query)

        try:
            embedding = await self.embed(query.query)
            filters = SearchFilters(tags={query.agent_type}) if query.agent_type else None
            min_score = self.min_score if query.min_score is None else query.min_score
            results = await self.engine.search(
                SearchQuery(
                    embedding=embedding,
                    top_k=query.max_results * self.candidate_multiplier,
                    filters=filters,
                    min_score=min_score,
                )
            )
        except Exception:
            self._stats["degraded"] += 1
            logger.error(
                "Knowledge retrieval failed for agent %s", query.agent_type, exc_info=True
            )
            return RetrievalResult.empty(query, degraded=True)

        ranked = sorted(
            ((self._boost(r, query.audience), r) for r in results),
            key=lambda pair: pair[0],
            reverse=True,
        )[: query.max_results]

        chunks = []
        for score, result in ranked:
            self._record_usage(result.document.id)
            chunks.append(self._to_chunk(result, score))

        logger.debug(
            "Retrieved %d of %d candidates for %r", len(chunks), len(results), query.query
        )
        return RetrievalResult(
            chunks=chunks,
            total_results=len(results),
            query=query.query,
            agent_type=query.agent_type,
        )

    def _record_usage(self, item_id: str) -> None:
        self._usage[item_id] = self._usage.get(item_id, 0) + 1
        self._trim_usage()

    def _seed_usage(self, item_id: str, usage_count: int) -> None:
        """Start counting from the persisted count of an indexed item."""
        self._usage[item_id] = usage_count
        self._trim_usage()

    def _trim_usage(self) -> None:
        if len(self._usage) > self._usage_cache_size:
            # keep the most used entries
            kept = sorted(self._usage.items(), key=lambda kv: kv[1], reverse=True)
            self._usage = dict(kept[: self._usage_cache_size])

    def usage_count(self, item_id: str) -> int:
        return self._usage.get(item_id, 0)

    def format_context(self, chunks: list[KnowledgeChunk]) -> str:
        """Render chunks as a prompt section; empty string when none."""
        if not chunks:
            return ""
        parts = ["Relevant knowledge base information:"]
        for i, chunk in enumerate(chunks, 1):
            title = chunk.title or chunk.category
            parts.append(f"\n[{i}] {title} (relevance: {chunk.score:.2f})\n{chunk.content}")
        return "\n".join(parts)

    async def clear(self) -> None:
        """Remove every indexed item.

        Raises:
            UnsupportedOperationError: If the backend has no bulk wipe
        """
        await self.engine.clear()
        self._usage.clear()

    async def stats(self) -> dict[str, Any]:
        """Get retrieval statistics."""
        count = await self.engine.count()
        cache_stats: dict[str, Any] | None = None
        if self._cache is not None and hasattr(self._cache, "stats"):
            cache_stats = self._cache.stats()
        return {
            "backend": self.engine.backend,
            "total_documents": None if isinstance(count, _CountUnsupported) else count,
            "tracked_items": len(self._usage),
            "queries": self._stats["queries"],
            "degraded": self._stats["degraded"],
            "embeddings_computed": self._stats["embeddings"],
            "embedding_cache": cache_stats,
        }
