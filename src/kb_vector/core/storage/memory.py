"""In-memory vector store implementation.

Volatile, process-local storage for development, tests and small knowledge
bases. Search is a full linear scan.
"""

import itertools
import logging
import threading
from collections.abc import Iterable
from typing import Literal

from kb_vector.core.filters import matches_filters
from kb_vector.core.models import (
    SearchFilters,
    SearchQuery,
    SearchResult,
    VectorDocument,
)
from kb_vector.core.scoring import DistanceMetric, score_vectors
from kb_vector.core.storage.vector import VectorStore

logger = logging.getLogger(__name__)


class InMemoryVectorStore(VectorStore):
    """In-memory vector store using Python dict.

    Thread-safe: every read takes a snapshot under the lock, so searches see
    a consistent view while a write is in progress. Without ``max_documents``
    the store grows without bound; with it, the least recently used (or the
    oldest, for 'fifo') document is evicted on overflow. A single batch larger
    than the cap evicts part of itself; those ids are logged at WARNING.
    """

    name = "in-memory"

    def __init__(
        self,
        metric: DistanceMetric = DistanceMetric.COSINE,
        max_documents: int | None = None,
        eviction_policy: Literal["lru", "fifo"] = "lru",
    ) -> None:
        super().__init__(metric)
        self._lock = threading.RLock()
        self._documents: dict[str, VectorDocument] = {}
        self._last_used: dict[str, int] = {}
        self._clock = itertools.count()
        self._max_documents = max_documents
        self._eviction_policy = eviction_policy

    def _snapshot(self) -> list[VectorDocument]:
        with self._lock:
            return list(self._documents.values())

    async def upsert(self, documents: list[VectorDocument]) -> None:
        with self._lock:
            for doc in documents:
                self._documents[doc.id] = doc
                self._last_used[doc.id] = next(self._clock)
            self._maybe_evict({doc.id for doc in documents})
        logger.debug(
            "Upserted %d documents (store size: %d)", len(documents), len(self._documents)
        )

    async def search(self, query: SearchQuery) -> list[SearchResult]:
        candidates = self._snapshot()
        if not candidates:
            return []

        results: list[SearchResult] = []
        for doc in candidates:
            if not matches_filters(doc.metadata, query.filters):
                continue
            score, distance = score_vectors(self.metric, query.embedding, doc.embedding)
            if query.min_score is not None and score < query.min_score:
                continue
            results.append(SearchResult(document=doc, score=score, distance=distance))

        # Stable sort: ties keep insertion order
        results.sort(key=lambda r: r.score, reverse=True)
        results = results[: query.top_k]
        self._touch(r.document.id for r in results)
        logger.debug(
            "Scanned %d documents, returning %d results", len(candidates), len(results)
        )
        return results

    async def get(self, document_id: str) -> VectorDocument | None:
        with self._lock:
            doc = self._documents.get(document_id)
        if doc is not None:
            self._touch([document_id])
        return doc

    async def delete(self, ids: list[str]) -> None:
        with self._lock:
            for document_id in ids:
                self._documents.pop(document_id, None)
                self._last_used.pop(document_id, None)

    async def count(self, filters: SearchFilters | None = None) -> int:
        if filters is None or filters.is_empty():
            with self._lock:
                return len(self._documents)
        return sum(1 for doc in self._snapshot() if matches_filters(doc.metadata, filters))

    async def clear(self) -> None:
        with self._lock:
            self._documents.clear()
            self._last_used.clear()
        logger.info("In-memory store cleared")

    def _touch(self, ids: Iterable[str]) -> None:
        if self._eviction_policy != "lru":
            return
        with self._lock:
            for document_id in ids:
                if document_id in self._last_used:
                    self._last_used[document_id] = next(self._clock)

    def _maybe_evict(self, batch_ids: set[str]) -> None:
        """Evict documents if the store exceeds its cap. Caller holds the lock."""
        if self._max_documents is None:
            return
        overflow = len(self._documents) - self._max_documents
        if overflow <= 0:
            return

        if self._eviction_policy == "lru":
            ordered = sorted(self._last_used.items(), key=lambda x: x[1])
            evict_ids = [k for k, _ in ordered[:overflow]]
        else:
            evict_ids = list(itertools.islice(self._documents, overflow))

        for document_id in evict_ids:
            self._documents.pop(document_id, None)
            self._last_used.pop(document_id, None)
        logger.info("Evicted %d documents (%s policy)", len(evict_ids), self._eviction_policy)
        own = [document_id for document_id in evict_ids if document_id in batch_ids]
        if own:
            logger.warning(
                "Batch exceeds max_documents=%d; evicted %d of its own documents: %s",
                self._max_documents,
                len(own),
                own,
            )
