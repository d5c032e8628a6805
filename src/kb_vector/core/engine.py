"""Vector retrieval engine: one contract over interchangeable backends."""

from __future__ import annotations

import logging
from typing import Any

from kb_vector.core.config import VectorDBConfig
from kb_vector.core.models import (
    BatchError,
    BatchOperationResult,
    SearchFilters,
    SearchQuery,
    SearchResult,
    VectorDocument,
    _CountUnsupported,
)
from kb_vector.core.scoring import DistanceMetric
from kb_vector.core.storage.vector import VectorStore
from kb_vector.core.utils import validate_embedding
from kb_vector.errors import AppError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class VectorRetrievalEngine:
    """Facade over the configured vector store.

    The backend is chosen once, at construction, from ``config.backend``
    (or supplied directly). Every document and query is validated against
    the configured dimensions before it reaches the backend.

    Example:
        # Volatile in-process store
        engine = VectorRetrievalEngine(VectorDBConfig(dimensions=3))

        # Remote ANN index, connection settings from VECTOR_INDEX_* env vars
        engine = VectorRetrievalEngine(VectorDBConfig(backend="remote"))

        await engine.upsert(document)
        results = await engine.search(SearchQuery(embedding=[1.0, 0.0, 0.0], top_k=3))
    """

    def __init__(
        self,
        config: VectorDBConfig | None = None,
        store: VectorStore | None = None,
    ) -> None:
        self.config = config or VectorDBConfig()

        if store is not None:
            self._store = store
        else:
            from kb_vector.core.storage.config import create_vector_store

            self._store = create_vector_store(self.config)

        logger.info(
            "Vector engine initialized with %s backend (%d dimensions, %s)",
            self._store.name,
            self.config.dimensions,
            self.metric.value,
        )

    @property
    def backend(self) -> str:
        return self._store.name

    @property
    def dimensions(self) -> int:
        return self.config.dimensions

    @property
    def metric(self) -> DistanceMetric:
        return self._store.metric

    @property
    def store(self) -> VectorStore:
        return self._store

    def _validate_document(self, document: VectorDocument) -> VectorDocument:
        if not document.id:
            raise ValidationError("Document id must be a non-empty string")
        embedding = validate_embedding(document.embedding, self.dimensions, document.id)
        return VectorDocument(
            id=document.id,
            embedding=embedding,
            content=document.content,
            metadata=document.metadata,
        )

    def _validate_query(self, query: SearchQuery) -> SearchQuery:
        if query.top_k <= 0:
            raise ValidationError(f"top_k must be > 0, got {query.top_k}")
        if (
            query.min_score is not None
            and self.metric is not DistanceMetric.DOT_PRODUCT
            and not 0.0 <= query.min_score <= 1.0
        ):
            raise ValidationError(f"min_score must be in [0, 1], got {query.min_score}")
        embedding = validate_embedding(query.embedding, self.dimensions, "query")
        return SearchQuery(
            embedding=embedding,
            top_k=query.top_k,
            filters=query.filters,
            min_score=query.min_score,
        )

    async def upsert(self, document: VectorDocument) -> None:
        """Insert or fully replace a document.

        Raises:
            ValidationError: If the embedding does not match the configured
                dimensions; the store is left unchanged
        """
        await self._store.upsert([self._validate_document(document)])
        logger.debug("Upserted document %s", document.id)

    async def upsert_batch(self, documents: list[VectorDocument]) -> BatchOperationResult:
        """Upsert many documents, itemizing every failure.

        Invalid documents are rejected individually. The remaining ones go to
        the backend in a single call; if that call fails, each of its ids is
        reported with the backend error.
        """
        errors: list[BatchError] = []
        valid: list[VectorDocument] = []
        for document in documents:
            try:
                valid.append(self._validate_document(document))
            except ValidationError as exc:
                errors.append(BatchError(id=document.id, error=str(exc)))

        processed = 0
        if valid:
            try:
                await self._store.upsert(valid)
                processed = len(valid)
            except AppError as exc:
                logger.error("Batch upsert of %d documents failed: %s", len(valid), exc)
                errors.extend(BatchError(id=doc.id, error=str(exc)) for doc in valid)

        result = BatchOperationResult.from_outcome(processed, errors)
        logger.info(
            "Batch upsert: %d processed, %d failed",
            result.processed_count,
            result.failed_count,
        )
        return result

    async def search(self, query: SearchQuery) -> list[SearchResult]:
        """Return up to ``top_k`` results in descending score order.

        An empty store or a query without matches yields ``[]``.
        """
        return await self._store.search(self._validate_query(query))

    async def get(self, document_id: str) -> VectorDocument:
        """Fetch a document by id.

        Raises:
            NotFoundError: If no document has this id
        """
        document = await self._store.get(document_id)
        if document is None:
            raise NotFoundError("VectorDocument", document_id)
        return document

    async def delete(self, document_id: str) -> None:
        """Delete a document; unknown ids are not an error."""
        await self._store.delete([document_id])

    async def delete_batch(self, ids: list[str]) -> BatchOperationResult:
        """Delete many documents, itemizing every failure."""
        if not ids:
            return BatchOperationResult.from_outcome(0, [])
        try:
            await self._store.delete(list(ids))
        except AppError as exc:
            logger.error("Batch delete of %d documents failed: %s", len(ids), exc)
            return BatchOperationResult.from_outcome(
                0, [BatchError(id=i, error=str(exc)) for i in ids]
            )
        return BatchOperationResult.from_outcome(len(ids), [])

    async def count(
        self, filters: SearchFilters | None = None
    ) -> int | _CountUnsupported:
        """Number of matching documents, or COUNT_UNSUPPORTED."""
        return await self._store.count(filters)

    async def clear(self) -> None:
        """Remove every document.

        Raises:
            UnsupportedOperationError: If the backend has no bulk wipe
        """
        await self._store.clear()

    async def close(self) -> None:
        """Clean up resources."""
        await self._store.close()

    async def __aenter__(self) -> "VectorRetrievalEngine":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
        return None
