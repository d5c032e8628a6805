"""Vector store interface for similarity search."""

from abc import ABC, abstractmethod

from kb_vector.core.models import (
    SearchFilters,
    SearchQuery,
    SearchResult,
    VectorDocument,
    _CountUnsupported,
)
from kb_vector.core.scoring import DistanceMetric


class VectorStore(ABC):
    """Abstract interface for vector storage backends.

    Implementations receive already-validated documents and queries; the
    engine facade owns dimension checks and batch itemization.
    """

    name: str = "vector"

    def __init__(self, metric: DistanceMetric = DistanceMetric.COSINE) -> None:
        self.metric = metric

    @abstractmethod
    async def upsert(self, documents: list[VectorDocument]) -> None:
        """Insert or fully replace documents by id."""
        ...

    @abstractmethod
    async def search(self, query: SearchQuery) -> list[SearchResult]:
        """Return at most ``query.top_k`` results, best first."""
        ...

    @abstractmethod
    async def get(self, document_id: str) -> VectorDocument | None:
        """Fetch a document by id, or None if absent."""
        ...

    @abstractmethod
    async def delete(self, ids: list[str]) -> None:
        """Delete documents by id. Unknown ids are ignored."""
        ...

    @abstractmethod
    async def count(
        self, filters: SearchFilters | None = None
    ) -> int | _CountUnsupported:
        """Number of documents matching ``filters``, or COUNT_UNSUPPORTED."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Remove all documents, or raise UnsupportedOperationError."""
        ...

    async def close(self) -> None:
        """Clean up resources."""
        return None
