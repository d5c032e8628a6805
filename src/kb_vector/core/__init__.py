"""Core components for vector storage and similarity search."""

from kb_vector.core.cache import EmbeddingCache
from kb_vector.core.config import (
    EmbeddingCacheConfig,
    RedisConfig,
    RemoteIndexConfig,
    VectorDBConfig,
)
from kb_vector.core.engine import VectorRetrievalEngine
from kb_vector.core.models import (
    COUNT_UNSUPPORTED,
    BatchError,
    BatchOperationResult,
    DocumentMetadata,
    SearchFilters,
    SearchQuery,
    SearchResult,
    VectorDocument,
)
from kb_vector.core.scoring import DistanceMetric

__all__ = [
    "VectorRetrievalEngine",
    "EmbeddingCache",
    "VectorDBConfig",
    "RemoteIndexConfig",
    "RedisConfig",
    "EmbeddingCacheConfig",
    "DistanceMetric",
    "DocumentMetadata",
    "VectorDocument",
    "SearchFilters",
    "SearchQuery",
    "SearchResult",
    "BatchError",
    "BatchOperationResult",
    "COUNT_UNSUPPORTED",
]
