"""
Knowledge Base Vector Retrieval

Semantic search over the knowledge base that grounds the conversational
agents' answers.

Features:
- One engine contract over an in-memory store and a remote ChromaDB index
- Cosine, dot-product and euclidean scoring with a uniform score/distance pair
- Metadata filtering by category, audience, source, tags and time range
- Retries with capped exponential backoff for transient remote failures
- Embedding cache (in-memory LRU or Redis) and agent-facing retrieval
"""

from kb_vector.core.cache import EmbeddingCache
from kb_vector.core.config import VectorDBConfig
from kb_vector.core.engine import VectorRetrievalEngine
from kb_vector.core.models import (
    COUNT_UNSUPPORTED,
    BatchOperationResult,
    DocumentMetadata,
    SearchFilters,
    SearchQuery,
    SearchResult,
    VectorDocument,
)
from kb_vector.core.scoring import DistanceMetric
from kb_vector.knowledge import (
    KnowledgeChunk,
    KnowledgeItem,
    KnowledgeRetrievalOrchestrator,
    RetrievalQuery,
    RetrievalResult,
)

__version__ = "0.1.0"
__all__ = [
    "VectorRetrievalEngine",
    "VectorDBConfig",
    "DistanceMetric",
    "DocumentMetadata",
    "VectorDocument",
    "SearchFilters",
    "SearchQuery",
    "SearchResult",
    "BatchOperationResult",
    "COUNT_UNSUPPORTED",
    "EmbeddingCache",
    "KnowledgeRetrievalOrchestrator",
    "KnowledgeItem",
    "KnowledgeChunk",
    "RetrievalQuery",
    "RetrievalResult",
]
