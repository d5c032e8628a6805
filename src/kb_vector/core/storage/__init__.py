"""Vector store backends.

- VectorStore: Abstract interface for vector similarity search
- InMemoryVectorStore: Exact search in process memory for development/testing
- ChromaVectorStore: Remote ChromaDB index for production
- RedisEmbeddingCache: Redis-based embedding cache shared across processes
"""

from kb_vector.core.storage.vector import VectorStore
from kb_vector.core.storage.memory import InMemoryVectorStore
from kb_vector.core.storage.chroma import ChromaVectorStore
from kb_vector.core.storage.redis import RedisEmbeddingCache

__all__ = [
    "VectorStore",
    "InMemoryVectorStore",
    "ChromaVectorStore",
    "RedisEmbeddingCache",
]
