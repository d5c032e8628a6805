"""Factory functions for creating vector stores and caches from config."""

from typing import TYPE_CHECKING, Union

from kb_vector.errors import ValidationError
from kb_vector.retry import RetryExecutor

if TYPE_CHECKING:
    from kb_vector.core.cache import EmbeddingCache
    from kb_vector.core.config import EmbeddingCacheConfig, VectorDBConfig
    from kb_vector.core.storage.redis import RedisEmbeddingCache
    from kb_vector.core.storage.vector import VectorStore

    CacheType = Union[EmbeddingCache, RedisEmbeddingCache]


def create_retry_executor(config: "VectorDBConfig") -> RetryExecutor:
    """Build the retry policy described by ``config``."""
    return RetryExecutor(
        max_retries=config.max_retries,
        base_delay=config.retry_delay,
        max_delay=config.max_retry_delay,
        jitter=config.retry_jitter,
    )


def create_vector_store(config: "VectorDBConfig") -> "VectorStore":
    """Create vector store instance from config.

    Args:
        config: Engine configuration

    Returns:
        Vector store instance (InMemoryVectorStore or ChromaVectorStore)

    Raises:
        ValidationError: If the remote backend is selected but its
            connection settings are incomplete
    """
    if config.backend == "remote":
        from kb_vector.core.storage.chroma import ChromaVectorStore

        remote = config.remote
        missing = remote.missing_fields() if remote is not None else ["remote"]
        if missing:
            raise ValidationError(
                f"Remote index configuration incomplete, missing: {', '.join(missing)}. "
                "Set VECTOR_INDEX_PROJECT_ID, VECTOR_INDEX_INDEX_ID and "
                "VECTOR_INDEX_INDEX_ENDPOINT_ID environment variables.",
                {"missing": missing},
            )

        return ChromaVectorStore(
            config=remote,
            metric=config.distance_metric,
            retry=create_retry_executor(config),
            request_timeout=config.request_timeout,
        )
    else:
        from kb_vector.core.storage.memory import InMemoryVectorStore

        return InMemoryVectorStore(
            metric=config.distance_metric,
            max_documents=config.max_documents,
            eviction_policy=config.eviction_policy,
        )


def create_embedding_cache(config: "EmbeddingCacheConfig") -> "CacheType":
    """Create embedding cache instance from config.

    Raises:
        ValidationError: If redis backend is selected but redis config is missing
    """
    if config.backend == "redis":
        from kb_vector.core.storage.redis import RedisEmbeddingCache

        redis_config = config.redis
        if redis_config is None:
            raise ValidationError("Redis config required for redis backend")

        if redis_config.is_url_based():
            return RedisEmbeddingCache(
                url=redis_config.url,
                prefix=config.prefix,
                ttl_seconds=config.ttl_seconds,
            )
        return RedisEmbeddingCache(
            host=redis_config.host or "localhost",
            port=redis_config.port,
            db=redis_config.db,
            password=redis_config.password,
            prefix=config.prefix,
            ttl_seconds=config.ttl_seconds,
        )
    else:
        from kb_vector.core.cache import EmbeddingCache

        return EmbeddingCache(max_size=config.max_size, ttl_seconds=config.ttl_seconds)
