"""Configuration for the retrieval engine with pydantic-based settings."""

from __future__ import annotations

from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kb_vector.core.scoring import DistanceMetric


class RemoteIndexConfig(BaseSettings):
    """Connection settings for the remote ANN index (a ChromaDB server).

    Mapping onto the server:
        project_id -> tenant
        location -> database
        index_id -> collection name
        index_endpoint_id -> server URL, e.g. 'https://vectors.internal:8000'
    """

    model_config = SettingsConfigDict(
        env_prefix="VECTOR_INDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_id: Optional[str] = Field(default=None, description="Tenant of the index")
    location: str = Field(default="default_database", description="Database of the index")
    index_id: Optional[str] = Field(default=None, description="Collection name")
    index_endpoint_id: Optional[str] = Field(
        default=None, description="Server URL of the index endpoint"
    )
    api_key: Optional[str] = Field(
        default=None, description="Token sent as 'X-Chroma-Token' when set"
    )

    @field_validator("index_endpoint_id")
    @classmethod
    def validate_endpoint(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the endpoint is an http(s) URL with a host."""
        if v is None:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"index_endpoint_id must be an http(s) URL, got {v!r}")
        return v

    def missing_fields(self) -> list[str]:
        """Names of required fields that are not set."""
        required = ("project_id", "index_id", "index_endpoint_id")
        return [name for name in required if not getattr(self, name)]

    def is_configured(self) -> bool:
        return not self.missing_fields()

    @property
    def host(self) -> str:
        return urlparse(self.index_endpoint_id or "").hostname or "localhost"

    @property
    def port(self) -> int:
        parsed = urlparse(self.index_endpoint_id or "")
        if parsed.port:
            return parsed.port
        return 443 if parsed.scheme == "https" else 8000

    @property
    def ssl(self) -> bool:
        return urlparse(self.index_endpoint_id or "").scheme == "https"


class VectorDBConfig(BaseModel):
    """Configuration for the vector retrieval engine.

    Attributes:
        backend: 'in-memory' (volatile, process-local) or 'remote' (ANN index)
        dimensions: Embedding length accepted by this engine instance
        distance_metric: Similarity metric for scoring and the remote index
        max_retries: Additional attempts for retryable remote failures
        retry_delay: Initial backoff delay in seconds
        max_retry_delay: Cap for a single backoff delay in seconds
        retry_jitter: Upper bound of random jitter added to each delay
        request_timeout: Per-attempt deadline for remote calls (None disables)
        max_documents: Size cap for the in-memory backend (None = unbounded)
        eviction_policy: Which document the capped in-memory backend drops
        remote: Remote index settings (required if backend='remote')
    """

    backend: Literal["in-memory", "remote"] = Field(
        default="in-memory", description="Storage backend: 'in-memory' or 'remote'"
    )
    dimensions: int = Field(default=768, gt=0, description="Embedding dimensions")
    distance_metric: DistanceMetric = Field(
        default=DistanceMetric.COSINE, description="Similarity metric"
    )
    max_retries: int = Field(default=3, ge=0, description="Max retry attempts")
    retry_delay: float = Field(
        default=1.0, ge=0.0, description="Initial retry delay in seconds"
    )
    max_retry_delay: float = Field(
        default=30.0, ge=0.0, description="Maximum single retry delay in seconds"
    )
    retry_jitter: float = Field(
        default=1.0, ge=0.0, description="Maximum random jitter per retry in seconds"
    )
    request_timeout: Optional[float] = Field(
        default=30.0, gt=0.0, description="Per-attempt deadline for remote calls"
    )
    max_documents: Optional[int] = Field(
        default=None, gt=0, description="Size cap for the in-memory backend"
    )
    eviction_policy: Literal["lru", "fifo"] = Field(
        default="lru", description="In-memory eviction strategy when capped"
    )
    remote: Optional[RemoteIndexConfig] = Field(
        default=None, description="Remote index configuration"
    )

    @model_validator(mode="after")
    def validate_delays(self) -> "VectorDBConfig":
        """Validate that retry_delay <= max_retry_delay."""
        if self.retry_delay > self.max_retry_delay:
            raise ValueError(
                f"retry_delay ({self.retry_delay}) must be <= "
                f"max_retry_delay ({self.max_retry_delay})"
            )
        # Remote settings fall back to the environment
        if self.backend == "remote" and self.remote is None:
            self.remote = RemoteIndexConfig()
        return self


class RedisConfig(BaseSettings):
    """Configuration for Redis connectivity."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: Optional[str] = Field(default=None, description="Redis connection URL")
    host: Optional[str] = Field(default=None, description="Redis server host")
    port: int = Field(default=6379, description="Redis server port")
    db: int = Field(default=0, ge=0, description="Redis database number")
    password: Optional[str] = Field(default=None, description="Redis password")

    def is_configured(self) -> bool:
        """Check if Redis is configured."""
        return self.url is not None or self.host is not None

    def is_url_based(self) -> bool:
        """Check if Redis is configured using URL."""
        return self.url is not None


class EmbeddingCacheConfig(BaseModel):
    """Configuration for the embedding cache.

    Attributes:
        backend: 'memory' (per-process LRU) or 'redis' (shared)
        max_size: Maximum entries held by the memory backend
        ttl_seconds: Lifetime of a cached embedding
        prefix: Key prefix for the redis backend
        redis: Redis connection (required if backend='redis')
    """

    backend: Literal["memory", "redis"] = Field(
        default="memory", description="Cache backend: 'memory' or 'redis'"
    )
    max_size: int = Field(default=1000, gt=0, description="Maximum cached embeddings")
    ttl_seconds: float = Field(
        default=3600.0, gt=0.0, description="Time-to-live of a cached embedding"
    )
    prefix: str = Field(default="kb_vector:embedding:", description="Redis key prefix")
    redis: Optional[RedisConfig] = Field(
        default=None, description="Redis configuration (required if backend='redis')"
    )

    @model_validator(mode="after")
    def validate_redis_required(self) -> "EmbeddingCacheConfig":
        """Ensure Redis config is provided when backend is redis."""
        if self.backend == "redis" and self.redis is None:
            self.redis = RedisConfig()
            if not self.redis.is_configured():
                raise ValueError(
                    "Redis configuration required when backend='redis'. "
                    "Set REDIS_URL or REDIS_HOST environment variable."
                )
        return self


def get_remote_index_config() -> RemoteIndexConfig:
    """Get remote index configuration from environment variables."""
    return RemoteIndexConfig()
