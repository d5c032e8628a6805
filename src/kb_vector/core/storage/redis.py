"""Redis-backed embedding cache.

Shared across processes; each embedding is a JSON string under
``{prefix}{key}`` with a Redis-side expiry. Size is bounded by the TTL and
the server's ``maxmemory`` policy.
"""

import json
import logging

import redis

from kb_vector.core.config import RedisConfig
from kb_vector.errors import DatabaseError

logger = logging.getLogger(__name__)


class RedisEmbeddingCache:
    """Embedding cache stored in Redis with per-key TTL."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: str | None = None,
        url: str | None = None,
        prefix: str = "kb_vector:embedding:",
        ttl_seconds: float = 3600.0,
        client: redis.Redis | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._db = db
        self._password = password
        self._url = url
        self._prefix = prefix
        self._ttl = ttl_seconds
        self._client = client

    @classmethod
    def from_env(cls, config: RedisConfig | None = None) -> "RedisEmbeddingCache":
        """Create cache from environment configuration."""
        if config is None:
            config = RedisConfig()
        if not config.is_configured():
            raise ValueError(
                "Redis not configured. Set REDIS_URL or REDIS_HOST environment variable."
            )
        if config.is_url_based():
            return cls(url=config.url)
        return cls(host=config.host or "localhost", port=config.port, db=config.db)

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            if self._url:
                self._client = redis.from_url(self._url, decode_responses=True)
            else:
                self._client = redis.Redis(
                    host=self._host,
                    port=self._port,
                    db=self._db,
                    password=self._password,
                    decode_responses=True,
                )
        return self._client

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> list[float] | None:
        try:
            data = self._get_client().get(self._key(key))
        except redis.RedisError as exc:
            raise DatabaseError("cache_get", str(exc)) from exc
        if data is None:
            return None
        try:
            return [float(x) for x in json.loads(data)]
        except (json.JSONDecodeError, TypeError, ValueError):
            logger.warning("Dropping corrupt cached embedding %s", key)
            self.delete(key)
            return None

    def set(self, key: str, value: list[float], ttl_seconds: float | None = None) -> None:
        ttl_ms = int((ttl_seconds or self._ttl) * 1000)
        try:
            self._get_client().set(self._key(key), json.dumps(list(value)), px=ttl_ms)
        except redis.RedisError as exc:
            raise DatabaseError("cache_set", str(exc)) from exc

    def delete(self, key: str) -> bool:
        try:
            return self._get_client().delete(self._key(key)) > 0
        except redis.RedisError as exc:
            raise DatabaseError("cache_delete", str(exc)) from exc

    def clear(self) -> None:
        client = self._get_client()
        try:
            for key in client.scan_iter(match=f"{self._prefix}*"):
                client.delete(key)
        except redis.RedisError as exc:
            raise DatabaseError("cache_clear", str(exc)) from exc

    def size(self) -> int:
        client = self._get_client()
        try:
            return sum(1 for _ in client.scan_iter(match=f"{self._prefix}*"))
        except redis.RedisError as exc:
            raise DatabaseError("cache_size", str(exc)) from exc

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
