"""Remote ANN store backed by a ChromaDB server.

Each document becomes one datapoint:

- id and vector as-is
- restrict fields for server-side filtering: ``category``, ``source``,
  ``timestamp`` (epoch seconds), ``audience:<value>`` and ``tag:<value>``
  flags set to True
- ``_payload``: content plus full metadata, see ``kb_vector.utils.serialization``

Chroma's native distances are mapped back onto the metric-native distance
declared in ``kb_vector.core.scoring`` before scoring.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from typing import Any, TypeVar

import chromadb
import httpx
from chromadb import errors as chroma_errors
from chromadb.config import Settings

from kb_vector import errors
from kb_vector.core.config import RemoteIndexConfig, get_remote_index_config
from kb_vector.core.models import (
    ALL_AUDIENCE,
    COUNT_UNSUPPORTED,
    SearchFilters,
    SearchQuery,
    SearchResult,
    VectorDocument,
    _CountUnsupported,
)
from kb_vector.core.scoring import DistanceMetric, distance_to_score
from kb_vector.core.storage.vector import VectorStore
from kb_vector.retry import RetryExecutor
from kb_vector.utils.serialization import (
    PayloadDecodeError,
    decode_payload,
    encode_payload,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PAYLOAD_KEY = "_payload"
AUDIENCE_PREFIX = "audience:"
TAG_PREFIX = "tag:"

HNSW_SPACES = {
    DistanceMetric.COSINE: "cosine",
    DistanceMetric.DOT_PRODUCT: "ip",
    DistanceMetric.EUCLIDEAN: "l2",
}

# Typed client errors for requests the server will never accept
INVALID_REQUEST_ERRORS = (
    chroma_errors.InvalidDimensionException,
    chroma_errors.InvalidArgumentError,
    chroma_errors.DuplicateIDError,
)


def native_distance(metric: DistanceMetric, raw: float) -> float:
    """Map a Chroma distance onto the metric-native distance.

    cosine: Chroma returns 1 - cos, already native.
    ip: Chroma returns 1 - dot; native is -dot.
    l2: Chroma returns the squared distance.
    """
    if metric is DistanceMetric.DOT_PRODUCT:
        return raw - 1.0
    if metric is DistanceMetric.EUCLIDEAN:
        return math.sqrt(max(raw, 0.0))
    return raw


def encode_restricts(document: VectorDocument) -> dict[str, Any]:
    """Build the Chroma metadata record for a document."""
    metadata = document.metadata
    record: dict[str, Any] = {
        "category": metadata.category,
        "source": metadata.source,
        "version": metadata.version,
        "timestamp": metadata.timestamp.timestamp(),
        PAYLOAD_KEY: encode_payload(document.content, metadata),
    }
    for audience in metadata.audience:
        record[f"{AUDIENCE_PREFIX}{audience}"] = True
    for tag in metadata.tags or ():
        record[f"{TAG_PREFIX}{tag}"] = True
    return record


def _any_of(keys: list[str]) -> dict[str, Any]:
    clauses = [{key: {"$eq": True}} for key in keys]
    if len(clauses) == 1:
        return clauses[0]
    return {"$or": clauses}


def build_where(filters: SearchFilters | None) -> dict[str, Any] | None:
    """Translate search filters into a Chroma ``where`` clause."""
    if filters is None or filters.is_empty():
        return None

    clauses: list[dict[str, Any]] = []
    if filters.category:
        clauses.append({"category": {"$eq": filters.category}})
    if filters.audience:
        keys = [f"{AUDIENCE_PREFIX}{a}" for a in sorted(filters.audience | {ALL_AUDIENCE})]
        clauses.append(_any_of(keys))
    if filters.source:
        clauses.append({"source": {"$eq": filters.source}})
    if filters.tags:
        clauses.append(_any_of([f"{TAG_PREFIX}{t}" for t in sorted(filters.tags)]))
    if filters.min_timestamp is not None:
        clauses.append({"timestamp": {"$gte": filters.min_timestamp.timestamp()}})
    if filters.max_timestamp is not None:
        clauses.append({"timestamp": {"$lte": filters.max_timestamp.timestamp()}})

    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _first(results: Any, key: str) -> list[Any]:
    """First query's column from a Chroma QueryResult, or []."""
    column = results.get(key)
    if column is None or len(column) == 0:
        return []
    return list(column[0]) if column[0] is not None else []


class ChromaVectorStore(VectorStore):
    """ChromaDB-backed ANN store for production knowledge bases.

    All client calls run in a worker thread under a per-attempt deadline and
    go through a RetryExecutor. ``clear`` is not supported; filtered
    ``count`` returns COUNT_UNSUPPORTED.
    """

    name = "remote"

    def __init__(
        self,
        config: RemoteIndexConfig,
        metric: DistanceMetric = DistanceMetric.COSINE,
        retry: RetryExecutor | None = None,
        request_timeout: float | None = 30.0,
        collection: Any | None = None,
    ) -> None:
        super().__init__(metric)
        self._config = config
        self._retry = retry or RetryExecutor()
        self._timeout = request_timeout
        self._client: Any | None = None
        self._collection = collection

    @classmethod
    def from_env(cls, **kwargs: Any) -> "ChromaVectorStore":
        """Create from environment configuration."""
        return cls(get_remote_index_config(), **kwargs)

    def _init_client(self) -> None:
        if self._collection is not None:
            return

        headers = {}
        if self._config.api_key:
            headers["X-Chroma-Token"] = self._config.api_key

        try:
            self._client = chromadb.HttpClient(
                host=self._config.host,
                port=self._config.port,
                ssl=self._config.ssl,
                headers=headers,
                settings=Settings(anonymized_telemetry=False),
                tenant=self._config.project_id or chromadb.DEFAULT_TENANT,
                database=self._config.location,
            )
            self._collection = self._client.get_or_create_collection(
                name=self._config.index_id,
                metadata={"hnsw:space": HNSW_SPACES[self.metric]},
            )
        except Exception as exc:
            # HttpClient reports an unreachable server as a bare ValueError
            self._client = None
            raise errors.ExternalAPIError(
                "chroma",
                f"Could not connect to remote index at {self._config.index_endpoint_id}: {exc}",
            ) from exc
        logger.info(
            "Connected to remote index %s at %s",
            self._config.index_id,
            self._config.index_endpoint_id,
        )

    def get_collection(self) -> Any:
        self._init_client()
        return self._collection

    async def _call(self, operation: str, fn: Callable[[Any], T]) -> T:
        """Run ``fn(collection)`` off the event loop with deadline and retries."""

        async def attempt() -> T:
            try:
                call = asyncio.to_thread(lambda: fn(self.get_collection()))
                if self._timeout is None:
                    return await call
                return await asyncio.wait_for(call, self._timeout)
            except errors.AppError:
                raise
            except asyncio.TimeoutError as exc:
                raise errors.TimeoutError(operation, self._timeout or 0.0) from exc
            except httpx.HTTPStatusError as exc:
                raise self._from_http_error(operation, exc) from exc
            except (httpx.TransportError, ConnectionError) as exc:
                raise errors.ExternalAPIError("chroma", f"{operation} failed: {exc}") from exc
            except INVALID_REQUEST_ERRORS as exc:
                raise errors.ValidationError(
                    f"{operation} rejected by remote index: {exc}"
                ) from exc
            except chroma_errors.RateLimitError as exc:
                raise errors.RateLimitError(f"{operation} throttled by remote index") from exc
            except Exception as exc:
                raise errors.ExternalAPIError("chroma", f"{operation} failed: {exc}") from exc

        return await self._retry.run(attempt)

    @staticmethod
    def _from_http_error(operation: str, exc: httpx.HTTPStatusError) -> errors.AppError:
        status = exc.response.status_code
        if status == 429:
            retry_after = exc.response.headers.get("Retry-After")
            try:
                delay = float(retry_after) if retry_after else None
            except ValueError:
                delay = None
            return errors.RateLimitError(
                f"{operation} throttled by remote index", retry_after=delay
            )
        message = f"{operation} failed with HTTP {status}"
        if 400 <= status < 500 and status not in (408, 409):
            return errors.ValidationError(message, {"api_status_code": status})
        return errors.ExternalAPIError("chroma", message, api_status_code=status)

    async def upsert(self, documents: list[VectorDocument]) -> None:
        if not documents:
            return
        ids = [doc.id for doc in documents]
        embeddings = [doc.embedding for doc in documents]
        contents = [doc.content for doc in documents]
        metadatas = [encode_restricts(doc) for doc in documents]

        await self._call(
            "upsert",
            lambda c: c.upsert(
                ids=ids, embeddings=embeddings, documents=contents, metadatas=metadatas
            ),
        )
        logger.info("Upserted %d documents to remote index", len(documents))

    async def search(self, query: SearchQuery) -> list[SearchResult]:
        where = build_where(query.filters)
        raw = await self._call(
            "search",
            lambda c: c.query(
                query_embeddings=[query.embedding],
                n_results=query.top_k,
                where=where,
                include=["embeddings", "distances", "metadatas", "documents"],
            ),
        )

        ids = _first(raw, "ids")
        distances = _first(raw, "distances")
        metadatas = _first(raw, "metadatas")
        embeddings = _first(raw, "embeddings")

        results: list[SearchResult] = []
        for idx, document_id in enumerate(ids):
            try:
                document = self._parse_document(
                    document_id,
                    embeddings[idx] if idx < len(embeddings) else None,
                    metadatas[idx] if idx < len(metadatas) else None,
                )
                distance = native_distance(self.metric, float(distances[idx]))
            except (PayloadDecodeError, IndexError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable search result %s: %s", document_id, exc)
                continue

            score = distance_to_score(self.metric, distance)
            if query.min_score is not None and score < query.min_score:
                continue
            results.append(SearchResult(document=document, score=score, distance=distance))

        results.sort(key=lambda r: (-r.score, r.document.id))
        logger.debug("Remote index returned %d results", len(results))
        return results[: query.top_k]

    @staticmethod
    def _parse_document(
        document_id: str, embedding: Any, metadata: dict[str, Any] | None
    ) -> VectorDocument:
        if metadata is None:
            raise PayloadDecodeError("Result has no metadata")
        content, parsed = decode_payload(metadata.get(PAYLOAD_KEY))
        return VectorDocument(
            id=document_id,
            embedding=[float(x) for x in embedding] if embedding is not None else [],
            content=content,
            metadata=parsed,
        )

    async def get(self, document_id: str) -> VectorDocument | None:
        raw = await self._call(
            "get",
            lambda c: c.get(ids=[document_id], include=["embeddings", "metadatas"]),
        )
        ids = list(raw.get("ids") or [])
        if not ids:
            return None
        metadatas = raw.get("metadatas")
        embeddings = raw.get("embeddings")
        return self._parse_document(
            ids[0],
            embeddings[0] if embeddings is not None and len(embeddings) else None,
            metadatas[0] if metadatas else None,
        )

    async def delete(self, ids: list[str]) -> None:
        if not ids:
            return
        await self._call("delete", lambda c: c.delete(ids=list(ids)))
        logger.info("Deleted %d documents from remote index", len(ids))

    async def count(
        self, filters: SearchFilters | None = None
    ) -> int | _CountUnsupported:
        if filters is not None and not filters.is_empty():
            logger.warning("Filtered count is not supported by the remote index")
            return COUNT_UNSUPPORTED
        return await self._call("count", lambda c: c.count())

    async def clear(self) -> None:
        raise errors.UnsupportedOperationError("clear", self.name)

    async def close(self) -> None:
        self._client = None
        self._collection = None
