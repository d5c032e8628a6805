"""Data models for vector documents, queries and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Final

ALL_AUDIENCE: Final = "all"


class _CountUnsupported:
    """Sentinel type returned by ``count`` when a backend has no exact count."""

    _instance: "_CountUnsupported | None" = None

    def __new__(cls) -> "_CountUnsupported":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "COUNT_UNSUPPORTED"

    def __bool__(self) -> bool:
        return False


COUNT_UNSUPPORTED: Final = _CountUnsupported()


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class DocumentMetadata:
    """Metadata attached to a knowledge-base vector.

    Attributes:
        category: Knowledge base category (e.g. 'donation_process')
        audience: Target audiences (e.g. {'donors', 'guardians'}); 'all' matches any
        source: Origin of the information (e.g. 'admin', 'documentation')
        timestamp: When the document was added or updated
        version: Version string for tracking updates
        tags: Optional tags for additional filtering
        extra: Additional JSON-serializable fields (title, usage info, ...)
    """

    category: str
    audience: set[str] = field(default_factory=set)
    source: str = "admin"
    timestamp: datetime = field(default_factory=datetime.now)
    version: str = "1.0"
    tags: set[str] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.audience = set(self.audience)
        if self.tags is not None:
            self.tags = set(self.tags)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "audience": sorted(self.audience),
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
            "version": self.version,
            "tags": sorted(self.tags) if self.tags is not None else None,
            "extra": self.extra,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentMetadata":
        tags = data.get("tags")
        return cls(
            category=data["category"],
            audience=set(data.get("audience") or ()),
            source=data.get("source", "admin"),
            timestamp=_parse_datetime(data.get("timestamp")) or datetime.now(),
            version=data.get("version", "1.0"),
            tags=set(tags) if tags is not None else None,
            extra=dict(data.get("extra") or {}),
        )


@dataclass
class VectorDocument:
    """An embedded knowledge-base entry, keyed by a caller-assigned id."""

    id: str
    embedding: list[float]
    content: str
    metadata: DocumentMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "embedding": list(self.embedding),
            "content": self.content,
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VectorDocument":
        return cls(
            id=data["id"],
            embedding=list(data["embedding"]),
            content=data.get("content", ""),
            metadata=DocumentMetadata.from_dict(data["metadata"]),
        )


@dataclass
class SearchFilters:
    """Metadata predicate for search and count.

    All specified fields must match. ``audience`` and ``tags`` match on any
    overlap. Timestamp bounds are inclusive. Empty or None fields are ignored.
    """

    category: str | None = None
    audience: set[str] | None = None
    source: str | None = None
    tags: set[str] | None = None
    min_timestamp: datetime | None = None
    max_timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if self.audience is not None:
            self.audience = set(self.audience)
        if self.tags is not None:
            self.tags = set(self.tags)

    def is_empty(self) -> bool:
        return not (
            self.category
            or self.audience
            or self.source
            or self.tags
            or self.min_timestamp is not None
            or self.max_timestamp is not None
        )


@dataclass
class SearchQuery:
    """Similarity query against the engine."""

    embedding: list[float]
    top_k: int = 5
    filters: SearchFilters | None = None
    min_score: float | None = None


@dataclass
class SearchResult:
    """A scored match. ``score``: higher is closer; ``distance``: lower is closer."""

    document: VectorDocument
    score: float
    distance: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "document": self.document.to_dict(),
            "score": self.score,
            "distance": self.distance,
        }


@dataclass
class BatchError:
    """A single failed id in a batch operation."""

    id: str
    error: str


@dataclass
class BatchOperationResult:
    """Outcome of a batch call; every input id is processed or itemized."""

    success: bool
    processed_count: int
    failed_count: int
    errors: list[BatchError] = field(default_factory=list)

    @classmethod
    def from_outcome(
        cls, processed_count: int, errors: list[BatchError]
    ) -> "BatchOperationResult":
        return cls(
            success=not errors,
            processed_count=processed_count,
            failed_count=len(errors),
            errors=errors,
        )

    @property
    def failed_ids(self) -> list[str]:
        return [e.id for e in self.errors]

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "errors": [{"id": e.id, "error": e.error} for e in self.errors],
        }
