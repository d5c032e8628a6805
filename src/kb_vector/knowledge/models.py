"""Records exchanged with the conversational layer and the knowledge store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class KnowledgeItem:
    """A knowledge-base record as supplied by the document database.

    Attributes:
        id: Record id, reused as the vector document id
        title: Short human-readable title
        content: Text that gets embedded and returned as context
        category: Knowledge base category
        agent_types: Agents allowed to use the entry (e.g. 'CaseAgent')
        audience: Target audiences, or ['all']
        last_updated: Last modification time
        usage_count: Times the entry was served
        embedding: Precomputed embedding, if the store caches one
        metadata: Extra JSON-serializable fields (guardian ids, ...)
    """

    id: str
    title: str
    content: str
    category: str
    agent_types: list[str] = field(default_factory=list)
    audience: list[str] = field(default_factory=list)
    last_updated: datetime = field(default_factory=datetime.now)
    usage_count: int = 0
    embedding: list[float] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KnowledgeItem":
        """Build from a document-store record (camelCase or snake_case keys)."""
        last_updated = data.get("last_updated", data.get("lastUpdated"))
        if isinstance(last_updated, str):
            last_updated = datetime.fromisoformat(last_updated.replace("Z", "+00:00"))
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            content=data["content"],
            category=data.get("category", "general"),
            agent_types=list(data.get("agent_types", data.get("agentTypes")) or []),
            audience=list(data.get("audience") or []),
            last_updated=last_updated or datetime.now(),
            usage_count=int(data.get("usage_count", data.get("usageCount")) or 0),
            embedding=data.get("embedding"),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class RetrievalQuery:
    """A free-text knowledge lookup.

    Attributes:
        query: User text to match
        agent_type: Restrict to entries tagged for this agent
        audience: Boost entries aimed at this audience
        max_results: Number of chunks to return
        min_score: Minimum similarity; None uses the orchestrator default
    """

    query: str
    agent_type: str | None = None
    audience: str | None = None
    max_results: int = 3
    min_score: float | None = None


@dataclass
class KnowledgeChunk:
    """A ranked snippet handed to the prompt builder."""

    id: str
    title: str
    content: str
    category: str
    agent_types: list[str]
    audience: list[str]
    score: float
    last_updated: datetime
    usage_count: int = 0


@dataclass
class RetrievalResult:
    """Outcome of a lookup. ``degraded`` is set when retrieval failed."""

    chunks: list[KnowledgeChunk]
    total_results: int
    query: str
    agent_type: str | None
    degraded: bool = False

    @classmethod
    def empty(cls, query: RetrievalQuery, degraded: bool = False) -> "RetrievalResult":
        return cls(
            chunks=[],
            total_results=0,
            query=query.query,
            agent_type=query.agent_type,
            degraded=degraded,
        )
