"""Knowledge-base retrieval for the conversational agents."""

from kb_vector.knowledge.models import (
    KnowledgeChunk,
    KnowledgeItem,
    RetrievalQuery,
    RetrievalResult,
)
from kb_vector.knowledge.orchestrator import KnowledgeRetrievalOrchestrator

__all__ = [
    "KnowledgeRetrievalOrchestrator",
    "KnowledgeItem",
    "KnowledgeChunk",
    "RetrievalQuery",
    "RetrievalResult",
]
