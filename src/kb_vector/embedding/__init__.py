"""Embedding function implementations."""

from kb_vector.embedding.base import EmbeddingFunction
from kb_vector.embedding.default import DefaultEmbedding

__all__ = ["EmbeddingFunction", "DefaultEmbedding"]
