"""Utility functions for embedding validation and cache keys.

Reusable helpers that don't depend on a specific backend or class state.
"""

from __future__ import annotations

import hashlib
import math
from collections.abc import Sequence
from typing import Any

from kb_vector.errors import ValidationError


def validate_embedding(
    embedding: Any,
    dimensions: int,
    context: str | None = None,
) -> list[float]:
    """Check an embedding and return it as a list of floats.

    Rejects non-sequences, empty vectors, wrong dimensions and non-finite
    values. Never truncates or pads.

    Args:
        embedding: Candidate vector
        dimensions: Expected length
        context: Label added to the error (e.g. the document id)

    Returns:
        The embedding as ``list[float]``

    Raises:
        ValidationError: If any check fails

    Example:
        >>> validate_embedding([0.1, 0.2], 2)
        [0.1, 0.2]
    """
    prefix = f"[{context}] " if context else ""
    details = {"expected_dimension": dimensions}
    if context:
        details["context"] = context

    if embedding is None:
        raise ValidationError(f"{prefix}Embedding is missing", details)
    if isinstance(embedding, (str, bytes)) or not isinstance(embedding, Sequence):
        raise ValidationError(
            f"{prefix}Embedding must be a sequence of numbers, "
            f"got {type(embedding).__name__}",
            details,
        )
    if len(embedding) != dimensions:
        raise ValidationError(
            f"{prefix}Invalid embedding dimension: expected {dimensions}, "
            f"got {len(embedding)}",
            {**details, "dimension": len(embedding)},
        )

    values: list[float] = []
    for value in embedding:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{prefix}Embedding contains non-numeric values", details)
        if not math.isfinite(value):
            raise ValidationError(f"{prefix}Embedding contains NaN or Infinity", details)
        values.append(float(value))
    return values


def generate_cache_key(text: str, namespace: str = "") -> str:
    """Deterministic key for caching the embedding of ``text``.

    Uses SHA-256 so arbitrary-length text maps to a fixed-size key.

    Example:
        >>> len(generate_cache_key("how do I donate?", "all-mpnet-base-v2"))
        64
    """
    content = f"{namespace}:{text}"
    return hashlib.sha256(content.encode()).hexdigest()

