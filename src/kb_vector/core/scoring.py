"""Similarity and distance functions.

Each metric declares one conversion rule between its native distance
(lower = closer) and the engine's score (higher = closer). Both the
in-memory scan and the remote adapter go through ``distance_to_score`` so
result ordering is identical across backends:

    cosine       score = cos(a, b)         distance = 1 - score
    dot-product  score = dot(a, b)         distance = -score
    euclidean    score = exp(-distance)    distance = |a - b|
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from enum import Enum


class DistanceMetric(str, Enum):
    """Supported similarity metrics."""

    COSINE = "cosine"
    DOT_PRODUCT = "dot-product"
    EUCLIDEAN = "euclidean"

    @property
    def max_score(self) -> float | None:
        """Score of a vector against itself, when bounded."""
        if self is DistanceMetric.DOT_PRODUCT:
            return None
        return 1.0


def _check_lengths(a: Sequence[float], b: Sequence[float]) -> None:
    if len(a) != len(b):
        raise ValueError(f"Vectors must have same dimensions: {len(a)} != {len(b)}")


def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
    _check_lengths(a, b)
    return math.fsum(x * y for x, y in zip(a, b))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between ``a`` and ``b``; 0 if either norm is 0."""
    _check_lengths(a, b)
    dot = math.fsum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(math.fsum(x * x for x in a))
    norm_b = math.sqrt(math.fsum(y * y for y in b))
    denominator = norm_a * norm_b
    if denominator == 0:
        return 0.0
    return dot / denominator


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    _check_lengths(a, b)
    return math.sqrt(math.fsum((x - y) ** 2 for x, y in zip(a, b)))


def distance_to_score(metric: DistanceMetric, distance: float) -> float:
    """Convert a metric-native distance into a score."""
    if metric is DistanceMetric.COSINE:
        return 1.0 - distance
    if metric is DistanceMetric.DOT_PRODUCT:
        return -distance
    return math.exp(-distance)


def score_to_distance(metric: DistanceMetric, score: float) -> float:
    """Inverse of ``distance_to_score``."""
    if metric is DistanceMetric.COSINE:
        return 1.0 - score
    if metric is DistanceMetric.DOT_PRODUCT:
        return -score
    if score <= 0:
        return math.inf
    return -math.log(score)


def score_vectors(
    metric: DistanceMetric, query: Sequence[float], candidate: Sequence[float]
) -> tuple[float, float]:
    """Return ``(score, distance)`` of ``candidate`` against ``query``."""
    if metric is DistanceMetric.EUCLIDEAN:
        distance = euclidean_distance(query, candidate)
        return distance_to_score(metric, distance), distance
    if metric is DistanceMetric.COSINE:
        score = cosine_similarity(query, candidate)
    else:
        score = dot_product(query, candidate)
    return score, score_to_distance(metric, score)
