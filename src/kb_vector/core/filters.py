"""Metadata filter evaluation for local search and count."""

from __future__ import annotations

from kb_vector.core.models import ALL_AUDIENCE, DocumentMetadata, SearchFilters


def matches_filters(metadata: DocumentMetadata, filters: SearchFilters | None) -> bool:
    """Return True if ``metadata`` satisfies every specified filter field.

    Set-valued fields (audience, tags) match on any overlap. A document whose
    audience contains 'all' matches any audience filter.
    """
    if filters is None:
        return True

    if filters.category and metadata.category != filters.category:
        return False

    if filters.audience:
        if ALL_AUDIENCE not in metadata.audience and not (
            metadata.audience & filters.audience
        ):
            return False

    if filters.source and metadata.source != filters.source:
        return False

    if filters.tags and not ((metadata.tags or set()) & filters.tags):
        return False

    if filters.min_timestamp is not None and metadata.timestamp < filters.min_timestamp:
        return False
    if filters.max_timestamp is not None and metadata.timestamp > filters.max_timestamp:
        return False

    return True
