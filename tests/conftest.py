"""Shared test fixtures."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kb_vector.core.models import DocumentMetadata, VectorDocument  # noqa: E402

ENV_PREFIXES = ("VECTOR_INDEX_", "REDIS_")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep connection settings from the host environment out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith(ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def make_document():
    """Factory for small vector documents."""

    def _make(
        doc_id: str,
        embedding: list[float],
        category: str = "donation_process",
        audience: set[str] | None = None,
        source: str = "admin",
        tags: set[str] | None = None,
        timestamp: datetime | None = None,
        content: str | None = None,
    ) -> VectorDocument:
        return VectorDocument(
            id=doc_id,
            embedding=embedding,
            content=content if content is not None else f"content of {doc_id}",
            metadata=DocumentMetadata(
                category=category,
                audience=audience or {"donors"},
                source=source,
                tags=tags,
                timestamp=timestamp or datetime(2024, 6, 1, 12, 0, 0),
            ),
        )

    return _make
