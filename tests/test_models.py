"""Tests for data models and the payload codec."""

import json
from datetime import datetime

import pytest

from kb_vector.core.models import (
    COUNT_UNSUPPORTED,
    BatchError,
    BatchOperationResult,
    DocumentMetadata,
    SearchFilters,
    VectorDocument,
    _CountUnsupported,
)
from kb_vector.knowledge.models import KnowledgeItem
from kb_vector.utils.serialization import (
    PAYLOAD_SCHEMA_VERSION,
    PayloadDecodeError,
    decode_payload,
    encode_payload,
)


class TestDocumentModels:
    """Test cases for DocumentMetadata and VectorDocument."""

    def test_metadata_defaults(self) -> None:
        meta = DocumentMetadata(category="faq", audience=["donors", "donors"])
        assert meta.audience == {"donors"}
        assert meta.source == "admin"
        assert meta.version == "1.0"
        assert meta.tags is None
        assert meta.extra == {}

    def test_document_serialization_roundtrip(self) -> None:
        doc = VectorDocument(
            id="kb-1",
            embedding=[0.1, 0.2],
            content="How to donate",
            metadata=DocumentMetadata(
                category="donation_process",
                audience={"donors", "all"},
                timestamp=datetime(2024, 5, 4, 3, 2, 1),
                tags={"CaseAgent"},
                extra={"title": "Donations"},
            ),
        )
        data = doc.to_dict()
        assert data["metadata"]["audience"] == ["all", "donors"]
        assert data["metadata"]["timestamp"] == "2024-05-04T03:02:01"

        restored = VectorDocument.from_dict(json.loads(json.dumps(data)))
        assert restored == doc


class TestQueryModels:
    """Test cases for filters, results and the count sentinel."""

    def test_filters_is_empty(self) -> None:
        assert SearchFilters().is_empty()
        assert SearchFilters(audience=set(), tags=set()).is_empty()
        assert not SearchFilters(category="faq").is_empty()
        assert not SearchFilters(min_timestamp=datetime(2024, 1, 1)).is_empty()

    def test_count_unsupported_sentinel(self) -> None:
        assert _CountUnsupported() is COUNT_UNSUPPORTED
        assert not COUNT_UNSUPPORTED
        assert repr(COUNT_UNSUPPORTED) == "COUNT_UNSUPPORTED"

    def test_batch_result(self) -> None:
        ok = BatchOperationResult.from_outcome(3, [])
        assert ok.success is True
        assert ok.failed_count == 0

        failed = BatchOperationResult.from_outcome(1, [BatchError(id="x", error="bad")])
        assert failed.success is False
        assert failed.failed_ids == ["x"]
        assert failed.to_dict()["errors"] == [{"id": "x", "error": "bad"}]


class TestPayloadCodec:
    """Test cases for the versioned payload."""

    def test_roundtrip(self) -> None:
        meta = DocumentMetadata(
            category="faq", audience={"guardians"}, timestamp=datetime(2024, 1, 2)
        )
        payload = encode_payload("Body text", meta)
        assert json.loads(payload)["schema_version"] == PAYLOAD_SCHEMA_VERSION

        content, restored = decode_payload(payload)
        assert content == "Body text"
        assert restored == meta

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            "",
            "{not json",
            "[1, 2]",
            '{"schema_version": 2, "content": "", "metadata": {"category": "faq"}}',
            '{"schema_version": 1, "content": ""}',
            '{"schema_version": 1, "content": 5, "metadata": {"category": "faq"}}',
        ],
    )
    def test_rejects_unreadable_payloads(self, payload) -> None:
        with pytest.raises(PayloadDecodeError):
            decode_payload(payload)


class TestKnowledgeItem:
    """Test cases for KnowledgeItem."""

    def test_from_document_store_record(self) -> None:
        item = KnowledgeItem.from_dict(
            {
                "id": "kb-7",
                "title": "Monthly donations",
                "content": "You can set up a monthly donation.",
                "category": "donation_process",
                "agentTypes": ["CaseAgent"],
                "audience": ["donors"],
                "lastUpdated": "2024-03-01T10:00:00Z",
                "usageCount": 4,
            }
        )
        assert item.agent_types == ["CaseAgent"]
        assert item.usage_count == 4
        assert item.last_updated.year == 2024
        assert item.embedding is None
