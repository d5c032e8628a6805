"""Serialization of document payloads carried through a remote index.

Remote ANN indexes only store scalar restrict fields next to a vector, so the
full metadata and content travel as one JSON string. The string carries a
``schema_version``; readers reject versions they don't know.
"""

import json
from datetime import datetime
from typing import Any, override

from kb_vector.core.models import DocumentMetadata

PAYLOAD_SCHEMA_VERSION = 1


class PayloadDecodeError(ValueError):
    """Raised when a stored payload cannot be turned back into a document."""


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime and set objects."""

    @override
    def default(self, o: Any) -> Any:
        if isinstance(o, datetime):
            return o.isoformat()
        if isinstance(o, (set, frozenset)):
            return sorted(o)
        return super().default(o)


def encode_payload(content: str, metadata: DocumentMetadata) -> str:
    """Serialize content and metadata into a versioned JSON string."""
    return json.dumps(
        {
            "schema_version": PAYLOAD_SCHEMA_VERSION,
            "content": content,
            "metadata": metadata.to_dict(),
        },
        sort_keys=True,
        cls=DateTimeEncoder,
    )


def decode_payload(payload: str | None) -> tuple[str, DocumentMetadata]:
    """Parse a payload produced by ``encode_payload``.

    Raises:
        PayloadDecodeError: If the payload is missing, malformed or of an
            unknown schema version
    """
    if not payload:
        raise PayloadDecodeError("Payload is empty")
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise PayloadDecodeError(f"Payload is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise PayloadDecodeError("Payload must be a JSON object")

    version = data.get("schema_version")
    if version != PAYLOAD_SCHEMA_VERSION:
        raise PayloadDecodeError(f"Unsupported payload schema version: {version!r}")

    try:
        metadata = DocumentMetadata.from_dict(data["metadata"])
    except (KeyError, TypeError, ValueError) as exc:
        raise PayloadDecodeError(f"Invalid payload metadata: {exc}") from exc
    content = data.get("content", "")
    if not isinstance(content, str):
        raise PayloadDecodeError("Payload content must be a string")
    return content, metadata
