"""Tests for metadata filter matching."""

import asyncio
from datetime import datetime

from hypothesis import given, settings
from hypothesis import strategies as st

from kb_vector.core.filters import matches_filters
from kb_vector.core.models import DocumentMetadata, SearchFilters, SearchQuery, VectorDocument
from kb_vector.core.scoring import DistanceMetric
from kb_vector.core.storage.memory import InMemoryVectorStore

JUNE = datetime(2024, 6, 1)
JULY = datetime(2024, 7, 1)
AUGUST = datetime(2024, 8, 1)


def _metadata(**kwargs) -> DocumentMetadata:
    defaults = {
        "category": "donation_process",
        "audience": {"donors"},
        "source": "admin",
        "timestamp": JULY,
    }
    defaults.update(kwargs)
    return DocumentMetadata(**defaults)


class TestMatchesFilters:
    """Test cases for matches_filters."""

    def test_no_filters_match_everything(self) -> None:
        assert matches_filters(_metadata(), None)
        assert matches_filters(_metadata(), SearchFilters())

    def test_category_and_source_exact(self) -> None:
        meta = _metadata()
        assert matches_filters(meta, SearchFilters(category="donation_process"))
        assert not matches_filters(meta, SearchFilters(category="adoption"))
        assert not matches_filters(meta, SearchFilters(source="documentation"))

    def test_audience_any_overlap(self) -> None:
        meta = _metadata(audience={"donors", "guardians"})
        assert matches_filters(meta, SearchFilters(audience={"guardians", "admins"}))
        assert not matches_filters(meta, SearchFilters(audience={"admins"}))

    def test_audience_all_wildcard(self) -> None:
        meta = _metadata(audience={"all"})
        assert matches_filters(meta, SearchFilters(audience={"guardians"}))

    def test_tags(self) -> None:
        assert matches_filters(_metadata(tags={"CaseAgent"}), SearchFilters(tags={"CaseAgent"}))
        assert not matches_filters(_metadata(tags=None), SearchFilters(tags={"CaseAgent"}))

    def test_timestamp_bounds_inclusive(self) -> None:
        meta = _metadata(timestamp=JULY)
        assert matches_filters(meta, SearchFilters(min_timestamp=JULY, max_timestamp=JULY))
        assert not matches_filters(meta, SearchFilters(min_timestamp=AUGUST))
        assert not matches_filters(meta, SearchFilters(max_timestamp=JUNE))

    def test_and_across_fields(self) -> None:
        meta = _metadata()
        assert not matches_filters(
            meta, SearchFilters(category="donation_process", audience={"admins"})
        )

    def test_empty_sets_impose_no_constraint(self) -> None:
        assert matches_filters(_metadata(), SearchFilters(audience=set(), tags=set()))


categories = st.sampled_from(["donation_process", "adoption", "faq"])
audiences = st.sets(st.sampled_from(["donors", "guardians", "admins", "all"]), max_size=3)
tag_sets = st.one_of(st.none(), st.sets(st.sampled_from(["CaseAgent", "TwitterAgent"])))
timestamps = st.sampled_from([JUNE, JULY, AUGUST])

metadata_strategy = st.builds(
    DocumentMetadata,
    category=categories,
    audience=audiences,
    source=st.sampled_from(["admin", "documentation"]),
    timestamp=timestamps,
    tags=tag_sets,
)
filters_strategy = st.builds(
    SearchFilters,
    category=st.one_of(st.none(), categories),
    audience=st.one_of(st.none(), audiences.filter(lambda a: "all" not in a)),
    source=st.one_of(st.none(), st.sampled_from(["admin", "documentation"])),
    tags=st.one_of(st.none(), st.sets(st.sampled_from(["CaseAgent", "TwitterAgent"]))),
    min_timestamp=st.one_of(st.none(), timestamps),
    max_timestamp=st.one_of(st.none(), timestamps),
)


@settings(max_examples=75, deadline=None)
@given(metadatas=st.lists(metadata_strategy, min_size=1, max_size=8), filters=filters_strategy)
def test_filtered_search_returns_exactly_matching_documents(
    metadatas: list[DocumentMetadata], filters: SearchFilters
) -> None:
    """A document is in filtered results iff matches_filters accepts it."""
    store = InMemoryVectorStore(metric=DistanceMetric.COSINE)
    documents = [
        VectorDocument(id=f"doc-{i}", embedding=[1.0, float(i)], content="", metadata=m)
        for i, m in enumerate(metadatas)
    ]

    async def run() -> tuple[set[str], object]:
        await store.upsert(documents)
        results = await store.search(
            SearchQuery(embedding=[1.0, 0.0], top_k=len(documents), filters=filters)
        )
        return {r.document.id for r in results}, await store.count(filters)

    found, count = asyncio.run(run())
    expected = {d.id for d in documents if matches_filters(d.metadata, filters)}
    assert found == expected
    assert count == len(expected)
