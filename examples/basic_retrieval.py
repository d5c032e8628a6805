"""
Example: Knowledge retrieval with the in-memory backend.

Indexes a few knowledge-base entries and looks them up the way the case
agent does. Requires the 'embeddings' extra (sentence-transformers).
"""

import asyncio
import logging

from kb_vector import (
    EmbeddingCache,
    KnowledgeItem,
    KnowledgeRetrievalOrchestrator,
    RetrievalQuery,
    VectorDBConfig,
    VectorRetrievalEngine,
)


async def main():
    logging.basicConfig(level=logging.INFO)

    engine = VectorRetrievalEngine(VectorDBConfig(dimensions=768))
    kb = KnowledgeRetrievalOrchestrator(engine, embedding_cache=EmbeddingCache(max_size=100))

    print("=== Indexing knowledge items ===")

    result = await kb.add_knowledge_items(
        [
            KnowledgeItem(
                id="donations-monthly",
                title="Monthly donations",
                content="Donors can set up a recurring monthly donation from the case page.",
                category="donation_process",
                agent_types=["CaseAgent"],
                audience=["donors"],
            ),
            KnowledgeItem(
                id="guardian-updates",
                title="Case updates",
                content="Guardians post treatment updates and receipts on each case.",
                category="case_management",
                agent_types=["CaseAgent"],
                audience=["guardians"],
            ),
            KnowledgeItem(
                id="platform-about",
                title="About the platform",
                content="The platform connects rescued animals with donors.",
                category="general",
                agent_types=["CaseAgent", "TwitterAgent"],
                audience=["all"],
            ),
        ]
    )
    print(f"Processed: {result.processed_count}, failed: {result.failed_count}")

    print("\n=== Retrieving context ===")

    retrieval = await kb.retrieve(
        RetrievalQuery("How can I donate every month?", agent_type="CaseAgent", audience="donors")
    )
    for chunk in retrieval.chunks:
        print(f"\n{chunk.title} (score {chunk.score:.3f})")
        print(f"  {chunk.content}")

    print("\n=== Prompt context ===")
    print(kb.format_context(retrieval.chunks))

    print("\n=== Statistics ===")
    stats = await kb.stats()
    for key, value in stats.items():
        print(f"{key}: {value}")

    await engine.close()


if __name__ == "__main__":
    asyncio.run(main())
