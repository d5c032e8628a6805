"""Base embedding function interface."""

import asyncio
from abc import ABC, abstractmethod


class EmbeddingFunction(ABC):
    """Abstract base class for embedding functions.

    Implementations wrap the external ``text -> vector`` call. The engine
    rejects outputs whose length differs from its configured dimensions.
    """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the dimension of the embedding."""
        ...

    @property
    def model_name(self) -> str:
        """Identifier used to namespace cached embeddings."""
        return type(self).__name__

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Embed a single text string."""
        ...

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed multiple texts. Default implementation calls embed() for each."""
        return [self.embed(text) for text in texts]

    async def aembed(self, text: str) -> list[float]:
        """Embed without blocking the event loop."""
        return await asyncio.to_thread(self.embed, text)
