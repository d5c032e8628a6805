"""Local embedding function backed by sentence-transformers.

Installed with the ``embeddings`` extra. The model is loaded on first use,
so constructing the orchestrator never downloads weights.
"""

from functools import cached_property

from kb_vector.embedding.base import EmbeddingFunction


class DefaultEmbedding(EmbeddingFunction):
    """
    Sentence-transformers embedding for knowledge-base text.

    all-mpnet-base-v2 produces 768-dimension vectors, the engine's default.
    With ``normalize=True`` vectors have unit length, which makes dot-product
    scores equal to cosine scores.

    Args:
        model_name: Hugging Face model id
        device: Torch device ('cpu', 'cuda', ...); None lets the library pick
        normalize: Return unit-length vectors
        batch_size: Texts per forward pass in ``embed_batch``
    """

    def __init__(
        self,
        model_name: str = "all-mpnet-base-v2",
        device: str | None = None,
        normalize: bool = False,
        batch_size: int = 32,
    ) -> None:
        self._model_name = model_name
        self._device = device
        self._normalize = normalize
        self._batch_size = batch_size

    @cached_property
    def _encoder(self):
        from sentence_transformers import SentenceTransformer

        return SentenceTransformer(self._model_name, device=self._device)

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimension(self) -> int:
        return int(self._encoder.get_sentence_embedding_dimension())

    def embed(self, text: str) -> list[float]:
        vector = self._encoder.encode(
            text, convert_to_numpy=True, normalize_embeddings=self._normalize
        )
        return [float(x) for x in vector]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        vectors = self._encoder.encode(
            texts,
            batch_size=self._batch_size,
            convert_to_numpy=True,
            normalize_embeddings=self._normalize,
        )
        return [[float(x) for x in row] for row in vectors]
