"""Abstract embedding provider interface."""

from abc import ABC, abstractmethod


class EmbeddingProvider(ABC):
    """Interface for text embedding generation.

    Implementations wrap specific embedding models (e.g., sentence-transformers).
    Vectors must be L2-normalized so cosine and Euclidean rankings agree.
    """

    def load(self) -> None:
        """Finish any one-time model initialization.

        Providers with nothing to load keep this default no-op.
        """

    @abstractmethod
    def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a batch of text strings.

        Args:
            texts: List of text strings to embed.

        Returns:
            One embedding vector per input string, each of length
            ``dimension``.

        Raises:
            ValueError: If texts is empty.
        """
        ...

    def embed_query(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for query texts.

        Some models (e.g., BGE) require a special instruction prefix for
        queries but not for documents. Override this method to add
        model-specific query preprocessing. Default delegates to embed().
        """
        return self.embed(texts)

    def embed_one(self, text: str) -> list[float]:
        return self.embed([text])[0]

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimension (e.g., 384)."""
        ...
