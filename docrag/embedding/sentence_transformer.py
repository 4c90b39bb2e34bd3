"""Sentence Transformer embedding provider implementation."""

import logging
import os
import threading

import numpy as np
from sentence_transformers import SentenceTransformer

from docrag.embedding.provider import EmbeddingProvider
from docrag.errors import EmbeddingError, InitializationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "all-MiniLM-L6-v2"


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """Embedding provider wrapping sentence-transformers models.

    Default model: all-MiniLM-L6-v2 (mean pooling, 384 dimensions, ~80MB).
    The model is loaded on first use. Callers arriving while another
    thread is loading block on the lock until the model is ready.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL, batch_size: int = 32):
        self._model_name = model_name
        self._batch_size = batch_size
        self._model: SentenceTransformer | None = None
        self._dimension: int | None = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def load(self) -> None:
        if self._model is not None:
            return
        with self._lock:
            if self._model is not None:
                return
            logger.info("Loading embedding model: %s", self._model_name)
            try:
                model = _load_quietly(self._model_name)
            except Exception as e:
                raise InitializationError(
                    f"Failed to load embedding model {self._model_name}: {e}",
                    {"model": self._model_name},
                ) from e
            self._dimension = model.get_sentence_embedding_dimension()
            self._model = model
            logger.info("Embedding model ready (dimension=%d)", self._dimension)

    def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            raise ValueError("texts must not be empty")
        self.load()
        try:
            embeddings = self._model.encode(
                texts,
                batch_size=self._batch_size,
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
        except Exception as e:
            raise EmbeddingError(
                f"Embedding failed for batch of {len(texts)} texts: {e}",
                {"model": self._model_name},
            ) from e
        return embeddings.astype(np.float32).tolist()

    @property
    def dimension(self) -> int:
        self.load()
        return self._dimension


_QUIET_ENV = {
    "TRANSFORMERS_VERBOSITY": "error",
    "HF_HUB_DISABLE_PROGRESS_BARS": "1",
    "TQDM_DISABLE": "1",
}


def _load_quietly(model_name: str) -> SentenceTransformer:
    """Load a model with library progress bars and chatter turned off.

    The process file descriptors are left alone: the MCP server keeps
    answering on stdout while the model loads in a worker thread.
    """
    saved = {key: os.environ.get(key) for key in _QUIET_ENV}
    os.environ.update(_QUIET_ENV)
    try:
        try:
            return SentenceTransformer(model_name, local_files_only=True)
        except OSError:
            return SentenceTransformer(model_name)
    finally:
        for key, value in saved.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
