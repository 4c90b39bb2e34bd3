"""Shared pytest configuration and fixtures."""

import hashlib
import math
import re

import pytest

from config.settings import Settings
from docrag.embedding.provider import EmbeddingProvider
from docrag.vectorstore.chroma_store import ChromaStore

GUIDE_MD = (
    "# Setup\n"
    "Run the installer and accept defaults. The installer places the binaries "
    "in the standard location.\n"
)
NOTES_MD = "# X\nshort"


class HashingEmbeddingProvider(EmbeddingProvider):
    """Deterministic, offline embedder hashing character trigrams.

    Texts sharing word fragments ("install" / "installer") get close vectors,
    which is enough to exercise nearest-neighbour ranking without a model.
    """

    def __init__(self, dimension: int = 384):
        self._dimension = dimension
        self.calls = 0

    def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            raise ValueError("texts must not be empty")
        self.calls += 1
        return [self._vector(t) for t in texts]

    @property
    def dimension(self) -> int:
        return self._dimension

    def _vector(self, text: str) -> list[float]:
        vec = [0.0] * self._dimension
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            padded = f" {token} "
            for i in range(len(padded) - 2):
                digest = hashlib.md5(padded[i:i + 3].encode()).hexdigest()
                vec[int(digest, 16) % self._dimension] += 1.0
        norm = math.sqrt(sum(v * v for v in vec))
        if norm == 0:
            vec[0] = 1.0
            return vec
        return [v / norm for v in vec]


@pytest.fixture
def embedding_provider():
    return HashingEmbeddingProvider()


@pytest.fixture
def store(tmp_path):
    return ChromaStore(path=str(tmp_path / "chroma"))


@pytest.fixture
def docs_dir(tmp_path):
    """Corpus from the reference scenario: one indexable file, one too short."""
    root = tmp_path / "docs"
    root.mkdir()
    (root / "guide.md").write_text(GUIDE_MD, encoding="utf-8")
    (root / "notes.md").write_text(NOTES_MD, encoding="utf-8")
    return root


@pytest.fixture
def settings(tmp_path, docs_dir):
    return Settings(
        docrag_docs_path=str(docs_dir),
        docrag_db_path=str(tmp_path / "chroma"),
        docrag_table_name="documentation",
    )


@pytest.fixture
def make_provider():
    """Factory for hashing providers with a non-default dimension."""
    return HashingEmbeddingProvider
