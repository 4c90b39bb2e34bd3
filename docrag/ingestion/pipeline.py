"""Ingestion pipeline orchestrator.

Wires together: loader → chunker → embedding → chroma_store.
Every run is a full rebuild that atomically replaces the previous index.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from pathlib import Path

from docrag.embedding.provider import EmbeddingProvider
from docrag.errors import (
    DocRAGError,
    EmbeddingError,
    EmptyCorpusError,
    IngestionInProgressError,
)
from docrag.ingestion.chunker import chunk_document
from docrag.ingestion.loader import DEFAULT_SUFFIXES, load_documents
from docrag.models.chunk import MIN_CHUNK_LENGTH, DocumentChunk
from docrag.models.search import IngestionReport
from docrag.vectorstore.chroma_store import ChromaStore

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Rebuilds the documentation index from a directory of markdown files.

    At most one run is in flight per pipeline; a concurrent call fails fast
    with IngestionInProgressError instead of racing the table replace.
    """

    def __init__(
        self,
        store: ChromaStore,
        embedding_provider: EmbeddingProvider,
        docs_path: Path,
        table_name: str = "documentation",
        suffixes: Iterable[str] = DEFAULT_SUFFIXES,
        min_chunk_length: int = MIN_CHUNK_LENGTH,
        batch_size: int = 32,
        on_complete: Callable[[IngestionReport], None] | None = None,
    ):
        if min_chunk_length < MIN_CHUNK_LENGTH:
            raise ValueError(
                f"min_chunk_length must be >= {MIN_CHUNK_LENGTH}, got {min_chunk_length}"
            )
        self._store = store
        self._embedding_provider = embedding_provider
        self._docs_path = Path(docs_path)
        self._table_name = table_name
        self._suffixes = tuple(suffixes)
        self._min_chunk_length = min_chunk_length
        self._batch_size = batch_size
        self._on_complete = on_complete
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def ingest(self) -> IngestionReport:
        """Run a full rebuild and return a summary.

        Steps:
        1. Load every markdown document under the docs path
        2. Chunk each document on header boundaries
        3. Embed all chunks in batches
        4. Replace the index table in one bulk write

        Raises:
            IngestionInProgressError: If another run holds the guard.
            EmptyCorpusError: If no chunk qualifies. The index is left untouched.
            EmbeddingError: If the embedding backend fails.
            StorageError: If the table write fails.
        """
        if not self._lock.acquire(blocking=False):
            raise IngestionInProgressError()
        try:
            return self._run()
        finally:
            self._lock.release()

    def _run(self) -> IngestionReport:
        logger.info("Starting documentation ingestion from %s", self._docs_path)

        chunks: list[DocumentChunk] = []
        documents_found = 0
        documents_skipped = 0
        for doc in load_documents(self._docs_path, self._suffixes):
            documents_found += 1
            doc_chunks = chunk_document(doc, min_length=self._min_chunk_length)
            if not doc_chunks:
                logger.info("No chunks produced for %s", doc.path)
                documents_skipped += 1
                continue
            logger.info("Processing %s: %d chunks", doc.path, len(doc_chunks))
            chunks.extend(doc_chunks)

        logger.info("Found %d markdown files in %s", documents_found, self._docs_path)

        if not chunks:
            raise EmptyCorpusError(
                f"No content found to ingest. Make sure {self._docs_path} contains "
                f"markdown files with sections of at least {self._min_chunk_length} characters.",
                {"docs_path": str(self._docs_path), "documents_found": documents_found},
            )

        self._embed(chunks)

        logger.info("Saving %d vectors to table %s", len(chunks), self._table_name)
        written = self._store.create_table(self._table_name, chunks)

        report = IngestionReport(
            table=self._table_name,
            chunks_written=written,
            documents_found=documents_found,
            documents_skipped=documents_skipped,
        )
        if self._on_complete is not None:
            self._on_complete(report)
        logger.info("Ingestion complete: %d chunks", written)
        return report

    def _embed(self, chunks: list[DocumentChunk]) -> None:
        for start in range(0, len(chunks), self._batch_size):
            batch = chunks[start:start + self._batch_size]
            try:
                vectors = self._embedding_provider.embed([c.text for c in batch])
            except DocRAGError:
                raise
            except Exception as e:
                raise EmbeddingError(f"Embedding failed: {e}") from e
            if len(vectors) != len(batch):
                raise EmbeddingError(
                    f"Embedding provider returned {len(vectors)} vectors for {len(batch)} texts"
                )
            for chunk, vector in zip(batch, vectors):
                chunk.vector = vector
