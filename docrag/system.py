"""Process-scoped owner of the store connection, embedder and services.

The MCP server and CLI share one RAGSystem per process. Its components are
created lazily; initialize() performs the slow startup work (model load and
table probe) and is meant to run in the background.
"""

import logging
import threading

from config.settings import Settings, get_settings
from docrag.embedding.provider import EmbeddingProvider
from docrag.embedding.sentence_transformer import SentenceTransformerEmbeddingProvider
from docrag.errors import DocRAGError, InitializationError
from docrag.ingestion.pipeline import IngestionPipeline
from docrag.models.search import IngestionReport, SearchResult
from docrag.retrieval.service import RetrievalService
from docrag.vectorstore.chroma_store import ChromaStore, connect

logger = logging.getLogger(__name__)


class RAGSystem:
    """Documentation retrieval engine: one embedder, one store, one index."""

    def __init__(
        self,
        settings: Settings | None = None,
        store: ChromaStore | None = None,
        embedding_provider: EmbeddingProvider | None = None,
    ):
        self.settings = settings or get_settings()
        self._store = store
        self._embedding_provider = embedding_provider
        self._retrieval: RetrievalService | None = None
        self._pipeline: IngestionPipeline | None = None
        self._lock = threading.RLock()

    @property
    def store(self) -> ChromaStore:
        with self._lock:
            if self._store is None:
                self._store = connect(self.settings.db_path)
            return self._store

    @property
    def embedding_provider(self) -> EmbeddingProvider:
        with self._lock:
            if self._embedding_provider is None:
                self._embedding_provider = SentenceTransformerEmbeddingProvider(
                    model_name=self.settings.docrag_embedding_model,
                    batch_size=self.settings.docrag_embedding_batch_size,
                )
            return self._embedding_provider

    @property
    def retrieval(self) -> RetrievalService:
        with self._lock:
            if self._retrieval is None:
                self._retrieval = RetrievalService(
                    store=self.store,
                    embedding_provider=self.embedding_provider,
                    table_name=self.settings.docrag_table_name,
                    max_limit=self.settings.docrag_max_limit,
                    max_query_length=self.settings.docrag_max_query_length,
                )
            return self._retrieval

    @property
    def pipeline(self) -> IngestionPipeline:
        with self._lock:
            if self._pipeline is None:
                self._pipeline = IngestionPipeline(
                    store=self.store,
                    embedding_provider=self.embedding_provider,
                    docs_path=self.settings.docs_path,
                    table_name=self.settings.docrag_table_name,
                    suffixes=self.settings.docrag_doc_suffixes,
                    min_chunk_length=self.settings.docrag_min_chunk_length,
                    batch_size=self.settings.docrag_embedding_batch_size,
                    on_complete=self.retrieval.mark_ready,
                )
            return self._pipeline

    def initialize(self) -> bool:
        """Load the model, connect the store and probe for an existing index.

        Returns True if an index was found and retrieval is ready.

        Raises:
            InitializationError: If the model or the store cannot be loaded,
                or the stored index was built with another model.
        """
        logger.info("Initializing RAG system...")
        try:
            self.embedding_provider.load()
            return self.retrieval.probe()
        except InitializationError:
            raise
        except DocRAGError as e:
            raise InitializationError(f"RAG initialization failed: {e.message}", e.details) from e

    def is_ready(self) -> bool:
        # Avoid constructing the retrieval service (and the store) just to answer False.
        return self._retrieval is not None and self._retrieval.is_ready()

    def search(self, query: str, limit: int | None = None) -> list[SearchResult]:
        if limit is None:
            limit = self.settings.docrag_default_limit
        return self.retrieval.search(query, limit=limit)

    def ingest(self) -> IngestionReport:
        return self.pipeline.ingest()


_system: RAGSystem | None = None
_system_lock = threading.Lock()


def get_system() -> RAGSystem:
    """Return the process-wide RAGSystem, creating it on first use."""
    global _system
    with _system_lock:
        if _system is None:
            _system = RAGSystem()
        return _system
