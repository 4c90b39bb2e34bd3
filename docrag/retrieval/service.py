"""Query-time retrieval over the documentation index."""

import logging
import threading

from docrag.embedding.provider import EmbeddingProvider
from docrag.errors import (
    DimensionMismatchError,
    InputValidationError,
    NotReadyError,
    StorageError,
    TableNotFoundError,
)
from docrag.models.search import IngestionReport, SearchResult
from docrag.vectorstore.chroma_store import ChromaStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 3
_SEARCH_ATTEMPTS = 2


class RetrievalService:
    """Embeds queries and returns the nearest documentation chunks.

    Readiness is an explicit flag set by a successful ingestion (or by the
    startup probe finding a compatible table). It is never inferred by
    probing storage on each call.
    """

    def __init__(
        self,
        store: ChromaStore,
        embedding_provider: EmbeddingProvider,
        table_name: str = "documentation",
        max_limit: int = 20,
        max_query_length: int = 1000,
    ):
        self._store = store
        self._embedding_provider = embedding_provider
        self._table_name = table_name
        self._max_limit = max_limit
        self._max_query_length = max_query_length
        self._ready = threading.Event()

    def is_ready(self) -> bool:
        return self._ready.is_set()

    def mark_ready(self, report: IngestionReport | None = None) -> None:
        if report is not None:
            logger.info("Retrieval ready: %d chunks in %s", report.chunks_written, report.table)
        self._ready.set()

    def probe(self) -> bool:
        """Mark ready if a table built with the current embedding dimension exists.

        Raises:
            DimensionMismatchError: If the existing table was built with another model.
        """
        if self._table_name not in self._store.list_tables():
            logger.warning(
                "Table '%s' not found. Run ingestion first.", self._table_name
            )
            return False
        stored = self._store.table_dimension(self._table_name)
        if stored is not None and stored != self._embedding_provider.dimension:
            raise DimensionMismatchError(
                expected=stored,
                actual=self._embedding_provider.dimension,
                table=self._table_name,
            )
        self._ready.set()
        logger.info("Documentation table '%s' found", self._table_name)
        return True

    def search(self, query: str, limit: int = DEFAULT_LIMIT) -> list[SearchResult]:
        """Return up to ``limit`` chunks closest to ``query``, nearest first.

        Raises:
            NotReadyError: If no index has been built or found yet.
            InputValidationError: If the query is blank or too long, or limit is not positive.
        """
        if not self.is_ready():
            raise NotReadyError()
        query = self._validate_query(query)
        limit = self._validate_limit(limit)

        query_vector = self._embedding_provider.embed_query([query])[0]
        rows = self._search_live_table(query_vector, limit)

        return [
            SearchResult(text=row["text"], source=row["source"], score=row["distance"])
            for row in rows[:limit]
        ]

    def _search_live_table(self, query_vector: list[float], limit: int) -> list[dict]:
        for attempt in range(_SEARCH_ATTEMPTS):
            try:
                table = self._store.open_table(self._table_name)
                return self._store.vector_search(table, query_vector, limit)
            except TableNotFoundError as e:
                raise NotReadyError(
                    f"Documentation table '{self._table_name}' is missing."
                ) from e
            except StorageError:
                # The generation we opened may have been superseded mid-query.
                if attempt + 1 == _SEARCH_ATTEMPTS:
                    raise
                logger.info("Search hit a replaced generation, retrying on the live table")

    def _validate_query(self, query: str) -> str:
        if not isinstance(query, str) or not query.strip():
            raise InputValidationError("Query string required.", field="query")
        if len(query) > self._max_query_length:
            raise InputValidationError(
                f"Query exceeds {self._max_query_length} characters.", field="query"
            )
        return query.strip()

    def _validate_limit(self, limit: int) -> int:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise InputValidationError(
                f"limit must be a positive integer, got {limit!r}", field="limit"
            )
        return min(limit, self._max_limit)
