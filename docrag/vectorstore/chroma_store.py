"""ChromaDB vector store for documentation chunks.

A logical table is stored as generation-suffixed collections:

    <table>__s<generation>   staging, being written, never read
    <table>__g<generation>   complete; the highest generation is live

create_table() writes a staging collection, renames it to a new live
generation, then deletes the older ones. Readers always resolve the newest
complete generation, so a replace never exposes a partial or absent table.
"""

import logging
import os
import re
import threading
import time
from dataclasses import dataclass
from pathlib import Path

import chromadb
from chromadb.api.models.Collection import Collection
from chromadb.config import Settings as ChromaSettings

from docrag.errors import DimensionMismatchError, StorageError, TableNotFoundError
from docrag.models.chunk import DocumentChunk
from docrag.models.enums import DropResult

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,39}$")
GENERATION_PATTERN = re.compile(r"^(?P<table>.+)__(?P<kind>[gs])(?P<generation>\d{20})$")

_OPEN_RETRIES = 3


@dataclass
class TableHandle:
    """An opened live generation of a logical table."""

    name: str
    collection: Collection
    dimension: int | None


class ChromaStore:
    """ChromaDB-backed vector store with atomic full-replace tables.

    Collections use cosine distance. Each row stores the chunk text as the
    Chroma document and ``source``/``chunk_index`` as metadata.
    """

    def __init__(self, path: str = "./data/chroma", write_batch_size: int = 1000):
        self._write_batch_size = write_batch_size
        self._write_lock = threading.Lock()

        if path == MEMORY_PATH:
            self._client = chromadb.Client(ChromaSettings(anonymized_telemetry=False))
            return

        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Cannot create storage directory {path}: {e}", operation="connect"
            ) from e
        if not os.access(path, os.W_OK):
            raise StorageError(f"Storage directory is not writable: {path}", operation="connect")

        try:
            self._client = chromadb.PersistentClient(
                path=path,
                settings=ChromaSettings(anonymized_telemetry=False),
            )
        except Exception as e:
            raise StorageError(f"Cannot open vector store at {path}: {e}", operation="connect") from e

    def list_tables(self) -> set[str]:
        """Return the logical tables that have a live generation."""
        tables = set()
        for name in self._collection_names():
            match = GENERATION_PATTERN.match(name)
            if match and match.group("kind") == "g":
                tables.add(match.group("table"))
        return tables

    def create_table(self, name: str, chunks: list[DocumentChunk]) -> int:
        """Create ``name`` from embedded chunks, replacing any previous table.

        Returns the number of rows written.

        Raises:
            ValueError: If chunks is empty or vectors are missing or ragged.
            StorageError: If the write fails. The previous generation stays live.
        """
        _validate_table_name(name)
        if not chunks:
            raise ValueError("chunks must not be empty")
        dimension = len(chunks[0].vector)
        if dimension == 0:
            raise ValueError("chunks must carry embedding vectors")
        for chunk in chunks:
            if len(chunk.vector) != dimension:
                raise ValueError(
                    f"vector dimension must be {dimension}, got {len(chunk.vector)} for {chunk.id}"
                )

        with self._write_lock:
            live, staging = self._generations(name)
            for stale in staging:
                logger.info("Removing stale staging collection %s", stale)
                self._delete_collection(stale, table=name)

            generation = max([time.time_ns()] + [g + 1 for g, _ in live])
            staging_name = f"{name}__s{generation:020d}"
            live_name = f"{name}__g{generation:020d}"

            try:
                collection = self._client.create_collection(
                    name=staging_name,
                    metadata={"hnsw:space": "cosine", "dimension": dimension, "table": name},
                )
                for start in range(0, len(chunks), self._write_batch_size):
                    batch = chunks[start:start + self._write_batch_size]
                    collection.add(
                        ids=[c.id for c in batch],
                        embeddings=[c.vector for c in batch],
                        documents=[c.text for c in batch],
                        metadatas=[
                            {"source": c.source, "chunk_index": c.chunk_index} for c in batch
                        ],
                    )
                collection.modify(name=live_name)
            except Exception as e:
                self._discard(staging_name)
                raise StorageError(
                    f"Failed to write table {name}: {e}", operation="create", table=name
                ) from e

            for _, old_name in live:
                try:
                    self._client.delete_collection(old_name)
                except Exception as e:
                    # Unreachable once a newer generation is live.
                    logger.warning("Could not remove superseded collection %s: %s", old_name, e)

        logger.info("Wrote %d rows to table %s (%s)", len(chunks), name, live_name)
        return len(chunks)

    def drop_table(self, name: str) -> DropResult:
        """Remove every generation of ``name``.

        A table that does not exist is not an error: returns DropResult.MISSING.
        """
        with self._write_lock:
            live, staging = self._generations(name)
            names = [n for _, n in live] + staging
            if not names:
                return DropResult.MISSING
            for collection_name in names:
                self._delete_collection(collection_name, table=name)
        logger.info("Dropped table %s", name)
        return DropResult.DROPPED

    def open_table(self, name: str) -> TableHandle:
        """Open the live generation of ``name``.

        Raises:
            TableNotFoundError: If the table has no live generation.
        """
        for _ in range(_OPEN_RETRIES):
            live, _ = self._generations(name)
            if not live:
                raise TableNotFoundError(name)
            _, collection_name = live[-1]
            try:
                collection = self._client.get_collection(collection_name)
            except Exception as e:
                # Superseded and deleted between listing and opening.
                logger.debug("Collection %s vanished while opening: %s", collection_name, e)
                continue
            metadata = collection.metadata or {}
            dimension = metadata.get("dimension")
            return TableHandle(
                name=name,
                collection=collection,
                dimension=int(dimension) if dimension is not None else None,
            )
        raise StorageError(
            f"Table {name} kept changing while opening", operation="open", table=name
        )

    def vector_search(
        self,
        table: TableHandle,
        query_vector: list[float],
        k: int,
    ) -> list[dict]:
        """Return up to ``k`` rows ordered by ascending cosine distance.

        Each row is a dict with keys: id, text, source, distance.
        """
        if k <= 0:
            raise ValueError("k must be > 0")
        if table.dimension is not None and len(query_vector) != table.dimension:
            raise DimensionMismatchError(
                expected=table.dimension, actual=len(query_vector), table=table.name
            )

        try:
            n_results = min(k, table.collection.count())
            if n_results == 0:
                return []
            results = table.collection.query(
                query_embeddings=[query_vector],
                n_results=n_results,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as e:
            raise StorageError(
                f"Vector search failed on table {table.name}: {e}",
                operation="search",
                table=table.name,
            ) from e

        output = []
        if results["ids"] and results["ids"][0]:
            for i in range(len(results["ids"][0])):
                metadata = results["metadatas"][0][i] if results["metadatas"] else {}
                output.append({
                    "id": results["ids"][0][i],
                    "text": results["documents"][0][i] if results["documents"] else "",
                    "source": (metadata or {}).get("source", ""),
                    "distance": results["distances"][0][i] if results["distances"] else 0.0,
                })
        output.sort(key=lambda r: r["distance"])
        return output

    def count(self, name: str) -> int:
        """Return the number of rows in the live generation of ``name``."""
        table = self.open_table(name)
        try:
            return table.collection.count()
        except Exception as e:
            raise StorageError(f"Count failed on table {name}: {e}", operation="count", table=name) from e

    def table_dimension(self, name: str) -> int | None:
        return self.open_table(name).dimension

    def _collection_names(self) -> list[str]:
        try:
            collections = self._client.list_collections()
        except Exception as e:
            raise StorageError(f"Cannot list collections: {e}", operation="list") from e
        # Older chromadb returns Collection objects, newer returns names.
        return [c if isinstance(c, str) else c.name for c in collections]

    def _generations(self, table: str) -> tuple[list[tuple[int, str]], list[str]]:
        """Return (sorted live generations, staging collection names) for a table."""
        live = []
        staging = []
        for name in self._collection_names():
            match = GENERATION_PATTERN.match(name)
            if not match or match.group("table") != table:
                continue
            if match.group("kind") == "g":
                live.append((int(match.group("generation")), name))
            else:
                staging.append(name)
        live.sort()
        return live, staging

    def _delete_collection(self, collection_name: str, table: str) -> None:
        try:
            self._client.delete_collection(collection_name)
        except Exception as e:
            raise StorageError(
                f"Failed to delete collection {collection_name}: {e}",
                operation="drop",
                table=table,
            ) from e

    def _discard(self, collection_name: str) -> None:
        """Best-effort removal of a staging collection after a failed write."""
        try:
            self._client.delete_collection(collection_name)
        except Exception as e:
            logger.warning("Could not remove staging collection %s: %s", collection_name, e)


def _validate_table_name(name: str) -> None:
    if not TABLE_NAME_PATTERN.match(name):
        raise ValueError(
            f"Invalid table name {name!r}: use 1-40 letters, digits, '_' or '-', "
            "starting with a letter or digit"
        )


_connections: dict[str, ChromaStore] = {}
_connections_lock = threading.Lock()


def connect(path: str | Path) -> ChromaStore:
    """Open or create the store at ``path``.

    Idempotent and thread-safe: the same resolved path always returns the
    same ChromaStore instance within a process.
    """
    key = MEMORY_PATH if str(path) == MEMORY_PATH else str(Path(path).resolve())
    with _connections_lock:
        store = _connections.get(key)
        if store is None:
            store = ChromaStore(path=key)
            _connections[key] = store
        return store
