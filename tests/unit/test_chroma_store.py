"""Unit tests for the generation-swapping ChromaDB store."""

import os
from unittest.mock import patch

import pytest

from docrag.errors import DimensionMismatchError, StorageError, TableNotFoundError
from docrag.models.chunk import DocumentChunk
from docrag.models.enums import DropResult
from docrag.vectorstore.chroma_store import ChromaStore, connect


def _chunks(provider, texts, source="guide.md"):
    chunks = [DocumentChunk(source=source, text=t, chunk_index=i) for i, t in enumerate(texts)]
    for chunk, vector in zip(chunks, provider.embed(texts)):
        chunk.vector = vector
    return chunks


TEXTS = [
    "Run the installer and accept the defaults offered by the setup wizard.",
    "Configure the database connection string in the settings file.",
    "Use the command line client to export records as CSV.",
    "Permissions are granted per group and inherited by child folders.",
]


class TestTableLifecycle:
    def test_new_store_has_no_tables(self, store):
        assert store.list_tables() == set()

    def test_create_then_list_and_count(self, store, embedding_provider):
        written = store.create_table("documentation", _chunks(embedding_provider, TEXTS))
        assert written == 4
        assert store.list_tables() == {"documentation"}
        assert store.count("documentation") == 4
        assert store.table_dimension("documentation") == embedding_provider.dimension

    def test_create_replaces_previous_generation(self, store, embedding_provider):
        store.create_table("documentation", _chunks(embedding_provider, TEXTS))
        store.create_table("documentation", _chunks(embedding_provider, TEXTS[:2]))
        assert store.count("documentation") == 2
        live, staging = store._generations("documentation")
        assert len(live) == 1
        assert staging == []

    def test_tables_are_independent(self, store, embedding_provider):
        store.create_table("documentation", _chunks(embedding_provider, TEXTS))
        store.create_table("changelog", _chunks(embedding_provider, TEXTS[:1]))
        assert store.list_tables() == {"documentation", "changelog"}
        assert store.count("documentation") == 4

    def test_drop_missing_table_is_reported_not_raised(self, store):
        assert store.drop_table("documentation") is DropResult.MISSING

    def test_drop_existing_table(self, store, embedding_provider):
        store.create_table("documentation", _chunks(embedding_provider, TEXTS))
        assert store.drop_table("documentation") is DropResult.DROPPED
        assert store.list_tables() == set()

    def test_open_missing_table_raises(self, store):
        with pytest.raises(TableNotFoundError):
            store.open_table("documentation")

    def test_persists_across_instances(self, tmp_path, embedding_provider):
        path = str(tmp_path / "persist")
        ChromaStore(path=path).create_table("documentation", _chunks(embedding_provider, TEXTS))
        assert ChromaStore(path=path).count("documentation") == 4


class TestCreateTableValidation:
    def test_empty_rows_rejected(self, store):
        with pytest.raises(ValueError):
            store.create_table("documentation", [])

    def test_missing_vectors_rejected(self, store):
        chunk = DocumentChunk(source="a.md", text=TEXTS[0], chunk_index=0)
        with pytest.raises(ValueError):
            store.create_table("documentation", [chunk])

    def test_ragged_vectors_rejected(self, store, embedding_provider):
        chunks = _chunks(embedding_provider, TEXTS[:2])
        chunks[1].vector = chunks[1].vector[:10]
        with pytest.raises(ValueError):
            store.create_table("documentation", chunks)

    @pytest.mark.parametrize("name", ["", "bad name", "-leading", "x" * 41, "a.b"])
    def test_invalid_table_names_rejected(self, store, embedding_provider, name):
        with pytest.raises(ValueError):
            store.create_table(name, _chunks(embedding_provider, TEXTS[:1]))


class TestAtomicReplace:
    def test_failed_write_keeps_previous_generation_live(self, store, embedding_provider):
        store.create_table("documentation", _chunks(embedding_provider, TEXTS))

        with patch("chromadb.api.models.Collection.Collection.add", side_effect=RuntimeError("disk full")):
            with pytest.raises(StorageError) as exc_info:
                store.create_table("documentation", _chunks(embedding_provider, TEXTS[:1]))

        assert exc_info.value.details["operation"] == "create"
        assert store.count("documentation") == 4
        live, staging = store._generations("documentation")
        assert len(live) == 1
        assert staging == []

    def test_staging_collection_is_not_a_table(self, store, embedding_provider):
        store._client.create_collection(name="documentation__s00000000000000000001")
        assert store.list_tables() == set()
        with pytest.raises(TableNotFoundError):
            store.open_table("documentation")

    def test_stale_staging_removed_on_next_create(self, store, embedding_provider):
        store._client.create_collection(name="documentation__s00000000000000000001")
        store.create_table("documentation", _chunks(embedding_provider, TEXTS))
        _, staging = store._generations("documentation")
        assert staging == []

    def test_newest_generation_wins(self, store, embedding_provider):
        store.create_table("documentation", _chunks(embedding_provider, TEXTS))
        # A superseded generation that could not be deleted stays unreachable.
        store._client.create_collection(name="documentation__g00000000000000000001")
        assert store.count("documentation") == 4


class TestVectorSearch:
    def test_results_ordered_by_distance(self, store, embedding_provider):
        store.create_table("documentation", _chunks(embedding_provider, TEXTS))
        table = store.open_table("documentation")
        query = embedding_provider.embed_one("installer setup wizard defaults")

        rows = store.vector_search(table, query, k=4)

        assert len(rows) == 4
        assert rows[0]["text"] == TEXTS[0]
        assert rows[0]["source"] == "guide.md"
        distances = [r["distance"] for r in rows]
        assert distances == sorted(distances)

    def test_k_larger_than_table(self, store, embedding_provider):
        store.create_table("documentation", _chunks(embedding_provider, TEXTS[:2]))
        table = store.open_table("documentation")
        rows = store.vector_search(table, embedding_provider.embed_one("export"), k=10)
        assert len(rows) == 2

    def test_k_must_be_positive(self, store, embedding_provider):
        store.create_table("documentation", _chunks(embedding_provider, TEXTS))
        table = store.open_table("documentation")
        with pytest.raises(ValueError):
            store.vector_search(table, embedding_provider.embed_one("export"), k=0)

    def test_dimension_mismatch_is_fatal(self, store, embedding_provider):
        store.create_table("documentation", _chunks(embedding_provider, TEXTS))
        table = store.open_table("documentation")
        with pytest.raises(DimensionMismatchError) as exc_info:
            store.vector_search(table, [0.1] * 16, k=3)
        assert exc_info.value.details == {"expected": 384, "actual": 16, "table": "documentation"}


class TestConnect:
    def test_same_path_returns_same_store(self, tmp_path):
        first = connect(tmp_path / "db")
        second = connect(str(tmp_path / "db"))
        assert first is second

    def test_creates_missing_directory(self, tmp_path):
        target = tmp_path / "nested" / "db"
        connect(target)
        assert target.is_dir()

    @pytest.mark.skipif(os.geteuid() == 0, reason="root can write anywhere")
    def test_unwritable_path_raises(self, tmp_path):
        locked = tmp_path / "locked"
        locked.mkdir()
        locked.chmod(0o500)
        try:
            with pytest.raises(StorageError):
                ChromaStore(path=str(locked / "db"))
        finally:
            locked.chmod(0o700)

    def test_path_under_a_file_raises(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(StorageError):
            ChromaStore(path=str(blocker / "db"))
