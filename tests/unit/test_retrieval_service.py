"""Unit tests for query-time retrieval and readiness."""

from unittest.mock import patch

import pytest

from docrag.errors import (
    DimensionMismatchError,
    InputValidationError,
    NotReadyError,
    StorageError,
)
from docrag.models.chunk import DocumentChunk
from docrag.models.search import SearchResult
from docrag.retrieval.service import RetrievalService

TEXTS = [
    "Run the installer and accept the defaults offered by the setup wizard.",
    "Install plugins from the marketplace page inside the admin console.",
    "Configure the database connection string in the settings file.",
    "Use the command line client to export records as CSV.",
    "Permissions are granted per group and inherited by child folders.",
]


@pytest.fixture
def populated_store(store, embedding_provider):
    chunks = []
    for i, text in enumerate(TEXTS):
        chunk = DocumentChunk(source=f"doc{i}.md", text=text, chunk_index=0)
        chunk.vector = embedding_provider.embed_one(text)
        chunks.append(chunk)
    store.create_table("documentation", chunks)
    return store


@pytest.fixture
def service(populated_store, embedding_provider):
    return RetrievalService(store=populated_store, embedding_provider=embedding_provider)


class TestReadiness:
    def test_not_ready_until_marked(self, service):
        assert service.is_ready() is False
        with pytest.raises(NotReadyError):
            service.search("installer")

    def test_mark_ready_enables_search(self, service):
        service.mark_ready()
        assert service.is_ready() is True
        assert service.search("installer")

    def test_probe_finds_existing_table(self, service):
        assert service.probe() is True
        assert service.is_ready() is True

    def test_probe_without_table(self, store, embedding_provider):
        service = RetrievalService(store=store, embedding_provider=embedding_provider)
        assert service.probe() is False
        assert service.is_ready() is False

    def test_probe_rejects_index_from_other_model(self, populated_store, make_provider):
        service = RetrievalService(
            store=populated_store, embedding_provider=make_provider(dimension=768)
        )
        with pytest.raises(DimensionMismatchError):
            service.probe()
        assert service.is_ready() is False

    def test_missing_table_after_ready_reports_not_ready(self, service, populated_store):
        service.mark_ready()
        populated_store.drop_table("documentation")
        with pytest.raises(NotReadyError):
            service.search("installer")


class TestSearch:
    def test_returns_search_results_nearest_first(self, service):
        service.mark_ready()
        results = service.search("installer setup wizard", limit=3)

        assert all(isinstance(r, SearchResult) for r in results)
        assert results[0].source == "doc0.md"
        assert results[0].text == TEXTS[0]
        scores = [r.score for r in results]
        assert scores == sorted(scores)

    def test_default_limit_is_three(self, service):
        service.mark_ready()
        assert len(service.search("the")) == 3

    def test_limit_never_exceeded(self, service):
        service.mark_ready()
        assert len(service.search("install", limit=1)) == 1
        assert len(service.search("install", limit=3)) == 3

    def test_limit_clamped_to_max(self, populated_store, embedding_provider):
        service = RetrievalService(
            store=populated_store, embedding_provider=embedding_provider, max_limit=2
        )
        service.mark_ready()
        assert len(service.search("install", limit=50)) == 2

    @pytest.mark.parametrize("limit", [0, -1, 2.5, "3", True])
    def test_invalid_limit_rejected(self, service, limit):
        service.mark_ready()
        with pytest.raises(InputValidationError) as exc_info:
            service.search("installer", limit=limit)
        assert exc_info.value.details["field"] == "limit"

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_blank_query_rejected(self, service, query):
        service.mark_ready()
        with pytest.raises(InputValidationError):
            service.search(query)

    def test_overlong_query_rejected(self, populated_store, embedding_provider):
        service = RetrievalService(
            store=populated_store, embedding_provider=embedding_provider, max_query_length=10
        )
        service.mark_ready()
        with pytest.raises(InputValidationError):
            service.search("x" * 11)

    def test_search_dimension_mismatch(self, populated_store, make_provider):
        service = RetrievalService(
            store=populated_store, embedding_provider=make_provider(dimension=64)
        )
        service.mark_ready()
        with pytest.raises(DimensionMismatchError):
            service.search("installer")


class TestReplacedGeneration:
    def test_table_dropped_before_retry_reports_not_ready(self, service, populated_store):
        service.mark_ready()

        def drop_then_fail(table, query_vector, k):
            populated_store.drop_table("documentation")
            raise StorageError("collection vanished", operation="search", table=table.name)

        with patch.object(populated_store, "vector_search", side_effect=drop_then_fail):
            with pytest.raises(NotReadyError):
                service.search("installer")

    def test_transient_failure_retried_once(self, service, populated_store):
        service.mark_ready()
        real_search = populated_store.vector_search
        calls = []

        def fail_first(table, query_vector, k):
            calls.append(table.name)
            if len(calls) == 1:
                raise StorageError("superseded", operation="search", table=table.name)
            return real_search(table, query_vector, k)

        with patch.object(populated_store, "vector_search", side_effect=fail_first):
            results = service.search("installer setup wizard")

        assert len(calls) == 2
        assert results[0].source == "doc0.md"

    def test_persistent_storage_failure_propagates(self, service, populated_store):
        service.mark_ready()
        failure = StorageError("disk gone", operation="search", table="documentation")
        with patch.object(populated_store, "vector_search", side_effect=failure) as mock_search:
            with pytest.raises(StorageError):
                service.search("installer")
        assert mock_search.call_count == 2
