"""Search result and ingestion report data models."""

from dataclasses import asdict, dataclass


@dataclass
class SearchResult:
    """A chunk returned for a query. Lower score means more similar."""

    text: str
    source: str
    score: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class IngestionReport:
    """Summary of one full rebuild of the documentation index."""

    table: str
    chunks_written: int
    documents_found: int
    documents_skipped: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
