"""Documentation Chunk data model."""

import hashlib
from dataclasses import dataclass, field

MIN_CHUNK_LENGTH = 50


def make_chunk_id(source: str, chunk_index: int) -> str:
    """Deterministic chunk ID, stable across re-ingestion of the same file."""
    raw = f"{source}::{chunk_index}"
    return hashlib.sha256(raw.encode()).hexdigest()[:16]


@dataclass
class DocumentChunk:
    """A retrievable section of a documentation file."""

    source: str
    text: str
    chunk_index: int
    vector: list[float] = field(default_factory=list)
    id: str = ""

    def __post_init__(self):
        if len(self.text) < MIN_CHUNK_LENGTH:
            raise ValueError(
                f"text must be at least {MIN_CHUNK_LENGTH} characters, got {len(self.text)}"
            )
        if not self.source:
            raise ValueError("source must not be empty")
        if self.chunk_index < 0:
            raise ValueError("chunk_index must be >= 0")
        if not self.id:
            self.id = make_chunk_id(self.source, self.chunk_index)
