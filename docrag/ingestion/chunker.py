"""Header-boundary markdown chunker."""

import re
from collections.abc import Iterator

from docrag.models.chunk import MIN_CHUNK_LENGTH, DocumentChunk
from docrag.models.document import Document

# A header line: one or more '#' at line start followed by whitespace.
# The marker is consumed; the header title stays with its section.
HEADER_PATTERN = re.compile(r"^#+\s", re.MULTILINE)


def split_markdown(text: str, min_length: int = MIN_CHUNK_LENGTH) -> Iterator[str]:
    """Yield trimmed sections of ``text`` split on markdown header lines.

    Content before the first header is its own section. Sections shorter
    than ``min_length`` after trimming (e.g. a bare header) are dropped.
    Calling again restarts the sequence.
    """
    start = 0
    for match in HEADER_PATTERN.finditer(text):
        section = text[start:match.start()].strip()
        if len(section) >= min_length:
            yield section
        start = match.end()

    section = text[start:].strip()
    if len(section) >= min_length:
        yield section


def chunk_document(
    document: Document,
    min_length: int = MIN_CHUNK_LENGTH,
) -> list[DocumentChunk]:
    """Split a document into chunks tagged with its path as provenance."""
    return [
        DocumentChunk(source=document.path, text=section, chunk_index=idx)
        for idx, section in enumerate(split_markdown(document.text, min_length))
    ]
