"""Corpus discovery and loading from a local documentation tree."""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from docrag.errors import InputValidationError, StorageError
from docrag.models.document import Document

logger = logging.getLogger(__name__)

DEFAULT_SUFFIXES = (".md", ".markdown")


def discover_documents(
    root: Path,
    suffixes: Iterable[str] = DEFAULT_SUFFIXES,
) -> list[Path]:
    """Find all markdown files under ``root``, recursively, in sorted order.

    Files inside hidden directories (``.git``, ``.obsidian``...) are skipped.
    A missing root yields an empty list.
    """
    if not root.is_dir():
        logger.warning("Documentation directory not found: %s", root)
        return []

    wanted = {s.lower() for s in suffixes}
    files = []
    for path in root.rglob("*"):
        if not path.is_file() or path.suffix.lower() not in wanted:
            continue
        rel_parts = path.relative_to(root).parts
        if any(part.startswith(".") for part in rel_parts[:-1]):
            continue
        files.append(path)
    return sorted(files)


def load_documents(
    root: Path,
    suffixes: Iterable[str] = DEFAULT_SUFFIXES,
) -> Iterator[Document]:
    """Yield a Document per markdown file, keyed by its POSIX path relative to root.

    Raises:
        StorageError: If a discovered file cannot be read.
    """
    for path in discover_documents(root, suffixes):
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise StorageError(
                f"Cannot read documentation file {path}: {e}",
                operation="read",
                details={"path": str(path)},
            ) from e
        yield Document(path=path.relative_to(root).as_posix(), text=text)


def read_document(root: Path, relative_path: str) -> str:
    """Read one corpus file by relative path.

    Raises:
        InputValidationError: If the path escapes the documentation root.
        FileNotFoundError: If the file does not exist.
    """
    base = root.resolve()
    target = (base / relative_path).resolve()
    if not target.is_relative_to(base):
        raise InputValidationError(
            f"Path escapes documentation root: {relative_path}", field="path"
        )
    if not target.is_file():
        raise FileNotFoundError(relative_path)
    return target.read_text(encoding="utf-8", errors="replace")
