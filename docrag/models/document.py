"""Documentation source document data model."""

from dataclasses import dataclass


@dataclass
class Document:
    """A markdown file from the documentation corpus."""

    path: str
    text: str

    def __post_init__(self):
        if not self.path:
            raise ValueError("path must not be empty")
