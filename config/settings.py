"""Application configuration management."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """docrag settings loaded from environment variables."""

    # Corpus
    docrag_docs_path: str = "./docs"
    docrag_doc_suffixes: list[str] = [".md", ".markdown"]

    # Storage
    docrag_db_path: str = "./data/chroma"
    docrag_table_name: str = "documentation"

    # Embedding
    docrag_embedding_model: str = "all-MiniLM-L6-v2"
    docrag_embedding_batch_size: int = 32

    # Chunking. Sections shorter than 50 characters are never indexed.
    docrag_min_chunk_length: int = Field(default=50, ge=50)

    # Search
    docrag_default_limit: int = 3
    docrag_max_limit: int = 20
    docrag_max_query_length: int = 1000

    # Remote record store (side channel)
    docrag_record_store_url: str = ""
    docrag_record_store_token: str = ""
    docrag_record_store_timeout: float = 30.0

    docrag_log_level: str = "INFO"

    @property
    def docs_path(self) -> Path:
        return Path(self.docrag_docs_path)

    @property
    def db_path(self) -> Path:
        return Path(self.docrag_db_path)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
