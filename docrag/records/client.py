"""HTTP client for the remote entity/record store.

A side channel only: the retrieval core never depends on it. Session
handling with the remote platform is out of scope; a static token, when
configured, is sent in the ``token`` header.
"""

import logging
from urllib.parse import quote

import requests

from docrag.errors import RecordStoreError

logger = logging.getLogger(__name__)


class RecordStoreClient:
    """Read-only access to entities and records on the remote platform."""

    def __init__(self, base_url: str, token: str = "", timeout: float = 30.0):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url)

    def list_entities(self) -> list[dict]:
        """Fetch the entity list."""
        data = self._get("/entities")
        if isinstance(data, dict):
            return data.get("items", [])
        return data

    def get_record(self, entity: str, record_id: str) -> dict:
        """Fetch one record of ``entity`` by ID."""
        if not entity or not record_id:
            raise RecordStoreError("entity and record_id are required")
        return self._get(f"/data/{quote(entity, safe='')}/{quote(record_id, safe='')}")

    def _get(self, path: str, params: dict | None = None):
        if not self.is_configured:
            raise RecordStoreError("Record store URL is not configured")

        url = f"{self._base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["token"] = self._token

        try:
            response = requests.get(url, headers=headers, params=params, timeout=self._timeout)
        except requests.RequestException as e:
            logger.warning("Record store request to %s failed: %s", url, e)
            raise RecordStoreError(f"Record store unreachable: {e}") from e

        if response.status_code >= 400:
            raise RecordStoreError(
                f"Record store error ({response.status_code}): {response.text}",
                status_code=response.status_code,
                details={"url": url},
            )

        try:
            return response.json()
        except ValueError as e:
            raise RecordStoreError(
                f"Record store returned invalid JSON from {url}",
                status_code=response.status_code,
            ) from e
