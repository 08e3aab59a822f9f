"""
HTTP Registry Store

RegistryStore backend talking to a JSON-over-HTTP service that fronts the
tabular registry and the file hierarchy.
"""

import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from redirect_engine.core.models import (
    FolderEntry,
    NotFoundError,
    StorageError,
    TransientStorageError,
)
from .base import RegistryStore

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 timestamp as sent by the store service.

    Returns:
        datetime, or None if the value is empty
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value

    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise StorageError(f"Invalid timestamp from store: {value!r}")


def parse_entry(data: dict[str, Any]) -> FolderEntry:
    """Convert a file/folder JSON object into a FolderEntry."""
    if not isinstance(data, dict) or "id" not in data:
        raise StorageError(f"Store returned an entry without an id: {data!r}")

    is_folder = bool(data.get("isFolder")) or data.get("mimeType") == FOLDER_MIME_TYPE
    return FolderEntry(
        entry_id=str(data["id"]),
        name=str(data.get("name", "")),
        is_folder=is_folder,
        created_at=parse_timestamp(data.get("createdTime")),
        modified_at=parse_timestamp(data.get("modifiedTime")),
    )


class HttpRegistryStore(RegistryStore):
    """
    Registry store reached over HTTP.

    Each call makes exactly one request; retrying is left to
    RegistryStoreAdapter. Timeouts are those of the underlying httpx client.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        http_client: httpx.Client | None = None,
        timeout_seconds: float = 10.0,
    ):
        """
        Initialize the store client.

        Args:
            base_url: Base URL of the store service
            token: Optional bearer token
            http_client: Optional httpx client (created if None)
            timeout_seconds: Request timeout in seconds
        """
        if not base_url:
            raise ValueError("base_url is required")

        self.base_url = base_url
        self.token = token
        self.timeout_seconds = timeout_seconds

        # Track if we own the HTTP client (for cleanup)
        self._owns_client = http_client is None

        if http_client is None:
            self.http_client = httpx.Client(timeout=timeout_seconds)
        else:
            self.http_client = http_client

    def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client and self.http_client:
            self.http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _build_url(self, *segments: str) -> str:
        base_url = self.base_url.rstrip("/")
        path = "/".join(quote(segment, safe="") for segment in segments)
        return f"{base_url}/{path}"

    def _request(
        self,
        method: str,
        *segments: str,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make a single HTTP request.

        Returns:
            Decoded JSON body, or None for an empty body

        Raises:
            NotFoundError: On 404
            StorageError: On any other 4xx or an undecodable success body
            TransientStorageError: On 5xx or network failure
        """
        url = self._build_url(*segments)
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self.http_client.request(
                method=method,
                url=url,
                headers=headers,
                json=json_body,
            )
        except httpx.RequestError as e:
            raise TransientStorageError(f"Request to {url} failed: {e}")

        if 200 <= response.status_code < 300:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise StorageError(f"Invalid JSON from {method} {url}: {e}")

        if response.status_code == 404:
            raise NotFoundError(f"Not found: {method} {url}")

        if 400 <= response.status_code < 500:
            raise StorageError(
                f"Store rejected {method} {url}: {response.status_code} {response.text}"
            )

        raise TransientStorageError(
            f"Store error on {method} {url}: {response.status_code} {response.text}"
        )

    @staticmethod
    def _items(payload: Any, key: str) -> list[Any]:
        # Accept both a bare list and a wrapper object
        if payload is None:
            return []
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict) and isinstance(payload.get(key), list):
            return payload[key]
        raise StorageError(f"Unexpected response shape, expected '{key}' list")

    # ===== Registry rows =====

    def get_all_rows(self, store_id: str) -> list[dict[str, Any]]:
        payload = self._request("GET", "stores", store_id, "rows")
        rows = self._items(payload, "rows")
        logger.debug(f"Fetched {len(rows)} rows from store '{store_id}'")
        return rows

    def append_row(self, store_id: str, row: dict[str, Any]) -> None:
        self._request("POST", "stores", store_id, "rows", json_body=row)

    def update_row(self, store_id: str, name: str, row: dict[str, Any]) -> None:
        self._request("PUT", "stores", store_id, "rows", name, json_body=row)

    def delete_row(self, store_id: str, name: str) -> None:
        self._request("DELETE", "stores", store_id, "rows", name)

    # ===== File hierarchy =====

    def list_folder(self, folder_id: str) -> list[FolderEntry]:
        payload = self._request("GET", "folders", folder_id, "children")
        return [parse_entry(item) for item in self._items(payload, "files")]

    def get_file_metadata(self, file_id: str) -> FolderEntry:
        payload = self._request("GET", "files", file_id)
        if not isinstance(payload, dict):
            raise StorageError(f"Unexpected metadata response for file '{file_id}'")
        return parse_entry(payload)
