"""
In-memory registry store backend.

Suitable for local runs and tests. Data is not persisted across restarts.
"""

import copy
import threading
from datetime import datetime, timezone
from typing import Any

from redirect_engine.core.models import FolderEntry, NotFoundError
from .base import RegistryStore


class InMemoryRegistryStore(RegistryStore):
    """
    RegistryStore kept entirely in process memory.

    Folders form a tree keyed by folder ID; files are leaves with their own
    creation and modification timestamps.
    """

    def __init__(self):
        # Registry rows indexed by store_id, in insertion order
        self._rows: dict[str, list[dict[str, Any]]] = {}

        # Folder children indexed by folder_id
        self._children: dict[str, list[FolderEntry]] = {}

        # All entries indexed by entry_id
        self._entries: dict[str, FolderEntry] = {}

        self._lock = threading.Lock()

    # ===== Setup helpers =====

    def create_store(self, store_id: str, rows: list[dict[str, Any]] | None = None) -> None:
        with self._lock:
            self._rows[store_id] = [dict(r) for r in rows or []]

    def add_folder(self, folder_id: str, name: str = "", parent_id: str | None = None) -> FolderEntry:
        """Create a folder, optionally as a child of parent_id."""
        now = datetime.now(timezone.utc)
        entry = FolderEntry(
            entry_id=folder_id,
            name=name or folder_id,
            is_folder=True,
            created_at=now,
            modified_at=now,
        )
        with self._lock:
            self._entries[folder_id] = entry
            self._children.setdefault(folder_id, [])
            if parent_id is not None:
                self._children.setdefault(parent_id, []).append(entry)
        return entry

    def add_file(
        self,
        folder_id: str,
        file_id: str,
        name: str,
        created_at: datetime,
        modified_at: datetime | None = None,
    ) -> FolderEntry:
        """Place a file directly inside folder_id."""
        entry = FolderEntry(
            entry_id=file_id,
            name=name,
            is_folder=False,
            created_at=created_at,
            modified_at=modified_at or created_at,
        )
        with self._lock:
            if folder_id not in self._children:
                raise NotFoundError(f"Folder '{folder_id}' not found")
            self._entries[file_id] = entry
            self._children[folder_id].append(entry)
        return entry

    # ===== RegistryStore interface =====

    def _store_rows(self, store_id: str) -> list[dict[str, Any]]:
        if store_id not in self._rows:
            raise NotFoundError(f"Store '{store_id}' not found")
        return self._rows[store_id]

    def get_all_rows(self, store_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._store_rows(store_id))

    def append_row(self, store_id: str, row: dict[str, Any]) -> None:
        with self._lock:
            self._store_rows(store_id).append(dict(row))

    def _index_of(self, rows: list[dict[str, Any]], name: str) -> int:
        for idx, row in enumerate(rows):
            if str(row.get("name", "")).strip() == name:
                return idx
        raise NotFoundError(f"Row '{name}' not found")

    def update_row(self, store_id: str, name: str, row: dict[str, Any]) -> None:
        with self._lock:
            rows = self._store_rows(store_id)
            rows[self._index_of(rows, name)] = dict(row)

    def delete_row(self, store_id: str, name: str) -> None:
        with self._lock:
            rows = self._store_rows(store_id)
            del rows[self._index_of(rows, name)]

    def list_folder(self, folder_id: str) -> list[FolderEntry]:
        with self._lock:
            if folder_id not in self._children:
                raise NotFoundError(f"Folder '{folder_id}' not found")
            return list(self._children[folder_id])

    def get_file_metadata(self, file_id: str) -> FolderEntry:
        with self._lock:
            entry = self._entries.get(file_id)
        if entry is None or entry.is_folder:
            raise NotFoundError(f"File '{file_id}' not found")
        return entry
