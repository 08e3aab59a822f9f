"""Base class for registry store backends."""

from abc import ABC, abstractmethod
from typing import Any

from redirect_engine.core.models import FolderEntry


class RegistryStore(ABC):
    """
    Abstract base class for the external stores the engine reads and writes.

    A backend covers two external systems: a tabular store holding registry
    rows keyed by product name, and a hierarchical file store of folders
    containing dated files.

    Backends make a single attempt per call. They raise
    TransientStorageError for failures that may succeed on retry,
    NotFoundError when a store, row, folder or file does not exist and
    StorageError for any other permanent failure.
    """

    @abstractmethod
    def get_all_rows(self, store_id: str) -> list[dict[str, Any]]:
        """
        Return every registry row in the store, in stored order.

        Args:
            store_id: Identifier of the tabular store

        Returns:
            List of rows as column-name to value mappings
        """
        pass

    @abstractmethod
    def append_row(self, store_id: str, row: dict[str, Any]) -> None:
        """Append a row to the end of the registry."""
        pass

    @abstractmethod
    def update_row(self, store_id: str, name: str, row: dict[str, Any]) -> None:
        """
        Replace the row whose name column equals name.

        Raises:
            NotFoundError: If no such row exists
        """
        pass

    @abstractmethod
    def delete_row(self, store_id: str, name: str) -> None:
        """
        Remove the row whose name column equals name.

        Raises:
            NotFoundError: If no such row exists
        """
        pass

    @abstractmethod
    def list_folder(self, folder_id: str) -> list[FolderEntry]:
        """
        List the direct children of a folder.

        Raises:
            NotFoundError: If the folder does not exist
        """
        pass

    @abstractmethod
    def get_file_metadata(self, file_id: str) -> FolderEntry:
        """
        Return metadata for a single file.

        Raises:
            NotFoundError: If the file does not exist
        """
        pass
