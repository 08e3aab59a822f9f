"""
Registry Store Adapter

Thin retrying client over a RegistryStore backend. Reads and folder
verification are retried on transient failures; writes are attempted once.
"""

import logging
import time
from typing import Any, Callable, TypeVar

from redirect_engine.core.models import FolderEntry, TransientStorageError
from .base import RegistryStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RegistryStoreAdapter:
    """
    Retrying facade used by every engine component to reach the external store.

    Features:
    - Bounded retries (fixed spacing) for reads and reachability checks
    - Single-attempt writes, so a failed commit surfaces immediately
    - Only TransientStorageError is retried; not-found and permanent
      errors propagate on the first attempt
    """

    def __init__(
        self,
        backend: RegistryStore,
        max_attempts: int = 3,
        retry_delay: float = 0.5,
    ):
        """
        Initialize the adapter.

        Args:
            backend: Store backend performing single attempts
            max_attempts: Maximum attempts for retried calls
            retry_delay: Fixed delay in seconds between attempts
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.backend = backend
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    def _with_retries(self, operation: str, call: Callable[[], T]) -> T:
        """
        Run call, retrying on TransientStorageError.

        Raises:
            TransientStorageError: When every attempt failed transiently,
                with attempts set to the number of attempts made
        """
        last_error: TransientStorageError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return call()
            except TransientStorageError as e:
                last_error = e
                logger.warning(
                    f"{operation} failed (attempt {attempt}/{self.max_attempts}): {e}"
                )

            if attempt < self.max_attempts:
                time.sleep(self.retry_delay)

        logger.error(f"{operation} failed after {self.max_attempts} attempts")
        raise TransientStorageError(
            f"{operation} failed after {self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
        ) from last_error

    # ===== Reads (retried) =====

    def get_all_rows(self, store_id: str) -> list[dict[str, Any]]:
        return self._with_retries(
            f"Reading rows from store '{store_id}'",
            lambda: self.backend.get_all_rows(store_id),
        )

    def get_folder_listing(self, folder_id: str) -> list[FolderEntry]:
        return self._with_retries(
            f"Listing folder '{folder_id}'",
            lambda: self.backend.list_folder(folder_id),
        )

    def get_file_metadata(self, file_id: str) -> FolderEntry:
        return self._with_retries(
            f"Reading metadata for file '{file_id}'",
            lambda: self.backend.get_file_metadata(file_id),
        )

    def verify_folder(self, folder_id: str) -> None:
        """
        Check that a folder is reachable.

        Raises:
            NotFoundError: If the folder does not exist
            TransientStorageError: If the store kept failing
        """
        self._with_retries(
            f"Verifying folder '{folder_id}'",
            lambda: self.backend.list_folder(folder_id),
        )
        logger.debug(f"Folder '{folder_id}' is reachable")

    # ===== Writes (single attempt) =====

    def append_row(self, store_id: str, row: dict[str, Any]) -> None:
        self.backend.append_row(store_id, row)

    def update_row(self, store_id: str, name: str, row: dict[str, Any]) -> None:
        self.backend.update_row(store_id, name, row)

    def delete_row(self, store_id: str, name: str) -> None:
        self.backend.delete_row(store_id, name)
