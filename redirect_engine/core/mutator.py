"""Registry Mutator: create, update, delete and toggle product definitions."""

import dataclasses
import logging
import threading
from typing import Any

from redirect_engine.storage.adapter import RegistryStoreAdapter
from .cache import ConfigurationCache
from .models import (
    ConfigurationError,
    ConfigurationSnapshot,
    NotFoundError,
    ProductDefinition,
    SnapshotSource,
    ValidationError,
)
from .rows import (
    parse_enabled,
    parse_tags,
    to_row,
    validate_folder_id,
    validate_name,
)

logger = logging.getLogger(__name__)

# Patch keys (registry column names) mapped to ProductDefinition fields
PATCHABLE_FIELDS = {
    "folderId": "folder_id",
    "displayName": "display_name",
    "enabled": "enabled",
    "description": "description",
    "category": "category",
    "tags": "tags",
}


class RegistryMutator:
    """
    Applies admin changes to the product registry.

    Every operation validates against a freshly loaded snapshot before touching
    the store and invalidates the cache after a successful commit. Operations
    on one mutator are serialized; writers in other processes are not
    coordinated with, so two concurrent adds of the same name can still both
    commit.
    """

    def __init__(
        self,
        adapter: RegistryStoreAdapter,
        cache: ConfigurationCache,
        store_id: str,
    ):
        """
        Initialize the mutator.

        Args:
            adapter: Store adapter used for verification and commits
            cache: Cache consulted for the current snapshot and invalidated on change
            store_id: Identifier of the primary store receiving writes
        """
        self.adapter = adapter
        self.cache = cache
        self.store_id = store_id
        self._lock = threading.Lock()

    def _require_store(self) -> str:
        if not self.store_id:
            raise ConfigurationError("No primary store configured for registry changes")
        return self.store_id

    def _current_snapshot(self) -> ConfigurationSnapshot:
        # Writes are checked against a fresh primary snapshot, never a stale one
        snapshot = self.cache.get(allow_stale=False)
        if snapshot.source != SnapshotSource.PRIMARY_STORE:
            raise ConfigurationError(
                f"Registry store '{self.store_id}' could not be read; changes are unavailable"
            )
        return snapshot

    def _get_existing(self, name: str) -> ProductDefinition:
        product = self._current_snapshot().get(name)
        if product is None:
            raise NotFoundError(f"Product '{name}' not found")
        return product

    def _verify_folder(self, folder_id: str) -> None:
        try:
            self.adapter.verify_folder(folder_id)
        except NotFoundError:
            raise ValidationError(f"Folder '{folder_id}' is not reachable")

    def add(self, definition: ProductDefinition) -> ProductDefinition:
        """
        Add a new product to the registry.

        Raises:
            ValidationError: If the name is malformed or taken, or the
                folder is missing or unreachable
            TransientStorageError: If folder verification kept failing
            ConfigurationError: If the registry store cannot be read fresh
        """
        name = validate_name(definition.name)
        folder_id = validate_folder_id(definition.folder_id)
        definition = dataclasses.replace(definition, name=name, folder_id=folder_id)

        with self._lock:
            store_id = self._require_store()
            if name in self._current_snapshot():
                raise ValidationError(f"Product '{name}' already exists")

            self._verify_folder(folder_id)

            self.adapter.append_row(store_id, to_row(definition))
            self.cache.invalidate()

        logger.info(f"Added product '{name}' (folder {folder_id})")
        return definition

    def update(self, name: str, patch: dict[str, Any]) -> ProductDefinition:
        """
        Apply a partial update to an existing product.

        Args:
            name: Product to update
            patch: Registry column names mapped to new values. The name
                itself cannot be changed.

        Raises:
            NotFoundError: If the product does not exist
            ValidationError: If the patch is invalid or a new folder is unreachable
        """
        changes = self._parse_patch(name, patch)

        with self._lock:
            store_id = self._require_store()
            current = self._get_existing(name)
            updated = dataclasses.replace(current, **changes)

            if updated.folder_id != current.folder_id:
                self._verify_folder(updated.folder_id)

            self.adapter.update_row(store_id, name, to_row(updated))
            self.cache.invalidate()

        logger.info(f"Updated product '{name}': {', '.join(sorted(changes)) or 'no changes'}")
        return updated

    def delete(self, name: str) -> None:
        """
        Permanently remove a product from the registry.

        Raises:
            NotFoundError: If the product does not exist
        """
        with self._lock:
            store_id = self._require_store()
            self._get_existing(name)
            self.adapter.delete_row(store_id, name)
            self.cache.invalidate()

        logger.info(f"Deleted product '{name}'")

    def set_enabled(self, name: str, enabled: bool) -> ProductDefinition:
        """
        Enable or disable a product without re-verifying its folder.

        Raises:
            NotFoundError: If the product does not exist
        """
        with self._lock:
            store_id = self._require_store()
            current = self._get_existing(name)
            updated = dataclasses.replace(current, enabled=bool(enabled))
            self.adapter.update_row(store_id, name, to_row(updated))
            self.cache.invalidate()

        logger.info(f"Product '{name}' {'enabled' if enabled else 'disabled'}")
        return updated

    def _parse_patch(self, name: str, patch: dict[str, Any]) -> dict[str, Any]:
        """
        Validate a patch and convert it to ProductDefinition field values.

        Raises:
            ValidationError: On unknown keys, a rename attempt or bad values
        """
        changes: dict[str, Any] = {}

        for key, value in patch.items():
            if key == "name":
                if value != name:
                    raise ValidationError("Product name cannot be changed")
                continue

            if key not in PATCHABLE_FIELDS:
                raise ValidationError(f"Unknown field '{key}'")

            if key == "folderId":
                value = validate_folder_id(value)
            elif key == "enabled":
                if value is None or str(value).strip() == "":
                    raise ValidationError("Enabled must be true or false")
                value = parse_enabled(value)
            elif key == "tags":
                value = parse_tags(value)
            else:
                value = "" if value is None else str(value).strip()

            changes[PATCHABLE_FIELDS[key]] = value

        return changes
