"""Configuration Loader: builds ConfigurationSnapshots from the external store."""

import logging
from datetime import datetime, timezone

from redirect_engine.storage.adapter import RegistryStoreAdapter
from .config_store import Settings
from .models import (
    ConfigurationSnapshot,
    ConfigurationError,
    ProductDefinition,
    RedirectEngineError,
    SnapshotSource,
    ValidationError,
)
from .rows import parse_row, validate_name

logger = logging.getLogger(__name__)


class SnapshotBuilder:
    """
    Accumulates products for one snapshot with first-seen-wins on names.

    Rejected rows and duplicates are logged and kept as warnings.
    """

    def __init__(self):
        self.products: dict[str, ProductDefinition] = {}
        self.warnings: list[str] = []

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def add(self, product: ProductDefinition, origin: str) -> None:
        if product.name in self.products:
            self.warn(f"Duplicate product name '{product.name}' at {origin}; keeping the first")
            return
        self.products[product.name] = product

    def build(self, source: SnapshotSource) -> ConfigurationSnapshot:
        return ConfigurationSnapshot(
            products=self.products,
            source=source,
            loaded_at=datetime.now(timezone.utc),
            warnings=tuple(self.warnings),
        )


class ConfigurationLoader:
    """
    Builds a ConfigurationSnapshot using a priority chain of sources.

    Sources, first success wins:
    1. The primary store, when a store identifier is configured
    2. A scan of the fallback root folder's immediate subfolders
    """

    def __init__(self, adapter: RegistryStoreAdapter, settings: Settings):
        self.adapter = adapter
        self.settings = settings

    def load(self) -> ConfigurationSnapshot:
        """
        Load a fresh snapshot.

        Returns:
            The newly built ConfigurationSnapshot

        Raises:
            ConfigurationError: If no configuration source is usable
        """
        store_id = self.settings.effective_store_id
        fallback_id = self.settings.effective_fallback_root_folder_id
        primary_error: RedirectEngineError | None = None

        if store_id:
            try:
                return self._load_primary(store_id)
            except RedirectEngineError as e:
                primary_error = e
                logger.error(f"Primary store '{store_id}' unusable: {e}")

        if fallback_id:
            try:
                return self._load_fallback(fallback_id)
            except RedirectEngineError as e:
                logger.error(f"Fallback folder '{fallback_id}' unusable: {e}")
                raise ConfigurationError("no configuration source available") from e

        raise ConfigurationError("no configuration source available") from primary_error

    def _load_primary(self, store_id: str) -> ConfigurationSnapshot:
        rows = self.adapter.get_all_rows(store_id)
        builder = SnapshotBuilder()

        for index, row in enumerate(rows, start=1):
            origin = f"row {index}"
            try:
                product = parse_row(row)
            except ValidationError as e:
                builder.warn(f"Skipping {origin}: {e}")
                continue
            builder.add(product, origin)

        snapshot = builder.build(SnapshotSource.PRIMARY_STORE)
        logger.info(
            f"Loaded {len(snapshot)} products from primary store '{store_id}' "
            f"({len(snapshot.warnings)} warnings)"
        )
        return snapshot

    def _load_fallback(self, root_folder_id: str) -> ConfigurationSnapshot:
        entries = self.adapter.get_folder_listing(root_folder_id)
        builder = SnapshotBuilder()

        for entry in entries:
            if not entry.is_folder:
                continue
            origin = f"folder '{entry.entry_id}'"
            try:
                name = validate_name(entry.name)
            except ValidationError as e:
                builder.warn(f"Skipping {origin}: {e}")
                continue
            builder.add(ProductDefinition(name=name, folder_id=entry.entry_id), origin)

        snapshot = builder.build(SnapshotSource.FALLBACK_FOLDER_SCAN)
        logger.info(
            f"Loaded {len(snapshot)} products by scanning folder '{root_folder_id}'"
        )
        return snapshot
