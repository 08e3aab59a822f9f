"""Core data models for the Redirect Engine."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
DEFAULT_CATEGORY = "Uncategorized"


class SnapshotSource(Enum):
    """Where a configuration snapshot was built from."""
    PRIMARY_STORE = "primary-store"
    FALLBACK_FOLDER_SCAN = "fallback-folder-scan"


class CounterKind(Enum):
    """Kinds of access counters kept per product."""
    TOTAL = "total"
    LATEST = "latest"
    SPECIFIC = "specific"


@dataclass(frozen=True)
class ProductDefinition:
    """Definition of a product whose template versions live in one folder."""
    name: str
    folder_id: str
    display_name: str = ""
    enabled: bool = True
    description: str = ""
    category: str = DEFAULT_CATEGORY
    tags: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if not self.display_name:
            object.__setattr__(self, "display_name", self.name)
        if not self.category:
            object.__setattr__(self, "category", DEFAULT_CATEGORY)
        # Tags are lowercase tokens however the definition was built
        object.__setattr__(
            self,
            "tags",
            frozenset(t.strip().lower() for t in self.tags if t.strip()),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert ProductDefinition to a dictionary."""
        return {
            "name": self.name,
            "folderId": self.folder_id,
            "displayName": self.display_name,
            "enabled": self.enabled,
            "description": self.description,
            "category": self.category,
            "tags": sorted(self.tags),
        }


@dataclass(frozen=True)
class ConfigurationSnapshot:
    """
    One immutable, fully-loaded view of the product registry.

    Products keep the order in which they were read from the source.
    """
    products: Mapping[str, ProductDefinition]
    source: SnapshotSource
    loaded_at: datetime
    warnings: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "products", MappingProxyType(dict(self.products)))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    def get(self, name: str) -> ProductDefinition | None:
        return self.products.get(name)

    def names(self) -> list[str]:
        return list(self.products)

    def enabled_products(self) -> list[ProductDefinition]:
        return [p for p in self.products.values() if p.enabled]

    def __contains__(self, name: object) -> bool:
        return name in self.products

    def __iter__(self) -> Iterator[ProductDefinition]:
        return iter(self.products.values())

    def __len__(self) -> int:
        return len(self.products)


@dataclass(frozen=True)
class FolderEntry:
    """A direct child of a folder in the file store."""
    entry_id: str
    name: str
    is_folder: bool = False
    created_at: datetime | None = None
    modified_at: datetime | None = None


@dataclass(frozen=True)
class VersionArtifact:
    """A concrete file (template version) selected for a redirect."""
    file_id: str
    file_name: str
    created_at: datetime | None


@dataclass(frozen=True)
class RedirectTarget:
    """Result of a redirect request."""
    product: str
    url: str
    artifact: VersionArtifact


class RedirectEngineError(Exception):
    """Base class for all Redirect Engine errors."""
    pass


class ConfigurationError(RedirectEngineError):
    """Raised when no usable configuration source is available."""
    pass


class ValidationError(RedirectEngineError):
    """Raised when input does not satisfy a registry rule."""
    pass


class NotFoundError(RedirectEngineError):
    """Raised when a product, folder or version is absent or disabled."""
    pass


class StorageError(RedirectEngineError):
    """Raised when the external store rejects a request permanently."""
    pass


class TransientStorageError(RedirectEngineError):
    """Raised when the external store fails in a way that may succeed later."""

    def __init__(self, message: str, attempts: int = 1):
        super().__init__(message)
        self.attempts = attempts


class AnalyticsError(RedirectEngineError):
    """Raised when an access counter cannot be updated."""
    pass
