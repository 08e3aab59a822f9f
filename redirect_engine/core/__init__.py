"""Core components for the Redirect Engine."""

from .models import (
    SnapshotSource,
    CounterKind,
    ProductDefinition,
    ConfigurationSnapshot,
    FolderEntry,
    VersionArtifact,
    RedirectTarget,
    RedirectEngineError,
    ConfigurationError,
    ValidationError,
    NotFoundError,
    StorageError,
    TransientStorageError,
    AnalyticsError,
)
from .config_store import (
    Settings,
    get_base_dir,
    save_json,
    load_json,
    load_settings,
    save_settings,
)
from .rows import parse_row, to_row

__all__ = [
    "SnapshotSource",
    "CounterKind",
    "ProductDefinition",
    "ConfigurationSnapshot",
    "FolderEntry",
    "VersionArtifact",
    "RedirectTarget",
    "RedirectEngineError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "TransientStorageError",
    "AnalyticsError",
    "Settings",
    "get_base_dir",
    "save_json",
    "load_json",
    "load_settings",
    "save_settings",
    "parse_row",
    "to_row",
]
