"""Backends and the retrying adapter for the external registry store."""

from .base import RegistryStore
from .adapter import RegistryStoreAdapter
from .memory import InMemoryRegistryStore
from .http_store import HttpRegistryStore

__all__ = [
    "RegistryStore",
    "RegistryStoreAdapter",
    "InMemoryRegistryStore",
    "HttpRegistryStore",
]
