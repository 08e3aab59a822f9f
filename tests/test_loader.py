"""Tests for the Configuration Loader."""

import pytest
from unittest.mock import Mock, patch

from redirect_engine.core.config_store import Settings
from redirect_engine.core.loader import ConfigurationLoader
from redirect_engine.core.models import (
    ConfigurationError,
    ProductDefinition,
    SnapshotSource,
    TransientStorageError,
)
from redirect_engine.storage.adapter import RegistryStoreAdapter
from redirect_engine.storage.base import RegistryStore
from redirect_engine.storage.memory import InMemoryRegistryStore


@pytest.fixture
def backend():
    """Create an in-memory store with a registry and a fallback root."""
    store = InMemoryRegistryStore()
    store.create_store("sheet", [
        {"name": "invoice", "folderId": "f-invoice", "category": "Finance"},
        {"name": "contract", "folderId": "f-contract", "enabled": "false"},
    ])
    store.add_folder("root")
    store.add_folder("f-report", name="report", parent_id="root")
    store.add_folder("f-memo", name="memo", parent_id="root")
    return store


def make_loader(backend, **settings):
    return ConfigurationLoader(RegistryStoreAdapter(backend), Settings(**settings))


def test_load_from_primary_store(backend):
    """Test rows become typed products in stored order."""
    snapshot = make_loader(backend, store_id="sheet").load()

    assert snapshot.source == SnapshotSource.PRIMARY_STORE
    assert snapshot.names() == ["invoice", "contract"]
    assert snapshot.get("invoice").category == "Finance"
    assert snapshot.get("contract").enabled is False
    assert snapshot.warnings == ()


def test_primary_store_matches_rows_exactly(backend):
    """Test the snapshot mapping equals the parsed store rows."""
    snapshot = make_loader(backend, store_id="sheet").load()

    assert dict(snapshot.products) == {
        "invoice": ProductDefinition(name="invoice", folder_id="f-invoice", category="Finance"),
        "contract": ProductDefinition(name="contract", folder_id="f-contract", enabled=False),
    }


def test_invalid_rows_are_skipped_with_warning(backend):
    """Test that invalid rows are dropped without aborting the load."""
    backend.create_store("sheet", [
        {"name": "", "folderId": "f1"},
        {"name": "ok", "folderId": "f2"},
        {"name": "no-folder"},
        {"name": "bad name", "folderId": "f3"},
    ])

    snapshot = make_loader(backend, store_id="sheet").load()

    assert snapshot.names() == ["ok"]
    assert len(snapshot.warnings) == 3
    assert "row 1" in snapshot.warnings[0]


def test_duplicate_names_first_seen_wins(backend):
    """Test that a later duplicate row is dropped."""
    backend.create_store("sheet", [
        {"name": "invoice", "folderId": "first"},
        {"name": "invoice", "folderId": "second"},
    ])

    snapshot = make_loader(backend, store_id="sheet").load()

    assert len(snapshot) == 1
    assert snapshot.get("invoice").folder_id == "first"
    assert any("Duplicate" in w for w in snapshot.warnings)


def test_fallback_folder_scan(backend):
    """Test products synthesized from subfolders when no store is set."""
    backend.add_file("root", "loose-file", "readme.txt", created_at=None)

    snapshot = make_loader(backend, fallback_root_folder_id="root").load()

    assert snapshot.source == SnapshotSource.FALLBACK_FOLDER_SCAN
    assert snapshot.names() == ["report", "memo"]
    report = snapshot.get("report")
    assert report.folder_id == "f-report"
    assert report.enabled is True
    assert report.category == "Uncategorized"


def test_fallback_skips_badly_named_folders(backend):
    """Test subfolders whose names are not identifiers are skipped."""
    backend.add_folder("f-weird", name="Old Stuff", parent_id="root")

    snapshot = make_loader(backend, fallback_root_folder_id="root").load()

    assert "Old Stuff" not in snapshot
    assert len(snapshot.warnings) == 1


def test_primary_takes_priority_over_fallback(backend):
    """Test the primary store wins when both sources are configured."""
    snapshot = make_loader(backend, store_id="sheet", fallback_root_folder_id="root").load()
    assert snapshot.source == SnapshotSource.PRIMARY_STORE


def test_unreadable_primary_falls_back(backend):
    """Test that a missing primary store falls through to the folder scan."""
    snapshot = make_loader(backend, store_id="missing", fallback_root_folder_id="root").load()
    assert snapshot.source == SnapshotSource.FALLBACK_FOLDER_SCAN


def test_no_source_configured(backend):
    """Test that no configured source raises ConfigurationError."""
    with pytest.raises(ConfigurationError) as exc_info:
        make_loader(backend).load()

    assert "no configuration source available" in str(exc_info.value)


def test_all_sources_failing(backend):
    """Test that failing primary and fallback sources raise ConfigurationError."""
    with pytest.raises(ConfigurationError):
        make_loader(backend, store_id="missing", fallback_root_folder_id="nowhere").load()


def test_transient_primary_failure_without_fallback():
    """Test exhausted retries on the primary store become ConfigurationError."""
    backend = Mock(spec=RegistryStore)
    backend.get_all_rows.side_effect = TransientStorageError("503")
    loader = ConfigurationLoader(RegistryStoreAdapter(backend), Settings(store_id="sheet"))

    with patch("time.sleep"):
        with pytest.raises(ConfigurationError) as exc_info:
            loader.load()

    assert isinstance(exc_info.value.__cause__, TransientStorageError)
    assert backend.get_all_rows.call_count == 3


def test_compiled_in_default_store(backend, monkeypatch):
    """Test that the compiled-in store id is used when settings are empty."""
    monkeypatch.setattr("redirect_engine.core.config_store.DEFAULT_STORE_ID", "sheet")

    snapshot = make_loader(backend).load()
    assert snapshot.source == SnapshotSource.PRIMARY_STORE
