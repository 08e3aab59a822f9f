"""Tests for redirect request handling."""

from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import Mock

from redirect_engine.core.analytics import AnalyticsRecorder
from redirect_engine.core.cache import ConfigurationCache
from redirect_engine.core.config_store import Settings
from redirect_engine.core.loader import ConfigurationLoader
from redirect_engine.core.models import NotFoundError, VersionArtifact
from redirect_engine.core.mutator import RegistryMutator
from redirect_engine.core.redirect import RedirectService, build_redirect_url
from redirect_engine.core.resolver import VersionResolver
from redirect_engine.storage.adapter import RegistryStoreAdapter
from redirect_engine.storage.memory import InMemoryRegistryStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def backend():
    store = InMemoryRegistryStore()
    store.create_store("sheet", [
        {"name": "invoice", "folderId": "f-invoice"},
        {"name": "retired", "folderId": "f-invoice", "enabled": "false"},
    ])
    store.add_folder("f-invoice")
    store.add_file("f-invoice", "v1-id", "v1", created_at=T0)
    store.add_file("f-invoice", "v2-id", "v2", created_at=T0 + timedelta(days=1))
    return store


@pytest.fixture
def adapter(backend):
    return RegistryStoreAdapter(backend)


@pytest.fixture
def cache(adapter):
    return ConfigurationCache(ConfigurationLoader(adapter, Settings(store_id="sheet")))


@pytest.fixture
def recorder():
    return Mock(spec=AnalyticsRecorder)


@pytest.fixture
def service(adapter, cache, recorder):
    return RedirectService(
        cache,
        VersionResolver(adapter),
        recorder=recorder,
        url_template="https://files.test/{file_id}?p={product}",
    )


def test_redirect_latest(service, recorder):
    """Test a request without version goes to the newest file."""
    target = service.redirect("invoice")

    assert target.product == "invoice"
    assert target.artifact.file_id == "v2-id"
    assert target.url == "https://files.test/v2-id?p=invoice"
    recorder.record.assert_called_once_with("invoice", None)


def test_redirect_specific_version(service, recorder):
    """Test a request with an exact version token."""
    target = service.redirect("invoice", "v1")

    assert target.artifact.file_id == "v1-id"
    recorder.record.assert_called_once_with("invoice", "v1")


def test_redirect_unknown_product(service, recorder):
    """Test an unknown product is not found and not counted."""
    with pytest.raises(NotFoundError):
        service.redirect("ghost")

    recorder.record.assert_not_called()


def test_redirect_disabled_product(service):
    """Test a disabled product is treated as not found."""
    with pytest.raises(NotFoundError):
        service.redirect("retired")


def test_redirect_missing_version(service, recorder):
    """Test a version that matches no file is not found."""
    with pytest.raises(NotFoundError):
        service.redirect("invoice", "V1")

    recorder.record.assert_not_called()


def test_redirect_empty_product(service):
    """Test an empty product name is rejected."""
    with pytest.raises(NotFoundError):
        service.redirect("")


def test_analytics_failure_does_not_fail_redirect(adapter, cache):
    """Test that a failing recorder cannot break the redirect."""
    broken_store = Mock()
    broken_store.increment.side_effect = RuntimeError("disk full")
    recorder = AnalyticsRecorder(broken_store)
    service = RedirectService(cache, VersionResolver(adapter), recorder=recorder)

    target = service.redirect("invoice")
    recorder.flush()
    recorder.close()

    assert target.artifact.file_id == "v2-id"
    assert len(recorder.errors) == 1


def test_disable_then_reenable(adapter, cache, service):
    """Test toggling a product off and on again."""
    mutator = RegistryMutator(adapter, cache, "sheet")

    mutator.set_enabled("invoice", False)
    with pytest.raises(NotFoundError):
        service.redirect("invoice")

    mutator.set_enabled("invoice", True)
    assert service.redirect("invoice").artifact.file_id == "v2-id"


def test_build_redirect_url_placeholders():
    """Test all template placeholders."""
    artifact = VersionArtifact(file_id="abc", file_name="v1.docx", created_at=T0)
    url = build_redirect_url("https://x/{product}/{file_name}/{file_id}", "invoice", artifact)
    assert url == "https://x/invoice/v1.docx/abc"
