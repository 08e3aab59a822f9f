"""Tests for the configuration cache."""

import threading
import time
from datetime import datetime, timezone

import pytest
from unittest.mock import Mock

from redirect_engine.core.cache import ConfigurationCache
from redirect_engine.core.loader import ConfigurationLoader
from redirect_engine.core.models import (
    ConfigurationError,
    ConfigurationSnapshot,
    ProductDefinition,
    SnapshotSource,
)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_snapshot(*names):
    return ConfigurationSnapshot(
        products={n: ProductDefinition(name=n, folder_id=f"f-{n}") for n in names},
        source=SnapshotSource.PRIMARY_STORE,
        loaded_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def loader():
    """Create a mock loader returning a new snapshot per call."""
    loader = Mock(spec=ConfigurationLoader)
    loader.load.side_effect = lambda: make_snapshot("a")
    return loader


@pytest.fixture
def cache(loader, clock):
    return ConfigurationCache(loader, ttl_seconds=300, clock=clock)


def test_first_get_loads(cache, loader):
    """Test that the first get loads a snapshot."""
    snapshot = cache.get()

    assert snapshot.names() == ["a"]
    loader.load.assert_called_once()
    assert cache.entry.expires_at == 1300.0


def test_get_within_ttl_is_reference_identical(cache, loader, clock):
    """Test consecutive gets within the TTL return the same object."""
    first = cache.get()
    clock.advance(299)
    second = cache.get()

    assert first is second
    assert loader.load.call_count == 1


def test_get_after_expiry_reloads(cache, loader, clock):
    """Test that an expired entry is reloaded."""
    first = cache.get()
    clock.advance(300)
    second = cache.get()

    assert first is not second
    assert loader.load.call_count == 2


def test_invalidate_forces_reload(cache, loader):
    """Test that invalidate makes the next get reload regardless of TTL."""
    first = cache.get()
    cache.invalidate()
    second = cache.get()
    third = cache.get()

    assert first is not second
    assert second is third
    assert loader.load.call_count == 2


def test_failed_reload_serves_stale_entry(cache, loader, clock):
    """Test that a reload failure keeps serving the previous snapshot."""
    first = cache.get()
    loader.load.side_effect = ConfigurationError("no configuration source available")

    cache.invalidate()
    assert cache.get() is first

    clock.advance(1000)
    assert cache.get() is first


def test_failed_reload_without_stale_raises(cache, loader):
    """Test that allow_stale=False propagates a reload failure."""
    first = cache.get()
    loader.load.side_effect = ConfigurationError("no configuration source available")
    cache.invalidate()

    with pytest.raises(ConfigurationError):
        cache.get(allow_stale=False)

    assert cache.get() is first


def test_fresh_entry_served_without_stale(cache, loader):
    """Test that allow_stale=False does not force a reload of a fresh entry."""
    first = cache.get()

    assert cache.get(allow_stale=False) is first
    assert loader.load.call_count == 1


def test_failed_first_load_propagates(cache, loader):
    """Test that a failure with no prior entry raises."""
    loader.load.side_effect = ConfigurationError("no configuration source available")

    with pytest.raises(ConfigurationError):
        cache.get()


def test_recovers_after_failed_reload(cache, loader):
    """Test that a later successful reload replaces the stale entry."""
    cache.get()
    loader.load.side_effect = ConfigurationError("down")
    cache.invalidate()
    cache.get()

    loader.load.side_effect = lambda: make_snapshot("b")
    assert cache.get().names() == ["b"]


def test_concurrent_gets_trigger_single_reload():
    """Test that concurrent callers share one reload."""
    started = threading.Event()
    release = threading.Event()
    loader = Mock(spec=ConfigurationLoader)

    def slow_load():
        started.set()
        release.wait(timeout=5)
        return make_snapshot("a")

    loader.load.side_effect = slow_load
    cache = ConfigurationCache(loader, ttl_seconds=300)
    results = []

    threads = [threading.Thread(target=lambda: results.append(cache.get())) for _ in range(5)]
    threads[0].start()
    started.wait(timeout=5)
    for t in threads[1:]:
        t.start()
    time.sleep(0.05)
    release.set()
    for t in threads:
        t.join(timeout=5)

    assert loader.load.call_count == 1
    assert len(results) == 5
    assert all(r is results[0] for r in results)
