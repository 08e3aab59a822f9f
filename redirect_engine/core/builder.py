"""
Builder for a fully wired Redirect Engine.

Ties the store adapter, loader, cache, resolver, mutator, redirect service
and admin service together from runtime settings.
"""

from dataclasses import dataclass

from redirect_engine.storage.adapter import RegistryStoreAdapter
from redirect_engine.storage.base import RegistryStore
from redirect_engine.storage.http_store import HttpRegistryStore
from .admin import AdminService
from .analytics import AnalyticsRecorder, CounterStore, JsonFileCounterStore
from .cache import ConfigurationCache
from .config_store import Settings
from .loader import ConfigurationLoader
from .models import ConfigurationError
from .mutator import RegistryMutator
from .redirect import RedirectService
from .resolver import VersionResolver


@dataclass
class Engine:
    """All components serving one request-handling context."""
    settings: Settings
    adapter: RegistryStoreAdapter
    cache: ConfigurationCache
    resolver: VersionResolver
    mutator: RegistryMutator
    redirects: RedirectService
    admin: AdminService
    recorder: AnalyticsRecorder | None = None

    def close(self) -> None:
        """Stop the analytics worker and release the backend."""
        if self.recorder is not None:
            self.recorder.close()
        close = getattr(self.adapter.backend, "close", None)
        if close is not None:
            close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def build_engine(
    settings: Settings,
    backend: RegistryStore | None = None,
    counters: CounterStore | None = None,
) -> Engine:
    """
    Build an Engine from settings.

    Args:
        settings: Runtime settings
        backend: Store backend; an HttpRegistryStore on settings.store_url
            is created if None
        counters: Counter store; a JsonFileCounterStore is used if None
            and analytics are enabled

    Returns:
        Wired Engine

    Raises:
        ConfigurationError: If no backend is given and no store URL is set
    """
    if backend is None:
        if not settings.store_url:
            raise ConfigurationError(
                "No store URL configured. Run 'redirect-engine configure --store-url ...' first."
            )
        backend = HttpRegistryStore(settings.store_url, token=settings.store_token or None)

    adapter = RegistryStoreAdapter(backend)
    loader = ConfigurationLoader(adapter, settings)
    cache = ConfigurationCache(loader, ttl_seconds=settings.cache_ttl_seconds)
    resolver = VersionResolver(adapter)
    mutator = RegistryMutator(adapter, cache, settings.effective_store_id)

    recorder = None
    if settings.analytics_enabled:
        if counters is None:
            counters = JsonFileCounterStore()
        recorder = AnalyticsRecorder(counters)

    redirects = RedirectService(
        cache,
        resolver,
        recorder=recorder,
        url_template=settings.redirect_url_template,
    )
    admin = AdminService(mutator, cache, counters=counters)

    return Engine(
        settings=settings,
        adapter=adapter,
        cache=cache,
        resolver=resolver,
        mutator=mutator,
        redirects=redirects,
        admin=admin,
        recorder=recorder,
    )
