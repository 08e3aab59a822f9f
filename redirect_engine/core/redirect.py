"""Redirect handling: product name and optional version to a target URL."""

import logging

from .analytics import AnalyticsRecorder
from .cache import ConfigurationCache
from .config_store import DEFAULT_REDIRECT_URL_TEMPLATE
from .models import NotFoundError, RedirectTarget, VersionArtifact
from .resolver import VersionResolver

logger = logging.getLogger(__name__)


def build_redirect_url(template: str, product: str, artifact: VersionArtifact) -> str:
    """
    Fill the redirect URL template.

    Supported placeholders: {file_id}, {file_name}, {product}
    """
    return template.format(
        file_id=artifact.file_id,
        file_name=artifact.file_name,
        product=product,
    )


class RedirectService:
    """Serves redirect requests from the cached registry."""

    def __init__(
        self,
        cache: ConfigurationCache,
        resolver: VersionResolver,
        recorder: AnalyticsRecorder | None = None,
        url_template: str = DEFAULT_REDIRECT_URL_TEMPLATE,
    ):
        self.cache = cache
        self.resolver = resolver
        self.recorder = recorder
        self.url_template = url_template

    def redirect(self, product: str, version: str | None = None) -> RedirectTarget:
        """
        Resolve a redirect request.

        Args:
            product: Registry name of the product
            version: Exact file name to serve, or None for the latest

        Returns:
            RedirectTarget with the URL and the chosen artifact

        Raises:
            ConfigurationError: If no registry snapshot can be obtained
            NotFoundError: If the product is unknown or disabled, or the
                version cannot be found
        """
        if not product:
            raise NotFoundError("No product requested")

        definition = self.cache.get().get(product)
        if definition is None or not definition.enabled:
            raise NotFoundError(f"Product '{product}' not found")

        artifact = self.resolver.resolve(definition.folder_id, version or None)
        target = RedirectTarget(
            product=product,
            url=build_redirect_url(self.url_template, product, artifact),
            artifact=artifact,
        )

        if self.recorder is not None:
            self.recorder.record(product, version or None)

        logger.info(f"Redirecting '{product}' to '{artifact.file_name}'")
        return target
