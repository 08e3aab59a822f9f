"""Admin operations exposed to the management UI and the CLI."""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from .analytics import CounterStore, export_csv
from .cache import ConfigurationCache
from .models import (
    AnalyticsError,
    ConfigurationError,
    NotFoundError,
    ProductDefinition,
    StorageError,
    TransientStorageError,
    ValidationError,
)
from .mutator import RegistryMutator
from .rows import parse_row

logger = logging.getLogger(__name__)

MSG_UNAVAILABLE = "Service unavailable."
MSG_RETRY = "The registry store is temporarily unavailable. Please try again."
MSG_STORAGE = "The registry store rejected the change."
MSG_ANALYTICS = "Analytics are currently unavailable."
MSG_UNEXPECTED = "An unexpected error occurred."


@dataclass(frozen=True)
class OperationResult:
    """Outcome of an admin operation, safe to show to end users."""
    success: bool
    value: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, value: Any = None) -> "OperationResult":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)


class AdminService:
    """
    Wraps registry operations into OperationResults.

    Validation and not-found messages are returned as-is; every other
    failure is logged here and replaced with a generic message.
    """

    def __init__(
        self,
        mutator: RegistryMutator,
        cache: ConfigurationCache,
        counters: CounterStore | None = None,
    ):
        self.mutator = mutator
        self.cache = cache
        self.counters = counters

    def _run(self, operation: str, call: Callable[[], Any]) -> OperationResult:
        try:
            return OperationResult.ok(call())
        except (ValidationError, NotFoundError) as e:
            logger.info(f"{operation} refused: {e}")
            return OperationResult.fail(str(e))
        except TransientStorageError as e:
            logger.error(f"{operation} failed after {e.attempts} attempts: {e}")
            return OperationResult.fail(MSG_RETRY)
        except ConfigurationError:
            logger.exception(f"{operation} failed: configuration unavailable")
            return OperationResult.fail(MSG_UNAVAILABLE)
        except StorageError:
            logger.exception(f"{operation} failed: store error")
            return OperationResult.fail(MSG_STORAGE)
        except AnalyticsError:
            logger.exception(f"{operation} failed: analytics error")
            return OperationResult.fail(MSG_ANALYTICS)
        except Exception:
            logger.exception(f"{operation} failed unexpectedly")
            return OperationResult.fail(MSG_UNEXPECTED)

    def add_product(self, data: dict[str, Any]) -> OperationResult:
        """Add a product from registry-schema fields (name, folderId, ...)."""
        return self._run("addProduct", lambda: self.mutator.add(parse_row(data)))

    def update_product(self, name: str, patch: dict[str, Any]) -> OperationResult:
        return self._run("updateProduct", lambda: self.mutator.update(name, patch))

    def delete_product(self, name: str) -> OperationResult:
        return self._run("deleteProduct", lambda: self.mutator.delete(name))

    def set_enabled(self, name: str, enabled: bool) -> OperationResult:
        return self._run("setEnabled", lambda: self.mutator.set_enabled(name, enabled))

    def list_products(
        self,
        include_disabled: bool = True,
        category: str | None = None,
    ) -> OperationResult:
        """
        List products in registry order.

        Args:
            include_disabled: Whether disabled products are included
            category: Only return products in this category
        """
        def _list() -> list[ProductDefinition]:
            products = list(self.cache.get())
            if not include_disabled:
                products = [p for p in products if p.enabled]
            if category is not None:
                products = [p for p in products if p.category == category]
            return products

        return self._run("listProducts", _list)

    def clear_cache(self) -> OperationResult:
        return self._run("clearCache", self.cache.invalidate)

    def export_analytics(self) -> OperationResult:
        """Return the analytics CSV as text."""
        def _export() -> str:
            if self.counters is None:
                raise AnalyticsError("Analytics are disabled")
            return export_csv(self.counters)

        return self._run("exportAnalytics", _export)
