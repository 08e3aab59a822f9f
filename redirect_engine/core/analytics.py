"""
Access counters for product redirects.

Counters are aggregate per product and kind; nothing identifying a user is
stored. Recording runs on a background worker so a failing counter store
never delays or fails a redirect.
"""

import csv
import io
import logging
import queue
import threading
from abc import ABC, abstractmethod
from collections import deque

from .config_store import get_base_dir, load_json, save_json
from .models import AnalyticsError, ConfigurationError, CounterKind

logger = logging.getLogger(__name__)

COUNTERS_FILE = "counters.json"
CSV_COLUMNS = ["product", "totalAccesses", "latestRequests", "specificRequests"]


def counter_key(product: str, kind: CounterKind) -> str:
    return f"{product}:{kind.value}"


class CounterStore(ABC):
    """Durable key-value store for access counters."""

    @abstractmethod
    def increment(self, product: str, kind: CounterKind) -> int:
        """Add one to a counter and return its new value."""
        pass

    @abstractmethod
    def get_all(self) -> dict[str, int]:
        """Return every counter keyed by '<product>:<kind>'."""
        pass

    def get(self, product: str, kind: CounterKind) -> int:
        return self.get_all().get(counter_key(product, kind), 0)


class InMemoryCounterStore(CounterStore):
    """Counter store held in process memory."""

    def __init__(self):
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    def increment(self, product: str, kind: CounterKind) -> int:
        key = counter_key(product, kind)
        with self._lock:
            self._counts[key] = self._counts.get(key, 0) + 1
            return self._counts[key]

    def get_all(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)


class JsonFileCounterStore(CounterStore):
    """Counter store persisted as a JSON object in the base directory."""

    def __init__(self, filename: str = COUNTERS_FILE):
        self.filename = filename
        self._lock = threading.Lock()

    def _read(self) -> dict[str, int]:
        if not (get_base_dir() / self.filename).exists():
            return {}
        try:
            data = load_json(self.filename)
        except ConfigurationError as e:
            raise AnalyticsError(f"Cannot read counters: {e}") from e
        try:
            return {str(k): int(v) for k, v in data.items()}
        except (TypeError, ValueError) as e:
            raise AnalyticsError(f"Corrupt counters file: {e}") from e

    def increment(self, product: str, kind: CounterKind) -> int:
        key = counter_key(product, kind)
        with self._lock:
            counts = self._read()
            counts[key] = counts.get(key, 0) + 1
            try:
                save_json(self.filename, counts)
            except ConfigurationError as e:
                raise AnalyticsError(f"Cannot write counters: {e}") from e
            return counts[key]

    def get_all(self) -> dict[str, int]:
        with self._lock:
            return self._read()


class AnalyticsRecorder:
    """
    Fire-and-forget recorder for redirect accesses.

    record() only enqueues; a daemon worker applies increments. Failures are
    logged and pushed onto the errors channel instead of being raised.
    """

    def __init__(self, store: CounterStore, max_queue: int = 1000, max_errors: int = 100):
        self.store = store
        self.errors: deque[AnalyticsError] = deque(maxlen=max_errors)
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue)
        self._worker: threading.Thread | None = None
        self._start_lock = threading.Lock()

    def _ensure_worker(self) -> None:
        with self._start_lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._run, name="analytics-recorder", daemon=True
                )
                self._worker.start()

    def _report(self, error: AnalyticsError) -> None:
        logger.warning(f"Analytics update dropped: {error}")
        self.errors.append(error)

    def record(self, product: str, version_token: str | None = None) -> None:
        """
        Queue an access for product. Never raises.

        Args:
            product: Product name
            version_token: The requested version, None for a latest request
        """
        kind = CounterKind.SPECIFIC if version_token else CounterKind.LATEST
        try:
            self._ensure_worker()
            self._queue.put_nowait((product, kind))
        except queue.Full:
            self._report(AnalyticsError(f"Queue full, access to '{product}' not counted"))
        except RuntimeError as e:
            self._report(AnalyticsError(f"Cannot start analytics worker: {e}"))

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                product, kind = item
                self._apply(product, kind)
            finally:
                self._queue.task_done()

    def _apply(self, product: str, kind: CounterKind) -> None:
        try:
            self.store.increment(product, CounterKind.TOTAL)
            self.store.increment(product, kind)
        except AnalyticsError as e:
            self._report(e)
        except Exception as e:
            self._report(AnalyticsError(f"Counter update for '{product}' failed: {e}"))

    def flush(self) -> None:
        """Block until every queued access has been applied."""
        if self._worker is not None:
            self._queue.join()

    def close(self) -> None:
        """Drain the queue and stop the worker."""
        if self._worker is not None and self._worker.is_alive():
            self._queue.put(None)
            self._worker.join()
        self._worker = None


def export_csv(store: CounterStore) -> str:
    """
    Render counters as CSV, one row per product, sorted by product name.

    Columns: product, totalAccesses, latestRequests, specificRequests
    """
    rows: dict[str, dict[CounterKind, int]] = {}
    kinds = {kind.value: kind for kind in CounterKind}

    for key, count in store.get_all().items():
        product, _, kind_value = key.rpartition(":")
        kind = kinds.get(kind_value)
        if not product or kind is None:
            logger.warning(f"Ignoring unrecognised counter key '{key}'")
            continue
        rows.setdefault(product, {})[kind] = count

    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for product in sorted(rows):
        counts = rows[product]
        writer.writerow([
            product,
            counts.get(CounterKind.TOTAL, 0),
            counts.get(CounterKind.LATEST, 0),
            counts.get(CounterKind.SPECIFIC, 0),
        ])
    return output.getvalue()
