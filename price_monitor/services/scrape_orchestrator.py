# price_monitor/services/scrape_orchestrator.py

"""Sequential scrape sweep over every monitored product."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from price_monitor.config.settings import Settings
from price_monitor.models.errors import SweepAlreadyRunningError
from price_monitor.models.product import Product
from price_monitor.models.snapshot import Snapshot
from price_monitor.scrapers.offer_extractor import PageOfferExtractor
from price_monitor.scrapers.page_fetcher import PageFetcher
from price_monitor.storage.snapshot_store import SnapshotStore

logger = logging.getLogger("price_monitor.orchestrator")

ProgressCallback = Callable[[int, int, Product], None]


@dataclass
class SweepError:
    """Why one product's attempt failed."""

    product_id: str
    message: str


@dataclass
class SweepResult:
    """Outcome counts for a completed sweep."""

    succeeded: int = 0
    failed: int = 0
    errors: list[SweepError] = field(
        default_factory=lambda: list[SweepError]()
    )
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def to_dict(self) -> dict[str, object]:
        """Plain-dict form for JSON output."""
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": [
                {"productId": e.product_id, "message": e.message}
                for e in self.errors
            ],
            "started_at": (
                self.started_at.isoformat() if self.started_at else None
            ),
            "finished_at": (
                self.finished_at.isoformat() if self.finished_at else None
            ),
        }


class ScrapeOrchestrator:
    """Visits each monitored product in turn and records a snapshot.

    One page at a time, with ``delay`` seconds between products.  A
    failing product is recorded in the result and the queue moves on.
    """

    def __init__(
        self,
        store: SnapshotStore,
        fetcher: PageFetcher,
        extractor: PageOfferExtractor | None = None,
        delay: float = Settings.REQUEST_DELAY,
        wait_timeout: float = Settings.OFFER_WAIT_TIMEOUT,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.extractor = extractor or PageOfferExtractor()
        self.delay = delay
        self.wait_timeout = wait_timeout

    def scrape_product(self, product: Product) -> Snapshot:
        """Fetch, extract and persist one product; exceptions propagate."""
        url = product.listing_url or ""
        logger.info("Scraping %s: %s", product.product_id, url)
        document = self.fetcher.fetch_rendered_document(
            url,
            wait_for_selector=self.extractor.wait_selector,
            timeout=self.wait_timeout,
        )
        scan = self.extractor.scan(document)
        snapshot = Snapshot.from_scan(product.product_id, scan)
        self.store.record_snapshot(snapshot)
        logger.info(
            "Recorded %s: rank1=%s @ %s, own rank=%s, %d offers",
            product.product_id,
            snapshot.rank1_shop,
            snapshot.rank1_price,
            snapshot.own_rank,
            snapshot.competitor_count,
        )
        return snapshot

    def run_full_scrape_sweep(
        self, on_progress: ProgressCallback | None = None,
    ) -> SweepResult:
        """Scrape every monitored product and return the outcome counts."""
        products = [p for p in self.store.list_products() if p.is_monitored]
        result = SweepResult(started_at=datetime.now())
        logger.info("Starting sweep over %d monitored products", len(products))

        for index, product in enumerate(products):
            try:
                self.scrape_product(product)
                result.succeeded += 1
            except Exception as exc:
                result.failed += 1
                result.errors.append(
                    SweepError(product_id=product.product_id, message=str(exc))
                )
                logger.warning(
                    "Scrape failed for %s: %s",
                    product.product_id,
                    exc,
                    exc_info=True,
                )
            if on_progress is not None:
                on_progress(index + 1, len(products), product)
            if index < len(products) - 1:
                time.sleep(self.delay)

        result.finished_at = datetime.now()
        logger.info(
            "Sweep finished: %d succeeded, %d failed",
            result.succeeded,
            result.failed,
        )
        return result


class SweepStatus(str, Enum):
    """Lifecycle state of the sweep job."""

    IDLE = "idle"
    RUNNING = "running"


class SweepJob:
    """Job-state record that allows at most one sweep in flight.

    ``start()`` runs the sweep on a background thread and returns
    immediately; callers poll ``status`` and ``last_result``.  ``run()``
    is the blocking form.  A trigger while a sweep is running is
    rejected rather than queued.
    """

    def __init__(self, orchestrator: ScrapeOrchestrator) -> None:
        self.orchestrator = orchestrator
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self.status = SweepStatus.IDLE
        self.started_at: datetime | None = None
        self.finished_at: datetime | None = None
        self.last_result: SweepResult | None = None
        self.last_error: str | None = None

    def _claim(self) -> bool:
        with self._lock:
            if self.status is SweepStatus.RUNNING:
                return False
            self.status = SweepStatus.RUNNING
            self.started_at = datetime.now()
            self.finished_at = None
            self.last_error = None
            return True

    def _execute(self, on_progress: ProgressCallback | None) -> SweepResult:
        try:
            result = self.orchestrator.run_full_scrape_sweep(on_progress)
            self.last_result = result
            return result
        except Exception as exc:
            self.last_error = str(exc)
            logger.error("Sweep aborted: %s", exc, exc_info=True)
            raise
        finally:
            with self._lock:
                self.status = SweepStatus.IDLE
                self.finished_at = datetime.now()

    def _run_in_background(self) -> None:
        try:
            self._execute(None)
        except Exception as exc:
            logger.debug("Background sweep ended with error: %s", exc)

    def run(self, on_progress: ProgressCallback | None = None) -> SweepResult:
        """Run a sweep in the calling thread.

        Raises:
            SweepAlreadyRunningError: Another sweep is in flight.
        """
        if not self._claim():
            raise SweepAlreadyRunningError("A scrape sweep is already running")
        return self._execute(on_progress)

    def start(self) -> bool:
        """Launch a background sweep; False if one is already running."""
        if not self._claim():
            logger.info("Sweep trigger rejected: already running")
            return False

        self._thread = threading.Thread(
            target=self._run_in_background, name="scrape-sweep", daemon=True,
        )
        self._thread.start()
        return True

    def wait(self, timeout: float | None = None) -> None:
        """Block until the background sweep (if any) has finished."""
        if self._thread is not None:
            self._thread.join(timeout)

    def snapshot(self) -> dict[str, object]:
        """Current job state as a plain dict."""
        return {
            "status": self.status.value,
            "started_at": (
                self.started_at.isoformat() if self.started_at else None
            ),
            "finished_at": (
                self.finished_at.isoformat() if self.finished_at else None
            ),
            "last_result": (
                self.last_result.to_dict() if self.last_result else None
            ),
            "last_error": self.last_error,
        }
