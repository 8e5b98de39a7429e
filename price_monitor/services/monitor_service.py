# price_monitor/services/monitor_service.py

"""Facade used by the CLI (and any API layer) over the whole pipeline."""

import logging
from pathlib import Path

from price_monitor.models.metrics import ProductView
from price_monitor.scrapers.offer_extractor import PageOfferExtractor
from price_monitor.scrapers.page_fetcher import MarketplaceFetcher
from price_monitor.services.dashboard_aggregator import Dashboard, aggregate
from price_monitor.services.metrics_calculator import calculate_metrics
from price_monitor.services.scrape_orchestrator import (
    ProgressCallback,
    ScrapeOrchestrator,
    SweepJob,
    SweepResult,
)
from price_monitor.services.trend_differ import diff_snapshots
from price_monitor.storage.snapshot_store import (
    SnapshotStore,
    SQLiteSnapshotStore,
)

logger = logging.getLogger("price_monitor.service")


class PriceMonitorService:
    """Read models plus the single sweep job, over an injected store."""

    def __init__(
        self, store: SnapshotStore, orchestrator: ScrapeOrchestrator,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.job = SweepJob(orchestrator)

    def close(self) -> None:
        """Release the page fetcher and the store connection."""
        try:
            self.orchestrator.fetcher.close()
        finally:
            self.store.close()

    def list_products(self) -> list[ProductView]:
        """Every catalog product with its two latest snapshots and metrics."""
        views: list[ProductView] = []
        for product in self.store.list_products():
            recent = self.store.latest_snapshots(product.product_id, limit=2)
            latest = recent[0] if recent else None
            previous = recent[1] if len(recent) > 1 else None
            views.append(ProductView(
                product=product,
                latest=latest,
                previous=previous,
                metrics=calculate_metrics(product, latest),
                trend=diff_snapshots(latest, previous),
            ))
        return views

    def get_dashboard(self) -> Dashboard:
        """Aggregate the current product views."""
        return aggregate(self.list_products())

    def run_full_scrape_sweep(
        self, on_progress: ProgressCallback | None = None,
    ) -> SweepResult:
        """Blocking sweep; raises if one is already running."""
        return self.job.run(on_progress)

    def start_sweep(self) -> bool:
        """Fire-and-forget sweep; False when rejected."""
        return self.job.start()

    def sweep_status(self) -> dict[str, object]:
        """Poll the sweep job state."""
        return self.job.snapshot()


def build_service(db_path: Path | None = None) -> PriceMonitorService:
    """Wire the SQLite store, the HTTP fetcher and the default extractor."""
    store = SQLiteSnapshotStore(db_path)
    orchestrator = ScrapeOrchestrator(
        store=store,
        fetcher=MarketplaceFetcher(),
        extractor=PageOfferExtractor(),
    )
    logger.debug("PriceMonitorService wired (db=%s)", db_path or "default")
    return PriceMonitorService(store, orchestrator)
