# price_monitor/storage/snapshot_store.py

"""SQLite-backed catalog and snapshot store."""

import logging
import sqlite3
import threading
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from price_monitor.config.settings import Settings
from price_monitor.models.errors import PersistenceError
from price_monitor.models.product import Product
from price_monitor.models.snapshot import Snapshot

logger = logging.getLogger("price_monitor.store")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS products (
    id                 TEXT PRIMARY KEY,
    gtin               TEXT,
    name               TEXT NOT NULL DEFAULT '',
    quantity           INTEGER,
    revenue_net        REAL,
    listing_url        TEXT,
    price_gross        REAL,
    price_net          REAL,
    purchase_price_net REAL,
    uvp                REAL,
    tax_rate           REAL,
    clicks             INTEGER
);

CREATE TABLE IF NOT EXISTS snapshots (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id       TEXT NOT NULL
                     REFERENCES products(id) ON DELETE CASCADE,
    scraped_at       TEXT NOT NULL,
    rank1_shop       TEXT,
    rank1_price      REAL CHECK (rank1_price IS NULL OR rank1_price >= 0),
    rank1_link       TEXT,
    rank2_shop       TEXT,
    rank2_price      REAL,
    rank2_link       TEXT,
    own_rank         INTEGER CHECK (own_rank IS NULL OR own_rank >= 1),
    own_price        REAL,
    own_link         TEXT,
    competitor_count INTEGER NOT NULL DEFAULT 0,
    lowest_price     REAL
);

CREATE INDEX IF NOT EXISTS idx_snapshots_product_date
    ON snapshots(product_id, scraped_at);
"""

_PRODUCT_COLUMNS = (
    "id, gtin, name, quantity, revenue_net, listing_url, price_gross, "
    "price_net, purchase_price_net, uvp, tax_rate, clicks"
)

_SNAPSHOT_COLUMNS = (
    "product_id, scraped_at, rank1_shop, rank1_price, rank1_link, "
    "rank2_shop, rank2_price, rank2_link, own_rank, own_price, "
    "own_link, competitor_count, lowest_price"
)


class SnapshotStore(Protocol):
    """Persistence surface used by the orchestrator and the dashboard."""

    def list_products(self) -> list[Product]: ...

    def record_snapshot(self, snapshot: Snapshot) -> int: ...

    def latest_snapshots(
        self, product_id: str, limit: int = 2,
    ) -> list[Snapshot]: ...

    def close(self) -> None: ...


def _row_to_product(r: tuple[Any, ...]) -> Product:
    return Product(
        product_id=r[0],
        gtin=r[1],
        name=r[2] or "",
        quantity_sold=r[3],
        revenue_net=r[4],
        listing_url=r[5],
        price_gross=r[6],
        price_net=r[7],
        purchase_price_net=r[8],
        uvp=r[9],
        tax_rate=r[10],
        clicks=r[11],
    )


def _row_to_snapshot(r: tuple[Any, ...]) -> Snapshot:
    return Snapshot(
        product_id=r[0],
        scraped_at=datetime.fromisoformat(r[1]),
        rank1_shop=r[2],
        rank1_price=r[3],
        rank1_link=r[4],
        rank2_shop=r[5],
        rank2_price=r[6],
        rank2_link=r[7],
        own_rank=r[8],
        own_price=r[9],
        own_link=r[10],
        competitor_count=r[11],
        lowest_price=r[12],
    )


class SQLiteSnapshotStore:
    """Append-only snapshot history plus the read-only product catalog.

    Snapshots are only ever inserted.  Reads order by ``scraped_at``
    with the row id as tie-breaker, so two sweeps in the same instant
    still come back in insertion order.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.PRICE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._lock = threading.Lock()
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("SQLiteSnapshotStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Catalog ──────────────────────────────────────────

    def upsert_products(self, products: Iterable[Product]) -> int:
        """Insert or replace catalog rows keyed by product id."""
        rows = [
            (
                p.product_id, p.gtin, p.name, p.quantity_sold,
                p.revenue_net, p.listing_url, p.price_gross, p.price_net,
                p.purchase_price_net, p.uvp, p.tax_rate, p.clicks,
            )
            for p in products
        ]
        try:
            with self._lock, self._conn:
                self._conn.executemany(
                    f"INSERT INTO products ({_PRODUCT_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET "
                    "gtin=excluded.gtin, name=excluded.name, "
                    "quantity=excluded.quantity, "
                    "revenue_net=excluded.revenue_net, "
                    "listing_url=excluded.listing_url, "
                    "price_gross=excluded.price_gross, "
                    "price_net=excluded.price_net, "
                    "purchase_price_net=excluded.purchase_price_net, "
                    "uvp=excluded.uvp, tax_rate=excluded.tax_rate, "
                    "clicks=excluded.clicks",
                    rows,
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Catalog upsert failed: {exc}") from exc
        logger.info("Upserted %d catalog products", len(rows))
        return len(rows)

    def list_products(self) -> list[Product]:
        """Return every catalog product ordered by id."""
        rows = self._conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products ORDER BY id"
        ).fetchall()
        return [_row_to_product(r) for r in rows]

    # ── Recording ────────────────────────────────────────

    def record_snapshot(self, snapshot: Snapshot) -> int:
        """Append one snapshot and return its row id.

        Raises:
            PersistenceError: The insert was rejected.
        """
        if snapshot.rank1_price is not None and snapshot.rank1_price < 0:
            raise PersistenceError(
                f"Negative rank-1 price for {snapshot.product_id}"
            )
        params = (
            snapshot.product_id,
            snapshot.scraped_at.isoformat(),
            snapshot.rank1_shop,
            snapshot.rank1_price,
            snapshot.rank1_link,
            snapshot.rank2_shop,
            snapshot.rank2_price,
            snapshot.rank2_link,
            snapshot.own_rank,
            snapshot.own_price,
            snapshot.own_link,
            snapshot.competitor_count,
            snapshot.lowest_price,
        )
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    f"INSERT INTO snapshots ({_SNAPSHOT_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    params,
                )
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Snapshot insert failed for {snapshot.product_id}: {exc}"
            ) from exc
        row_id = cur.lastrowid or 0
        logger.debug(
            "Recorded snapshot %d for %s at %s",
            row_id,
            snapshot.product_id,
            snapshot.scraped_at.isoformat(),
        )
        return row_id

    # ── Querying ─────────────────────────────────────────

    def latest_snapshots(
        self, product_id: str, limit: int = 2,
    ) -> list[Snapshot]:
        """Return up to *limit* snapshots for a product, newest first."""
        rows = self._conn.execute(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM snapshots "
            "WHERE product_id = ? "
            "ORDER BY scraped_at DESC, id DESC LIMIT ?",
            (product_id, limit),
        ).fetchall()
        return [_row_to_snapshot(r) for r in rows]

    def get_history(self, product_id: str) -> list[Snapshot]:
        """Return all snapshots for a product, oldest first."""
        rows = self._conn.execute(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM snapshots "
            "WHERE product_id = ? "
            "ORDER BY scraped_at ASC, id ASC",
            (product_id,),
        ).fetchall()
        return [_row_to_snapshot(r) for r in rows]

    def count_snapshots(self, product_id: str | None = None) -> int:
        """Count stored snapshots, optionally for one product."""
        if product_id is None:
            row = self._conn.execute(
                "SELECT COUNT(id) FROM snapshots"
            ).fetchone()
        else:
            row = self._conn.execute(
                "SELECT COUNT(id) FROM snapshots WHERE product_id = ?",
                (product_id,),
            ).fetchone()
        return int(row[0]) if row else 0
