# price_monitor/models/metrics.py

"""Derived (never persisted) analytics models."""

from dataclasses import dataclass
from enum import Enum

from price_monitor.models.product import Product
from price_monitor.models.snapshot import Snapshot


class TrafficLight(str, Enum):
    """Competitive margin health of a product."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    GRAY = "gray"


class Direction(str, Enum):
    """Movement of a value between two snapshots."""

    UP = "up"
    DOWN = "down"
    FLAT = "flat"
    UNKNOWN = "unknown"
    NO_BASELINE = "no_baseline"


@dataclass(frozen=True)
class DerivedMetrics:
    """Per-product figures computed from catalog data + latest snapshot.

    Every field is ``None`` when its inputs are missing.
    """

    margin_pct: float | None = None
    gross_profit: float | None = None
    uvp_deviation_pct: float | None = None
    conversion_rate_pct: float | None = None
    lowest_competitor_price: float | None = None
    diff_to_lowest_eur: float | None = None
    diff_to_lowest_pct: float | None = None
    projected_margin_pct: float | None = None
    traffic_light: TrafficLight = TrafficLight.GRAY


@dataclass(frozen=True)
class TrendIndicators:
    """Direction indicators between the two latest snapshots."""

    rank1_price: Direction = Direction.NO_BASELINE
    own_price: Direction = Direction.NO_BASELINE
    own_rank: Direction = Direction.NO_BASELINE
    rank1_price_delta: float | None = None
    own_price_delta: float | None = None
    rank_change: int | None = None


@dataclass(frozen=True)
class ProductView:
    """A product with its two latest snapshots and derived figures."""

    product: Product
    latest: Snapshot | None
    previous: Snapshot | None
    metrics: DerivedMetrics
    trend: TrendIndicators
