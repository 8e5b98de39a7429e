# price_monitor/services/dashboard_aggregator.py

"""Portfolio-level KPIs folded from per-product views."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from price_monitor.config.settings import Settings
from price_monitor.models.metrics import ProductView, TrafficLight

logger = logging.getLogger("price_monitor.dashboard")

_ACTION_PRIORITY: dict[TrafficLight, int] = {
    TrafficLight.RED: 0,
    TrafficLight.YELLOW: 1,
}


@dataclass
class DashboardKpis:
    """Headline figures across the whole catalog."""

    total_revenue: float = 0.0
    total_gross_profit: float = 0.0
    weighted_avg_margin_pct: float | None = None
    monitored_count: int = 0
    scraped_count: int = 0
    last_scrape: datetime | None = None


@dataclass
class Dashboard:
    """Everything the dashboard view needs, computed in one pass."""

    kpis: DashboardKpis
    traffic_light_distribution: dict[str, int]
    margin_band_distribution: dict[str, int]
    needs_action: list[ProductView] = field(
        default_factory=lambda: list[ProductView]()
    )
    top_by_gross_profit: list[ProductView] = field(
        default_factory=lambda: list[ProductView]()
    )
    products: list[ProductView] = field(
        default_factory=lambda: list[ProductView]()
    )


def weighted_average_margin(
    views: Sequence[ProductView],
) -> float | None:
    """Revenue-weighted mean margin.

    Products without revenue or without a margin are left out of both
    the numerator and the denominator.
    """
    weighted_sum = 0.0
    weight_total = 0.0
    for view in views:
        revenue = view.product.revenue_net
        margin = view.metrics.margin_pct
        if not revenue or revenue <= 0 or margin is None:
            continue
        weighted_sum += margin * revenue
        weight_total += revenue
    if weight_total == 0:
        return None
    return weighted_sum / weight_total


def margin_band(margin: float) -> str:
    """Name of the first band whose upper bound covers *margin*."""
    label, upper = Settings.MARGIN_BANDS[0]
    if margin < upper:
        return label
    for label, upper in Settings.MARGIN_BANDS[1:]:
        if margin <= upper:
            return label
    return Settings.MARGIN_BANDS[-1][0]


def needs_action(views: Sequence[ProductView]) -> list[ProductView]:
    """Red then yellow products, each group by revenue descending."""
    flagged = [
        v for v in views if v.metrics.traffic_light in _ACTION_PRIORITY
    ]
    return sorted(
        flagged,
        key=lambda v: (
            _ACTION_PRIORITY[v.metrics.traffic_light],
            -(v.product.revenue_net or 0.0),
        ),
    )


def top_by_gross_profit(
    views: Sequence[ProductView], limit: int = Settings.TOP_N,
) -> list[ProductView]:
    """Products with a known gross profit, highest first."""
    ranked = [v for v in views if v.metrics.gross_profit is not None]
    ranked.sort(key=lambda v: v.metrics.gross_profit or 0.0, reverse=True)
    return ranked[:limit]


def aggregate(
    views: Sequence[ProductView], top_n: int = Settings.TOP_N,
) -> Dashboard:
    """Fold per-product views into a :class:`Dashboard`."""
    kpis = DashboardKpis()
    lights = {light.value: 0 for light in TrafficLight}
    bands = {label: 0 for label, _ in Settings.MARGIN_BANDS}

    for view in views:
        product, metrics = view.product, view.metrics
        if product.revenue_net:
            kpis.total_revenue += product.revenue_net
        if metrics.gross_profit is not None:
            kpis.total_gross_profit += metrics.gross_profit
        if product.is_monitored:
            kpis.monitored_count += 1
        if view.latest is not None:
            kpis.scraped_count += 1
            if kpis.last_scrape is None or view.latest.scraped_at > kpis.last_scrape:
                kpis.last_scrape = view.latest.scraped_at
        lights[metrics.traffic_light.value] += 1
        if metrics.margin_pct is not None:
            bands[margin_band(metrics.margin_pct)] += 1

    kpis.weighted_avg_margin_pct = weighted_average_margin(views)

    dashboard = Dashboard(
        kpis=kpis,
        traffic_light_distribution=lights,
        margin_band_distribution=bands,
        needs_action=needs_action(views),
        top_by_gross_profit=top_by_gross_profit(views, top_n),
        products=list(views),
    )
    logger.debug(
        "Aggregated %d products: %d monitored, %d need action",
        len(views),
        kpis.monitored_count,
        len(dashboard.needs_action),
    )
    return dashboard
