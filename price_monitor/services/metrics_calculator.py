# price_monitor/services/metrics_calculator.py

"""Margin, profit and traffic-light derivation for a single product.

Everything here is a pure function of a :class:`Product` and its latest
:class:`Snapshot`.  Nothing is persisted, so a formula change applies
to every later read without migration.  Any formula whose inputs are
missing (or would divide by zero) yields ``None`` instead of raising.
"""

from price_monitor.config.settings import Settings
from price_monitor.models.metrics import DerivedMetrics, TrafficLight
from price_monitor.models.product import Product
from price_monitor.models.snapshot import Snapshot


def margin_pct(
    price_net: float | None, purchase_price_net: float | None,
) -> float | None:
    """``(net sale - net cost) / net sale * 100``."""
    if price_net is None or purchase_price_net is None or price_net <= 0:
        return None
    return (price_net - purchase_price_net) / price_net * 100


def gross_profit(product: Product) -> float | None:
    """``(net sale - net cost) * quantity sold``."""
    if (
        product.price_net is None
        or product.purchase_price_net is None
        or product.quantity_sold is None
    ):
        return None
    return (
        (product.price_net - product.purchase_price_net)
        * product.quantity_sold
    )


def uvp_deviation_pct(product: Product) -> float | None:
    """``(gross sale - UVP) / UVP * 100``."""
    if product.price_gross is None or product.uvp is None or product.uvp <= 0:
        return None
    return (product.price_gross - product.uvp) / product.uvp * 100


def conversion_rate_pct(
    product: Product,
    period_months: int = Settings.SALES_PERIOD_MONTHS,
) -> float | None:
    """Monthly units sold per marketplace click, as a percentage."""
    quantity, clicks = product.quantity_sold, product.clicks
    if quantity is None or clicks is None or quantity <= 0 or clicks <= 0:
        return None
    return (quantity / period_months) / clicks * 100


def lowest_competitor_price(snapshot: Snapshot | None) -> float | None:
    """Tracked lowest price, else the cheaper of ranks 1 and 2."""
    if snapshot is None:
        return None
    if snapshot.lowest_price is not None:
        return snapshot.lowest_price
    candidates = [
        p
        for p in (snapshot.rank1_price, snapshot.rank2_price)
        if p is not None
    ]
    return min(candidates) if candidates else None


def net_price(gross: float, tax_rate: float | None) -> float:
    """Strip VAT from a gross price; unknown rates use the default."""
    rate = Settings.DEFAULT_TAX_RATE if tax_rate is None else tax_rate
    return gross / (1 + rate / 100)


def projected_margin_pct(
    product: Product, snapshot: Snapshot | None,
) -> float | None:
    """Margin the product would earn at the rank-1 competitor's price."""
    if snapshot is None or snapshot.rank1_price is None:
        return None
    target_net = net_price(snapshot.rank1_price, product.tax_rate)
    return margin_pct(target_net, product.purchase_price_net)


def classify_traffic_light(
    product: Product, snapshot: Snapshot | None,
) -> TrafficLight:
    """Ordered decision:

    1. not monitored or never scraped -> gray
    2. own offer holds rank 1 -> green
    3. rank-1 price known -> projected margin >= 15 green,
       >= 0 yellow, else red
    4. otherwise gray
    """
    if not product.is_monitored or snapshot is None:
        return TrafficLight.GRAY
    if snapshot.own_rank == 1:
        return TrafficLight.GREEN

    projected = projected_margin_pct(product, snapshot)
    if projected is None:
        return TrafficLight.GRAY
    if projected >= Settings.PROJECTED_MARGIN_GREEN:
        return TrafficLight.GREEN
    if projected >= Settings.PROJECTED_MARGIN_YELLOW:
        return TrafficLight.YELLOW
    return TrafficLight.RED


def calculate_metrics(
    product: Product, snapshot: Snapshot | None,
) -> DerivedMetrics:
    """Derive every per-product figure from catalog data + latest snapshot."""
    lowest = lowest_competitor_price(snapshot)
    diff_eur: float | None = None
    diff_pct: float | None = None
    if product.price_gross is not None and lowest is not None:
        diff_eur = product.price_gross - lowest
        if lowest > 0:
            diff_pct = diff_eur / lowest * 100

    return DerivedMetrics(
        margin_pct=margin_pct(product.price_net, product.purchase_price_net),
        gross_profit=gross_profit(product),
        uvp_deviation_pct=uvp_deviation_pct(product),
        conversion_rate_pct=conversion_rate_pct(product),
        lowest_competitor_price=lowest,
        diff_to_lowest_eur=diff_eur,
        diff_to_lowest_pct=diff_pct,
        projected_margin_pct=projected_margin_pct(product, snapshot),
        traffic_light=classify_traffic_light(product, snapshot),
    )
