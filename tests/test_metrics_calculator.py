# tests/test_metrics_calculator.py

"""Tests for derived margin, diff and traffic-light figures."""

import unittest
from datetime import datetime

from price_monitor.models.metrics import TrafficLight
from price_monitor.models.product import Product
from price_monitor.models.snapshot import Snapshot
from price_monitor.services.metrics_calculator import (
    calculate_metrics,
    classify_traffic_light,
    conversion_rate_pct,
    gross_profit,
    lowest_competitor_price,
    margin_pct,
    net_price,
    uvp_deviation_pct,
)

URL = "https://www.idealo.de/preisvergleich/OffersOfProduct/1.html"


def _product(**overrides: object) -> Product:
    """A monitored 19 % product, customised per test."""
    fields: dict[str, object] = {
        "product_id": "P-1",
        "name": "Omega 3 Kapseln",
        "quantity_sold": 30,
        "revenue_net": 300.0,
        "listing_url": URL,
        "price_gross": 15.0,
        "price_net": 10.0,
        "purchase_price_net": 7.0,
        "uvp": 20.0,
        "tax_rate": 19.0,
        "clicks": 50,
    }
    fields.update(overrides)
    return Product(**fields)  # type: ignore[arg-type]


def _snapshot(**overrides: object) -> Snapshot:
    fields: dict[str, object] = {
        "product_id": "P-1",
        "scraped_at": datetime(2026, 5, 1, 9, 0),
        "rank1_shop": "docmorris.de",
        "rank1_price": 11.90,
        "rank2_shop": "Shop Apotheke",
        "rank2_price": 12.50,
        "own_rank": 3,
        "own_price": 13.0,
        "competitor_count": 8,
        "lowest_price": None,
    }
    fields.update(overrides)
    return Snapshot(**fields)  # type: ignore[arg-type]


class TestBaseFormulas(unittest.TestCase):
    """Margin, profit, UVP and conversion formulas."""

    def test_margin_pct(self) -> None:
        self.assertAlmostEqual(margin_pct(10.0, 7.0) or 0.0, 30.0)

    def test_margin_undefined_without_price(self) -> None:
        self.assertIsNone(margin_pct(0.0, 7.0))
        self.assertIsNone(margin_pct(None, 7.0))
        self.assertIsNone(margin_pct(10.0, None))

    def test_gross_profit(self) -> None:
        self.assertAlmostEqual(gross_profit(_product()) or 0.0, 90.0)

    def test_gross_profit_needs_all_inputs(self) -> None:
        self.assertIsNone(gross_profit(_product(quantity_sold=None)))
        self.assertIsNone(gross_profit(_product(purchase_price_net=None)))

    def test_uvp_deviation(self) -> None:
        self.assertAlmostEqual(uvp_deviation_pct(_product()) or 0.0, -25.0)

    def test_uvp_deviation_undefined_for_zero_uvp(self) -> None:
        self.assertIsNone(uvp_deviation_pct(_product(uvp=0.0)))
        self.assertIsNone(uvp_deviation_pct(_product(uvp=None)))

    def test_conversion_rate(self) -> None:
        # 30 units over 3 months -> 10 per month, 50 clicks -> 20 %
        self.assertAlmostEqual(conversion_rate_pct(_product()) or 0.0, 20.0)

    def test_conversion_rate_needs_clicks(self) -> None:
        self.assertIsNone(conversion_rate_pct(_product(clicks=0)))
        self.assertIsNone(conversion_rate_pct(_product(quantity_sold=0)))

    def test_net_price_uses_tax_rate(self) -> None:
        self.assertAlmostEqual(net_price(11.90, 19.0), 10.0)
        self.assertAlmostEqual(net_price(10.70, 7.0), 10.0)

    def test_net_price_default_rate(self) -> None:
        self.assertAlmostEqual(net_price(10.70, None), 10.0)


class TestLowestAndDiff(unittest.TestCase):
    """Lowest competitor price and diff-to-lowest."""

    def test_tracked_lowest_preferred(self) -> None:
        snap = _snapshot(lowest_price=9.5)
        self.assertEqual(lowest_competitor_price(snap), 9.5)

    def test_min_of_ranks_without_tracked_lowest(self) -> None:
        self.assertEqual(lowest_competitor_price(_snapshot()), 11.90)

    def test_rank2_only(self) -> None:
        snap = _snapshot(rank1_price=None, rank2_price=13.0)
        self.assertEqual(lowest_competitor_price(snap), 13.0)

    def test_undefined_without_prices(self) -> None:
        snap = _snapshot(rank1_price=None, rank2_price=None)
        self.assertIsNone(lowest_competitor_price(snap))
        self.assertIsNone(lowest_competitor_price(None))

    def test_diff_to_lowest(self) -> None:
        metrics = calculate_metrics(
            _product(price_gross=15.0), _snapshot(lowest_price=12.0)
        )
        self.assertAlmostEqual(metrics.diff_to_lowest_eur or 0.0, 3.0)
        self.assertAlmostEqual(metrics.diff_to_lowest_pct or 0.0, 25.0)

    def test_zero_tracked_lowest_is_a_price(self) -> None:
        snap = _snapshot(lowest_price=0.0)
        self.assertEqual(lowest_competitor_price(snap), 0.0)

    def test_zero_rank_price_is_a_price(self) -> None:
        snap = _snapshot(rank1_price=0.0, rank2_price=12.5)
        self.assertEqual(lowest_competitor_price(snap), 0.0)

    def test_zero_lowest_keeps_euro_diff_only(self) -> None:
        metrics = calculate_metrics(
            _product(price_gross=15.0), _snapshot(lowest_price=0.0)
        )
        self.assertAlmostEqual(metrics.diff_to_lowest_eur or 0.0, 15.0)
        self.assertIsNone(metrics.diff_to_lowest_pct)

    def test_diff_undefined_without_snapshot(self) -> None:
        metrics = calculate_metrics(_product(), None)
        self.assertIsNone(metrics.diff_to_lowest_eur)
        self.assertIsNone(metrics.diff_to_lowest_pct)


class TestTrafficLight(unittest.TestCase):
    """The ordered traffic-light decision."""

    def test_own_rank_one_is_green_regardless_of_price(self) -> None:
        snap = _snapshot(own_rank=1, rank1_price=1.0)
        product = _product(purchase_price_net=50.0)
        self.assertEqual(
            classify_traffic_light(product, snap), TrafficLight.GREEN
        )

    def test_projected_margin_green(self) -> None:
        # 11.90 / 1.19 = 10.0 -> (10 - 8) / 10 = 20 %
        product = _product(purchase_price_net=8.0)
        self.assertEqual(
            classify_traffic_light(product, _snapshot()), TrafficLight.GREEN
        )

    def test_projected_margin_yellow(self) -> None:
        product = _product(purchase_price_net=9.6)
        self.assertEqual(
            classify_traffic_light(product, _snapshot()), TrafficLight.YELLOW
        )

    def test_projected_margin_red(self) -> None:
        product = _product(purchase_price_net=11.0)
        self.assertEqual(
            classify_traffic_light(product, _snapshot()), TrafficLight.RED
        )

    def test_reduced_tax_rate_changes_outcome(self) -> None:
        # At 7 %: 11.90 / 1.07 = 11.12 -> (11.12 - 9.6) / 11.12 = 13.7 %
        product = _product(purchase_price_net=9.6, tax_rate=7.0)
        self.assertEqual(
            classify_traffic_light(product, _snapshot()), TrafficLight.YELLOW
        )
        product = _product(purchase_price_net=9.0, tax_rate=7.0)
        self.assertEqual(
            classify_traffic_light(product, _snapshot()), TrafficLight.GREEN
        )

    def test_rank2_and_lowest_ignored(self) -> None:
        """Only the rank-1 price drives the projected margin."""
        product = _product(purchase_price_net=8.0)
        snap = _snapshot(rank2_price=5.0, lowest_price=5.0)
        self.assertEqual(
            classify_traffic_light(product, snap), TrafficLight.GREEN
        )

    def test_no_rank1_price_is_gray(self) -> None:
        snap = _snapshot(rank1_price=None)
        self.assertEqual(
            classify_traffic_light(_product(), snap), TrafficLight.GRAY
        )

    def test_free_rank1_offer_is_gray_not_skipped(self) -> None:
        """A 0.00 rank-1 price is known but leaves no margin to project."""
        snap = _snapshot(rank1_price=0.0)
        metrics = calculate_metrics(_product(), snap)
        self.assertIsNone(metrics.projected_margin_pct)
        self.assertEqual(metrics.traffic_light, TrafficLight.GRAY)

    def test_no_snapshot_is_gray(self) -> None:
        self.assertEqual(
            classify_traffic_light(_product(), None), TrafficLight.GRAY
        )

    def test_unmonitored_is_gray_even_at_rank_one(self) -> None:
        snap = _snapshot(own_rank=1)
        product = _product(listing_url=None)
        self.assertEqual(
            classify_traffic_light(product, snap), TrafficLight.GRAY
        )
        product = _product(listing_url="   ")
        self.assertEqual(
            classify_traffic_light(product, snap), TrafficLight.GRAY
        )

    def test_unknown_purchase_cost_is_gray(self) -> None:
        product = _product(purchase_price_net=None)
        self.assertEqual(
            classify_traffic_light(product, _snapshot()), TrafficLight.GRAY
        )

    def test_light_always_in_closed_set(self) -> None:
        cases = [
            (_product(), None),
            (_product(), _snapshot()),
            (_product(listing_url=None), _snapshot()),
            (_product(purchase_price_net=100.0), _snapshot()),
            (_product(), _snapshot(own_rank=None, rank1_price=None)),
        ]
        for product, snap in cases:
            light = calculate_metrics(product, snap).traffic_light
            self.assertIn(light, set(TrafficLight))


class TestCalculateMetrics(unittest.TestCase):
    """The bundled DerivedMetrics record."""

    def test_empty_product_never_raises(self) -> None:
        metrics = calculate_metrics(Product(product_id="X"), None)
        self.assertIsNone(metrics.margin_pct)
        self.assertIsNone(metrics.gross_profit)
        self.assertIsNone(metrics.uvp_deviation_pct)
        self.assertIsNone(metrics.conversion_rate_pct)
        self.assertIsNone(metrics.projected_margin_pct)
        self.assertEqual(metrics.traffic_light, TrafficLight.GRAY)

    def test_projected_margin_reported(self) -> None:
        metrics = calculate_metrics(
            _product(purchase_price_net=8.0), _snapshot()
        )
        self.assertAlmostEqual(metrics.projected_margin_pct or 0.0, 20.0)


if __name__ == "__main__":
    unittest.main()
