# tests/test_cli_runner.py

"""Tests for the CLI commands' exit codes and resource cleanup."""

import io
import json
import unittest
from unittest.mock import MagicMock, patch

from price_monitor.cli.runner import run_sweep, show_dashboard, show_products
from price_monitor.models.product import Product
from price_monitor.services.scrape_orchestrator import SweepError, SweepResult

BUILD_PATH = "price_monitor.cli.runner.build_service"


class TestRunnerCommands(unittest.TestCase):
    """Every command closes the service it builds."""

    @patch("sys.stdout", new_callable=io.StringIO)
    @patch(BUILD_PATH)
    def test_show_products_closes_service(
        self, mock_build: MagicMock, mock_stdout: io.StringIO,
    ) -> None:
        mock_build.return_value.list_products.return_value = []
        self.assertEqual(show_products("json"), 0)
        mock_build.return_value.close.assert_called_once()
        self.assertEqual(json.loads(mock_stdout.getvalue()), [])

    @patch(BUILD_PATH)
    def test_close_runs_when_read_fails(self, mock_build: MagicMock) -> None:
        mock_build.return_value.get_dashboard.side_effect = RuntimeError(
            "database is locked"
        )
        with self.assertRaises(RuntimeError):
            show_dashboard("json")
        mock_build.return_value.close.assert_called_once()

    @patch("sys.stdout", new_callable=io.StringIO)
    @patch(BUILD_PATH)
    def test_sweep_with_failures_exits_one(
        self, mock_build: MagicMock, mock_stdout: io.StringIO,
    ) -> None:
        service = mock_build.return_value
        service.store.list_products.return_value = [
            Product(product_id="A", listing_url="https://m/a"),
        ]
        service.run_full_scrape_sweep.return_value = SweepResult(
            failed=1, errors=[SweepError("A", "HTTP 503: https://m/a")],
        )
        self.assertEqual(run_sweep(), 1)
        service.close.assert_called_once()
        payload = json.loads(mock_stdout.getvalue())
        self.assertEqual(payload["errors"][0]["productId"], "A")

    @patch(BUILD_PATH)
    def test_sweep_without_monitored_products(
        self, mock_build: MagicMock,
    ) -> None:
        mock_build.return_value.store.list_products.return_value = [
            Product(product_id="B"),
        ]
        self.assertEqual(run_sweep(), 0)
        mock_build.return_value.run_full_scrape_sweep.assert_not_called()
        mock_build.return_value.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
