# price_monitor/cli/runner.py

"""Headless CLI commands over the price monitor service."""

import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.progress import Progress
from rich.table import Table

from price_monitor.models.errors import SweepAlreadyRunningError
from price_monitor.models.metrics import Direction, ProductView, TrafficLight
from price_monitor.models.product import Product
from price_monitor.services.dashboard_aggregator import Dashboard
from price_monitor.services.monitor_service import (
    PriceMonitorService,
    build_service,
)

logger = logging.getLogger("price_monitor.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)

_LIGHT_STYLE: dict[TrafficLight, str] = {
    TrafficLight.GREEN: "[green]● green[/green]",
    TrafficLight.YELLOW: "[yellow]● yellow[/yellow]",
    TrafficLight.RED: "[red]● red[/red]",
    TrafficLight.GRAY: "[dim]● gray[/dim]",
}

_ARROWS: dict[Direction, str] = {
    Direction.UP: "▲",
    Direction.DOWN: "▼",
    Direction.FLAT: "=",
    Direction.UNKNOWN: "?",
    Direction.NO_BASELINE: "—",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Not JSON serialisable: {type(value).__name__}")


def view_to_dict(view: ProductView) -> dict[str, Any]:
    """Serialise a product view (enums become their string values)."""
    metrics = asdict(view.metrics)
    metrics["traffic_light"] = view.metrics.traffic_light.value
    trend = asdict(view.trend)
    for key in ("rank1_price", "own_price", "own_rank"):
        trend[key] = getattr(view.trend, key).value
    return {
        "product": asdict(view.product),
        "latest_snapshot": asdict(view.latest) if view.latest else None,
        "previous_snapshot": (
            asdict(view.previous) if view.previous else None
        ),
        "metrics": metrics,
        "trend": trend,
    }


def dashboard_to_dict(dashboard: Dashboard) -> dict[str, Any]:
    """Serialise the dashboard for JSON output."""
    return {
        "kpis": asdict(dashboard.kpis),
        "traffic_light_distribution": dashboard.traffic_light_distribution,
        "margin_band_distribution": dashboard.margin_band_distribution,
        "needs_action": [
            v.product.product_id for v in dashboard.needs_action
        ],
        "top_by_gross_profit": [
            view_to_dict(v) for v in dashboard.top_by_gross_profit
        ],
        "products": [view_to_dict(v) for v in dashboard.products],
    }


def _dump_json(payload: Any) -> None:
    json.dump(
        payload,
        sys.stdout,
        ensure_ascii=False,
        indent=2,
        default=_json_default,
    )
    sys.stdout.write("\n")


def _fmt_eur(value: float | None) -> str:
    return f"{value:,.2f} €" if value is not None else "—"


def _fmt_pct(value: float | None) -> str:
    return f"{value:+.1f}%" if value is not None else "—"


def _print_products_table(views: list[ProductView], title: str) -> None:
    """Render a Rich table of product views to stdout."""
    table = Table(title=title, show_lines=True, title_style="bold cyan")
    table.add_column("Light", justify="center")
    table.add_column("Product", max_width=40)
    table.add_column("Rank", justify="right")
    table.add_column("Rank 1", max_width=30)
    table.add_column("Margin", justify="right")
    table.add_column("Diff lowest", justify="right")
    table.add_column("Revenue", justify="right", style="green")

    for v in views:
        latest = v.latest
        rank = (
            f"{latest.own_rank} {_ARROWS[v.trend.own_rank]}"
            if latest and latest.own_rank
            else "—"
        )
        if latest is None:
            rank1 = "not yet scraped"
        elif latest.rank1_shop:
            rank1 = (
                f"{latest.rank1_shop} {_fmt_eur(latest.rank1_price)} "
                f"{_ARROWS[v.trend.rank1_price]}"
            )
        else:
            rank1 = "—"
        table.add_row(
            _LIGHT_STYLE[v.metrics.traffic_light],
            f"{v.product.name[:40]}\n[dim]{v.product.product_id}[/dim]",
            rank,
            rank1,
            _fmt_pct(v.metrics.margin_pct),
            _fmt_eur(v.metrics.diff_to_lowest_eur),
            _fmt_eur(v.product.revenue_net),
        )

    Console().print(table)


def _print_dashboard(dashboard: Dashboard) -> None:
    kpis = dashboard.kpis
    summary = Table(title="Dashboard", title_style="bold cyan")
    summary.add_column("KPI", style="bold")
    summary.add_column("Value", justify="right")
    summary.add_row("Total revenue", _fmt_eur(kpis.total_revenue))
    summary.add_row("Total gross profit", _fmt_eur(kpis.total_gross_profit))
    summary.add_row(
        "Weighted margin",
        f"{kpis.weighted_avg_margin_pct:.1f}%"
        if kpis.weighted_avg_margin_pct is not None
        else "—",
    )
    summary.add_row("Monitored products", str(kpis.monitored_count))
    summary.add_row(
        "Last scrape",
        kpis.last_scrape.strftime("%Y-%m-%d %H:%M")
        if kpis.last_scrape
        else "no scrape yet",
    )
    for light, count in dashboard.traffic_light_distribution.items():
        summary.add_row(f"Traffic light {light}", str(count))
    Console().print(summary)

    if dashboard.needs_action:
        _print_products_table(dashboard.needs_action, "Needs action")
    else:
        _err.print("[green]No product needs action.[/green]")


def run_sweep(db_path: Path | None = None) -> int:
    """Run a blocking sweep with a progress bar; 1 if any product failed."""
    service = build_service(db_path)
    try:
        return _sweep_with_progress(service)
    finally:
        service.close()


def _sweep_with_progress(service: PriceMonitorService) -> int:
    monitored = [p for p in service.store.list_products() if p.is_monitored]
    if not monitored:
        _err.print("[yellow]No monitored products in the catalog.[/yellow]")
        return 0

    _err.print(f"[bold]Scraping {len(monitored)} products...[/bold]")
    with Progress(console=_err) as progress:
        task = progress.add_task("Sweeping...", total=len(monitored))

        def _advance(done: int, total: int, product: Product) -> None:
            progress.update(
                task,
                completed=done,
                description=f"{product.product_id} ({done}/{total})",
            )

        try:
            result = service.run_full_scrape_sweep(on_progress=_advance)
        except SweepAlreadyRunningError as exc:
            _err.print(f"[red]{exc}[/red]")
            return 1

    for error in result.errors:
        _err.print(f"[red]{error.product_id}: {error.message}[/red]")
    _err.print(
        f"[green]✓ {result.succeeded} succeeded[/green], "
        f"[red]{result.failed} failed[/red]"
    )
    _dump_json(result.to_dict())
    return 1 if result.failed else 0


def show_products(output_format: str, db_path: Path | None = None) -> int:
    """Print every product with its latest snapshots and metrics."""
    service = build_service(db_path)
    try:
        views = service.list_products()
    finally:
        service.close()
    if not views:
        _err.print("[yellow]Catalog is empty.[/yellow]")
    if output_format == "table":
        _print_products_table(views, "Products")
    else:
        _dump_json([view_to_dict(v) for v in views])
    return 0


def show_dashboard(output_format: str, db_path: Path | None = None) -> int:
    """Print portfolio KPIs and the needs-action list."""
    service = build_service(db_path)
    try:
        dashboard = service.get_dashboard()
    finally:
        service.close()
    if output_format == "table":
        _print_dashboard(dashboard)
    else:
        _dump_json(dashboard_to_dict(dashboard))
    return 0
