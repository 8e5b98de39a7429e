# price_monitor/models/product.py

"""Catalog product model, read-only from the pipeline's perspective."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Product:
    """A catalog record with cost, price and sales figures.

    Monetary fields are ``None`` when the catalog did not provide them.
    ``listing_url`` points at the marketplace comparison page; a product
    without one is not monitored.
    """

    product_id: str
    name: str = ""
    gtin: str | None = None
    quantity_sold: int | None = None
    revenue_net: float | None = None
    listing_url: str | None = None
    price_gross: float | None = None
    price_net: float | None = None
    purchase_price_net: float | None = None
    uvp: float | None = None
    tax_rate: float | None = None
    clicks: int | None = None

    @property
    def is_monitored(self) -> bool:
        """True if the product has a marketplace listing to scrape."""
        return bool(self.listing_url and self.listing_url.strip())
