# price_monitor/scrapers/shop_identity.py

"""Best-effort seller name resolution for a single offer row."""

import json
import logging
from collections.abc import Callable, Sequence
from typing import Any

from price_monitor.config.settings import Settings
from price_monitor.scrapers.document import ElementHandle

logger = logging.getLogger("price_monitor.shop_identity")

# A strategy returns a shop name, or None to defer to the next one
ShopStrategy = Callable[[ElementHandle], str | None]

_SUFFIX_SEPARATOR = " - "


def clean_shop_name(name: str) -> str:
    """Drop a trailing locality suffix.

    ``"docmorris.de - Shop aus Heerlen"`` becomes ``"docmorris.de"``.
    """
    if _SUFFIX_SEPARATOR in name:
        name = name.split(_SUFFIX_SEPARATOR, 1)[0]
    return name.strip()


def shop_attribute_strategy(selector: str) -> ShopStrategy:
    """Read the explicit ``data-shop-name`` attribute of the shop link."""

    def resolve(row: ElementHandle) -> str | None:
        link = row.query_one(selector)
        if link is None:
            return None
        return link.get_attribute("data-shop-name") or None

    return resolve


def logo_alt_strategy(selector: str, brand: str) -> ShopStrategy:
    """Use the shop logo's alt text unless it only names the marketplace."""

    def resolve(row: ElementHandle) -> str | None:
        img = row.query_one(selector)
        if img is None:
            return None
        alt = img.get_attribute("alt")
        if not alt or brand.lower() in alt.lower():
            return None
        return alt

    return resolve


def tracking_payload_strategy(attribute: str) -> ShopStrategy:
    """Parse ``shop_name`` from the row's JSON click-tracking payload."""

    def resolve(row: ElementHandle) -> str | None:
        raw = row.get_attribute(attribute)
        if not raw:
            return None
        try:
            payload: Any = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.debug("Unparsable tracking payload: %.80s", raw)
            return None
        if not isinstance(payload, dict):
            return None
        name = payload.get("shop_name")
        return str(name) if name else None

    return resolve


class ShopIdentityResolver:
    """Run an ordered chain of strategies; the first hit wins."""

    def __init__(
        self,
        strategies: Sequence[ShopStrategy] | None = None,
        unknown: str = Settings.UNKNOWN_SHOP,
        selectors: dict[str, str] | None = None,
    ) -> None:
        self.unknown = unknown
        if strategies is None:
            sel = selectors or {}
            strategies = [
                shop_attribute_strategy(
                    sel.get("shop_link", "a[data-shop-name]")
                ),
                logo_alt_strategy(
                    sel.get(
                        "shop_logo",
                        "img.productOffers-listItemOfferShopV2LogoImage",
                    ),
                    Settings.MARKETPLACE_BRAND,
                ),
                tracking_payload_strategy(
                    sel.get("tracking_attribute", "data-mtrx-click")
                ),
            ]
        self.strategies: list[ShopStrategy] = list(strategies)

    def resolve(self, row: ElementHandle) -> str:
        """Return the cleaned shop name for *row*, or the sentinel."""
        for strategy in self.strategies:
            name = strategy(row)
            if name and name.strip():
                return clean_shop_name(name)
        return self.unknown
