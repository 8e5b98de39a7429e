# price_monitor/scrapers/offer_extractor.py

"""Heuristic offer extraction from a rendered comparison page."""

import json
import logging
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from urllib.parse import urljoin

from price_monitor.config.settings import Settings
from price_monitor.models.snapshot import Offer, OfferScan
from price_monitor.scrapers.document import DocumentHandle, ElementHandle
from price_monitor.scrapers.shop_identity import ShopIdentityResolver

logger = logging.getLogger("price_monitor.extractor")

_PRICE_RUN_RE = re.compile(r"\d[\d.,]*")


def load_selectors(
    source: str = Settings.MARKETPLACE_ID,
    path: Path | None = None,
) -> dict[str, str]:
    """Load CSS selectors for *source* from selectors.json."""
    with open(path or Settings.SELECTORS_PATH, encoding="utf-8") as f:
        all_selectors: dict[str, Any] = json.load(f)
    result: dict[str, str] = all_selectors.get(source, {})
    return result


def parse_german_price(text: str | None) -> float | None:
    """Parse a German-formatted price like ``'1.299,00 €'`` to a float.

    Takes the first run of digits and separators.  A comma marks the
    decimal part and dots are thousands separators; without a comma,
    dots followed by exactly three digits are read as thousands
    separators too.  Returns ``None`` when nothing parses.
    """
    if not text:
        return None
    match = _PRICE_RUN_RE.search(text)
    if not match:
        return None
    raw = match.group(0).rstrip(".,")

    if "," in raw:
        raw = raw.replace(".", "").replace(",", ".", 1).replace(",", "")
    elif "." in raw:
        groups = raw.split(".")
        if all(len(g) == 3 for g in groups[1:]):
            raw = "".join(groups)
        else:
            raw = "".join(groups[:-1]) + "." + groups[-1]

    try:
        return float(raw)
    except ValueError:
        logger.debug("Unparsable price text: %r", text)
        return None


class PageOfferExtractor:
    """Turn the offer rows of a comparison page into ranked offers.

    At most ``max_rows`` rows are inspected.  Ranks 1 and 2 are always
    emitted; the own shop's offer is appended only when it is found
    inside the window beyond rank 2.
    """

    def __init__(
        self,
        own_shop_aliases: Sequence[str] | None = None,
        resolver: ShopIdentityResolver | None = None,
        selectors: dict[str, str] | None = None,
        max_rows: int = Settings.MAX_SCAN_ROWS,
        base_url: str = Settings.MARKETPLACE_BASE_URL,
    ) -> None:
        self.selectors = selectors if selectors is not None else load_selectors()
        aliases = (
            Settings.OWN_SHOP_ALIASES
            if own_shop_aliases is None
            else own_shop_aliases
        )
        self.own_shop_aliases: list[str] = [
            a.lower() for a in aliases if a.strip()
        ]
        self.resolver = resolver or ShopIdentityResolver(
            selectors=self.selectors
        )
        self.max_rows = max_rows
        self.base_url = base_url

    @property
    def wait_selector(self) -> str:
        """Selector signalling that the offer list has rendered."""
        return self.selectors.get(
            "offer_list", "a.productOffers-listItemOfferPrice"
        )

    def is_own_shop(self, shop_name: str) -> bool:
        """Case-insensitive substring match against the own aliases."""
        lowered = shop_name.lower()
        return any(alias in lowered for alias in self.own_shop_aliases)

    def _row_price_and_link(
        self, row: ElementHandle,
    ) -> tuple[float | None, str]:
        """Read price and offer link from the row's price anchor."""
        anchor = row.query_one(
            self.selectors.get(
                "offer_price", "a.productOffers-listItemOfferPrice"
            )
        )
        if anchor is None:
            return None, ""

        # Nested spans may carry a crossed-out reference price
        text = anchor.direct_text()
        if not text.strip():
            text = anchor.text()

        href = anchor.get_attribute("href") or ""
        link = urljoin(self.base_url, href) if href else ""
        return parse_german_price(text), link

    def scan(self, document: DocumentHandle) -> OfferScan:
        """Scan the document and return offers plus page-level figures."""
        rows = document.query_all(
            self.selectors.get("offer_row", "li.productOffers-listItem")
        )
        scan = OfferScan(competitor_count=len(rows))
        if not rows:
            logger.info("No offer rows found on page")
            return scan

        prices: list[float] = []
        for index, row in enumerate(rows[: self.max_rows]):
            rank = index + 1
            price, link = self._row_price_and_link(row)
            shop = self.resolver.resolve(row)
            own = scan.own_offer is None and self.is_own_shop(shop)

            offer = Offer(
                rank=rank,
                price=price,
                shop_name=shop,
                link=link,
                is_own=own,
            )
            if price is not None:
                prices.append(price)
            if rank <= 2:
                scan.offers.append(offer)
            if own:
                scan.own_offer = offer

        if scan.own_offer is not None and scan.own_offer.rank > 2:
            scan.offers.append(scan.own_offer)
        scan.lowest_price = min(prices) if prices else None

        logger.debug(
            "Scanned %d/%d rows, own rank=%s, lowest=%s",
            min(len(rows), self.max_rows),
            len(rows),
            scan.own_offer.rank if scan.own_offer else None,
            scan.lowest_price,
        )
        return scan

    def extract(self, document: DocumentHandle) -> list[Offer]:
        """Return the ranked offer list for the document."""
        return self.scan(document).offers
