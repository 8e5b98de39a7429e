# price_monitor/models/snapshot.py

"""Offer and snapshot models for marketplace price observations."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Offer:
    """One competitor offer row on a comparison page."""

    rank: int
    price: float | None
    shop_name: str
    link: str = ""
    is_own: bool = False


@dataclass
class OfferScan:
    """Result of scanning one product page for offers.

    ``offers`` holds ranks 1 and 2 plus the own offer when it sits
    beyond rank 2.  ``own_offer`` is set whenever the own shop was
    found inside the scan window, whatever its rank.
    """

    offers: list[Offer] = field(
        default_factory=lambda: list[Offer]()
    )
    own_offer: Offer | None = None
    competitor_count: int = 0
    lowest_price: float | None = None

    def by_rank(self, rank: int) -> Offer | None:
        """Return the offer holding *rank*, if it was emitted."""
        for offer in self.offers:
            if offer.rank == rank:
                return offer
        return None


@dataclass(frozen=True)
class Snapshot:
    """One scrape observation for one product at a point in time."""

    product_id: str
    scraped_at: datetime
    rank1_shop: str | None = None
    rank1_price: float | None = None
    rank1_link: str | None = None
    rank2_shop: str | None = None
    rank2_price: float | None = None
    rank2_link: str | None = None
    own_rank: int | None = None
    own_price: float | None = None
    own_link: str | None = None
    competitor_count: int = 0
    lowest_price: float | None = None

    @classmethod
    def from_scan(
        cls,
        product_id: str,
        scan: OfferScan,
        scraped_at: datetime | None = None,
    ) -> "Snapshot":
        """Flatten an :class:`OfferScan` into a persistable snapshot."""
        first = scan.by_rank(1)
        second = scan.by_rank(2)
        own = scan.own_offer
        return cls(
            product_id=product_id,
            scraped_at=scraped_at or datetime.now(),
            rank1_shop=first.shop_name if first else None,
            rank1_price=first.price if first else None,
            rank1_link=first.link if first else None,
            rank2_shop=second.shop_name if second else None,
            rank2_price=second.price if second else None,
            rank2_link=second.link if second else None,
            own_rank=own.rank if own else None,
            own_price=own.price if own else None,
            own_link=own.link if own else None,
            competitor_count=scan.competitor_count,
            lowest_price=scan.lowest_price,
        )
