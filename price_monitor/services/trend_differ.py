# price_monitor/services/trend_differ.py

"""Direction indicators between a product's two latest snapshots."""

from price_monitor.models.metrics import Direction, TrendIndicators
from price_monitor.models.snapshot import Snapshot


def price_direction(
    current: float | None, previous: float | None,
) -> Direction:
    """Higher price is ``UP``."""
    if current is None or previous is None:
        return Direction.UNKNOWN
    if current > previous:
        return Direction.UP
    if current < previous:
        return Direction.DOWN
    return Direction.FLAT


def rank_direction(
    current: int | None, previous: int | None,
) -> Direction:
    """Lower rank number is better, so a falling number is ``UP``."""
    if current is None or previous is None:
        return Direction.UNKNOWN
    if current < previous:
        return Direction.UP
    if current > previous:
        return Direction.DOWN
    return Direction.FLAT


def _delta(current: float | None, previous: float | None) -> float | None:
    if current is None or previous is None:
        return None
    return current - previous


def diff_snapshots(
    current: Snapshot | None, previous: Snapshot | None,
) -> TrendIndicators:
    """Compare the newest snapshot against the one before it.

    Without a previous snapshot every indicator is ``NO_BASELINE``,
    which is distinct from ``FLAT``.
    """
    if current is None or previous is None:
        return TrendIndicators()

    rank_change: int | None = None
    if current.own_rank is not None and previous.own_rank is not None:
        rank_change = previous.own_rank - current.own_rank

    return TrendIndicators(
        rank1_price=price_direction(
            current.rank1_price, previous.rank1_price
        ),
        own_price=price_direction(current.own_price, previous.own_price),
        own_rank=rank_direction(current.own_rank, previous.own_rank),
        rank1_price_delta=_delta(current.rank1_price, previous.rank1_price),
        own_price_delta=_delta(current.own_price, previous.own_price),
        rank_change=rank_change,
    )
