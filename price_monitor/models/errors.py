# price_monitor/models/errors.py

"""Exception types raised across the scrape pipeline."""


class PriceMonitorError(Exception):
    """Base class for price_monitor failures."""


class NavigationError(PriceMonitorError):
    """A marketplace page could not be loaded."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason


class PersistenceError(PriceMonitorError):
    """A snapshot or catalog write failed."""


class SweepAlreadyRunningError(PriceMonitorError):
    """A sweep was triggered while another one is in flight."""
