# price_monitor/config/settings.py

"""Central configuration for the price_monitor pipeline."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _csv_env(name: str, default: str) -> list[str]:
    """Read a comma-separated environment variable into a list."""
    raw = os.getenv(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings:
    """Central configuration for the price_monitor pipeline."""

    # --- Marketplace ---
    MARKETPLACE_ID: str = "idealo"
    MARKETPLACE_BRAND: str = "idealo"
    MARKETPLACE_BASE_URL: str = os.getenv(
        "MARKETPLACE_BASE_URL", "https://www.idealo.de"
    )
    OWN_SHOP_ALIASES: list[str] = _csv_env(
        "OWN_SHOP_ALIASES", "health rise,health-rise"
    )
    UNKNOWN_SHOP: str = "Unknown"

    # --- Scraping ---
    REQUEST_DELAY: float = 2.0          # Seconds between products in a sweep
    NAVIGATION_TIMEOUT: int = 30        # Seconds before a page load times out
    OFFER_WAIT_TIMEOUT: int = 15        # Seconds to wait for the offer list
    MAX_RETRIES: int = 3                # Retry count on transient failures
    MAX_SCAN_ROWS: int = 20             # Offer rows inspected per page

    # --- Anti-bot detection ---
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Pricing rules ---
    PROJECTED_MARGIN_GREEN: float = 15.0
    PROJECTED_MARGIN_YELLOW: float = 0.0
    STANDARD_TAX_RATE: float = 19.0
    REDUCED_TAX_RATE: float = 7.0
    DEFAULT_TAX_RATE: float = REDUCED_TAX_RATE
    SALES_PERIOD_MONTHS: int = 3        # Window covered by quantity_sold

    # --- Dashboard ---
    TOP_N: int = 10
    MARGIN_BANDS: list[tuple[str, float]] = [
        ("<0%", 0.0),
        ("0-10%", 10.0),
        ("10-20%", 20.0),
        ("20-30%", 30.0),
        (">30%", float("inf")),
    ]

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "de-DE,de;q=0.9,en;q=0.8",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = (
        BASE_DIR / "price_monitor" / "config" / "selectors.json"
    )
    DATA_DIR: Path = BASE_DIR / "data"
    PRICE_DB_PATH: Path = Path(
        os.getenv("PRICE_DB_PATH", str(DATA_DIR / "price_monitor.db"))
    )
    LOGS_DIR: Path = BASE_DIR / "logs"
