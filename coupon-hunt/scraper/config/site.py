"""
Site configuration for the Pizza Hut Taiwan ordering site.

Static values (endpoints, headers, default code ranges, menu categories)
live here as module constants.  Tunables that operators may want to
change per environment are read from ``.env`` / the process environment
via ``python-dotenv``:

    OUTPUT_DIR=public                 # where coupons/metadata/menu JSON go
    PROBE_DELAY_SEC=0.5               # pause before each validity probe
    CATEGORY_DELAY_SEC=0.5            # pause between menu category fetches
    MIN_PURCHASE_BASELINE_PRICE=565   # large-pizza list price for "N折" rules
    ORIGINAL_PRICE_MULTIPLIER=1.5     # original price guess; 0 disables
    PRICE_PLACEHOLDER=0               # discounted price when none is found
    ITEMS_PLACEHOLDER=                # item text when a coupon lists none
    DEFAULT_VALID_UNTIL=              # validUntil when the page has no date
"""

import os
import random as _random

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

BASE_URL = "https://www.pizzahut.com.tw"

# Validity probe (POST, form-encoded).  ``t`` is a unix-seconds cache buster.
PROBE_PATH = "/order/?m=ajax&t={timestamp}"

# Coupon detail page keyed by upstream type id + code.
COUPON_DETAIL_PATH = "/order/?mode=step_2&type_id={type_id}&cno={code}"

# Menu listing page keyed by category id.
CATEGORY_PATH = "/order/?mode=step_2&ct={category_id}"

# Type id the detail page accepts when the probe response omits one.
FALLBACK_TYPE_ID = "1025"

# ---------------------------------------------------------------------------
# Request headers
# ---------------------------------------------------------------------------

_USER_AGENT_POOL = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
]


def get_user_agent() -> str:
    """Return a randomly selected realistic Chrome User-Agent."""
    return _random.choice(_USER_AGENT_POOL)


BASE_HEADERS = {
    "Origin": BASE_URL,
    "Referer": f"{BASE_URL}/",
    "Accept": "*/*",
}

# Extra headers the AJAX endpoint expects on the probe call.
PROBE_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
    "X-Requested-With": "XMLHttpRequest",
}

# ---------------------------------------------------------------------------
# Scan inputs
# ---------------------------------------------------------------------------

# Used when main.py is run without arguments.
DEFAULT_CODE_RANGES = [
    "15000-15999",
    "24000-24999",
]

CODE_WIDTH = 5

# Menu categories, in the order they are fetched (``ct`` id -> display name).
MENU_CATEGORIES: dict[int, str] = {
    1: "大/小比薩",
    2: "個人比薩",
    3: "拼盤/熱烤",
    4: "義大利麵/燉飯",
    5: "甜點/飲料",
}

# ---------------------------------------------------------------------------
# Environment tunables
# ---------------------------------------------------------------------------

OUTPUT_DIR = os.getenv("OUTPUT_DIR", "public")

COUPONS_FILENAME = "coupons.json"
METADATA_FILENAME = "metadata.json"
MENU_FILENAME = "menu.json"

PROBE_DELAY_SEC = float(os.getenv("PROBE_DELAY_SEC", "0.5"))
CATEGORY_DELAY_SEC = float(os.getenv("CATEGORY_DELAY_SEC", "0.5"))

# List price of a large pizza on the current menu.  Only used to turn
# "大比薩7折" style offers into a minimum spend; update when the menu changes.
MIN_PURCHASE_BASELINE_PRICE = int(os.getenv("MIN_PURCHASE_BASELINE_PRICE", "565"))

ORIGINAL_PRICE_MULTIPLIER = float(os.getenv("ORIGINAL_PRICE_MULTIPLIER", "1.5"))
PRICE_PLACEHOLDER = int(os.getenv("PRICE_PLACEHOLDER", "0"))
ITEMS_PLACEHOLDER = os.getenv("ITEMS_PLACEHOLDER", "")
DEFAULT_VALID_UNTIL = os.getenv("DEFAULT_VALID_UNTIL", "")

# Default minimum spend implied by a size class on buy-one-get-one offers.
SIZE_CLASS_MIN_PURCHASE: dict[str, int] = {
    "12吋": 565,
    "9吋": 399,
    "個人": 199,
}
