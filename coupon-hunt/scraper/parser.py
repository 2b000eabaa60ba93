"""
Coupon detail page parser.

Takes the raw HTML of a ``mode=step_2`` coupon page and pulls out the
fields stored in ``coupons.json``: title, prices, package contents,
expiry, minimum spend and delivery/takeout availability.

Every field is extracted independently: a page missing its price block
still yields a title and items.  Multi-step fields (original price,
minimum spend, delivery type) are ordered rule lists where the first
matching rule wins.

All functions are pure (no I/O) and operate on plain strings so they
are easy to unit-test without a network connection.
"""

from __future__ import annotations

import html as _html
import re
from typing import Any, Callable
from urllib.parse import urljoin

from config.site import (
    BASE_URL,
    DEFAULT_VALID_UNTIL,
    ITEMS_PLACEHOLDER,
    MIN_PURCHASE_BASELINE_PRICE,
    ORIGINAL_PRICE_MULTIPLIER,
    PRICE_PLACEHOLDER,
    SIZE_CLASS_MIN_PURCHASE,
)

TITLE_PREFIX = "優惠代碼"

# =====================================================================
# 0. Markup helpers
# =====================================================================

_RE_BR = re.compile(r"<br\s*/?>", re.IGNORECASE)
_RE_TAG = re.compile(r"<[^>]+>")


def parse_price(raw: str | None) -> int | None:
    """Parse a regex-captured amount, dropping thousands separators.

    >>> parse_price("2,098")
    2098
    >>> parse_price("")
    """
    if not raw:
        return None
    digits = raw.replace(",", "").strip()
    if not digits.isdigit():
        return None
    return int(digits)


def strip_markup(fragment: str) -> str:
    """Turn ``<br>`` into newlines and drop every other tag."""
    text = _RE_BR.sub("\n", fragment)
    return _RE_TAG.sub("", text).strip()


def markup_to_lines(fragment: str) -> list[str]:
    """Split a markup fragment into trimmed, non-empty text lines."""
    text = _html.unescape(strip_markup(fragment))
    return [line.strip() for line in text.split("\n") if line.strip()]


# =====================================================================
# 1. Title
# =====================================================================

_RE_TITLE = re.compile(r'<h1 id="cb_name"[^>]*>(.*?)</h1>', re.IGNORECASE | re.DOTALL)
_RE_TITLE_PROD_NAME = re.compile(r'class="prod_name"[^>]*>(.*?)</', re.IGNORECASE | re.DOTALL)


def extract_title(page: str, code: str) -> str:
    """Heading first, then the product-name element, then a synthesized label."""
    for pattern in (_RE_TITLE, _RE_TITLE_PROD_NAME):
        m = pattern.search(page)
        if m:
            title = _RE_TAG.sub("", m.group(1)).strip()
            if title:
                return title.replace("&amp;", "&")
    return f"{TITLE_PREFIX} {code}"


# =====================================================================
# 2. Prices
# =====================================================================

# <div class="descPrice red">$ 2,098</div>
_RE_DESC_PRICE = re.compile(
    r'<div class="descPrice[^"]*"[^>]*>\s*\$\s*([\d,]+)\s*</div>',
    re.IGNORECASE,
)
_RE_GENERIC_PRICE = re.compile(r'class="price"[^>]*>\s*\$?\s*([\d,]+)', re.IGNORECASE)

# "原價NT$1,299" / "原價$899"
_RE_ORIGINAL_PRICE = re.compile(r"原價\s*(?:NT)?\$\s*([\d,]+)", re.IGNORECASE)

# "最高價值$1,580" / "價值NT$990" inside the title or package contents
_RE_VALUE_PHRASE = re.compile(r"(?:最高)?價值\s*(?:NT)?\$\s*([\d,]+)", re.IGNORECASE)


def extract_discounted_price(page: str) -> int | None:
    """Return the coupon price, or ``None`` when neither marker is present.

    >>> extract_discounted_price('<div class="descPrice">$ 2,098</div>')
    2098
    """
    for pattern in (_RE_DESC_PRICE, _RE_GENERIC_PRICE):
        m = pattern.search(page)
        if m:
            price = parse_price(m.group(1))
            if price is not None:
                return price
    return None


def extract_original_price(
    page: str,
    content_text: str,
    discounted_price: int,
    *,
    multiplier: float = ORIGINAL_PRICE_MULTIPLIER,
) -> int:
    """Resolve the pre-discount price.

    Precedence: explicit 原價 marker on the page, then a 價值 phrase in
    the title/items, then ``discounted * multiplier``.  Returns ``0``
    (unknown) when none apply.
    """
    for pattern, text in ((_RE_ORIGINAL_PRICE, page), (_RE_VALUE_PHRASE, content_text)):
        m = pattern.search(text)
        price = parse_price(m.group(1)) if m else None
        if price is not None:
            return price

    if multiplier > 0 and discounted_price > 0:
        return round(discounted_price * multiplier)

    return 0


# =====================================================================
# 3. Package contents
# =====================================================================

_RE_PACKAGE_CONTENTS = re.compile(r"<li>\s*套餐內容[:：](.*?)</li>", re.IGNORECASE | re.DOTALL)
_RE_DESC_TOP = re.compile(r'<div class="descTop"[^>]*>(.*?)</div>', re.IGNORECASE | re.DOTALL)


def extract_items(page: str) -> list[str]:
    """Line items from the 套餐內容 list entry, else the ``descTop`` block.

    An empty list is a valid result (no itemization on the page).
    """
    for pattern in (_RE_PACKAGE_CONTENTS, _RE_DESC_TOP):
        m = pattern.search(page)
        if m:
            items = markup_to_lines(m.group(1))
            if items:
                return items
    return []


def _description_text(page: str) -> str:
    m = _RE_DESC_TOP.search(page)
    return _html.unescape(strip_markup(m.group(1))) if m else ""


# =====================================================================
# 4. Expiry
# =====================================================================

# "有效期限：2025/12/31", "有效期限至2025-12-31", "有效期限 2025年12月31日"
_RE_VALID_UNTIL = re.compile(
    r"有效期限\s*[:：]?\s*(?:至\s*)?"
    r"(?P<y>\d{4})\s*[/\-.年]\s*(?P<m>\d{1,2})\s*[/\-.月]\s*(?P<d>\d{1,2})",
)


def extract_valid_until(page: str, default: str = DEFAULT_VALID_UNTIL) -> str:
    """Return the expiry as ``YYYY-MM-DD``, or *default* when unlabeled.

    >>> extract_valid_until("有效期限：2025/3/9")
    '2025-03-09'
    """
    m = _RE_VALID_UNTIL.search(page)
    if not m:
        return default
    return f"{m.group('y')}-{int(m.group('m')):02d}-{int(m.group('d')):02d}"


# =====================================================================
# 5. Minimum purchase price
# =====================================================================

# Each rule is (name, pattern, extractor(match, baseline) -> int | None).
# Order matters: the narrower categorical fallbacks sit at the bottom and
# are only consulted when no explicit amount appears in the text.

def _amount(m: re.Match, _baseline: int) -> int | None:
    return parse_price(m.group(1))


def _size_class_default(m: re.Match, _baseline: int) -> int | None:
    return SIZE_CLASS_MIN_PURCHASE.get(m.group(1))


def _percent_of_baseline(m: re.Match, baseline: int) -> int | None:
    if m.group("half"):
        fraction = 0.5
    else:
        digits = m.group("pct")
        # Taiwanese 折: "7折" = 70%, "75折" = 75%
        fraction = int(digits) / (10 if len(digits) == 1 else 100)
    return round(baseline * fraction)


_MIN_PURCHASE_RULES: list[tuple[str, re.Pattern, Callable[[re.Match, int], int | None]]] = [
    # "NT$320元(含)以上" / "滿500元（含）以上"
    ("inclusive_or_above", re.compile(r"(?:NT)?\$?\s*([\d,]+)\s*元?\s*[(（]\s*含\s*[)）]\s*以上"), _amount),
    # "套餐總價=$699"
    ("combo_total", re.compile(r"套餐總價\s*[=＝:：]?\s*(?:NT)?\$?\s*([\d,]+)"), _amount),
    # "$580起"
    ("starting_from", re.compile(r"(?:NT)?\$\s*([\d,]+)\s*元?\s*起"), _amount),
    # "9吋比薩買1送1"
    ("size_class_bogo", re.compile(r"(12吋|9吋|個人)[^。\n]{0,12}?買\s*1\s*送\s*1"), _size_class_default),
    # "大比薩7折" / "大比薩半價"
    (
        "large_pizza_discount",
        re.compile(r"大比薩[^。\n]{0,12}?(?:(?P<pct>\d{1,2})\s*折|(?P<half>半價))"),
        _percent_of_baseline,
    ),
]


def extract_min_purchase_price(
    text: str,
    *,
    baseline_price: int = MIN_PURCHASE_BASELINE_PRICE,
) -> int | None:
    """Infer the minimum basket value needed to redeem the coupon.

    >>> extract_min_purchase_price("外帶滿NT$320元(含)以上，9吋比薩買1送1")
    320
    >>> extract_min_purchase_price("大比薩8折")
    452
    """
    for _name, pattern, extractor in _MIN_PURCHASE_RULES:
        m = pattern.search(text)
        if m:
            value = extractor(m, baseline_price)
            if value is not None:
                return value
    return None


# =====================================================================
# 6. Delivery / takeout classification
# =====================================================================

DELIVERY = "delivery"
TAKEOUT = "takeout"
BOTH = "both"

_TITLE_LABELS: list[tuple[str, str]] = [
    ("外送限定", DELIVERY),
    ("外送專屬", DELIVERY),
    ("限外送", DELIVERY),
    ("外帶限定", TAKEOUT),
    ("外帶專屬", TAKEOUT),
    ("限外帶", TAKEOUT),
]

# "外送需另加收外送服務費" style notes mention 外送 on every coupon. Only the
# clause holding the fee is dropped; a restriction sharing its sentence stays.
_RE_FEE_DISCLAIMER = re.compile(r"[^。\n，,、；;]*外送(?:服務)?費[^。\n，,、；;]*[。，,、；;]?")

_RE_DELIVERY_ONLY = re.compile(r"(?<!不)限(?:定)?外送|外送(?:限定|專屬|獨享)")
_RE_TAKEOUT_ONLY = re.compile(r"(?<!不)限(?:定)?(?:外帶|自取)|外帶(?:限定|專屬|獨享)")

_RE_DELIVERY = re.compile(r"外送")
_RE_TAKEOUT = re.compile(r"外帶|自取")


def classify_delivery_type(title: str, text: str) -> str | None:
    """Return ``delivery``, ``takeout``, ``both`` or ``None``.

    >>> classify_delivery_type("", "本優惠限外送")
    'delivery'
    >>> classify_delivery_type("", "外送、外帶皆適用")
    'both'
    """
    for label, kind in _TITLE_LABELS:
        if label in title:
            return kind

    body = _RE_FEE_DISCLAIMER.sub("", text)

    if _RE_DELIVERY_ONLY.search(body):
        return DELIVERY
    if _RE_TAKEOUT_ONLY.search(body):
        return TAKEOUT

    has_delivery = bool(_RE_DELIVERY.search(body))
    has_takeout = bool(_RE_TAKEOUT.search(body))
    if has_delivery and has_takeout:
        return BOTH
    if has_delivery:
        return DELIVERY
    if has_takeout:
        return TAKEOUT
    return None


# =====================================================================
# 7. Image
# =====================================================================

_RE_BANNER_IMG = re.compile(
    r'<div class="combo_banner"[^>]*>.*?<img[^>]+src="([^">]+)"',
    re.IGNORECASE | re.DOTALL,
)
_RE_PROD_IMG = re.compile(r'<img[^>]+src="([^">]+)"[^>]*class="prod_img"', re.IGNORECASE)


def extract_image_url(page: str, base_url: str = BASE_URL) -> str | None:
    for pattern in (_RE_BANNER_IMG, _RE_PROD_IMG):
        m = pattern.search(page)
        if m:
            return urljoin(base_url, m.group(1))
    return None


# =====================================================================
# Unified parse entry-point
# =====================================================================


def parse_coupon_detail(
    page: str,
    code: str,
    *,
    price_placeholder: int = PRICE_PLACEHOLDER,
    items_placeholder: str = ITEMS_PLACEHOLDER,
    default_valid_until: str = DEFAULT_VALID_UNTIL,
    original_price_multiplier: float = ORIGINAL_PRICE_MULTIPLIER,
    baseline_price: int = MIN_PURCHASE_BASELINE_PRICE,
) -> dict[str, Any]:
    """Build a coupon record from a detail page.

    Optional keys (``minPurchasePrice``, ``deliveryType``, ``imageUrl``)
    are omitted when they cannot be determined.
    """
    title = extract_title(page, code)
    items = extract_items(page)

    discounted = extract_discounted_price(page)
    if discounted is None:
        discounted = price_placeholder

    content_text = "\n".join([title, *items])
    original = extract_original_price(
        page, content_text, discounted, multiplier=original_price_multiplier,
    )

    coupon_text = "\n".join([content_text, _description_text(page)])

    record: dict[str, Any] = {
        "code": code,
        "title": title,
        "items": items or ([items_placeholder] if items_placeholder else []),
        "originalPrice": original,
        "discountedPrice": discounted,
        "validUntil": extract_valid_until(page, default_valid_until),
    }

    min_purchase = extract_min_purchase_price(coupon_text, baseline_price=baseline_price)
    if min_purchase is not None:
        record["minPurchasePrice"] = min_purchase

    delivery_type = classify_delivery_type(title, coupon_text)
    if delivery_type is not None:
        record["deliveryType"] = delivery_type

    image_url = extract_image_url(page)
    if image_url:
        record["imageUrl"] = image_url

    return record
