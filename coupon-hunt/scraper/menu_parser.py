"""
Menu listing parser.

The ``mode=step_2&ct=<id>`` pages are server-rendered; every product is
a ``.promotion_list_item`` block::

    <div class="promotion_list_item" id="itemss_p326" data-id-real="326">
      <a href="/order/?mode=step_3&pid=326">
      <div class="pro-li-name">夏威夷比薩</div>
      <div class="pro-list-descContent">鳳梨<br>火腿</div>
      <span class="pro-li-pr priceTxt_original">原價<span class="notranslate">$968</span></span>
      <span class="pro-li-pr priceTxt">限時<span class="notranslate">$580</span>起</span>
    </div>
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from config.site import BASE_URL
from parser import markup_to_lines

_ELEMENT_ID_PREFIX = "itemss_p"
_RE_NON_DIGIT = re.compile(r"[^\d]")


def _price(text: str) -> int | None:
    digits = _RE_NON_DIGIT.sub("", text)
    return int(digits) if digits else None


def _product_id(item: Tag) -> str:
    real_id = (item.get("data-id-real") or "").strip()
    if real_id:
        return real_id
    element_id = (item.get("id") or "").strip()
    return element_id.replace(_ELEMENT_ID_PREFIX, "") if element_id else ""


def _current_price(item: Tag) -> int | None:
    tag = item.select_one(".priceTxt .notranslate")
    price = _price(tag.get_text()) if tag else None
    if price:
        return price
    # Regular-priced items have a plain .pro-li-pr with no promo markup.
    for tag in item.select(".pro-li-pr"):
        if "priceTxt_original" in (tag.get("class") or []):
            continue
        price = _price(tag.get_text())
        if price:
            return price
    return None


def parse_menu_page(
    page: str,
    category_id: int,
    category_name: str,
    *,
    base_url: str = BASE_URL,
    page_url: str | None = None,
) -> list[dict[str, Any]]:
    """Extract product records from one category listing page.

    Blocks without an id or a name are skipped.  ``url`` falls back to
    *page_url* when the block carries no link.
    """
    soup = BeautifulSoup(page, "html.parser")
    products: list[dict[str, Any]] = []

    for item in soup.select(".promotion_list_item"):
        product_id = _product_id(item)
        name_tag = item.select_one(".pro-li-name")
        name = name_tag.get_text(strip=True) if name_tag else ""
        if not product_id or not name:
            continue

        desc_tag = item.select_one(".pro-list-descContent")
        description = "\n".join(markup_to_lines(desc_tag.decode_contents())) if desc_tag else ""

        link = item.find("a", href=True)
        url = urljoin(base_url, link["href"]) if link else (page_url or base_url)

        product: dict[str, Any] = {
            "id": product_id,
            "name": name,
            "description": description,
            "price": _current_price(item) or 0,
            "category": category_name,
            "categoryId": category_id,
            "url": url,
        }

        original_tag = item.select_one(".priceTxt_original .notranslate")
        original = _price(original_tag.get_text()) if original_tag else None
        if original:
            product["originalPrice"] = original

        products.append(product)

    return products
