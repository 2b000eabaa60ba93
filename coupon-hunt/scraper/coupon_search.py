"""
Query the saved coupons by menu item, using the same filter/sort the front
end applies to ``coupons.json`` and ``menu.json``.

Usage:
    python coupon_search.py                         # list every coupon
    python coupon_search.py 夏威夷 海鮮 --sort price  # coupons containing either item
    python coupon_search.py --delivery takeout --sort discount
    python coupon_search.py --categories            # menu names grouped by category
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from config.site import COUPONS_FILENAME, MENU_CATEGORIES, MENU_FILENAME, OUTPUT_DIR

# Food categories shown first, in this order; anything else follows A-Z.
CATEGORY_ORDER = list(MENU_CATEGORIES.values())

SORT_KEYS = ("price", "discount", "code")


def discount_percent(coupon: dict[str, Any]) -> int:
    """Whole-number savings vs. the original price; 0 when unknown.

    >>> discount_percent({"originalPrice": 1000, "discountedPrice": 650})
    35
    """
    original = coupon.get("originalPrice") or 0
    discounted = coupon.get("discountedPrice") or 0
    if original <= 0:
        return 0
    return round((original - discounted) / original * 100)


def group_menu_by_category(menu: list[dict[str, Any]]) -> list[tuple[str, list[str]]]:
    """Return ``(category, sorted unique names)`` pairs in display order."""
    grouped: dict[str, set[str]] = {}
    for item in menu:
        name = item.get("name")
        if not name:
            continue
        grouped.setdefault(item.get("category") or "", set()).add(name)

    def _order(category: str) -> tuple[int, str]:
        if category in CATEGORY_ORDER:
            return (CATEGORY_ORDER.index(category), "")
        return (len(CATEGORY_ORDER), category)

    return [(cat, sorted(grouped[cat])) for cat in sorted(grouped, key=_order)]


def _matches_items(coupon: dict[str, Any], selected: list[str]) -> bool:
    haystack = [coupon.get("title", ""), *coupon.get("items", [])]
    return any(name in text for name in selected for text in haystack)


def filter_coupons(
    coupons: list[dict[str, Any]],
    selected_items: list[str] | None = None,
    delivery_type: str | None = None,
) -> list[dict[str, Any]]:
    """Keep coupons whose title or items mention any selected name.

    ``both`` coupons satisfy either ``delivery`` or ``takeout``.
    """
    result = coupons
    if selected_items:
        result = [c for c in result if _matches_items(c, selected_items)]
    if delivery_type:
        result = [
            c for c in result
            if c.get("deliveryType") in (delivery_type, "both")
        ]
    return result


def sort_coupons(coupons: list[dict[str, Any]], key: str = "code") -> list[dict[str, Any]]:
    if key == "price":
        return sorted(coupons, key=lambda c: (c.get("discountedPrice") or 0, c["code"]))
    if key == "discount":
        return sorted(coupons, key=lambda c: (-discount_percent(c), c["code"]))
    if key == "code":
        return sorted(coupons, key=lambda c: c["code"])
    raise ValueError(f"Unknown sort key: {key!r} (expected one of {', '.join(SORT_KEYS)})")


def _load(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    return json.loads(path.read_text(encoding="utf-8"))


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Search scraped coupons by menu item")
    ap.add_argument("items", nargs="*", help="menu item names (any match)")
    ap.add_argument("--sort", choices=SORT_KEYS, default="code")
    ap.add_argument("--delivery", choices=("delivery", "takeout"))
    ap.add_argument("--categories", action="store_true", help="list menu items by category")
    ap.add_argument("--dir", default=OUTPUT_DIR, help="directory holding the JSON files")
    args = ap.parse_args(argv)

    data_dir = Path(args.dir)

    if args.categories:
        for category, names in group_menu_by_category(_load(data_dir / MENU_FILENAME)):
            print(f"{category} ({len(names)})")
            for name in names:
                print(f"  - {name}")
        return 0

    coupons = filter_coupons(_load(data_dir / COUPONS_FILENAME), args.items, args.delivery)
    for c in sort_coupons(coupons, args.sort):
        print(
            f"{c['code']}  ${c.get('discountedPrice', 0):>5}  "
            f"-{discount_percent(c):>2}%  {c.get('title', '')}"
        )
    print(f"\n{len(coupons)} coupon(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
