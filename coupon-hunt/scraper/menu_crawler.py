"""
Menu scraper. Fetches every configured category listing and writes a
flat ``menu.json`` (fully replaced each run, no merge).

Usage:
    python menu_crawler.py
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from config.site import (
    BASE_URL,
    CATEGORY_DELAY_SEC,
    CATEGORY_PATH,
    MENU_CATEGORIES,
    MENU_FILENAME,
    OUTPUT_DIR,
)
from menu_parser import parse_menu_page
from site_client import FetchError, SiteClient
from storage import write_json

logger = logging.getLogger("menu")


async def scrape_menu(
    client: Any,
    categories: dict[int, str] = MENU_CATEGORIES,
    *,
    delay_sec: float = CATEGORY_DELAY_SEC,
) -> list[dict[str, Any]]:
    """Fetch categories one at a time and concatenate their products."""
    products: list[dict[str, Any]] = []
    for i, (category_id, category_name) in enumerate(categories.items()):
        if i:
            await asyncio.sleep(delay_sec)
        try:
            page = await client.fetch_category_page(category_id)
        except FetchError as exc:
            logger.warning("[%s] Category fetch failed: %s", category_name, exc)
            continue

        page_url = BASE_URL + CATEGORY_PATH.format(category_id=category_id)
        items = parse_menu_page(page, category_id, category_name, page_url=page_url)
        logger.info("[%s] %d products (ct=%d)", category_name, len(items), category_id)
        products.extend(items)
    return products


async def run(
    *,
    output_dir: Path | str = OUTPUT_DIR,
    client: Any = None,
    categories: dict[int, str] | None = None,
    delay_sec: float = CATEGORY_DELAY_SEC,
) -> list[dict[str, Any]]:
    if client is None:
        async with SiteClient() as own_client:
            return await run(
                output_dir=output_dir,
                client=own_client,
                categories=categories,
                delay_sec=delay_sec,
            )

    categories = categories or MENU_CATEGORIES
    products = await scrape_menu(client, categories, delay_sec=delay_sec)
    write_json(Path(output_dir) / MENU_FILENAME, products)
    logger.info("Extracted %d products across %d categories", len(products), len(categories))
    return products


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    try:
        asyncio.run(run())
    except Exception:
        logger.exception("Menu scrape failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
