"""
Coupon Hunt scraper orchestrator.

Scans a numeric coupon code space against the ordering site's validity
endpoint, scrapes the detail page of every live code, merges the results
into the previously saved ``coupons.json`` (dropping expired offers and
never re-probing known codes), and writes a ``metadata.json`` summary
for the front end.

Usage:
    python main.py                       # scan DEFAULT_CODE_RANGES
    python main.py 24000-24100 15001     # ranges and/or single codes

Environment variables: see ``config/site.py``.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from datetime import date
from pathlib import Path
from typing import Any

from codes import parse_code_args
from config.site import (
    COUPONS_FILENAME,
    DEFAULT_CODE_RANGES,
    METADATA_FILENAME,
    OUTPUT_DIR,
    PROBE_DELAY_SEC,
)
from coupon_search import discount_percent, sort_coupons
from parser import parse_coupon_detail
from site_client import FetchError, ProbeFound, SiteClient
from storage import (
    build_metadata,
    filter_expired,
    load_existing_coupons,
    merge_coupons,
    write_json,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("crawler")

_PROGRESS_EVERY = 100


# ---------------------------------------------------------------------------
# Scan
# ---------------------------------------------------------------------------


async def scan_codes(
    client: Any,
    codes: list[str],
    *,
    delay_sec: float = PROBE_DELAY_SEC,
) -> list[dict[str, Any]]:
    """Probe each code in order and scrape the ones that are live.

    A failed probe or detail fetch only loses that one code; it is not
    recorded anywhere, so the next run will try it again.
    """
    found: list[dict[str, Any]] = []
    for i, code in enumerate(codes, 1):
        await asyncio.sleep(delay_sec)

        result = await client.probe_code(code)
        if isinstance(result, ProbeFound):
            logger.info("[FOUND] %s (type %s) — fetching details", code, result.type_id)
            try:
                page = await client.fetch_coupon_page(code, result.type_id)
            except FetchError as exc:
                logger.warning("Detail fetch for %s failed: %s", code, exc)
            else:
                coupon = parse_coupon_detail(page, code)
                found.append(coupon)
                logger.info(
                    "   -> %s ($%d, was $%d)",
                    coupon["title"], coupon["discountedPrice"], coupon["originalPrice"],
                )
        else:
            logger.debug("%s: %s", code, result)

        if i % _PROGRESS_EVERY == 0:
            logger.info("Progress: %d/%d codes probed, %d found", i, len(codes), len(found))

    return found


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------


async def run(
    tokens: list[str] | None = None,
    *,
    output_dir: Path | str = OUTPUT_DIR,
    client: Any = None,
    today: date | None = None,
    delay_sec: float = PROBE_DELAY_SEC,
) -> dict[str, Any]:
    """Execute one discovery run and return the metadata record."""
    if client is None:
        async with SiteClient() as own_client:
            return await run(
                tokens,
                output_dir=output_dir,
                client=own_client,
                today=today,
                delay_sec=delay_sec,
            )

    start = time.time()
    tokens = list(tokens) if tokens else list(DEFAULT_CODE_RANGES)
    output_dir = Path(output_dir)
    coupons_path = output_dir / COUPONS_FILENAME
    metadata_path = output_dir / METADATA_FILENAME

    existing = filter_expired(load_existing_coupons(coupons_path), today)
    known_codes = {c["code"] for c in existing}

    # Overlapping ranges repeat codes; probe each one once.
    candidates = list(dict.fromkeys(parse_code_args(tokens)))
    to_probe = [code for code in candidates if code not in known_codes]
    logger.info(
        "Scanning %d codes (%d candidates, %d already known) from %s",
        len(to_probe), len(candidates), len(candidates) - len(to_probe),
        ", ".join(tokens),
    )

    new_coupons = await scan_codes(client, to_probe, delay_sec=delay_sec)
    merged = merge_coupons(existing, new_coupons)

    write_json(coupons_path, merged)

    metadata = build_metadata(
        total_coupons=len(merged),
        scanned_ranges=tokens,
        new_coupons_found=len(new_coupons),
        existing_coupons=len(existing),
    )
    write_json(metadata_path, metadata)

    elapsed = time.time() - start
    logger.info("=" * 60)
    logger.info("SCAN COMPLETE")
    logger.info("  Ranges:     %s", ", ".join(tokens))
    logger.info("  Probed:     %d", len(to_probe))
    logger.info("  New:        %d", len(new_coupons))
    logger.info("  Kept:       %d", len(existing))
    logger.info("  Total:      %d", len(merged))
    logger.info("  Duration:   %.1f min", elapsed / 60)
    logger.info("=" * 60)

    _log_coupon_report(new_coupons)
    return metadata


def _log_coupon_report(new_coupons: list[dict[str, Any]], top_n: int = 5) -> None:
    """Log the best new offers by discount for a quick human review."""
    if not new_coupons:
        return

    logger.info("")
    logger.info("NEW COUPONS — Top %d by discount:", min(top_n, len(new_coupons)))
    for i, c in enumerate(sort_coupons(new_coupons, "discount")[:top_n], 1):
        logger.info(
            "  %d. [%s] %s | $%d (was $%d, %d%% off) %s",
            i, c["code"], c["title"][:40], c["discountedPrice"],
            c["originalPrice"], discount_percent(c), c.get("deliveryType") or "",
        )
    logger.info("=" * 60)


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        logger.info("No ranges given — using defaults: %s", ", ".join(DEFAULT_CODE_RANGES))
    try:
        asyncio.run(run(args))
    except Exception:
        logger.exception("Coupon scan failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
