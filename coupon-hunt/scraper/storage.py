"""
JSON persistence for coupons, run metadata and the menu.

The coupon file is merged incrementally: records from the previous run
are reloaded, expired ones are dropped, and their codes are skipped by
the next scan.  Metadata and menu files are overwritten on every run.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger("storage")

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d")


def _parse_date(value: str) -> date | None:
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    return None


def is_expired(coupon: dict[str, Any], today: date) -> bool:
    """True only when ``validUntil`` parses and falls before *today*.

    Empty or unparseable dates mean "unknown expiry", which is kept.
    """
    valid_until = coupon.get("validUntil") or ""
    if not isinstance(valid_until, str) or not valid_until.strip():
        return False
    parsed = _parse_date(valid_until)
    return parsed is not None and parsed < today


def load_existing_coupons(path: Path) -> list[dict[str, Any]]:
    """Load the saved coupon list; a missing or corrupt file yields ``[]``."""
    if not path.exists():
        logger.info("No existing coupons at %s — starting fresh", path)
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Could not read %s (%s) — starting fresh", path, exc)
        return []
    if not isinstance(data, list):
        logger.warning("%s does not hold a JSON array — starting fresh", path)
        return []
    return [c for c in data if isinstance(c, dict) and c.get("code")]


def filter_expired(
    coupons: list[dict[str, Any]],
    today: date | None = None,
) -> list[dict[str, Any]]:
    today = today or date.today()
    kept = [c for c in coupons if not is_expired(c, today)]
    dropped = len(coupons) - len(kept)
    if dropped:
        logger.info("Dropped %d expired coupon(s)", dropped)
    return kept


def merge_coupons(
    existing: list[dict[str, Any]],
    new: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Existing records first, then new ones; first occurrence of a code wins."""
    merged: list[dict[str, Any]] = []
    seen: set[str] = set()
    for coupon in [*existing, *new]:
        code = coupon["code"]
        if code in seen:
            continue
        seen.add(code)
        merged.append(coupon)
    return merged


def build_metadata(
    *,
    total_coupons: int,
    scanned_ranges: list[str],
    new_coupons_found: int,
    existing_coupons: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    return {
        "lastUpdated": now.isoformat(),
        "totalCoupons": total_coupons,
        "scannedRanges": list(scanned_ranges),
        "newCouponsFound": new_coupons_found,
        "existingCoupons": existing_coupons,
    }


def write_json(path: Path, data: Any) -> bool:
    """Pretty-print *data* to *path* (UTF-8).

    On failure the payload is logged so it can be recovered by hand, and
    ``False`` is returned instead of raising. Callers write several
    files independently.
    """
    payload = json.dumps(data, ensure_ascii=False, indent=2)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload + "\n", encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to write %s: %s", path, exc)
        logger.error("JSON output for %s:\n%s", path.name, payload)
        return False
    logger.info("Saved %s", path)
    return True
