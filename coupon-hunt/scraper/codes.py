"""
Candidate code generation from CLI range tokens.

    >>> parse_code_args(["15000-15002", "7"])
    ['15000', '15001', '15002', '00007']
"""

from __future__ import annotations

from config.site import CODE_WIDTH


def _to_int(raw: str) -> int | None:
    raw = raw.strip()
    if not raw.isdigit():
        return None
    return int(raw)


def parse_code_args(tokens: list[str], width: int = CODE_WIDTH) -> list[str]:
    """Expand ``start-end`` ranges and single values into zero-padded codes.

    Input order is preserved and overlapping ranges are not deduplicated
    (already-known codes are filtered later against the saved collection).
    Tokens that are not numeric, or ranges with ``start > end``, contribute
    nothing.
    """
    codes: list[str] = []
    for token in tokens:
        if "-" in token:
            parts = token.split("-")
            if len(parts) != 2:
                continue
            start, end = _to_int(parts[0]), _to_int(parts[1])
            if start is None or end is None or start > end:
                continue
            codes.extend(str(i).zfill(width) for i in range(start, end + 1))
        else:
            value = _to_int(token)
            if value is None:
                continue
            codes.append(str(value).zfill(width))
    return codes
