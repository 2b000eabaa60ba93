"""
HTTP client for the ordering site.

Wraps a Playwright ``APIRequestContext`` with the same async context
manager lifecycle the browser scrapers use, and exposes the three calls
the pipelines need:

  * ``probe_code``: AJAX validity check, returns a tagged result
  * ``fetch_coupon_page``: coupon detail HTML
  * ``fetch_category_page``: menu listing HTML

Session affinity: the ``name=value`` pair of every ``Set-Cookie`` the
site returns is kept on a ``SessionContext`` that belongs to one pipeline
run, and the pairs are replayed as a single ``Cookie`` header on every
later request.  It is not an auth mechanism.

Usage::

    async with SiteClient() as client:
        result = await client.probe_code("24001")
        if isinstance(result, ProbeFound):
            html = await client.fetch_coupon_page("24001", result.type_id)
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Union

from playwright.async_api import (
    APIRequestContext,
    APIResponse,
    Error as PlaywrightError,
    Playwright,
    async_playwright,
)

from config.site import (
    BASE_HEADERS,
    BASE_URL,
    CATEGORY_PATH,
    COUPON_DETAIL_PATH,
    FALLBACK_TYPE_ID,
    PROBE_HEADERS,
    PROBE_PATH,
    get_user_agent,
)

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """A page fetch failed (transport error or non-2xx status)."""


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


@dataclass
class SessionContext:
    """Cookies captured from the site, scoped to a single run."""

    cookies: dict[str, str] = field(default_factory=dict)

    def absorb(self, headers: list[dict[str, str]]) -> None:
        """Merge every ``Set-Cookie`` in *headers* by cookie name.

        *headers* is ``APIResponse.headers_array``: one ``{"name", "value"}``
        entry per header line, so repeated ``Set-Cookie`` lines stay apart.
        """
        for header in headers:
            if header.get("name", "").lower() != "set-cookie":
                continue
            for line in header.get("value", "").splitlines():
                # Attributes (path, expires, HttpOnly) follow the first ';'
                pair = line.split(";", 1)[0]
                name, sep, value = pair.partition("=")
                if sep and name.strip():
                    self.cookies[name.strip()] = value.strip()

    def headers(self) -> dict[str, str]:
        if not self.cookies:
            return {}
        return {"Cookie": "; ".join(f"{k}={v}" for k, v in self.cookies.items())}


# ---------------------------------------------------------------------------
# Probe results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProbeFound:
    type_id: str


@dataclass(frozen=True)
class ProbeNotFound:
    pass


@dataclass(frozen=True)
class ProbeError:
    reason: str


ProbeResult = Union[ProbeFound, ProbeNotFound, ProbeError]


def interpret_probe_response(status: int, body: str) -> ProbeResult:
    """Map a raw probe response onto the tagged result.

    >>> interpret_probe_response(200, '{"success": true, "data": {"type_id": "1031"}}')
    ProbeFound(type_id='1031')
    >>> interpret_probe_response(200, '{"success": false}')
    ProbeNotFound()
    >>> interpret_probe_response(502, "")
    ProbeError(reason='HTTP 502')
    """
    if not 200 <= status < 300:
        return ProbeError(f"HTTP {status}")
    if not body or not body.strip():
        return ProbeError("empty body")
    try:
        payload: Any = json.loads(body)
    except ValueError:
        return ProbeError("invalid JSON")
    if not isinstance(payload, dict) or not payload.get("success"):
        return ProbeNotFound()

    data = payload.get("data")
    type_id = data.get("type_id") if isinstance(data, dict) else None
    return ProbeFound(str(type_id) if type_id else FALLBACK_TYPE_ID)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class SiteClient:
    """Sequential HTTP access to the ordering site for one pipeline run."""

    def __init__(
        self,
        *,
        base_url: str = BASE_URL,
        session: SessionContext | None = None,
    ) -> None:
        self.base_url = base_url
        self.session = session or SessionContext()

        # Set by __aenter__
        self._pw: Playwright | None = None
        self._request: APIRequestContext | None = None

    async def __aenter__(self) -> "SiteClient":
        self._pw = await async_playwright().start()
        self._request = await self._pw.request.new_context(
            base_url=self.base_url,
            user_agent=get_user_agent(),
            extra_http_headers=BASE_HEADERS,
        )
        logger.info("HTTP context ready for %s", self.base_url)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._request:
            await self._request.dispose()
        if self._pw:
            await self._pw.stop()

    @property
    def request(self) -> APIRequestContext:
        assert self._request is not None, "SiteClient must be used as an async context manager"
        return self._request

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def probe_code(self, code: str) -> ProbeResult:
        """Ask the AJAX endpoint whether *code* is a live coupon.

        Never raises: transport problems come back as ``ProbeError``.
        """
        path = PROBE_PATH.format(timestamp=int(time.time()))
        form = {
            "mode": "get_dgtAll",
            "type_id": "",
            "dType": "plu",
            "txtPLU": code,
        }
        try:
            response = await self.request.post(
                path,
                form=form,
                headers={**PROBE_HEADERS, **self.session.headers()},
            )
            self.session.absorb(response.headers_array)
            body = await response.text()
        except PlaywrightError as exc:
            logger.warning("Probe for %s failed: %s", code, exc)
            return ProbeError(str(exc))

        return interpret_probe_response(response.status, body)

    async def fetch_coupon_page(self, code: str, type_id: str) -> str:
        path = COUPON_DETAIL_PATH.format(type_id=type_id, code=code)
        return await self._get_text(path)

    async def fetch_category_page(self, category_id: int) -> str:
        path = CATEGORY_PATH.format(category_id=category_id)
        return await self._get_text(path)

    async def _get_text(self, path: str) -> str:
        try:
            response: APIResponse = await self.request.get(
                path, headers=self.session.headers(),
            )
            self.session.absorb(response.headers_array)
            if not response.ok:
                raise FetchError(f"GET {path} returned HTTP {response.status}")
            return await response.text()
        except PlaywrightError as exc:
            raise FetchError(f"GET {path} failed: {exc}") from exc
