"""Shared fixtures for the Coupon Hunt scraper test suite."""

from __future__ import annotations

import socket
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import parse_qs

import pytest

# Ensure the scraper modules are importable from tests/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from site_client import FetchError, ProbeError, ProbeFound, ProbeNotFound


DETAIL_PAGE = """
<html><body>
<div class="combo_banner"><a href="#"><img src="/images/combo/15001.jpg" alt=""></a></div>
<h1 id="cb_name">歡樂分享餐 大比薩&amp;雞翅</h1>
<div class="descTop">外送、外帶皆可使用<br>有效期限：2099/12/31</div>
<ul class="desc">
  <li>套餐內容：大比薩x1<br>烤雞翅(6塊)x1<br/><b>1.25L可樂</b>x1</li>
  <li>外送需另加收外送服務費。</li>
</ul>
<div class="descPrice red">$ 2,098</div>
<p class="note">原價NT$2,999</p>
</body></html>
"""


MENU_PAGE = """
<div class="promotion_list">
  <div class="promotion_list_item" id="itemss_p326" data-id-real="9326">
    <a href="/order/?mode=step_3&amp;pid=326"><img src="/img/326.jpg"></a>
    <div class="pro-li-name"> 夏威夷比薩 </div>
    <div class="pro-list-descContent">鳳梨<br>火腿<br/><span>起司</span></div>
    <span class="pro-li-pr priceTxt_original">原價<span class="notranslate">$968</span></span>
    <span class="pro-li-pr priceTxt">限時<span class="notranslate">$580</span>起</span>
  </div>
  <div class="promotion_list_item" id="itemss_p327">
    <div class="pro-li-name">瑪格麗特比薩</div>
    <div class="pro-list-descContent">番茄</div>
    <span class="pro-li-pr">$1,099</span>
  </div>
  <div class="promotion_list_item" id="itemss_p328">
    <div class="pro-li-name"></div>
  </div>
  <div class="promotion_list_item">
    <div class="pro-li-name">No Id Pizza</div>
  </div>
</div>
"""


@pytest.fixture
def detail_page():
    return DETAIL_PAGE


@pytest.fixture
def menu_page():
    return MENU_PAGE


@pytest.fixture
def make_coupon():
    """Factory that builds coupon dicts with sensible defaults."""

    def _make(
        *,
        code="24001",
        title="個人比薩套餐",
        items=None,
        originalPrice=500,
        discountedPrice=299,
        validUntil="",
        **overrides,
    ):
        coupon = {
            "code": code,
            "title": title,
            "items": list(items) if items is not None else ["個人比薩x1"],
            "originalPrice": originalPrice,
            "discountedPrice": discountedPrice,
            "validUntil": validUntil,
        }
        coupon.update(overrides)
        return coupon

    return _make


class FakeClient:
    """Stands in for ``SiteClient``; records every call it receives."""

    def __init__(
        self,
        *,
        found: dict[str, str] | None = None,
        pages: dict[str, str] | None = None,
        errors: set[str] | None = None,
        categories: dict[int, str] | None = None,
    ) -> None:
        self.found = found or {}
        self.pages = pages or {}
        self.errors = errors or set()
        self.categories = categories or {}
        self.probed: list[str] = []
        self.fetched: list[tuple[str, str]] = []
        self.category_calls: list[int] = []

    async def probe_code(self, code):
        self.probed.append(code)
        if code in self.errors:
            return ProbeError("connection reset")
        if code in self.found:
            return ProbeFound(self.found[code])
        return ProbeNotFound()

    async def fetch_coupon_page(self, code, type_id):
        self.fetched.append((code, type_id))
        if code not in self.pages:
            raise FetchError(f"no page for {code}")
        return self.pages[code]

    async def fetch_category_page(self, category_id):
        self.category_calls.append(category_id)
        if category_id not in self.categories:
            raise FetchError(f"HTTP 500 for ct={category_id}")
        return self.categories[category_id]


@pytest.fixture
def fake_client():
    """Factory for ``FakeClient`` instances."""
    return FakeClient


# ---------------------------------------------------------------------------
# Local stand-in for the ordering site, for SiteClient tests
# ---------------------------------------------------------------------------


class _SiteHandler(BaseHTTPRequestHandler):
    """Records each request and answers from ``server.replies[method]``.

    A reply is ``(status, [(header, value), ...], body)``.
    """

    def do_GET(self):
        self._handle(b"")

    def do_POST(self):
        length = int(self.headers.get("Content-Length") or 0)
        self._handle(self.rfile.read(length))

    def _handle(self, raw_body):
        self.server.requests.append({
            "method": self.command,
            "path": self.path,
            "cookie": self.headers.get("Cookie"),
            "x_requested_with": self.headers.get("X-Requested-With"),
            "form": parse_qs(raw_body.decode("utf-8"), keep_blank_values=True),
        })
        status, headers, body = self.server.replies.get(self.command, (404, [], ""))
        payload = body.encode("utf-8")
        self.send_response(status)
        for name, value in headers:
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def site_server():
    """HTTP server on a free local port; yields it with ``url`` set."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _SiteHandler)
    server.requests = []
    server.replies = {}
    server.url = f"http://127.0.0.1:{server.server_address[1]}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def closed_port_url():
    """Base URL on a port nothing is listening on."""
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"
