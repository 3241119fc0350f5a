"""HTTP server wiring: routing, serving and application start-up."""

from __future__ import annotations

import logging
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlsplit

from walletpay.config import HttpConfig
from walletpay.domain import init_domain
from walletpay.handler import Endpoint, Route, init_handler
from walletpay.usecase import init_usecase

_log = logging.getLogger(__name__)

_ROUTABLE_METHODS = ("GET", "POST", "PATCH", "PUT")
_TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


class _Router:
    """Exact-path routing with automatic OPTIONS and 405 answers."""

    def __init__(self, routes: list[Route]) -> None:
        self._table: dict[str, dict[str, Endpoint]] = {}
        for route in routes:
            if route.method not in _ROUTABLE_METHODS:
                continue
            if not route.path.startswith("/"):
                raise ValueError(f"path must begin with '/': {route.path!r}")
            methods = self._table.setdefault(route.path, {})
            if route.method in methods:
                raise ValueError(f"duplicate route: {route.method} {route.path}")
            methods[route.method] = route.func

    def _allowed(self, path: str) -> str:
        methods = list(self._table.get(path, {}))
        if not methods:
            return ""
        return ", ".join([*methods, "OPTIONS"])

    def dispatch(
        self, method: str, path: str, body: bytes
    ) -> tuple[int, dict[str, str], bytes]:
        func = self._table.get(path, {}).get(method)
        if func is not None:
            resp = func(body)
            return resp.status_code, {"Content-Type": resp.content_type}, resp.body

        allow = self._allowed(path)
        if method == "OPTIONS" and allow:
            return int(HTTPStatus.OK), {"Allow": allow}, b""
        if allow:
            headers = {
                "Allow": allow,
                "Content-Type": _TEXT_CONTENT_TYPE,
                "X-Content-Type-Options": "nosniff",
            }
            return int(HTTPStatus.METHOD_NOT_ALLOWED), headers, b"Method Not Allowed\n"
        headers = {"Content-Type": _TEXT_CONTENT_TYPE, "X-Content-Type-Options": "nosniff"}
        return int(HTTPStatus.NOT_FOUND), headers, b"404 page not found\n"


def _request_handler(router: _Router) -> type[BaseHTTPRequestHandler]:
    class _RequestHandler(BaseHTTPRequestHandler):
        def _dispatch(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length > 0 else b""
            path = urlsplit(self.path).path
            status, headers, payload = router.dispatch(self.command, path, body)
            self.send_response(status)
            for name, value in headers.items():
                self.send_header(name, value)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(payload)

        do_GET = do_POST = do_PUT = do_PATCH = _dispatch
        do_DELETE = do_HEAD = do_OPTIONS = _dispatch

        def log_message(self, format: str, *args: Any) -> None:
            _log.debug("%s - %s", self.address_string(), format % args)

    return _RequestHandler


def build_server(config: HttpConfig, handlers: list[Route]) -> ThreadingHTTPServer:
    """Create a bound server routing ``handlers``; a non-positive port means the default."""
    router = _Router(handlers)
    port = config.with_defaults().port
    return ThreadingHTTPServer(("", port), _request_handler(router))


def init_http(config: HttpConfig, handlers: list[Route]) -> None:
    """Serve ``handlers`` until the server stops."""
    with build_server(config, handlers) as server:
        server.serve_forever()


def init_app(config: HttpConfig, logger: logging.Logger | None, db: Any) -> None:
    """Wire the application over ``db`` and serve it."""
    usecase = init_usecase(logger, init_domain(db))
    init_http(config, init_handler(logger, usecase).get_handlers())