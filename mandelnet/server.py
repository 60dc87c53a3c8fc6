"""
Stateless iteration worker for the distributed ("horizontal") mode.

    GET /?x=<float>&y=<float>  ->  200 application/json  <iteration count>

A missing or unparseable coordinate answers 404.
"""

from __future__ import annotations

import json
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from mandelnet.kernel import escape_bailout
from mandelnet.util.logging_setup import get_logger

DEFAULT_MAX_ITERATION = 30


def _parse_coordinate(query, name: str) -> Optional[float]:
    values = query.get(name)
    if not values:
        return None
    try:
        return float(values[0])
    except ValueError:
        return None


class IterationHandler(BaseHTTPRequestHandler):
    server_version = "mandelnet-worker"

    def do_GET(self) -> None:
        query = parse_qs(urlsplit(self.path).query)
        x = _parse_coordinate(query, "x")
        y = _parse_coordinate(query, "y")
        if x is None or y is None:
            self.send_error(404, "page not found")
            return

        _, count = escape_bailout(x, y, self.server.max_iteration)
        body = json.dumps(int(count)).encode("ascii")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args) -> None:
        get_logger("server").debug("%s - %s", self.address_string(), format % args)


class IterationServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address, max_iteration: int = DEFAULT_MAX_ITERATION):
        super().__init__(address, IterationHandler)
        self.max_iteration = int(max_iteration)


def make_server(host: str = "", port: int = 0, max_iteration: int = DEFAULT_MAX_ITERATION) -> IterationServer:
    return IterationServer((host, int(port)), max_iteration=max_iteration)


def serve(port: int, *, host: str = "", max_iteration: int = DEFAULT_MAX_ITERATION) -> None:
    logger = get_logger("server")
    with make_server(host, port, max_iteration) as httpd:
        logger.info("Worker listening at port %s (max_iteration=%s)", httpd.server_address[1], max_iteration)
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Worker stopped")
