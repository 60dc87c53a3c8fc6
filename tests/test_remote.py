import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import numpy as np
import pytest

from mandelnet.errors import TransportError
from mandelnet.kernel import escape_bailout
from mandelnet.pipeline import STRATEGIES, build_ramp, plane_coordinate, render, render_raster
from mandelnet.renderers.remote import RemoteIterationSource


class _BodyHandler(BaseHTTPRequestHandler):
    body = b"not-a-number"

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        self.wfile.write(self.body)

    def log_message(self, format, *args):
        pass


class _SlowHandler(BaseHTTPRequestHandler):
    delay = 1.5

    def do_GET(self):
        time.sleep(self.delay)
        try:
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.end_headers()
            self.wfile.write(b"1")
        except OSError:
            pass

    def log_message(self, format, *args):
        pass


@pytest.fixture
def slow_worker():
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _SlowHandler)
    httpd.daemon_threads = True
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield "http://127.0.0.1", str(httpd.server_address[1])
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join(timeout=5)


@pytest.fixture
def garbage_worker():
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _BodyHandler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield "http://127.0.0.1", str(httpd.server_address[1])
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join(timeout=5)


def test_url_uses_six_decimals():
    source = RemoteIterationSource("http://localhost/", "3030")
    assert source.url_for(-2.1, 0.5) == "http://localhost:3030/?x=-2.100000&y=0.500000"


def test_remote_source_matches_local_kernel(worker):
    _, base_url, port = worker
    source = RemoteIterationSource(base_url, port, timeout=5)
    for x, y in [(0.0, 0.0), (2.0, 2.0), (-0.5, 0.5), (0.3, -0.6)]:
        assert source.compute_iteration_at(x, y) == escape_bailout(x, y, 30)[1]


def test_malformed_body_is_transport_error(garbage_worker):
    base_url, port = garbage_worker
    with pytest.raises(TransportError):
        RemoteIterationSource(base_url, port, timeout=5).compute_iteration_at(0.0, 0.0)


def test_unreachable_worker_is_transport_error():
    # port 9 (discard) on localhost is not expected to be listening
    source = RemoteIterationSource("http://127.0.0.1", "9", timeout=2)
    with pytest.raises(TransportError):
        source.compute_iteration_at(0.0, 0.0)


def test_distributed_render_end_to_end(worker, small_config):
    _, base_url, port = worker
    cfg = small_config(mode="horizontal", lb_url=base_url, lb_port=port, width=6, height=5, max_iteration=30, color_step=40)
    ramp = build_ramp(cfg)
    raster = render_raster(cfg, ramp, STRATEGIES["horizontal"])
    assert raster.shape == (5, 6, 4)
    for iy in range(5):
        for ix in range(6):
            x = plane_coordinate(cfg.xmin, cfg.xmax, ix, 6)
            y = plane_coordinate(cfg.ymin, cfg.ymax, iy, 5)
            count = escape_bailout(float(f"{x:f}"), float(f"{y:f}"), 30)[1]
            assert np.array_equal(raster[iy, ix], ramp[count])


def test_distributed_render_writes_horizontal_png(worker, small_config, tmp_path):
    _, base_url, port = worker
    cfg = small_config(mode="horizontal", lb_url=base_url, lb_port=port)
    outcome = render(cfg)
    assert outcome.output_file == str(tmp_path / "mandelbrotHorizontal.png")
    assert (tmp_path / "mandelbrotHorizontal.png").exists()


def test_distributed_render_aborts_on_garbage(garbage_worker, small_config, tmp_path):
    base_url, port = garbage_worker
    cfg = small_config(mode="horizontal", lb_url=base_url, lb_port=port)
    with pytest.raises(TransportError):
        render(cfg)
    assert not (tmp_path / "mandelbrotHorizontal.png").exists()


def test_request_timeout_is_transport_error(slow_worker):
    base_url, port = slow_worker
    source = RemoteIterationSource(base_url, port, timeout=0.3)
    start = time.monotonic()
    with pytest.raises(TransportError):
        source.compute_iteration_at(0.0, 0.0)
    assert time.monotonic() - start < 1.5


def test_distributed_render_aborts_on_timeout(slow_worker, small_config, tmp_path):
    base_url, port = slow_worker
    cfg = small_config(mode="horizontal", lb_url=base_url, lb_port=port, width=2, height=2, timeout=0.3)
    with pytest.raises(TransportError):
        render(cfg)
    assert not (tmp_path / "mandelbrotHorizontal.png").exists()
