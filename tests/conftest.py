import threading

import pytest

from mandelnet.config import normalise_config
from mandelnet.server import make_server


@pytest.fixture
def small_config(tmp_path):
    def _make(**overrides):
        base = {
            "xmin": -2.1,
            "ymin": -1.2,
            "width": 4,
            "height": 4,
            "smoothness": 1,
            "max_iteration": 50,
            "color_step": 50,
            "palette": "Hippi",
            "mode": "simpleOpti",
            "output_file": str(tmp_path / "mandelbrot.png"),
            "workers": 2,
        }
        base.update(overrides)
        return normalise_config(base)
    return _make


@pytest.fixture
def worker():
    """An iteration worker on an ephemeral port; yields (server, base_url, port)."""
    httpd = make_server("127.0.0.1", 0, max_iteration=30)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield httpd, "http://127.0.0.1", str(httpd.server_address[1])
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join(timeout=5)
