from __future__ import annotations

import urllib.error
import urllib.request

from mandelnet.errors import TransportError
from mandelnet.util.logging_setup import get_logger

DEFAULT_TIMEOUT = 10.0


class RemoteIterationSource:
    """
    Asks a worker at base_url:port for the iteration count of each point,
    one blocking GET per pixel. There is no retry: any failure is raised as
    TransportError and aborts the render.
    """

    def __init__(self, base_url: str, port: str, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.port = str(port)
        self.timeout = float(timeout)

    def url_for(self, x: float, y: float) -> str:
        return f"{self.base_url}:{self.port}/?x={x:f}&y={y:f}"

    def compute_iteration_at(self, x: float, y: float) -> int:
        url = self.url_for(x, y)
        try:
            with urllib.request.urlopen(url, timeout=self.timeout) as resp:
                body = resp.read()
        except urllib.error.HTTPError as e:
            raise TransportError(f"Worker answered {e.code} for {url}") from e
        except (urllib.error.URLError, OSError) as e:
            raise TransportError(f"Worker request failed for {url}: {e}") from e

        try:
            count = int(body.decode("ascii").strip())
        except (UnicodeDecodeError, ValueError) as e:
            raise TransportError(f"Malformed worker response for {url}: {body[:64]!r}") from e
        if count < 0:
            raise TransportError(f"Negative iteration count {count} from {url}")

        get_logger().debug("Remote iteration x=%s y=%s -> %s", x, y, count)
        return count

    def __repr__(self) -> str:
        return f"RemoteIterationSource({self.base_url}:{self.port}, timeout={self.timeout})"
