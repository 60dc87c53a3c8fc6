from __future__ import annotations

import sys
import threading
from typing import Optional

from tqdm import tqdm


class ProgressTicker:
    """
    Ticks a tqdm counter every `interval` seconds until `done` is set.
    The orchestrator sets `done` once every row has been joined.
    """

    def __init__(self, interval: float = 0.1, *, desc: str = "Rendering image", enabled: bool = True, file=None):
        self.interval = interval
        self.desc = desc
        self.enabled = enabled
        self.file = file or sys.stderr
        self.done = threading.Event()
        self.ticks = 0
        self._thread: Optional[threading.Thread] = None

    def _run(self) -> None:
        with tqdm(desc=self.desc, unit="tick", file=self.file, disable=not self.enabled, leave=False) as bar:
            while not self.done.wait(self.interval):
                self.ticks += 1
                bar.update(1)

    def start(self) -> "ProgressTicker":
        self._thread = threading.Thread(target=self._run, name="progress-ticker", daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        self.done.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def __enter__(self) -> "ProgressTicker":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()
