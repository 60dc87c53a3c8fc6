from __future__ import annotations

import enum
import logging
import os
import threading
import time
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Optional, Tuple

import numpy as np

from mandelnet.coloring import bailout_color, direct_color, smooth_color
from mandelnet.config import RenderConfig
from mandelnet.errors import ConfigurationError, PaletteNotFound
from mandelnet.image.png_writer import encode_png
from mandelnet.kernel import escape_bailout, escape_smooth
from mandelnet.palette import interpolate_colors
from mandelnet.renderers.local import IterationSource
from mandelnet.renderers.remote import RemoteIterationSource
from mandelnet.util.logging_setup import get_logger, worker_initialiser

_LOCAL_KERNELS = {
    "bailout": (escape_bailout, bailout_color),
    "smooth": (escape_smooth, smooth_color),
}

@dataclass(frozen=True)
class RenderStrategy:
    name: str
    kernel: str
    parallel: bool
    suffix: str

STRATEGIES = {s.name: s for s in (
    RenderStrategy("simple", "smooth", False, "Simple"),
    RenderStrategy("simpleOpti", "bailout", False, "SimpleOpti"),
    RenderStrategy("vertical", "smooth", True, "Smooth"),
    RenderStrategy("verticalOpti", "bailout", True, ""),
    RenderStrategy("horizontal", "remote", True, "Horizontal"),
)}

class RenderState(enum.Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING_JOIN = "awaiting_join"
    COMPLETE = "complete"

@dataclass(frozen=True)
class RowJob:
    """Everything a row worker needs. Shipped to pool processes with each chunk."""
    xmin: float
    xmax: float
    ymin: float
    ymax: float
    width: int
    height: int
    max_iteration: int
    kernel: str
    ramp: np.ndarray
    source: Optional[IterationSource] = None

@dataclass(frozen=True)
class RenderOutcome:
    output_file: str
    strategy: RenderStrategy
    width: int
    height: int
    elapsed: float

def plane_coordinate(lo: float, hi: float, index: int, dimension: int) -> float:
    return lo + (hi - lo) * float(index) / float(max(dimension - 1, 1))

def output_path_for(path: str, strategy: RenderStrategy) -> str:
    if not strategy.suffix:
        return path
    return path.replace(".png", f"{strategy.suffix}.png", 1)

def render_row(job: RowJob, iy: int) -> Tuple[int, np.ndarray]:
    row = np.zeros((job.width, 4), dtype=np.uint8)
    y = plane_coordinate(job.ymin, job.ymax, iy, job.height)

    if job.kernel == "remote":
        for ix in range(job.width):
            x = plane_coordinate(job.xmin, job.xmax, ix, job.width)
            color = direct_color(job.source.compute_iteration_at(x, y), job.ramp)
            if color is not None:
                row[ix] = color
    else:
        kernel, colorize = _LOCAL_KERNELS[job.kernel]
        for ix in range(job.width):
            x = plane_coordinate(job.xmin, job.xmax, ix, job.width)
            measure, count = kernel(x, y, job.max_iteration)
            color = colorize(measure, count, job.max_iteration, job.ramp)
            if color is not None:
                row[ix] = color

    if iy % 50 == 0:
        get_logger("pipeline").debug("Rendered row %s/%s", iy, job.height)
    return iy, row

class RenderOrchestrator:
    """
    Drives one render: IDLE -> DISPATCHING -> AWAITING_JOIN -> COMPLETE.

    Every strategy shares this data flow. Rows are disjoint, so workers never
    contend for the raster; it is only read after every row has been joined.
    """

    def __init__(
        self,
        config: RenderConfig,
        ramp: np.ndarray,
        strategy: RenderStrategy,
        *,
        source: Optional[IterationSource] = None,
        log_queue=None,
        log_level: int = logging.INFO,
    ):
        if strategy.kernel == "remote" and source is None:
            raise ConfigurationError(f"Strategy {strategy.name} needs an iteration source.")
        if strategy.kernel != "remote" and strategy.kernel not in _LOCAL_KERNELS:
            raise ConfigurationError(f"Unknown kernel: {strategy.kernel}")

        self.config = config
        self.strategy = strategy
        self.log_queue = log_queue
        self.log_level = log_level
        self.state = RenderState.IDLE
        self.job = RowJob(
            xmin=config.xmin,
            xmax=config.xmax,
            ymin=config.ymin,
            ymax=config.ymax,
            width=config.raster_width,
            height=config.raster_height,
            max_iteration=config.max_iteration,
            kernel=strategy.kernel,
            ramp=ramp,
            source=source,
        )

    def _executor(self) -> Executor:
        if self.strategy.kernel == "remote":
            return ThreadPoolExecutor(max_workers=self.config.workers, thread_name_prefix="row")
        return ProcessPoolExecutor(
            max_workers=self.config.workers,
            initializer=worker_initialiser,
            initargs=(self.log_queue, self.log_level),
        )

    def _chunksize(self) -> int:
        workers = self.config.workers or os.cpu_count() or 1
        return max(1, self.job.height // (workers * 4))

    def run(self, done: Optional[threading.Event] = None) -> np.ndarray:
        if self.state is not RenderState.IDLE:
            raise RuntimeError(f"Render already {self.state.value}.")

        logger = get_logger("pipeline")
        job = self.job
        raster = np.zeros((job.height, job.width, 4), dtype=np.uint8)
        logger.info("Render start strategy=%s size=%sx%s iter=%s ramp=%s",
                    self.strategy.name, job.width, job.height, job.max_iteration, len(job.ramp))

        self.state = RenderState.DISPATCHING
        if not self.strategy.parallel:
            for iy in range(job.height):
                _, raster[iy] = render_row(job, iy)
            self.state = RenderState.AWAITING_JOIN
        else:
            pool = self._executor()
            try:
                rows = pool.map(partial(render_row, job), range(job.height), chunksize=self._chunksize())
                self.state = RenderState.AWAITING_JOIN
                for iy, row in rows:
                    raster[iy] = row
            except BaseException:
                pool.shutdown(wait=False, cancel_futures=True)
                raise
            pool.shutdown(wait=True)

        self.state = RenderState.COMPLETE
        logger.info("Render complete strategy=%s", self.strategy.name)
        if done is not None:
            done.set()
        return raster

def build_ramp(config: RenderConfig) -> np.ndarray:
    try:
        return interpolate_colors(config.palette, config.ramp_length)
    except PaletteNotFound as e:
        get_logger("pipeline").warning("%s; nothing to render.", e)
        return np.zeros((0, 4), dtype=np.uint8)

def make_source(config: RenderConfig, strategy: RenderStrategy) -> Optional[IterationSource]:
    if strategy.kernel != "remote":
        return None
    return RemoteIterationSource(config.lb_url, config.lb_port, timeout=config.timeout)

def render_raster(
    config: RenderConfig,
    ramp: np.ndarray,
    strategy: Optional[RenderStrategy] = None,
    *,
    source: Optional[IterationSource] = None,
    log_queue=None,
    log_level: int = logging.INFO,
    done: Optional[threading.Event] = None,
) -> np.ndarray:
    strategy = strategy or STRATEGIES[config.mode]
    if source is None:
        source = make_source(config, strategy)
    orchestrator = RenderOrchestrator(
        config, ramp, strategy, source=source, log_queue=log_queue, log_level=log_level
    )
    return orchestrator.run(done)

def render(
    config: RenderConfig,
    *,
    source: Optional[IterationSource] = None,
    log_queue=None,
    log_level: int = logging.INFO,
    done: Optional[threading.Event] = None,
) -> Optional[RenderOutcome]:
    """Build the ramp, render with the configured strategy and write the PNG.

    Returns None when the palette is unknown: nothing is rendered or written.
    """
    start = time.perf_counter()
    strategy = STRATEGIES[config.mode]
    ramp = build_ramp(config)
    if len(ramp) == 0:
        if done is not None:
            done.set()
        return None

    raster = render_raster(
        config, ramp, strategy, source=source, log_queue=log_queue, log_level=log_level, done=done
    )
    output_file = output_path_for(config.output_file, strategy)
    downsample = config.smoothness if config.downsample else 1
    encode_png(raster, output_file, downsample=downsample)
    return RenderOutcome(
        output_file=output_file,
        strategy=strategy,
        width=raster.shape[1] // downsample,
        height=raster.shape[0] // downsample,
        elapsed=time.perf_counter() - start,
    )
