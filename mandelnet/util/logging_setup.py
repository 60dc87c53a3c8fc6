import logging
import logging.handlers
import multiprocessing as mp
from dataclasses import dataclass
from typing import List, Optional

_LOGGER_NAME = "mandelnet"

def get_logger(component: Optional[str] = None) -> logging.Logger:
    name = f"{_LOGGER_NAME}.{component}" if component else _LOGGER_NAME
    return logging.getLogger(name)

def _build_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s.%(msecs)03dZ %(processName)s %(levelname)s %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

def _reset_handlers(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    logger.propagate = False
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

def build_handlers(
    *,
    level: int,
    console: bool,
    log_file: Optional[str],
    rotate_bytes: int = 5 * 1024 * 1024,
    rotate_count: int = 5,
) -> List[logging.Handler]:
    fmt = _build_formatter()
    handlers: List[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler())
    if log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=rotate_bytes, backupCount=rotate_count, encoding="utf-8"
        ))
    for h in handlers:
        h.setLevel(level)
        h.setFormatter(fmt)
    return handlers

@dataclass
class LoggingHandle:
    """Parent-side logging state: handlers on the package logger plus the
    queue listener that drains records sent by pool worker processes."""

    level: int
    queue: "mp.Queue"
    listener: logging.handlers.QueueListener

    def stop(self) -> None:
        self.listener.stop()

def setup_logging(*, level: int = logging.INFO, console: bool = True, log_file: Optional[str] = None) -> LoggingHandle:
    logger = get_logger()
    _reset_handlers(logger, level)
    handlers = build_handlers(level=level, console=console, log_file=log_file)
    for h in handlers:
        logger.addHandler(h)

    queue = mp.Queue(-1)
    listener = logging.handlers.QueueListener(queue, *handlers, respect_handler_level=True)
    listener.start()
    return LoggingHandle(level=level, queue=queue, listener=listener)

def worker_initialiser(queue: Optional["mp.Queue"], level: int) -> None:
    # Without a queue the worker keeps the logging it inherited from the parent.
    if queue is None:
        return
    logger = get_logger()
    _reset_handlers(logger, level)
    qh = logging.handlers.QueueHandler(queue)
    qh.setLevel(level)
    logger.addHandler(qh)
