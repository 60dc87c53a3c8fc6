from __future__ import annotations

import argparse
import logging
from dataclasses import asdict
from typing import Optional

from mandelnet.config import DEFAULTS, MODES, load_config, normalise_config
from mandelnet.errors import MandelnetError
from mandelnet.palette import PALETTES, pack_rgba, palette_names
from mandelnet.pipeline import render
from mandelnet.server import DEFAULT_MAX_ITERATION, serve
from mandelnet.util.logging_setup import get_logger, setup_logging
from mandelnet.util.manifest import build_manifest, git_commit, write_manifest
from mandelnet.util.progress import ProgressTicker

def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mandelnet", description="Mandelbrot renderer with local and distributed strategies.")
    p.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level.")
    p.add_argument("--log-file", type=str, default=None, help="Log file path (rotating). Omit to log to the console only.")
    sub = p.add_subparsers(dest="cmd", required=True)

    # Flag names follow the original renderer's command line.
    r = sub.add_parser("render", help="Render the Mandelbrot set to a PNG file.")
    r.add_argument("--config", type=str, default=None, help="Path to a JSON config. Flags override its values.")
    r.add_argument("--step", dest="color_step", type=float, default=None,
                   help=f"Color smooth step, raised to maxIter when lower (default {DEFAULTS['color_step']:g}).")
    r.add_argument("--width", type=int, default=None, help=f"Rendered image width (default {DEFAULTS['width']}).")
    r.add_argument("--height", type=int, default=None, help=f"Rendered image height (default {DEFAULTS['height']}).")
    r.add_argument("--xmin", type=float, default=None, help=f"Left edge on the real axis (default {DEFAULTS['xmin']}).")
    r.add_argument("--ymin", type=float, default=None, help=f"Bottom edge on the imaginary axis (default {DEFAULTS['ymin']}).")
    r.add_argument("--xmax", type=float, default=None, help="Right edge on the real axis (default |xmin|).")
    r.add_argument("--ymax", type=float, default=None, help="Top edge on the imaginary axis (default |ymin|).")
    r.add_argument("--maxIter", dest="max_iteration", type=int, default=None,
                   help=f"Iteration count (default {DEFAULTS['max_iteration']}).")
    r.add_argument("--smoothness", type=int, default=None,
                   help=f"Supersampling multiplier for both dimensions, e.g. 4 for 4xAA (default {DEFAULTS['smoothness']}).")
    r.add_argument("--palette", type=str, default=None, choices=palette_names(),
                   help=f"Color palette (default {DEFAULTS['palette']}).")
    r.add_argument("--file", dest="output_file", type=str, default=None,
                   help=f"Output PNG file (default {DEFAULTS['output_file']}).")
    r.add_argument("--lbURL", dest="lb_url", type=str, default=None, help=f"Worker URL (default {DEFAULTS['lb_url']}).")
    r.add_argument("--lbPort", dest="lb_port", type=str, default=None, help=f"Worker port (default {DEFAULTS['lb_port']}).")
    r.add_argument("--mode", type=str, default=None, choices=MODES, help=f"Render strategy (default {DEFAULTS['mode']}).")
    r.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds for the horizontal mode.")
    r.add_argument("--workers", type=int, default=None, help="Worker count for row-parallel modes.")
    r.add_argument("--downsample", action="store_const", const=True, default=None,
                   help="Shrink the supersampled image back to width x height before saving.")
    r.add_argument("--manifest", type=str, default=None, help="Write a JSON run manifest to this path.")
    r.add_argument("--no-progress", action="store_true", help="Disable the progress ticker.")

    s = sub.add_parser("serve", help="Run an iteration worker for the horizontal mode.")
    s.add_argument("port", type=int, help="Port to listen on.")
    s.add_argument("--host", type=str, default="", help="Interface to bind (default all).")
    s.add_argument("--maxIter", dest="max_iteration", type=int, default=DEFAULT_MAX_ITERATION,
                   help=f"Iteration count (default {DEFAULT_MAX_ITERATION}).")

    sub.add_parser("palettes", help="List the available palettes.")
    return p

def _render(args, handle) -> int:
    logger = get_logger()
    overrides = {
        name: getattr(args, name)
        for name in ("color_step", "width", "height", "xmin", "ymin", "xmax", "ymax", "max_iteration",
                     "smoothness", "palette", "output_file", "lb_url", "lb_port", "mode", "timeout",
                     "workers", "downsample")
    }
    cfg = normalise_config(load_config(args.config), **overrides)

    with ProgressTicker(enabled=not args.no_progress) as ticker:
        outcome = render(cfg, log_queue=handle.queue, log_level=handle.level, done=ticker.done)

    if outcome is None:
        return 0

    logger.info("Mandelbrot set rendered into `%s`", outcome.output_file)
    logger.info("Process mandelbrot took %.3fs", outcome.elapsed)
    if args.manifest:
        manifest = build_manifest(
            config=cfg,
            strategy=asdict(outcome.strategy),
            output_file=outcome.output_file,
            elapsed=outcome.elapsed,
            commit=git_commit(),
        )
        write_manifest(args.manifest, manifest)
        logger.info("Run manifest written: %s", args.manifest)
    return 0

def _palettes() -> int:
    for palette in PALETTES.values():
        keys = " ".join(f"{step:.2f}:#{pack_rgba(key.color):08x}" for step, key in zip(palette.steps(), palette.keys))
        print(f"{palette.name:<14} {keys}")
    return 0

def main(argv: Optional[list] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    handle = setup_logging(level=log_level, console=True, log_file=args.log_file)
    logger = get_logger()

    try:
        if args.cmd == "render":
            return _render(args, handle)
        if args.cmd == "serve":
            serve(args.port, host=args.host, max_iteration=args.max_iteration)
            return 0
        if args.cmd == "palettes":
            return _palettes()
        raise RuntimeError("Unknown command.")
    except MandelnetError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    finally:
        handle.stop()

if __name__ == "__main__":
    raise SystemExit(main())
