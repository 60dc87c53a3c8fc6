import json
import math
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from mandelnet.errors import ConfigurationError

MODES = ("simple", "simpleOpti", "horizontal", "vertical", "verticalOpti")

DEFAULTS: Dict[str, Any] = {
    "xmin": -2.1,
    "ymin": -1.2,
    "xmax": None,
    "ymax": None,
    "width": 1280,
    "height": 720,
    "smoothness": 8,
    "max_iteration": 800,
    "palette": "Hippi",
    "color_step": 6000.0,
    "mode": "verticalOpti",
    "output_file": "mandelbrot.png",
    "lb_url": "http://localhost",
    "lb_port": "3030",
    "timeout": 10.0,
    "workers": None,
    "downsample": False,
}

@dataclass(frozen=True)
class RenderConfig:
    xmin: float
    ymin: float
    xmax: float
    ymax: float
    width: int
    height: int
    smoothness: int
    max_iteration: int
    palette: str
    color_step: float
    mode: str
    output_file: str
    lb_url: str
    lb_port: str
    timeout: float
    workers: Optional[int]
    downsample: bool

    @property
    def raster_width(self) -> int:
        return self.width * self.smoothness

    @property
    def raster_height(self) -> int:
        return self.height * self.smoothness

    @property
    def ramp_length(self) -> int:
        return int(max(self.color_step, self.max_iteration))

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    if not config_path:
        return dict(DEFAULTS)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read config {config_path}: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigurationError("Config JSON must be an object.")
    unknown = set(cfg) - set(DEFAULTS)
    if unknown:
        raise ConfigurationError(f"Unknown config fields: {', '.join(sorted(unknown))}")
    out = dict(DEFAULTS)
    out.update(cfg)
    return out

def normalise_config(cfg: Dict[str, Any], **overrides: Any) -> RenderConfig:
    merged = dict(DEFAULTS)
    merged.update(cfg)
    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        xmin = float(merged["xmin"])
        ymin = float(merged["ymin"])
        xmax = abs(xmin) if merged["xmax"] is None else float(merged["xmax"])
        ymax = abs(ymin) if merged["ymax"] is None else float(merged["ymax"])
        width = int(merged["width"])
        height = int(merged["height"])
        smoothness = int(merged["smoothness"])
        max_iteration = int(merged["max_iteration"])
        color_step = float(merged["color_step"])
        timeout = float(merged["timeout"])
        workers = None if merged["workers"] is None else int(merged["workers"])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid config value: {e}") from e

    for name, value in (("xmin", xmin), ("ymin", ymin), ("xmax", xmax), ("ymax", ymax),
                        ("color_step", color_step), ("timeout", timeout)):
        if not math.isfinite(value):
            raise ConfigurationError(f"{name} must be finite, got {value}.")

    if width <= 0 or height <= 0:
        raise ConfigurationError("width/height must be positive.")
    if smoothness <= 0:
        raise ConfigurationError("smoothness must be positive.")
    if max_iteration <= 0:
        raise ConfigurationError("max_iteration must be positive.")
    if not xmin < xmax or not ymin < ymax:
        raise ConfigurationError(f"Empty region x=[{xmin}, {xmax}] y=[{ymin}, {ymax}].")
    if timeout <= 0:
        raise ConfigurationError("timeout must be positive.")
    if workers is not None and workers <= 0:
        raise ConfigurationError("workers must be positive.")

    mode = str(merged["mode"])
    if mode not in MODES:
        raise ConfigurationError(f"mode must be one of: {', '.join(MODES)}")

    return RenderConfig(
        xmin=xmin,
        ymin=ymin,
        xmax=xmax,
        ymax=ymax,
        width=width,
        height=height,
        smoothness=smoothness,
        max_iteration=max_iteration,
        palette=str(merged["palette"]),
        color_step=color_step,
        mode=mode,
        output_file=str(merged["output_file"]),
        lb_url=str(merged["lb_url"]),
        lb_port=str(merged["lb_port"]),
        timeout=timeout,
        workers=workers,
        downsample=bool(merged["downsample"]),
    )
