from __future__ import annotations

import math
from typing import Optional

import numpy as np

LOG2 = math.log(2.0)


def linear_blend(c1: np.ndarray, c2: np.ndarray, weight: float) -> np.ndarray:
    out = np.empty(4, dtype=np.uint8)
    rgb = c1[:3].astype(np.float64) * (1.0 - weight) + c2[:3].astype(np.float64) * weight
    out[:3] = np.clip(np.rint(rgb), 0, 255)
    out[3] = 0xFF
    return out


def _blend_at(index: float, ramp: np.ndarray) -> Optional[np.ndarray]:
    # Indices whose upper neighbour would fall off the ramp are left as background.
    if not math.isfinite(index):
        return None
    base = int(math.floor(index))
    if base > len(ramp) - 2:
        return None
    return linear_blend(ramp[base], ramp[base + 1], index - base)


def bailout_color(measure: float, count: int, max_iteration: int, ramp: np.ndarray) -> Optional[np.ndarray]:
    """Color for the bailout kernel: index = |max_iteration - count + ln(measure)|."""
    if measure <= 0.0:
        return None
    index = abs(float(max_iteration - count) + math.log(measure))
    return _blend_at(index, ramp)


def smooth_color(measure: float, count: int, max_iteration: int, ramp: np.ndarray) -> Optional[np.ndarray]:
    """
    Continuous coloring for escaped points: nu = ln(ln(measure) / ln 2) / ln 2 and
    index = |count + 1 - nu|. Dividing by ln 2 rather than by the log of the
    bailout radius spreads the ramp from the set to radius 2.
    """
    if count >= max_iteration or measure <= 1.0:
        return None
    nu = math.log(math.log(measure) / LOG2) / LOG2
    index = abs(count + 1.0 - nu)
    return _blend_at(index, ramp)


def direct_color(count: int, ramp: np.ndarray) -> Optional[np.ndarray]:
    if count >= len(ramp):
        return None
    return ramp[count]
