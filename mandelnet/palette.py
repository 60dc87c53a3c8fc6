"""
Named palettes and the color ramp interpolator.

A palette is a short list of key colors, each optionally pinned to a position
in [0, 1]. `interpolate_colors` expands one into a dense ramp of N RGBA
entries by cosine blending between the two keys that bracket each step.
"""

from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from mandelnet.errors import ConfigurationError, PaletteNotFound

RGBA = Tuple[int, int, int, int]


def pack_rgba(color: Iterable[int]) -> int:
    r, g, b, a = (int(c) & 0xFF for c in color)
    return r << 24 | g << 16 | b << 8 | a


def unpack_rgba(value: int) -> RGBA:
    return (value >> 24 & 0xFF, value >> 16 & 0xFF, value >> 8 & 0xFF, value & 0xFF)


def cosine_interpolation(c1: float, c2: float, mu: float) -> float:
    mu2 = (1.0 - math.cos(mu * math.pi)) / 2.0
    return c1 * (1.0 - mu2) + c2 * mu2


@dataclass(frozen=True)
class PaletteKey:
    color: RGBA
    position: Optional[float] = None


@dataclass(frozen=True)
class Palette:
    name: str
    keys: Tuple[PaletteKey, ...]

    def steps(self) -> List[float]:
        """
        Key positions with unset ones inferred as (index + 1) / count,
        truncated to two decimals. The first key always sits at 0.
        """
        count = len(self.keys)
        if count < 2:
            raise ConfigurationError(f"Palette {self.name} needs at least two colors.")

        steps: List[float] = []
        for index, key in enumerate(self.keys):
            if index == 0:
                steps.append(0.0)
            elif key.position is None:
                steps.append(math.floor((index + 1) / count * 100) / 100)
            else:
                steps.append(float(key.position))

        for prev, cur in zip(steps, steps[1:]):
            if cur <= prev:
                raise ConfigurationError(f"Palette {self.name} positions must be strictly increasing: {steps}")
        return steps


def _palette(name: str, *entries) -> Palette:
    keys = []
    for entry in entries:
        if isinstance(entry, tuple):
            position, packed = entry
            keys.append(PaletteKey(unpack_rgba(packed), position))
        else:
            keys.append(PaletteKey(unpack_rgba(entry)))
    return Palette(name, tuple(keys))


# Key colors are packed as 0xRRGGBBAA. Bare values get an inferred position.
PALETTES: Dict[str, Palette] = {p.name: p for p in (
    _palette(
        "Hippi",
        0x00040FFF, 0x03262AFF, 0x073E1EFF, 0x2F5E1AFF,
        0x8C9C1AFF, (0.7, 0xF2C80FFF), (0.85, 0xE6641EFF), (1.0, 0x8E1A48FF),
    ),
    _palette(
        "Plan9",
        0x000000FF, 0x225B7AFF, 0x57A6C0FF, 0xEAFFFFFF, 0xFFFFEAFF, 0x99994CFF,
    ),
    _palette(
        "AfternoonBlue",
        (0.0, 0x0F0F2DFF), (0.2, 0x1E3C78FF), (0.45, 0x6496D2FF),
        (0.6, 0xDCE6F5FF), (0.8, 0xF5C88CFF), (1.0, 0x281E46FF),
    ),
    _palette(
        "SummerBeach",
        0xFFF5C8FF, 0xFFD27DFF, 0xF59B4BFF, 0x3CB4C8FF, 0x14788CFF, 0x05283CFF,
    ),
    _palette(
        "Biochimist",
        (0.0, 0x020A05FF), (0.1, 0x0A3C28FF), (0.3, 0x32A064FF),
        (0.5, 0xC8F0A0FF), (0.7, 0x6E2896FF), (0.9, 0x1E0A3CFF), (1.0, 0x000000FF),
    ),
    _palette(
        "Fiesta",
        0x0A0014FF, 0xC81E50FF, 0xFF9600FF, 0xFFE650FF, 0x28C8A0FF, 0x1E3CB4FF, 0x500A6EFF,
    ),
)}


def palette_names() -> List[str]:
    return list(PALETTES)


def find_palette(name: str) -> Palette:
    try:
        return PALETTES[name]
    except KeyError:
        raise PaletteNotFound(name) from None


def interpolate_colors(name: str, number_of_colors: int) -> np.ndarray:
    """
    Expand the named palette into a read-only (number_of_colors, 4) uint8 ramp.

    Step k sits at i = k / number_of_colors. Steps outside the first or last
    bracket are clamped to that bracket's end color.
    """
    palette = find_palette(name)
    n = int(number_of_colors)
    if n <= 0:
        raise ConfigurationError("number_of_colors must be positive.")

    steps = palette.steps()
    colors = [np.array(k.color[:3], dtype=np.float64) for k in palette.keys]
    last = len(steps) - 2

    ramp = np.empty((n, 4), dtype=np.uint8)
    ramp[:, 3] = 0xFF
    for k in range(n):
        i = k / n
        j = min(max(bisect_right(steps, i) - 1, 0), last)
        lo, hi = steps[j], steps[j + 1]
        mu = min(max((i - lo) / (hi - lo), 0.0), 1.0)
        blended = cosine_interpolation(colors[j], colors[j + 1], mu)
        ramp[k, :3] = np.clip(np.rint(blended), 0, 255)

    ramp.flags.writeable = False
    return ramp
