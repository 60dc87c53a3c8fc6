from __future__ import annotations

from typing import Tuple

from numba import njit

BAILOUT_SQUARED = 4.0
SMOOTH_BAILOUT_SQUARED = float(1 << 16)

# ------------------------------------------------------------
# Escape-time kernels. z <- z^2 + c starting from z = 0, tracked as
# (x, y) with x2 = x*x, y2 = y*y and xy2 = (x + x) * y.
# ------------------------------------------------------------

@njit(nogil=True)
def escape_bailout(cx: float, cy: float, max_iteration: int) -> Tuple[float, int]:
    """
    Returns (|z|^2, i) for the pass i at which |z| exceeded 2, or
    (|z|^2 / 2, max_iteration) when the point did not escape.
    """
    x = 0.0
    y = 0.0
    for i in range(max_iteration):
        xy2 = (x + x) * y
        x2 = x * x
        y2 = y * y
        if x2 + y2 > BAILOUT_SQUARED:
            return x2 + y2, i
        x = x2 - y2 + cx
        y = xy2 + cy

    return (x * x + y * y) / 2.0, max_iteration


@njit(nogil=True)
def escape_smooth(cx: float, cy: float, max_iteration: int) -> Tuple[float, int]:
    """
    Continuous-potential variant with a 2^16 bailout. The returned count is the
    index of the last pass executed, not an escape index, so it never reaches
    max_iteration.
    """
    x = 0.0
    y = 0.0
    x2 = 0.0
    y2 = 0.0
    last = 0
    i = 0
    while i < max_iteration and x2 + y2 < SMOOTH_BAILOUT_SQUARED:
        xy2 = (x + x) * y
        x2 = x * x
        y2 = y * y
        x = x2 - y2 + cx
        y = xy2 + cy
        last = i
        i += 1

    return (x * x + y * y) / 2.0, last
