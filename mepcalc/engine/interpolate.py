"""
Curve Interpolator

Piecewise-linear interpolation over an ascending sample table, clamped at
both ends (e.g. Hunter's curve: fixture units -> probable peak flow).
"""

from bisect import bisect_right
from typing import Sequence, Tuple


def interpolate(samples: Sequence[Tuple[float, float]], x: float) -> float:
    """
    Interpolate y at x.

    x below the first sample returns the first y; x at or above the last
    sample returns the last y.
    """
    if not samples:
        raise ValueError("Cannot interpolate over an empty sample table")

    xs = [float(s[0]) for s in samples]
    for a, b in zip(xs, xs[1:]):
        if b <= a:
            raise ValueError("Interpolation samples must be strictly ascending in x")

    if x <= xs[0]:
        return float(samples[0][1])
    if x >= xs[-1]:
        return float(samples[-1][1])

    i = bisect_right(xs, x)
    x0, y0 = xs[i - 1], float(samples[i - 1][1])
    x1, y1 = xs[i], float(samples[i][1])
    return y0 + (y1 - y0) * (x - x0) / (x1 - x0)
