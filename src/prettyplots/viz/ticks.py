from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from matplotlib.ticker import MaxNLocator

# 1, 2, 2.5, 5 and 10 times a power of ten, as R's pretty() does.
PRETTY_STEPS = [1, 2, 2.5, 5, 10]


def value_range(values: Sequence[float] | np.ndarray) -> Tuple[float, float]:
    arr = np.asarray(values, dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        raise ValueError("No finite values to take a range of")
    return float(arr.min()), float(arr.max())


def pretty_ticks(values: Sequence[float] | np.ndarray, n: int = 5) -> np.ndarray:
    """Rounded, evenly spaced tick positions covering the range of ``values``.

    ``values`` may be the data itself or just its (min, max). The first tick is
    <= min and the last >= max; neither lies a full step beyond the data.
    """

    if n < 1:
        raise ValueError("n must be >= 1")
    lo, hi = value_range(values)
    if lo == hi:
        pad = abs(lo) * 0.1 if lo != 0 else 1.0
        lo, hi = lo - pad, hi + pad
    locator = MaxNLocator(nbins=n, steps=PRETTY_STEPS)
    return np.asarray(locator.tick_values(lo, hi), dtype=float)
