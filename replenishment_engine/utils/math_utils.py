# replenishment_engine/utils/math_utils.py
import math
from typing import Sequence

import numpy as np

def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))

def sample_stddev(values: Sequence[float]) -> float:
    """Sample standard deviation (n - 1 denominator).

    Returns 0.0 when fewer than two values are available.
    """
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=1))

def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up.

    Python's round() uses banker's rounding, which would turn 2.5 into 2.
    """
    return int(math.floor(value + 0.5))

def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning `default` when the denominator is zero."""
    if denominator == 0:
        return default
    return numerator / denominator
