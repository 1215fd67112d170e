# Mathematical utilities
# FORBIDDEN: torch, logging, any I/O

import numpy as np
from typing import Tuple

Point = Tuple[float, float]


def segments_intersect(p1: Point, p2: Point, q1: Point, q2: Point) -> bool:
    """Check whether segment p1-p2 intersects segment q1-q2.

    Nearly parallel segments (|denominator| < 1e-3) never intersect.

    Args:
        p1, p2: Endpoints of the movement segment
        q1, q2: Endpoints of the checkpoint segment

    Returns:
        True if both intersection parameters lie in [0, 1]
    """
    x1, y1 = p1
    x2, y2 = p2
    x3, y3 = q1
    x4, y4 = q2

    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) < 1e-3:
        return False

    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    u = -((x1 - x2) * (y1 - y3) - (y1 - y2) * (x1 - x3)) / denom

    return 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value to range.
    
    Args:
        value: Value to clamp
        min_val: Minimum allowed value
        max_val: Maximum allowed value
        
    Returns:
        Clamped value
    """
    return max(min_val, min(max_val, value))


def moving_average(values: np.ndarray, window: int) -> np.ndarray:
    """Compute full-window moving averages.

    Args:
        values: Input array
        window: Window size

    Returns:
        Array of len(values) - window + 1 averages, empty if too short
    """
    values = np.asarray(values, dtype=np.float64)
    if window <= 0 or len(values) < window:
        return np.zeros(0, dtype=np.float64)

    cumsum = np.cumsum(np.insert(values, 0, 0.0))
    return (cumsum[window:] - cumsum[:-window]) / window
