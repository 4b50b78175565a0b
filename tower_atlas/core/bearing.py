"""
Compass octant binning for sector bearings.

Eight 45-degree arcs, half-open and lower-inclusive. North wraps across
0/360: [337, 360) and [0, 23). Null, non-finite or out-of-range
bearings map to UNKNOWN.
"""
import math
from enum import Enum
from typing import Any, Tuple

import pandas as pd


class Octant(str, Enum):
    """Compass direction bucket of a sector bearing."""
    N = "N"
    NE = "NE"
    E = "E"
    SE = "SE"
    S = "S"
    SW = "SW"
    W = "W"
    NW = "NW"
    UNKNOWN = "Unknown"


# (lower bound inclusive, octant); each arc runs to the next lower bound
OCTANT_LOWER_BOUNDS: Tuple[Tuple[float, Octant], ...] = (
    (23.0, Octant.NE),
    (68.0, Octant.E),
    (113.0, Octant.SE),
    (158.0, Octant.S),
    (203.0, Octant.SW),
    (248.0, Octant.W),
    (293.0, Octant.NW),
    (337.0, Octant.N),
)

COMPASS_ORDER: Tuple[Octant, ...] = (
    Octant.N, Octant.NE, Octant.E, Octant.SE,
    Octant.S, Octant.SW, Octant.W, Octant.NW,
)


def bin_bearing(bearing: Any) -> Octant:
    """
    Octant for a bearing in degrees.

    Example:
        >>> bin_bearing(0)
        <Octant.N: 'N'>
        >>> bin_bearing(359.9)
        <Octant.N: 'N'>
        >>> bin_bearing(None)
        <Octant.UNKNOWN: 'Unknown'>
    """
    if bearing is None or isinstance(bearing, bool):
        return Octant.UNKNOWN
    try:
        value = float(bearing)
    except (TypeError, ValueError):
        return Octant.UNKNOWN
    if not math.isfinite(value) or value < 0.0 or value >= 360.0:
        return Octant.UNKNOWN

    octant = Octant.N  # [0, 23)
    for lower, candidate in OCTANT_LOWER_BOUNDS:
        if value >= lower:
            octant = candidate
        else:
            break
    return octant


def bin_series(bearings: pd.Series) -> pd.Series:
    """Element-wise ``bin_bearing`` over a Series, returning octant values."""
    numeric = pd.to_numeric(bearings, errors='coerce').astype('float64')
    return numeric.map(lambda value: bin_bearing(value).value)
