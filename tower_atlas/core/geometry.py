"""
Grid snapping for spatial aggregation.

Grids are anchored at (0, 0) and snap each coordinate to the nearest
lower multiple of the edge length, so a tower lands in the same cell
regardless of the query extent.
"""
import math
from typing import Tuple

import numpy as np
import pandas as pd

# Relative slack so 40.3 / 0.1 lands in cell 403 despite float error
SNAP_EPSILON = 1e-9

# Anchors are rounded to this many decimals to keep them comparable
ANCHOR_DECIMALS = 9


def snap_value(value: float, edge: float) -> float:
    """
    Nearest lower multiple of ``edge`` for a single coordinate.

    Example:
        >>> snap_value(40.75, 0.1)
        40.7
        >>> snap_value(-73.98, 1.0)
        -74.0
    """
    if edge <= 0:
        raise ValueError(f"Grid edge must be positive, got {edge}")
    index = math.floor(value / edge + SNAP_EPSILON)
    return round(index * edge, ANCHOR_DECIMALS)


def snap_to_grid(latitude: float, longitude: float, edge: float) -> Tuple[float, float]:
    """Grid anchor (lat, lng) of a point for the given edge length in degrees."""
    return snap_value(latitude, edge), snap_value(longitude, edge)


def snap_series(values: pd.Series, edge: float) -> pd.Series:
    """Array form of ``snap_value``."""
    if edge <= 0:
        raise ValueError(f"Grid edge must be positive, got {edge}")
    index = np.floor(values.astype('float64') / edge + SNAP_EPSILON)
    return (index * edge).round(ANCHOR_DECIMALS)


def finite_coordinate_mask(df: pd.DataFrame,
                           lat_col: str = 'latitude',
                           lng_col: str = 'longitude') -> pd.Series:
    """
    Rows whose coordinates are finite and inside the WGS84 ranges.
    """
    lat = pd.to_numeric(df[lat_col], errors='coerce').astype('float64')
    lng = pd.to_numeric(df[lng_col], errors='coerce').astype('float64')
    return (
        np.isfinite(lat) & np.isfinite(lng)
        & lat.between(-90.0, 90.0) & lng.between(-180.0, 180.0)
    )
