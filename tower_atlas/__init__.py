"""
Tower Atlas - multi-resolution views over cell tower inventories.

Snaps towers to coarse, medium and fine grids, picks a grid tier (or raw
towers) from a map zoom level, enriches raw towers with carrier, spectrum
and sector detail, and computes fleet-wide dashboard statistics.
"""

__version__ = "0.1.0"

from tower_atlas.aggregation import (
    SpatialGridAggregator,
    ViewportResolutionSelector,
    ViewportResult,
    select_resolution,
)
from tower_atlas.data import Bounds, Viewport, create_fact_store

__all__ = [
    '__version__',
    'SpatialGridAggregator',
    'ViewportResolutionSelector',
    'ViewportResult',
    'select_resolution',
    'Bounds',
    'Viewport',
    'create_fact_store',
]
