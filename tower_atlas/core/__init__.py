"""
Core lookups and geometry.

Carrier identity resolution, spectrum tier classification, bearing
octant binning and grid snapping. All functions are pure and read only
process-wide static tables.
"""
from tower_atlas.core.carriers import (
    CarrierIdentity,
    CARRIER_NAMES,
    DEFAULT_CARRIER_COLOR,
    resolve,
    carrier_name,
    carrier_color,
    carrier_family,
)
from tower_atlas.core.bands import (
    SpectrumTier,
    classify,
    classify_series,
    band_label,
    tier_label,
)
from tower_atlas.core.bearing import (
    Octant,
    bin_bearing,
    bin_series,
)
from tower_atlas.core.geometry import (
    snap_value,
    snap_to_grid,
    snap_series,
)

__all__ = [
    # Carriers
    'CarrierIdentity',
    'CARRIER_NAMES',
    'DEFAULT_CARRIER_COLOR',
    'resolve',
    'carrier_name',
    'carrier_color',
    'carrier_family',
    # Bands
    'SpectrumTier',
    'classify',
    'classify_series',
    'band_label',
    'tier_label',
    # Bearing
    'Octant',
    'bin_bearing',
    'bin_series',
    # Geometry
    'snap_value',
    'snap_to_grid',
    'snap_series',
]
