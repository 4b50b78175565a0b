"""
Spectrum tier classification for band numbers.

Band numbers follow the 3GPP numbering (LTE "B" bands, NR "n" bands).
Tier membership is fixed; a band outside every tier is UNCLASSIFIED.
"""
from enum import Enum
from typing import Any, FrozenSet, Mapping
from types import MappingProxyType

import numpy as np
import pandas as pd


class SpectrumTier(str, Enum):
    """Coverage/capacity class of a frequency band."""
    LOW = "low"
    MID = "mid"
    HIGH = "high"
    UNCLASSIFIED = "unclassified"


LOW_BAND: FrozenSet[int] = frozenset({5, 12, 13, 14, 17, 26, 71})
MID_BAND: FrozenSet[int] = frozenset({2, 4, 25, 30, 41, 48, 66})
HIGH_BAND: FrozenSet[int] = frozenset({77, 258, 260, 261})  # mmWave

TIER_MEMBERS: Mapping[SpectrumTier, FrozenSet[int]] = MappingProxyType({
    SpectrumTier.LOW: LOW_BAND,
    SpectrumTier.MID: MID_BAND,
    SpectrumTier.HIGH: HIGH_BAND,
})

_TIER_LABELS = {
    SpectrumTier.LOW: "Low-band",
    SpectrumTier.MID: "Mid-band",
    SpectrumTier.HIGH: "High-band (mmWave)",
    SpectrumTier.UNCLASSIFIED: "Unclassified",
}

# Band numbers from here up are NR-only allocations and get the "n" prefix
NR_BAND_THRESHOLD = 77

# Flattened lookup; sets are disjoint so each number maps to one tier
_BAND_TO_TIER = {
    band: tier
    for tier, members in TIER_MEMBERS.items()
    for band in members
}


def _as_band_number(value: Any):
    """Coerce to int, or None for null / non-integral input."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not np.isfinite(number) or number != int(number):
        return None
    return int(number)


def classify(band_number: Any) -> SpectrumTier:
    """
    Spectrum tier of a band number.

    Example:
        >>> classify(71)
        <SpectrumTier.LOW: 'low'>
        >>> classify(100)
        <SpectrumTier.UNCLASSIFIED: 'unclassified'>
    """
    number = _as_band_number(band_number)
    if number is None:
        return SpectrumTier.UNCLASSIFIED
    return _BAND_TO_TIER.get(number, SpectrumTier.UNCLASSIFIED)


def classify_series(band_numbers: pd.Series) -> pd.Series:
    """Element-wise ``classify`` over a Series, returning tier values ('low', 'mid', ...)."""
    return band_numbers.map(lambda value: classify(value).value)


def band_label(band_number: Any) -> str:
    """
    Canonical label: 'B12' for LTE numbers, 'n260' for NR mmWave numbers.

    Unparseable input is returned as its string form.
    """
    number = _as_band_number(band_number)
    if number is None:
        return str(band_number)
    if number >= NR_BAND_THRESHOLD:
        return f"n{number}"
    return f"B{number}"


def tier_label(tier: SpectrumTier) -> str:
    """Human-readable tier label."""
    return _TIER_LABELS[SpectrumTier(tier)]
