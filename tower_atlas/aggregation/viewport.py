"""
Viewport resolution selection and view-model assembly.

Zoom picks the query tier:

    zoom < 6          coarse grid cells (~100 km)
    6  <= zoom < 10   medium grid cells (~10 km)
    10 <= zoom < 13   fine grid cells (~1 km)
    zoom >= 13        raw towers, capped at ``limit``, ordered by tower_id

Clustered tiers return GridCell rows. The raw tier returns EnrichedTower
rows carrying resolved carrier identities and, on request, cells binned
by bearing octant and bands classified by spectrum tier.

The selector keeps no state between calls. Overlapping queries from
rapid pan/zoom are not de-duplicated: callers tag each call with a
``request_id`` and drop responses older than the latest one issued.
Fact store errors propagate unchanged.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd

from tower_atlas.aggregation.grid import GridCell, Resolution, SpatialGridAggregator
from tower_atlas.core.bands import SpectrumTier, band_label, classify_series
from tower_atlas.core.bearing import COMPASS_ORDER, Octant, bin_series
from tower_atlas.core.carriers import CarrierIdentity, resolve
from tower_atlas.data.schemas import Viewport, normalize_tower_type, split_rats
from tower_atlas.data.sources import CarrierCode, FactStore
from tower_atlas.utils.config import AtlasConfig
from tower_atlas.utils.exceptions import QueryError
from tower_atlas.utils.logging_config import get_logger

logger = get_logger(__name__)

# Zoom breakpoints (lower bound inclusive)
MEDIUM_MIN_ZOOM = 6
FINE_MIN_ZOOM = 10
RAW_MIN_ZOOM = 13


class ViewTier(str, Enum):
    """What a viewport query returns: a grid resolution or raw towers."""
    COARSE = "coarse"
    MEDIUM = "medium"
    FINE = "fine"
    RAW = "raw"

    @property
    def resolution(self) -> Optional[Resolution]:
        if self is ViewTier.RAW:
            return None
        return Resolution(self.value)


def select_resolution(zoom: float) -> ViewTier:
    """
    Query tier for a zoom level.

    Example:
        >>> select_resolution(4)
        <ViewTier.COARSE: 'coarse'>
        >>> select_resolution(15)
        <ViewTier.RAW: 'raw'>
    """
    if zoom < MEDIUM_MIN_ZOOM:
        return ViewTier.COARSE
    if zoom < FINE_MIN_ZOOM:
        return ViewTier.MEDIUM
    if zoom < RAW_MIN_ZOOM:
        return ViewTier.FINE
    return ViewTier.RAW


def _optional(value: Any, cast=None):
    """None for null-like values, else ``cast(value)``."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return cast(value) if cast else value


def _timestamp(value: Any) -> Optional[datetime]:
    value = _optional(value)
    if value is None:
        return None
    return pd.Timestamp(value).to_pydatetime()


@dataclass(frozen=True)
class CellView:
    """One radio cell with its bearing octant."""
    cell_id: Optional[int]
    carrier: Optional[CarrierIdentity]
    rat: Optional[str]
    pci: Optional[int]
    bearing: Optional[float]
    octant: Octant
    signal: Optional[float]
    snr: Optional[float]
    rsrq: Optional[float]

    def to_dict(self) -> dict:
        return {
            'cell_id': self.cell_id,
            'carrier': self.carrier.to_dict() if self.carrier else None,
            'rat': self.rat,
            'pci': self.pci,
            'bearing': self.bearing,
            'octant': self.octant.value,
            'signal': self.signal,
            'snr': self.snr,
            'rsrq': self.rsrq,
        }


@dataclass(frozen=True)
class BandView:
    """One band allocation with its spectrum tier."""
    band_number: int
    label: str
    tier: SpectrumTier
    carrier: Optional[CarrierIdentity]
    name: Optional[str]
    channel: Optional[int]
    bandwidth_mhz: Optional[float]

    def to_dict(self) -> dict:
        return {
            'band_number': self.band_number,
            'label': self.label,
            'tier': self.tier.value,
            'carrier': self.carrier.to_dict() if self.carrier else None,
            'name': self.name,
            'channel': self.channel,
            'bandwidth_mhz': self.bandwidth_mhz,
        }


@dataclass(frozen=True)
class EnrichedTower:
    """A raw tower row with carrier, band and sector analytics attached."""
    tower_id: int
    latitude: float
    longitude: float
    tower_type: Optional[str]
    rats: List[str]
    endc_available: bool
    first_seen_at: Optional[datetime]
    last_seen_at: Optional[datetime]
    carriers: List[CarrierIdentity]
    cells: List[CellView] = field(default_factory=list)
    bands: List[BandView] = field(default_factory=list)

    @property
    def provider_count(self) -> int:
        """Distinct visible carriers at this tower."""
        return len({(c.mcc, c.mnc) for c in self.carriers})

    @property
    def tier_counts(self) -> Dict[str, int]:
        """Band allocations per spectrum tier."""
        counts = Counter(b.tier for b in self.bands)
        return {tier.value: counts.get(tier, 0) for tier in SpectrumTier}

    @property
    def octant_counts(self) -> Dict[str, int]:
        """Cells per bearing octant, compass order, Unknown last."""
        counts = Counter(c.octant for c in self.cells)
        return {o.value: counts.get(o, 0) for o in COMPASS_ORDER + (Octant.UNKNOWN,)}

    def to_dict(self) -> dict:
        return {
            'tower_id': self.tower_id,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'tower_type': self.tower_type,
            'rats': list(self.rats),
            'endc_available': self.endc_available,
            'first_seen_at': self.first_seen_at.isoformat() if self.first_seen_at else None,
            'last_seen_at': self.last_seen_at.isoformat() if self.last_seen_at else None,
            'provider_count': self.provider_count,
            'carriers': [c.to_dict() for c in self.carriers],
            'cells': [c.to_dict() for c in self.cells],
            'bands': [b.to_dict() for b in self.bands],
            'tier_counts': self.tier_counts,
            'octant_counts': self.octant_counts,
        }


Row = Union[GridCell, EnrichedTower]


@dataclass(frozen=True)
class ViewportResult:
    """View model for one viewport query."""
    tier: ViewTier
    rows: List[Row]
    total_count: int
    limit: Optional[int] = None
    request_id: Optional[int] = None

    @property
    def resolution(self) -> Optional[Resolution]:
        return self.tier.resolution

    @property
    def truncated(self) -> bool:
        """True when the raw tier matched more towers than it returned."""
        return self.tier is ViewTier.RAW and self.total_count > len(self.rows)

    def to_dict(self) -> dict:
        return {
            'tier': self.tier.value,
            'request_id': self.request_id,
            'limit': self.limit,
            'total_count': self.total_count,
            'truncated': self.truncated,
            'rows': [row.to_dict() for row in self.rows],
        }


def _carrier_or_none(mcc, mnc) -> Optional[CarrierIdentity]:
    mcc, mnc = _optional(mcc, int), _optional(mnc, int)
    if mcc is None or mnc is None:
        return None
    return resolve(mcc, mnc)


class ViewportResolutionSelector:
    """
    Chooses the aggregation tier for a viewport and assembles the view model.

    Example:
        >>> selector = ViewportResolutionSelector(store)
        >>> result = selector.query({'bounds': bounds, 'zoom': 8}, limit=500)
        >>> result.tier, result.total_count
        (<ViewTier.MEDIUM: 'medium'>, 1384)
    """

    def __init__(self, store: FactStore, config: Optional[AtlasConfig] = None):
        self.store = store
        self.config = config or AtlasConfig()
        self.aggregator = SpatialGridAggregator(store, self.config.grid)

    def _effective_limit(self, limit: Optional[int]) -> int:
        query_config = self.config.query
        if limit is None:
            return query_config.default_limit
        if limit < 0:
            raise QueryError(f"limit must be non-negative, got {limit}", parameter="limit")
        if limit > query_config.max_limit:
            logger.warning("limit_capped", requested=limit, max_limit=query_config.max_limit)
            return query_config.max_limit
        return limit

    def query(
        self,
        viewport: Union[Viewport, Mapping[str, Any]],
        limit: Optional[int] = None,
        include_cells: bool = False,
        rat: Optional[str] = None,
        carrier: Optional[CarrierCode] = None,
        request_id: Optional[int] = None,
    ) -> ViewportResult:
        """
        Answer a map viewport query.

        Args:
            viewport: Viewport or mapping with 'bounds' and 'zoom'
            limit: Row cap for the raw tier (config default when None)
            include_cells: Attach cells and bands to raw-tier rows
            rat: Only include towers serving this RAT
            carrier: Only include towers with this visible (mcc, mnc)
            request_id: Echoed on the result so callers can drop stale responses

        Returns:
            ViewportResult; total_count is the GridCell tower sum for
            clustered tiers and the uncapped match count for the raw tier
        """
        if not isinstance(viewport, Viewport):
            viewport = Viewport(**viewport)
        limit = self._effective_limit(limit)
        tier = select_resolution(viewport.zoom)

        logger.info(
            "viewport_query_started",
            tier=tier.value,
            zoom=viewport.zoom,
            limit=limit,
            request_id=request_id,
        )

        if tier is ViewTier.RAW:
            towers = self.store.load_towers(
                bounds=viewport.bounds, limit=limit, rat=rat, carrier=carrier
            )
            total_count = self.store.count_towers(bounds=viewport.bounds, rat=rat, carrier=carrier)
            rows: List[Row] = self.enrich_towers(towers, include_cells=include_cells)
        else:
            rows = self.aggregator.aggregate(tier.resolution, viewport.bounds, rat=rat, carrier=carrier)
            total_count = sum(cell.tower_count for cell in rows)

        logger.info(
            "viewport_query_completed",
            tier=tier.value,
            rows=len(rows),
            total_count=total_count,
            request_id=request_id,
        )
        return ViewportResult(
            tier=tier,
            rows=rows,
            total_count=int(total_count),
            limit=limit if tier is ViewTier.RAW else None,
            request_id=request_id,
        )

    def enrich_towers(self, towers: pd.DataFrame, include_cells: bool = False) -> List[EnrichedTower]:
        """
        Attach carrier identities (and optionally cells and bands) to tower rows.

        Row order is preserved. Only visible carrier associations are used,
        each distinct (mcc, mnc) once per tower.
        """
        if towers.empty:
            return []

        tower_ids = [int(t) for t in towers['tower_id'].dropna().unique()]
        carriers_by_tower = self._carriers_by_tower(tower_ids)
        cells_by_tower: Dict[int, List[CellView]] = {}
        bands_by_tower: Dict[int, List[BandView]] = {}
        if include_cells:
            cells_by_tower = self._cells_by_tower(tower_ids)
            bands_by_tower = self._bands_by_tower(tower_ids)

        enriched = []
        for row in towers.to_dict('records'):
            tower_id = int(row['tower_id'])
            enriched.append(EnrichedTower(
                tower_id=tower_id,
                latitude=float(row['latitude']),
                longitude=float(row['longitude']),
                tower_type=normalize_tower_type(row.get('tower_type')),
                rats=split_rats(row.get('rat')),
                endc_available=bool(_optional(row.get('endc_available')) or False),
                first_seen_at=_timestamp(row.get('first_seen_at')),
                last_seen_at=_timestamp(row.get('last_seen_at')),
                carriers=carriers_by_tower.get(tower_id, []),
                cells=cells_by_tower.get(tower_id, []),
                bands=bands_by_tower.get(tower_id, []),
            ))
        return enriched

    def _carriers_by_tower(self, tower_ids: List[int]) -> Dict[int, List[CarrierIdentity]]:
        providers = self.store.load_tower_providers(tower_ids)
        if providers.empty:
            return {}
        if 'visible' in providers.columns:
            providers = providers[providers['visible'].fillna(True).astype(bool)]
        providers = (
            providers.dropna(subset=['tower_id', 'mcc', 'mnc'])
            .drop_duplicates(subset=['tower_id', 'mcc', 'mnc'])
            .sort_values(['tower_id', 'mcc', 'mnc'])
        )

        carriers: Dict[int, List[CarrierIdentity]] = {}
        for row in providers.itertuples(index=False):
            carriers.setdefault(int(row.tower_id), []).append(resolve(int(row.mcc), int(row.mnc)))
        return carriers

    def _cells_by_tower(self, tower_ids: List[int]) -> Dict[int, List[CellView]]:
        cells = self.store.load_cells(tower_ids)
        if cells.empty:
            return {}
        cells = cells.dropna(subset=['tower_id']).copy()
        cells['octant'] = bin_series(cells['bearing'])
        if 'cell_id' in cells.columns:
            cells = cells.sort_values(['tower_id', 'cell_id'], kind='mergesort')

        grouped: Dict[int, List[CellView]] = {}
        for row in cells.to_dict('records'):
            grouped.setdefault(int(row['tower_id']), []).append(CellView(
                cell_id=_optional(row.get('cell_id'), int),
                carrier=_carrier_or_none(row.get('mcc'), row.get('mnc')),
                rat=_optional(row.get('rat'), str),
                pci=_optional(row.get('pci'), int),
                bearing=_optional(row.get('bearing'), float),
                octant=Octant(row['octant']),
                signal=_optional(row.get('signal'), float),
                snr=_optional(row.get('snr'), float),
                rsrq=_optional(row.get('rsrq'), float),
            ))
        return grouped

    def _bands_by_tower(self, tower_ids: List[int]) -> Dict[int, List[BandView]]:
        bands = self.store.load_bands(tower_ids)
        if bands.empty:
            return {}
        bands = bands.dropna(subset=['tower_id', 'band_number']).copy()
        bands['tier'] = classify_series(bands['band_number'])
        bands = bands.sort_values(['tower_id', 'band_number'], kind='mergesort')

        grouped: Dict[int, List[BandView]] = {}
        for row in bands.to_dict('records'):
            grouped.setdefault(int(row['tower_id']), []).append(BandView(
                band_number=int(row['band_number']),
                label=band_label(row['band_number']),
                tier=SpectrumTier(row['tier']),
                carrier=_carrier_or_none(row.get('mcc'), row.get('mnc')),
                name=_optional(row.get('name'), str),
                channel=_optional(row.get('channel'), int),
                bandwidth_mhz=_optional(row.get('bandwidth_mhz'), float),
            ))
        return grouped
