"""
Aggregation over tower facts.

Multi-resolution grid summaries, zoom-driven viewport queries and
fleet-wide dashboard analytics.
"""
from tower_atlas.aggregation.grid import (
    GridCell,
    Resolution,
    SpatialGridAggregator,
    aggregate_frame,
)
from tower_atlas.aggregation.viewport import (
    BandView,
    CellView,
    EnrichedTower,
    ViewTier,
    ViewportResolutionSelector,
    ViewportResult,
    select_resolution,
)
from tower_atlas.aggregation.analytics import (
    band_distribution,
    cells_per_tower,
    dashboard_stats,
    data_freshness,
    fleet_summary,
    provider_stats,
    recent_towers,
    sector_distribution,
    signal_stats,
    spectrum_fingerprint,
    tower_growth,
    towers_by_rat,
    towers_by_type,
)

__all__ = [
    # Grid
    'GridCell',
    'Resolution',
    'SpatialGridAggregator',
    'aggregate_frame',
    # Viewport
    'BandView',
    'CellView',
    'EnrichedTower',
    'ViewTier',
    'ViewportResolutionSelector',
    'ViewportResult',
    'select_resolution',
    # Analytics
    'band_distribution',
    'cells_per_tower',
    'dashboard_stats',
    'data_freshness',
    'fleet_summary',
    'provider_stats',
    'recent_towers',
    'sector_distribution',
    'signal_stats',
    'spectrum_fingerprint',
    'tower_growth',
    'towers_by_rat',
    'towers_by_type',
]
