"""
GeoJSON and JSON export of viewport results and fleet statistics.

Grid cells are written as polygons covering their cell, raw towers as
points. Properties are flattened to scalars so the GeoJSON driver can
write them; the JSON export keeps the full nested view model.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import geopandas as gpd
import numpy as np
import pandas as pd
from shapely.geometry import Point

from tower_atlas.aggregation.grid import GridCell
from tower_atlas.aggregation.viewport import EnrichedTower, ViewportResult
from tower_atlas.core.bands import SpectrumTier
from tower_atlas.core.bearing import COMPASS_ORDER, Octant
from tower_atlas.core.carriers import DEFAULT_CARRIER_COLOR
from tower_atlas.utils.logging_config import get_logger

logger = get_logger(__name__)

CRS = "EPSG:4326"

GRID_PROPERTIES = [
    'resolution', 'grid_lat', 'grid_lng', 'edge_deg', 'center_lat', 'center_lng',
    'tower_count', 'lte_count', 'nr_count', 'endc_count',
]
TOWER_PROPERTIES = [
    'tower_id', 'latitude', 'longitude', 'tower_type', 'rats', 'endc_available',
    'first_seen_at', 'last_seen_at', 'provider_count', 'carriers', 'color',
    'cell_count', 'band_count',
] + [f"tier_{tier.value}" for tier in SpectrumTier] + [
    f"octant_{o.value.lower()}" for o in COMPASS_ORDER + (Octant.UNKNOWN,)
]


def _grid_properties(cell: GridCell) -> Dict[str, Any]:
    props = cell.to_dict()
    props['center_lat'] = cell.center_lat
    props['center_lng'] = cell.center_lng
    return props


def _tower_properties(tower: EnrichedTower) -> Dict[str, Any]:
    props = {
        'tower_id': tower.tower_id,
        'latitude': tower.latitude,
        'longitude': tower.longitude,
        'tower_type': tower.tower_type,
        'rats': ",".join(tower.rats),
        'endc_available': tower.endc_available,
        'first_seen_at': tower.first_seen_at.isoformat() if tower.first_seen_at else None,
        'last_seen_at': tower.last_seen_at.isoformat() if tower.last_seen_at else None,
        'provider_count': tower.provider_count,
        'carriers': ",".join(c.name for c in tower.carriers),
        # Marker colour follows the first carrier
        'color': tower.carriers[0].color if tower.carriers else DEFAULT_CARRIER_COLOR,
        'cell_count': len(tower.cells),
        'band_count': len(tower.bands),
    }
    for tier, count in tower.tier_counts.items():
        props[f"tier_{tier}"] = count
    for octant, count in tower.octant_counts.items():
        props[f"octant_{octant.lower()}"] = count
    return props


def result_to_geodataframe(result: ViewportResult) -> gpd.GeoDataFrame:
    """
    Convert a viewport result to a GeoDataFrame in EPSG:4326.

    Args:
        result: Output of ViewportResolutionSelector.query

    Returns:
        GeoDataFrame with one feature per row; polygons for grid tiers,
        points for the raw tier
    """
    columns = GRID_PROPERTIES if result.resolution is not None else TOWER_PROPERTIES
    if not result.rows:
        return gpd.GeoDataFrame(columns=columns + ['geometry'], geometry='geometry', crs=CRS)

    records: List[Dict[str, Any]] = []
    geometries = []
    for row in result.rows:
        if isinstance(row, GridCell):
            records.append(_grid_properties(row))
            geometries.append(row.to_polygon())
        else:
            records.append(_tower_properties(row))
            geometries.append(Point(row.longitude, row.latitude))

    df = pd.DataFrame.from_records(records, columns=columns)
    return gpd.GeoDataFrame(df, geometry=geometries, crs=CRS)


def write_geojson(result: ViewportResult, output_file: Path) -> Path:
    """
    Write a viewport result as GeoJSON, replacing any existing file.

    An empty result still writes an empty FeatureCollection.
    """
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    if output_file.exists():
        output_file.unlink()

    gdf = result_to_geodataframe(result)
    gdf.to_file(output_file, driver='GeoJSON')

    if len(gdf) > 0:
        logger.info("viewport_geojson_saved", path=str(output_file), features=len(gdf),
                    tier=result.tier.value)
    else:
        logger.warning("viewport_result_empty", path=str(output_file), tier=result.tier.value)
    return output_file


def json_default(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.isoformat()
    if value is pd.NA or value is pd.NaT:
        return None
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def write_json(payload: Any, output_file: Path) -> Path:
    """
    Write a viewport result (or any dict of statistics) as indented JSON.
    """
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(payload, ViewportResult):
        payload = payload.to_dict()

    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, default=json_default)

    logger.info("json_saved", path=str(output_file))
    return output_file


def write_result(result: ViewportResult, output_file: Path) -> Path:
    """Write GeoJSON for ``.geojson`` paths, full JSON otherwise."""
    output_file = Path(output_file)
    if output_file.suffix.lower() == '.geojson':
        return write_geojson(result, output_file)
    return write_json(result, output_file)
