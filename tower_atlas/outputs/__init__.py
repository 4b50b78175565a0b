"""
Output writers for Tower Atlas.

GeoJSON export of viewport results for map layers, and JSON export of
full view models and fleet statistics.
"""

from tower_atlas.outputs.geojson import (
    result_to_geodataframe,
    write_geojson,
    write_json,
    write_result,
)

__all__ = ['result_to_geodataframe', 'write_geojson', 'write_json', 'write_result']
