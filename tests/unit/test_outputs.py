"""
Tests for GeoJSON / JSON export.
"""
import json

import geopandas as gpd
import numpy as np
import pytest

from tower_atlas.aggregation.viewport import ViewportResolutionSelector, ViewportResult, ViewTier
from tower_atlas.data.schemas import Viewport
from tower_atlas.outputs.geojson import (
    result_to_geodataframe,
    write_geojson,
    write_json,
    write_result,
)


@pytest.fixture
def selector(store):
    return ViewportResolutionSelector(store)


class TestResultToGeoDataFrame:
    """Tests for result_to_geodataframe."""

    def test_grid_polygons(self, selector, region):
        result = selector.query(Viewport(bounds=region, zoom=4))

        gdf = result_to_geodataframe(result)

        assert len(gdf) == 3
        assert gdf.crs.to_epsg() == 4326
        assert (gdf.geometry.geom_type == 'Polygon').all()
        assert gdf.geometry.iloc[0].bounds == (-75.0, 40.0, -74.0, 41.0)
        assert gdf['tower_count'].sum() == 5

    def test_tower_points(self, selector, region):
        result = selector.query(Viewport(bounds=region, zoom=15), include_cells=True)

        gdf = result_to_geodataframe(result)

        assert (gdf.geometry.geom_type == 'Point').all()
        first = gdf.iloc[0]
        assert first.geometry.x == pytest.approx(-74.77)
        assert first['carriers'] == "AT&T,Verizon Wireless"
        assert first['color'] == "#00a8e0"
        assert first['rats'] == "LTE,NR"
        assert first['tier_high'] == 1
        assert first['octant_n'] == 1

    def test_tower_without_carrier_gets_neutral_colour(self, selector, region):
        result = selector.query(Viewport(bounds=region, zoom=15))

        gdf = result_to_geodataframe(result).set_index('tower_id')

        assert gdf.loc[5, 'color'] == "#6b7280"

    def test_empty(self):
        result = ViewportResult(tier=ViewTier.COARSE, rows=[], total_count=0)

        gdf = result_to_geodataframe(result)

        assert gdf.empty
        assert 'tower_count' in gdf.columns


class TestWriters:
    """Tests for write_geojson, write_json and write_result."""

    def test_write_geojson(self, selector, region, tmp_path):
        result = selector.query(Viewport(bounds=region, zoom=8))
        output_file = tmp_path / "out" / "medium.geojson"

        write_geojson(result, output_file)

        loaded = gpd.read_file(output_file)
        assert len(loaded) == 5

    def test_write_json(self, selector, region, tmp_path):
        result = selector.query(Viewport(bounds=region, zoom=15), limit=2, request_id=7)
        output_file = tmp_path / "towers.json"

        write_json(result, output_file)

        data = json.loads(output_file.read_text())
        assert data['request_id'] == 7
        assert data['total_count'] == 5
        assert len(data['rows']) == 2

    def test_write_result_dispatches_on_suffix(self, selector, region, tmp_path):
        result = selector.query(Viewport(bounds=region, zoom=4))

        write_result(result, tmp_path / "grid.geojson")
        write_result(result, tmp_path / "grid.json")

        geojson = json.loads((tmp_path / "grid.geojson").read_text())
        assert geojson['type'] == "FeatureCollection"
        plain = json.loads((tmp_path / "grid.json").read_text())
        assert plain['tier'] == "coarse"

    def test_write_json_numpy_values(self, tmp_path):
        """Statistics holding numpy scalars serialize as plain numbers."""
        output_file = tmp_path / "stats.json"
        write_json({'towers': np.int64(6), 'share': np.float64(0.5)}, output_file)

        assert json.loads(output_file.read_text()) == {'towers': 6, 'share': 0.5}
