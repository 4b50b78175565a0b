"""
Shared fact-table fixtures.

Five towers sit inside the 2x2 degree region (40..42 N, -75..-73 E), well
clear of its north and east edges, plus one tower in Los Angeles.
"""
import pandas as pd
import pytest

from tower_atlas.data.schemas import Bounds
from tower_atlas.data.sources import InMemoryFactStore


@pytest.fixture
def towers_df():
    """Six towers: five in the test region, one outside."""
    return pd.DataFrame({
        'tower_id': [1, 2, 3, 4, 5, 6],
        'latitude': [40.21, 40.33, 40.78, 41.44, 41.56, 34.06],
        'longitude': [-74.77, -74.62, -73.96, -73.47, -73.38, -118.24],
        'tower_type': ['MACRO', 'MACRO', 'SMALL_CELL', 'MICRO', None, 'MACRO'],
        'rat': ['LTE,NR', 'LTE', 'NR', 'LTE', 'LTE,NR', 'LTE'],
        'endc_available': [True, False, True, False, False, False],
        'first_seen_at': [
            '2019-06-01T00:00:00Z', '2021-03-15T00:00:00Z', '2022-08-01T00:00:00Z',
            '2023-01-10T00:00:00Z', None, '2020-05-05T00:00:00Z',
        ],
        'last_seen_at': [
            '2024-06-01T12:00:00Z', '2024-05-20T00:00:00Z', '2024-01-01T00:00:00Z',
            '2023-01-15T00:00:00Z', None, '2024-05-31T00:00:00Z',
        ],
    })


@pytest.fixture
def providers_df():
    """Carrier associations, including a duplicate and a hidden one."""
    return pd.DataFrame({
        'tower_id': [1, 1, 1, 2, 2, 3, 4, 6],
        'mcc': [311, 310, 310, 310, 999, 311, 313, 310],
        'mnc': [480, 410, 410, 260, 999, 480, 100, 260],
        'visible': [True, True, True, True, False, True, True, True],
    })


@pytest.fixture
def cells_df():
    """Six cells on towers 1-3 with one sentinel SNR and one sentinel RSRQ."""
    return pd.DataFrame({
        'cell_id': [1, 2, 3, 4, 5, 6],
        'tower_id': [1, 1, 1, 2, 2, 3],
        'mcc': [311, 311, 310, 310, 310, 311],
        'mnc': [480, 480, 410, 260, 260, 480],
        'rat': ['LTE', 'NR', 'LTE', 'LTE', 'LTE', 'NR'],
        'pci': [101, 102, 103, 201, 202, 301],
        'bearing': [0.0, 120.0, 240.0, 45.0, 359.9, None],
        'signal': [-85.0, -90.0, -95.0, -100.0, -80.0, -70.0],
        'snr': [12.0, 150.0, 8.0, 5.0, 10.0, 20.0],
        'rsrq': [-10.0, -9.0, -60.0, -12.0, -11.0, -8.0],
        'max_speed_down_mbps': [150.0, 300.0, 80.0, 50.0, None, 500.0],
    })


@pytest.fixture
def bands_df():
    """Band allocations covering every spectrum tier."""
    return pd.DataFrame({
        'tower_id': [1, 1, 1, 1, 2, 2, 2, 3],
        'mcc': [311, 311, 311, 310, 310, 310, 310, 311],
        'mnc': [480, 480, 480, 410, 260, 260, 260, 480],
        'band_number': [13, 66, 260, 12, 71, 41, 100, 66],
        'name': ['Band 13', 'AWS-3', 'n260', 'Band 12', 'Band 71', 'Band 41', 'Other', 'AWS-3'],
        'channel': [5230, 66786, None, 5110, 68686, 40072, None, 66836],
        'bandwidth_mhz': [10.0, 20.0, 100.0, 10.0, 15.0, 20.0, None, 20.0],
    })


@pytest.fixture
def store(towers_df, providers_df, cells_df, bands_df):
    """In-memory fact store over all four sample tables."""
    return InMemoryFactStore(
        towers=towers_df,
        tower_providers=providers_df,
        cells=cells_df,
        bands=bands_df,
    )


@pytest.fixture
def region():
    """Bounds aligned to the coarse grid around the five regional towers."""
    return Bounds(min_lat=40.0, max_lat=42.0, min_lng=-75.0, max_lng=-73.0)
