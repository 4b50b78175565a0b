"""
Fact access and validation.

Pydantic schemas for query parameters and fact rows, CSV loading with
row screening, and the FactStore implementations the aggregation layer
reads from.
"""
from tower_atlas.data.schemas import (
    Bounds,
    Viewport,
    TowerType,
    TowerRecord,
    TowerProviderRecord,
    CellRecord,
    BandRecord,
    split_rats,
)
from tower_atlas.data.loaders import load_fact_table, validate_dataframe
from tower_atlas.data.sources import (
    FactStore,
    InMemoryFactStore,
    CSVFactStore,
    SQLFactStore,
    create_fact_store,
)

__all__ = [
    'Bounds',
    'Viewport',
    'TowerType',
    'TowerRecord',
    'TowerProviderRecord',
    'CellRecord',
    'BandRecord',
    'split_rats',
    'load_fact_table',
    'validate_dataframe',
    'FactStore',
    'InMemoryFactStore',
    'CSVFactStore',
    'SQLFactStore',
    'create_fact_store',
]
