"""
Data type definitions for fact-table loading.

Explicit dtypes keep CSV and SQL loads consistent: nullable integer
codes stay integers, and identifiers never get parsed as floats.
"""
import pandas as pd

# Towers (towers.csv / towers table)
TOWER_DTYPES = {
    'tower_id': 'Int64',
    'external_id': 'string',
    'latitude': 'float64',
    'longitude': 'float64',
    'tower_type': 'string',
    'rat': 'string',
    'endc_available': 'boolean',
}

TOWER_DATE_COLUMNS = ['first_seen_at', 'last_seen_at']

# Tower to carrier associations
TOWER_PROVIDER_DTYPES = {
    'tower_id': 'Int64',
    'mcc': 'Int64',
    'mnc': 'Int64',
    'visible': 'boolean',
}

# Radio cells (sectors)
CELL_DTYPES = {
    'cell_id': 'Int64',
    'tower_id': 'Int64',
    'mcc': 'Int64',
    'mnc': 'Int64',
    'rat': 'string',
    'pci': 'Int64',
    'earfcn': 'Int64',
    'bearing': 'float64',
    'signal': 'float64',
    'snr': 'float64',
    'rsrq': 'float64',
    'max_speed_down_mbps': 'float64',
    'avg_speed_down_mbps': 'float64',
    'max_speed_up_mbps': 'float64',
    'avg_speed_up_mbps': 'float64',
}

# Band allocations per tower/carrier
BAND_DTYPES = {
    'tower_id': 'Int64',
    'mcc': 'Int64',
    'mnc': 'Int64',
    'band_number': 'Int64',
    'name': 'string',
    'channel': 'Int64',
    'bandwidth_mhz': 'float64',
    'modulation': 'string',
}

# Columns every fact table must provide
REQUIRED_COLUMNS = {
    'towers': {'tower_id', 'latitude', 'longitude'},
    'tower_providers': {'tower_id', 'mcc', 'mnc'},
    'cells': {'tower_id', 'bearing'},
    'bands': {'tower_id', 'band_number'},
}

DTYPES_BY_TABLE = {
    'towers': TOWER_DTYPES,
    'tower_providers': TOWER_PROVIDER_DTYPES,
    'cells': CELL_DTYPES,
    'bands': BAND_DTYPES,
}


def apply_dtypes(df, table: str):
    """
    Cast the known columns of ``df`` to the dtypes declared for ``table``.

    Unknown columns are left untouched; missing columns are skipped.
    """
    dtypes = DTYPES_BY_TABLE.get(table, {})
    casts = {col: dtype for col, dtype in dtypes.items() if col in df.columns}
    df = df.astype(casts) if casts else df.copy()
    if table == 'towers':
        for col in TOWER_DATE_COLUMNS:
            if col in df.columns:
                df[col] = pd.to_datetime(df[col], utc=True, errors='coerce')
    return df
