"""
Fleet-wide analytics over tower inventory facts.

Dashboard statistics computed from fact-store DataFrames: entity counts,
RAT and tower-type breakdowns, band distribution, per-carrier spectrum
fingerprints, sector direction spread, signal and speed statistics,
cells per tower, growth by first-seen year and data freshness.

All functions are pure: they take DataFrames and return plain dicts or
DataFrames, never touching the store themselves.
"""

from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd

from tower_atlas.core.bands import SpectrumTier, band_label, classify_series, tier_label
from tower_atlas.core.bearing import COMPASS_ORDER, Octant, bin_series
from tower_atlas.core.carriers import resolve
from tower_atlas.data.schemas import KNOWN_RATS, TowerType, normalize_tower_type, split_rats
from tower_atlas.data.sources import FactStore
from tower_atlas.utils.error_handling import require_columns, safe_division
from tower_atlas.utils.logging_config import get_logger

logger = get_logger(__name__)

# Only values inside these limits are trusted for averaging
SNR_VALID_MAX = 100.0
RSRQ_VALID_MIN = -50.0

CELLS_PER_TOWER_BUCKETS = (
    ('single', 1, 1),
    ('two_to_four', 2, 4),
    ('five_to_ten', 5, 10),
    ('many', 11, None),
)

# (bucket, max age); evaluated in order, first match wins
FRESHNESS_BUCKETS = (
    ('last_24h', pd.Timedelta(days=1)),
    ('last_7d', pd.Timedelta(days=7)),
    ('last_30d', pd.Timedelta(days=30)),
    ('last_90d', pd.Timedelta(days=90)),
    ('last_year', pd.Timedelta(days=365)),
)


def _visible(providers: pd.DataFrame) -> pd.DataFrame:
    if 'visible' in providers.columns:
        return providers[providers['visible'].fillna(True).astype(bool)]
    return providers


def _exploded_rats(towers: pd.DataFrame) -> pd.DataFrame:
    """One row per (tower_id, rat) pair."""
    df = towers[['tower_id']].copy()
    if 'rat' in towers.columns:
        df['rat'] = towers['rat'].map(split_rats)
    else:
        df['rat'] = pd.Series([[] for _ in range(len(towers))], index=towers.index, dtype=object)
    return df.explode('rat').dropna(subset=['rat']).drop_duplicates()


def dashboard_stats(
    towers: pd.DataFrame,
    cells: pd.DataFrame,
    tower_providers: pd.DataFrame,
    bands: pd.DataFrame,
) -> Dict[str, int]:
    """
    Headline counts: towers, cells, carriers, band allocations and EN-DC towers.
    """
    carriers = _visible(tower_providers)[['mcc', 'mnc']].dropna().drop_duplicates()
    endc = 0
    if 'endc_available' in towers.columns:
        endc = int(towers.drop_duplicates('tower_id')['endc_available'].fillna(False).astype(bool).sum())

    return {
        'towers': int(towers['tower_id'].nunique()),
        'cells': int(len(cells)),
        'providers': int(len(carriers)),
        'bands': int(len(bands)),
        'endc_towers': endc,
    }


@require_columns(['tower_id'], df_param='towers')
def towers_by_rat(towers: pd.DataFrame) -> Dict[str, int]:
    """
    Towers serving each RAT; a multi-RAT tower counts once per RAT.
    """
    exploded = _exploded_rats(towers)
    counts = exploded['rat'].value_counts()
    result = {rat: int(counts.get(rat, 0)) for rat in KNOWN_RATS}
    for rat, count in counts.items():
        if rat not in result:
            result[rat] = int(count)
    return result


@require_columns(['tower_id'], df_param='towers')
def towers_by_type(towers: pd.DataFrame) -> Dict[str, int]:
    """Towers per tower type; missing or unrecognized types count as 'UNKNOWN'."""
    known = {t.value for t in TowerType}
    if 'tower_type' in towers.columns:
        types = towers.drop_duplicates('tower_id')['tower_type'].map(normalize_tower_type)
    else:
        types = pd.Series([None] * towers['tower_id'].nunique(), dtype=object)
    types = types.where(types.isin(known), 'UNKNOWN')
    counts = types.value_counts()

    result = {t.value: int(counts.get(t.value, 0)) for t in TowerType}
    result['UNKNOWN'] = int(counts.get('UNKNOWN', 0))
    return result


@require_columns(['tower_id', 'band_number'], df_param='bands')
def band_distribution(bands: pd.DataFrame) -> pd.DataFrame:
    """
    Towers per band number, with canonical label and spectrum tier.

    Returns:
        DataFrame with band_number, label, tier, tier_label, towers; sorted
        by band_number
    """
    df = bands.dropna(subset=['tower_id', 'band_number'])
    counts = (
        df.drop_duplicates(['tower_id', 'band_number'])
        .groupby('band_number')['tower_id']
        .size()
        .rename('towers')
        .reset_index()
    )
    counts['band_number'] = counts['band_number'].astype('int64')
    counts['label'] = counts['band_number'].map(band_label)
    counts['tier'] = classify_series(counts['band_number'])
    counts['tier_label'] = counts['tier'].map(lambda t: tier_label(SpectrumTier(t)))
    counts['towers'] = counts['towers'].astype('int64')
    return counts[['band_number', 'label', 'tier', 'tier_label', 'towers']].sort_values(
        'band_number'
    ).reset_index(drop=True)


FINGERPRINT_MODES = ('tier', 'band')


@require_columns(['tower_id', 'band_number'], df_param='bands')
def spectrum_fingerprint(
    bands: pd.DataFrame,
    by: str = 'tier',
    band_numbers: Optional[Sequence[int]] = None,
) -> pd.DataFrame:
    """
    Band fingerprint per carrier: towers carrying each spectrum tier or band.

    With ``by='tier'`` a tower counts once per (carrier, tier) however many
    bands of that tier it carries for the carrier. With ``by='band'`` the
    columns are individual bands labelled 'B2', 'B12', 'n260'...; pass
    ``band_numbers`` to compare a fixed set of bands (absent ones count 0).

    Returns:
        DataFrame with mcc, mnc, name, color and one count column per tier
        or band, sorted by (mcc, mnc)

    Raises:
        ValueError: If ``by`` is not 'tier' or 'band'
    """
    if by not in FINGERPRINT_MODES:
        raise ValueError(f"by must be one of {FINGERPRINT_MODES}, got {by!r}")

    df = bands.dropna(subset=['tower_id', 'band_number', 'mcc', 'mnc']).copy()
    df['band_number'] = df['band_number'].astype('int64')
    if by == 'tier':
        columns = [tier.value for tier in SpectrumTier]
        df['key'] = classify_series(df['band_number'])
    else:
        numbers = sorted(set(band_numbers)) if band_numbers is not None else sorted(df['band_number'].unique())
        columns = [band_label(n) for n in numbers]
        df['key'] = df['band_number'].map(band_label)

    if df.empty:
        return pd.DataFrame(columns=['mcc', 'mnc', 'name', 'color'] + columns)

    carriers = pd.MultiIndex.from_frame(
        df[['mcc', 'mnc']].drop_duplicates().sort_values(['mcc', 'mnc'])
    )
    df = df[df['key'].isin(columns)].drop_duplicates(['mcc', 'mnc', 'key', 'tower_id'])
    if df.empty:
        table = pd.DataFrame(0, index=carriers, columns=columns)
    else:
        table = (
            df.groupby(['mcc', 'mnc', 'key']).size()
            .unstack('key', fill_value=0)
            .reindex(index=carriers, columns=columns, fill_value=0)
        )
    table = table.reset_index()
    table.columns.name = None
    table['mcc'] = table['mcc'].astype('int64')
    table['mnc'] = table['mnc'].astype('int64')
    identities = [resolve(mcc, mnc) for mcc, mnc in zip(table['mcc'], table['mnc'])]
    table['name'] = [i.name for i in identities]
    table['color'] = [i.color for i in identities]
    for col in columns:
        table[col] = table[col].astype('int64')

    return table[['mcc', 'mnc', 'name', 'color'] + columns].sort_values(
        ['mcc', 'mnc']
    ).reset_index(drop=True)


def provider_stats(towers: pd.DataFrame, tower_providers: pd.DataFrame) -> pd.DataFrame:
    """
    Towers per carrier with LTE and NR breakdown.

    Returns:
        DataFrame with mcc, mnc, name, color, towers, lte_towers, nr_towers
    """
    columns = ['mcc', 'mnc', 'name', 'color', 'towers', 'lte_towers', 'nr_towers']
    links = _visible(tower_providers).dropna(subset=['tower_id', 'mcc', 'mnc'])
    links = links[['tower_id', 'mcc', 'mnc']].drop_duplicates()
    if links.empty:
        return pd.DataFrame(columns=columns)

    rats = _exploded_rats(towers)
    rat_flags = pd.DataFrame({
        'tower_id': rats['tower_id'],
        'lte': rats['rat'] == 'LTE',
        'nr': rats['rat'] == 'NR',
    }).groupby('tower_id')[['lte', 'nr']].any()

    merged = links.merge(rat_flags, left_on='tower_id', right_index=True, how='left')
    merged[['lte', 'nr']] = merged[['lte', 'nr']].fillna(False).astype(bool)
    table = merged.groupby(['mcc', 'mnc']).agg(
        towers=('tower_id', 'nunique'),
        lte_towers=('lte', 'sum'),
        nr_towers=('nr', 'sum'),
    ).reset_index()

    table['mcc'] = table['mcc'].astype('int64')
    table['mnc'] = table['mnc'].astype('int64')
    identities = [resolve(mcc, mnc) for mcc, mnc in zip(table['mcc'], table['mnc'])]
    table['name'] = [i.name for i in identities]
    table['color'] = [i.color for i in identities]
    for col in ['towers', 'lte_towers', 'nr_towers']:
        table[col] = table[col].astype('int64')
    return table[columns].sort_values(['mcc', 'mnc']).reset_index(drop=True)


@require_columns(['bearing'], df_param='cells')
def sector_distribution(cells: pd.DataFrame) -> Dict[str, int]:
    """Cells per bearing octant, compass order, Unknown last."""
    counts = bin_series(cells['bearing']).value_counts()
    return {o.value: int(counts.get(o.value, 0)) for o in COMPASS_ORDER + (Octant.UNKNOWN,)}


def _stat(series: pd.Series, how: str) -> Optional[float]:
    values = pd.to_numeric(series, errors='coerce').astype('float64').dropna()
    values = values[np.isfinite(values)]
    if values.empty:
        return None
    return float(getattr(values, how)())


def signal_stats(cells: pd.DataFrame) -> Dict[str, Dict[str, Optional[float]]]:
    """
    Signal, speed and quality statistics over cells.

    SNR values of 100 or more and RSRQ values of -50 or less are treated
    as sentinels and left out of the averages.
    """
    def column(name: str) -> pd.Series:
        if name in cells.columns:
            return cells[name]
        return pd.Series(dtype='float64')

    snr = pd.to_numeric(column('snr'), errors='coerce')
    rsrq = pd.to_numeric(column('rsrq'), errors='coerce')

    return {
        'signal': {
            'avg': _stat(column('signal'), 'mean'),
            'min': _stat(column('signal'), 'min'),
            'max': _stat(column('signal'), 'max'),
        },
        'speed': {
            'avg_max_down_mbps': _stat(column('max_speed_down_mbps'), 'mean'),
            'avg_avg_down_mbps': _stat(column('avg_speed_down_mbps'), 'mean'),
            'avg_max_up_mbps': _stat(column('max_speed_up_mbps'), 'mean'),
            'avg_avg_up_mbps': _stat(column('avg_speed_up_mbps'), 'mean'),
            'max_down_mbps': _stat(column('max_speed_down_mbps'), 'max'),
            'max_up_mbps': _stat(column('max_speed_up_mbps'), 'max'),
        },
        'quality': {
            'avg_snr': _stat(snr[snr < SNR_VALID_MAX], 'mean'),
            'avg_rsrq': _stat(rsrq[rsrq > RSRQ_VALID_MIN], 'mean'),
            'valid_snr_share': safe_division(
                int((snr < SNR_VALID_MAX).sum()), int(snr.notna().sum()), default=None
            ),
        },
    }


@require_columns(['tower_id'], df_param='towers')
def cells_per_tower(towers: pd.DataFrame, cells: pd.DataFrame) -> Dict[str, int]:
    """
    Towers bucketed by how many cells they carry; towers without cells
    are counted under 'none'.
    """
    per_tower = cells.dropna(subset=['tower_id']).groupby('tower_id').size()
    counts = towers['tower_id'].dropna().drop_duplicates().map(per_tower).fillna(0).astype(int)

    result = {'none': int((counts == 0).sum())}
    for name, low, high in CELLS_PER_TOWER_BUCKETS:
        mask = counts >= low
        if high is not None:
            mask &= counts <= high
        result[name] = int(mask.sum())
    return result


def _timestamps(towers: pd.DataFrame, column: str) -> pd.Series:
    if column not in towers.columns:
        return pd.Series(pd.NaT, index=towers.index, dtype='datetime64[ns, UTC]')
    return pd.to_datetime(towers[column], utc=True, errors='coerce')


@require_columns(['tower_id'], df_param='towers')
def tower_growth(towers: pd.DataFrame, first_year: int = 2020,
                 last_year: Optional[int] = None) -> Dict[str, int]:
    """
    Towers first seen per calendar year.

    Years before ``first_year`` are pooled as 'before_<first_year>';
    towers with no first-seen date go to 'unknown'. Keys are ordered
    chronologically.
    """
    first_seen = _timestamps(towers.drop_duplicates('tower_id'), 'first_seen_at')
    years = first_seen.dt.year
    if last_year is None:
        last_year = int(years.max()) if years.notna().any() else first_year
    last_year = max(last_year, first_year)

    result = {f"before_{first_year}": int((years < first_year).sum())}
    for year in range(first_year, last_year + 1):
        result[str(year)] = int((years == year).sum())
    result['unknown'] = int(years.isna().sum())
    return result


@require_columns(['tower_id'], df_param='towers')
def data_freshness(towers: pd.DataFrame, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Towers bucketed by time since last seen, relative to ``now`` (UTC now
    when omitted). Buckets are disjoint.
    """
    now = pd.Timestamp(now or datetime.now(timezone.utc))
    if now.tzinfo is None:
        now = now.tz_localize('UTC')

    age = now - _timestamps(towers.drop_duplicates('tower_id'), 'last_seen_at')
    remaining = age.notna()
    result = {}
    for name, max_age in FRESHNESS_BUCKETS:
        in_bucket = remaining & (age <= max_age)
        result[name] = int(in_bucket.sum())
        remaining &= ~in_bucket
    result['older'] = int(remaining.sum())
    result['unknown'] = int(age.isna().sum())
    return result


@require_columns(['tower_id'], df_param='towers')
def recent_towers(
    towers: pd.DataFrame,
    limit: int = 10,
    tower_providers: Optional[pd.DataFrame] = None,
    cells: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """
    Most recently first-seen towers; towers without a first-seen date are excluded.

    When ``tower_providers`` is given each row gets a ``carriers`` list of
    resolved names (visible associations, ordered by mcc/mnc); when ``cells``
    is given each row gets its ``cell_count``.
    """
    df = towers.copy()
    df['first_seen_at'] = _timestamps(df, 'first_seen_at')
    df = df.dropna(subset=['first_seen_at'])
    df = df.sort_values(['first_seen_at', 'tower_id'], ascending=[False, True]).head(limit).reset_index(drop=True)

    if tower_providers is not None:
        links = _visible(tower_providers).dropna(subset=['tower_id', 'mcc', 'mnc'])
        links = links[links['tower_id'].isin(df['tower_id'])]
        links = links[['tower_id', 'mcc', 'mnc']].drop_duplicates().sort_values(['tower_id', 'mcc', 'mnc'])
        names: Dict[int, list] = {}
        for row in links.itertuples(index=False):
            names.setdefault(int(row.tower_id), []).append(resolve(int(row.mcc), int(row.mnc)).name)
        df['carriers'] = [names.get(int(t), []) for t in df['tower_id']]

    if cells is not None:
        counts = cells.dropna(subset=['tower_id']).groupby('tower_id').size()
        df['cell_count'] = df['tower_id'].map(counts).fillna(0).astype('int64')

    return df


def fleet_summary(store: FactStore, now: Optional[datetime] = None) -> Dict[str, object]:
    """
    Every dashboard statistic for the whole inventory in one dict.
    """
    towers = store.load_towers()
    tower_providers = store.load_tower_providers()
    cells = store.load_cells()
    bands = store.load_bands()

    logger.info(
        "fleet_summary_started",
        towers=len(towers),
        cells=len(cells),
        bands=len(bands),
    )

    summary = {
        'dashboard': dashboard_stats(towers, cells, tower_providers, bands),
        'towers_by_rat': towers_by_rat(towers),
        'towers_by_type': towers_by_type(towers),
        'band_distribution': band_distribution(bands).to_dict('records'),
        'spectrum_fingerprint': spectrum_fingerprint(bands).to_dict('records'),
        'providers': provider_stats(towers, tower_providers).to_dict('records'),
        'sector_distribution': sector_distribution(cells),
        'signal': signal_stats(cells),
        'cells_per_tower': cells_per_tower(towers, cells),
        'tower_growth': tower_growth(towers),
        'data_freshness': data_freshness(towers, now=now),
        'recent_towers': recent_towers(
            towers, tower_providers=tower_providers, cells=cells
        ).to_dict('records'),
    }
    return summary

