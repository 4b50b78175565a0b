"""
Tests for fleet-wide dashboard analytics.
"""
from datetime import datetime, timezone

import pandas as pd
import pytest

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
from tower_atlas.utils.exceptions import DataValidationError

NOW = datetime(2024, 6, 2, 0, 0, tzinfo=timezone.utc)


class TestCounts:
    """Tests for dashboard_stats, towers_by_rat and towers_by_type."""

    def test_dashboard_stats(self, towers_df, cells_df, providers_df, bands_df):
        """Hidden carrier associations are not counted as providers."""
        stats = dashboard_stats(towers_df, cells_df, providers_df, bands_df)

        assert stats == {
            'towers': 6,
            'cells': 6,
            'providers': 4,
            'bands': 8,
            'endc_towers': 2,
        }

    def test_towers_by_rat(self, towers_df):
        """A multi-RAT tower counts once under each RAT."""
        counts = towers_by_rat(towers_df)

        assert counts['LTE'] == 5
        assert counts['NR'] == 3
        assert counts['GSM'] == 0

    def test_towers_by_type(self, towers_df):
        counts = towers_by_type(towers_df)

        assert counts['MACRO'] == 3
        assert counts['SMALL_CELL'] == 1
        assert counts['MICRO'] == 1
        assert counts['DAS'] == 0
        assert counts['UNKNOWN'] == 1

    def test_towers_by_type_spelling_variants(self):
        """Hyphenated and spaced spellings count under the canonical type."""
        towers = pd.DataFrame({
            'tower_id': [1, 2, 3],
            'tower_type': ['small-cell', 'Small Cell', ' macro '],
        })

        counts = towers_by_type(towers)

        assert counts['SMALL_CELL'] == 2
        assert counts['MACRO'] == 1
        assert counts['UNKNOWN'] == 0

    def test_missing_tower_id(self):
        with pytest.raises(DataValidationError):
            towers_by_rat(pd.DataFrame({'rat': ['LTE']}))


class TestSpectrum:
    """Tests for band_distribution and spectrum_fingerprint."""

    def test_band_distribution(self, bands_df):
        dist = band_distribution(bands_df)

        assert dist['band_number'].tolist() == [12, 13, 41, 66, 71, 100, 260]
        assert dist['label'].tolist() == ['B12', 'B13', 'B41', 'B66', 'B71', 'n100', 'n260']
        assert dist.set_index('band_number')['towers'].to_dict()[66] == 2
        assert dist.set_index('band_number')['tier'].to_dict()[100] == 'unclassified'
        assert dist.set_index('band_number')['tier_label'].to_dict()[260] == 'High-band (mmWave)'

    def test_spectrum_fingerprint(self, bands_df):
        """Each carrier gets per-tier tower counts plus its display identity."""
        fingerprint = spectrum_fingerprint(bands_df)

        assert list(zip(fingerprint['mcc'], fingerprint['mnc'])) == [(310, 260), (310, 410), (311, 480)]
        verizon = fingerprint.iloc[2]
        assert verizon['name'] == 'Verizon Wireless'
        assert verizon['color'] == '#cd040b'
        assert (verizon['low'], verizon['mid'], verizon['high'], verizon['unclassified']) == (1, 2, 1, 0)
        tmobile = fingerprint.iloc[0]
        assert (tmobile['low'], tmobile['mid'], tmobile['high'], tmobile['unclassified']) == (1, 1, 0, 1)

    def test_fingerprint_by_band(self, bands_df):
        """Per-band columns compare carriers band by band."""
        fingerprint = spectrum_fingerprint(bands_df, by='band')

        assert list(fingerprint.columns[4:]) == ['B12', 'B13', 'B41', 'B66', 'B71', 'n100', 'n260']
        verizon = fingerprint.set_index('mnc').loc[480]
        assert verizon['B66'] == 2
        assert verizon['B13'] == 1
        assert verizon['B12'] == 0

    def test_fingerprint_fixed_band_set(self, bands_df):
        """Requested bands appear as columns even when no carrier uses them."""
        fingerprint = spectrum_fingerprint(bands_df, by='band', band_numbers=[2, 4, 12, 13, 14])

        assert list(fingerprint.columns[4:]) == ['B2', 'B4', 'B12', 'B13', 'B14']
        assert len(fingerprint) == 3
        assert fingerprint['B2'].sum() == 0
        assert fingerprint.set_index('mnc').loc[410, 'B12'] == 1
        assert fingerprint.set_index('mnc').loc[260, 'B12'] == 0

    def test_fingerprint_unknown_mode(self, bands_df):
        with pytest.raises(ValueError):
            spectrum_fingerprint(bands_df, by='region')

    def test_tower_counted_once_per_tier(self):
        """Two low bands on one tower count as one low-band tower."""
        bands = pd.DataFrame({
            'tower_id': [1, 1],
            'mcc': [311, 311],
            'mnc': [480, 480],
            'band_number': [13, 5],
        })

        fingerprint = spectrum_fingerprint(bands)

        assert fingerprint.iloc[0]['low'] == 1

    def test_empty_fingerprint(self):
        bands = pd.DataFrame({'tower_id': [], 'band_number': [], 'mcc': [], 'mnc': []})

        assert spectrum_fingerprint(bands).empty


class TestProviderStats:
    """Tests for provider_stats."""

    def test_provider_stats(self, towers_df, providers_df):
        stats = provider_stats(towers_df, providers_df).set_index(['mcc', 'mnc'])

        assert (999, 999) not in stats.index
        assert stats.loc[(310, 260), 'towers'] == 2
        assert stats.loc[(310, 260), 'lte_towers'] == 2
        assert stats.loc[(310, 260), 'nr_towers'] == 0
        assert stats.loc[(311, 480), 'towers'] == 2
        assert stats.loc[(311, 480), 'nr_towers'] == 2
        assert stats.loc[(313, 100), 'name'] == 'AT&T FirstNet'

    def test_duplicate_association_counted_once(self, towers_df, providers_df):
        stats = provider_stats(towers_df, providers_df).set_index(['mcc', 'mnc'])

        assert stats.loc[(310, 410), 'towers'] == 1


class TestCellStats:
    """Tests for sector_distribution, signal_stats and cells_per_tower."""

    def test_sector_distribution(self, cells_df):
        dist = sector_distribution(cells_df)

        assert dist == {
            'N': 2, 'NE': 1, 'E': 0, 'SE': 1, 'S': 0, 'SW': 1, 'W': 0, 'NW': 0, 'Unknown': 1,
        }

    def test_signal_stats(self, cells_df):
        """Sentinel SNR (>= 100) and RSRQ (<= -50) values are left out of averages."""
        stats = signal_stats(cells_df)

        assert stats['signal']['avg'] == pytest.approx(-520 / 6)
        assert stats['signal']['min'] == -100.0
        assert stats['signal']['max'] == -70.0
        assert stats['quality']['avg_snr'] == pytest.approx(11.0)
        assert stats['quality']['avg_rsrq'] == pytest.approx(-10.0)
        assert stats['quality']['valid_snr_share'] == pytest.approx(5 / 6)
        assert stats['speed']['max_down_mbps'] == 500.0
        assert stats['speed']['avg_max_down_mbps'] == pytest.approx(1080 / 5)

    def test_signal_stats_missing_columns(self):
        """Absent metrics come back as None."""
        stats = signal_stats(pd.DataFrame({'tower_id': [1]}))

        assert stats['signal']['avg'] is None
        assert stats['quality']['avg_snr'] is None
        assert stats['quality']['valid_snr_share'] is None

    def test_cells_per_tower(self, towers_df, cells_df):
        buckets = cells_per_tower(towers_df, cells_df)

        assert buckets == {
            'none': 3,
            'single': 1,
            'two_to_four': 2,
            'five_to_ten': 0,
            'many': 0,
        }


class TestTimeline:
    """Tests for tower_growth, data_freshness and recent_towers."""

    def test_tower_growth(self, towers_df):
        growth = tower_growth(towers_df, first_year=2020)

        assert growth == {
            'before_2020': 1,
            '2020': 1,
            '2021': 1,
            '2022': 1,
            '2023': 1,
            'unknown': 1,
        }

    def test_tower_growth_explicit_last_year(self, towers_df):
        growth = tower_growth(towers_df, first_year=2022, last_year=2024)

        assert list(growth) == ['before_2022', '2022', '2023', '2024', 'unknown']
        assert growth['before_2022'] == 3
        assert growth['2024'] == 0

    def test_data_freshness(self, towers_df):
        """Buckets are disjoint and relative to the reference time."""
        freshness = data_freshness(towers_df, now=NOW)

        assert freshness == {
            'last_24h': 1,
            'last_7d': 1,
            'last_30d': 1,
            'last_90d': 0,
            'last_year': 1,
            'older': 1,
            'unknown': 1,
        }

    def test_data_freshness_naive_now(self, towers_df):
        """A naive reference time is taken as UTC."""
        freshness = data_freshness(towers_df, now=datetime(2024, 6, 2))

        assert freshness['last_24h'] == 1

    def test_recent_towers(self, towers_df):
        recent = recent_towers(towers_df, limit=2)

        assert recent['tower_id'].tolist() == [4, 3]

    def test_recent_towers_with_carriers_and_cells(self, towers_df, providers_df, cells_df):
        """Rows carry resolved carrier names and a cell count."""
        recent = recent_towers(towers_df, limit=3, tower_providers=providers_df, cells=cells_df)

        assert recent['tower_id'].tolist() == [4, 3, 2]
        assert recent['carriers'].tolist() == [['AT&T FirstNet'], ['Verizon Wireless'], ['T-Mobile']]
        assert recent['cell_count'].tolist() == [0, 1, 2]

    def test_recent_towers_excludes_unknown_dates(self, towers_df):
        recent = recent_towers(towers_df, limit=10)

        assert 5 not in recent['tower_id'].tolist()
        assert len(recent) == 5


class TestFleetSummary:
    """Tests for fleet_summary."""

    def test_summary_sections(self, store):
        summary = fleet_summary(store, now=NOW)

        assert summary['dashboard']['towers'] == 6
        assert summary['towers_by_rat']['NR'] == 3
        assert summary['data_freshness']['older'] == 1
        assert len(summary['spectrum_fingerprint']) == 3
        assert summary['cells_per_tower']['two_to_four'] == 2
        assert summary['recent_towers'][0]['tower_id'] == 4
        assert summary['recent_towers'][1]['cell_count'] == 1
