"""
Tests for bearing octant binning.
"""
import math

import pandas as pd
import pytest

from tower_atlas.core.bearing import COMPASS_ORDER, Octant, bin_bearing, bin_series


class TestBinBearing:
    """Tests for bin_bearing()."""

    @pytest.mark.parametrize("bearing,expected", [
        (0, Octant.N),
        (22.99, Octant.N),
        (23, Octant.NE),
        (45, Octant.NE),
        (68, Octant.E),
        (113, Octant.SE),
        (158, Octant.S),
        (180, Octant.S),
        (203, Octant.SW),
        (248, Octant.W),
        (293, Octant.NW),
        (336.99, Octant.NW),
        (337, Octant.N),
        (359.9, Octant.N),
    ])
    def test_arc_boundaries(self, bearing, expected):
        """Arcs are lower-inclusive and North wraps across 0/360."""
        assert bin_bearing(bearing) is expected

    @pytest.mark.parametrize("bearing", [None, math.nan, math.inf, -1, 360, 400, "north", True])
    def test_unknown(self, bearing):
        """Null, non-finite, out-of-range and non-numeric bearings are Unknown."""
        assert bin_bearing(bearing) is Octant.UNKNOWN

    def test_numeric_string(self):
        assert bin_bearing("90") is Octant.E

    def test_every_whole_degree_binned(self):
        """Every bearing in [0, 360) falls in exactly one of the eight octants."""
        octants = {bin_bearing(b) for b in range(360)}

        assert octants == set(COMPASS_ORDER)


class TestBinSeries:
    """Tests for bin_series()."""

    def test_values(self):
        result = bin_series(pd.Series([0.0, 90.0, None, 359.9, 720.0]))

        assert result.tolist() == ['N', 'E', 'Unknown', 'N', 'Unknown']

    def test_non_numeric_values_unknown(self):
        result = bin_series(pd.Series(['180', 'abc']))

        assert result.tolist() == ['S', 'Unknown']
