"""
Tests for carrier identity resolution.
"""
import pytest

from tower_atlas.core.carriers import (
    CARRIER_NAMES,
    DEFAULT_CARRIER_COLOR,
    carrier_color,
    carrier_family,
    carrier_key,
    carrier_name,
    resolve,
)


class TestCarrierKey:
    """Tests for registry key formatting."""

    def test_mnc_zero_padded(self):
        """Two-digit MNCs are padded to three digits."""
        assert carrier_key(310, 4) == "310-004"

    def test_three_digit_mnc(self):
        assert carrier_key(311, 480) == "311-480"


class TestResolve:
    """Tests for resolve()."""

    def test_verizon(self):
        """311-480 resolves to Verizon with the Verizon colour."""
        identity = resolve(311, 480)

        assert identity.name == "Verizon Wireless"
        assert identity.color == "#cd040b"
        assert identity.known is True

    def test_verizon_range(self):
        """Codes registered as ranges resolve like explicit ones."""
        assert resolve(311, 275).name == "Verizon Wireless"
        assert resolve(311, 489).name == "Verizon Wireless"

    def test_unknown_code_falls_back(self):
        """Unregistered codes use the raw pair and the neutral colour."""
        identity = resolve(999, 999)

        assert identity.name == "999-999"
        assert identity.color == DEFAULT_CARRIER_COLOR
        assert identity.known is False

    def test_unknown_fallback_uses_raw_mnc(self):
        """The fallback name is not zero-padded."""
        assert resolve(310, 5).name == "310-5"

    def test_firstnet_precedes_att(self):
        """'AT&T FirstNet' gets the FirstNet colour, not the AT&T one."""
        identity = resolve(313, 100)

        assert identity.name == "AT&T FirstNet"
        assert identity.color == "#003366"

    def test_att(self):
        assert resolve(310, 410).color == "#00a8e0"

    def test_tmobile(self):
        assert resolve(310, 260).color == "#e20074"

    def test_sprint_takes_tmobile_colour(self):
        """Sprint codes carry the T-Mobile marker in their name and get its colour."""
        identity = resolve(310, 120)

        assert "Sprint" in identity.name
        assert identity.color == "#e20074"
        assert carrier_family(identity.name) == "T-Mobile"

    def test_plain_sprint_name(self):
        assert carrier_color("Sprint") == "#ffe100"

    def test_regional_carrier_neutral_colour(self):
        """Registered carriers outside every family get the neutral colour."""
        identity = resolve(310, 450)

        assert identity.known is True
        assert identity.color == DEFAULT_CARRIER_COLOR

    def test_deterministic(self):
        """Resolving the same pair twice gives equal identities."""
        assert resolve(311, 480) == resolve(311, 480)

    def test_to_dict(self):
        data = resolve(311, 480).to_dict()

        assert data == {
            'mcc': 311,
            'mnc': 480,
            'name': 'Verizon Wireless',
            'color': '#cd040b',
        }


class TestNameAndColorHelpers:
    """Tests for carrier_name, carrier_color and carrier_family."""

    def test_carrier_name_fallback(self):
        assert carrier_name(123, 45) == "123-45"

    def test_carrier_color_substring_match(self):
        """Colour matching is by substring anywhere in the name."""
        assert carrier_color("Regional Verizon Partner") == "#cd040b"

    def test_carrier_color_unknown(self):
        assert carrier_color("Acme Mobile") == DEFAULT_CARRIER_COLOR

    def test_carrier_family(self):
        assert carrier_family("AT&T FirstNet") == "FirstNet"
        assert carrier_family("Acme Mobile") is None

    def test_registry_is_read_only(self):
        """The registry cannot be modified at runtime."""
        with pytest.raises(TypeError):
            CARRIER_NAMES["999-999"] = "Acme"
