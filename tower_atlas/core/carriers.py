"""
Carrier identity resolution.

Maps an (MCC, MNC) pair to a carrier display name and colour using a
static registry of US operators. Unknown codes never fail: they resolve
to the raw ``"{mcc}-{mnc}"`` pair and a neutral colour.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

# Neutral colour for carriers outside every known family
DEFAULT_CARRIER_COLOR = "#6b7280"

# Keyed by "MCC-MNC" with the MNC zero-padded to three digits
CARRIER_NAMES: Mapping[str, str] = MappingProxyType({
    # Verizon
    "311-480": "Verizon Wireless",
    "310-004": "Verizon Wireless",
    "310-010": "Verizon Wireless",
    "310-012": "Verizon Wireless",
    "310-013": "Verizon Wireless",
    **{f"311-{mnc}": "Verizon Wireless" for mnc in range(270, 290)},
    "311-390": "Verizon Wireless",
    **{f"311-{mnc}": "Verizon Wireless" for mnc in range(481, 490)},

    # AT&T
    "310-410": "AT&T",
    "310-070": "AT&T",
    "310-150": "AT&T",
    "310-170": "AT&T",
    "310-380": "AT&T",
    "310-560": "AT&T",
    "310-680": "AT&T",
    "310-980": "AT&T",
    "311-180": "AT&T",
    "312-670": "AT&T",
    "313-100": "AT&T FirstNet",

    # T-Mobile
    "310-260": "T-Mobile",
    "310-200": "T-Mobile",
    "310-210": "T-Mobile",
    "310-220": "T-Mobile",
    "310-230": "T-Mobile",
    "310-240": "T-Mobile",
    "310-250": "T-Mobile",
    "310-270": "T-Mobile",
    "310-310": "T-Mobile",
    "310-490": "T-Mobile",
    "310-580": "T-Mobile",
    "310-660": "T-Mobile",
    "310-800": "T-Mobile",
    "311-490": "T-Mobile",
    "311-882": "T-Mobile",
    "311-660": "T-Mobile",
    "312-250": "T-Mobile",

    # Sprint (merged into T-Mobile)
    "310-120": "Sprint (T-Mobile)",
    "311-870": "Sprint (T-Mobile)",
    "311-880": "Sprint (T-Mobile)",
    "312-530": "Sprint (T-Mobile)",

    # US Cellular
    **{f"311-{mnc}": "US Cellular" for mnc in range(220, 230)},

    # Dish
    "311-012": "Dish Network",
    "312-680": "Dish Network",

    # Regional
    "310-016": "Cricket Wireless",
    "310-450": "Commnet",
    "310-540": "Commnet",
    "311-040": "Commnet",
    "310-760": "PTCI",
    "311-000": "Mid-Tex Cellular",
    "311-050": "Wikes Cellular",
    "311-060": "Farmers Cellular",
    "311-070": "Easterbrooke",
    "311-090": "Stelera Wireless",
    "311-100": "Nex-Tech",
    "311-190": "Cellcom",
    "310-030": "Indigo Wireless",
    "310-034": "Airpeak",
    "310-090": "Edge Wireless",
    "310-100": "Plateau Wireless",
})

# Evaluated top to bottom. FirstNet must precede AT&T: "AT&T FirstNet"
# contains both markers and should get the FirstNet colour.
CARRIER_COLOR_PATTERNS: Tuple[Tuple[str, str], ...] = (
    ("FirstNet", "#003366"),
    ("Verizon", "#cd040b"),
    ("AT&T", "#00a8e0"),
    ("T-Mobile", "#e20074"),
    ("Sprint", "#ffe100"),
    ("US Cellular", "#0057b8"),
    ("Dish", "#ec1c24"),
)


@dataclass(frozen=True)
class CarrierIdentity:
    """Resolved display identity of a carrier."""
    mcc: int
    mnc: int
    name: str
    color: str
    known: bool

    @property
    def code(self) -> str:
        return carrier_key(self.mcc, self.mnc)

    def to_dict(self) -> dict:
        return {
            'mcc': self.mcc,
            'mnc': self.mnc,
            'name': self.name,
            'color': self.color,
        }


def carrier_key(mcc: int, mnc: int) -> str:
    """Registry key for an MCC/MNC pair, e.g. (310, 4) -> '310-004'."""
    return f"{int(mcc)}-{int(mnc):03d}"


def carrier_name(mcc: int, mnc: int) -> str:
    """Display name for an MCC/MNC pair, or ``"{mcc}-{mnc}"`` when unregistered."""
    return CARRIER_NAMES.get(carrier_key(mcc, mnc), f"{int(mcc)}-{int(mnc)}")


def carrier_family(name: str) -> Optional[str]:
    """First family marker contained in ``name``, or None."""
    for pattern, _ in CARRIER_COLOR_PATTERNS:
        if pattern in name:
            return pattern
    return None


def carrier_color(name: str) -> str:
    """Display colour for a resolved carrier name."""
    for pattern, color in CARRIER_COLOR_PATTERNS:
        if pattern in name:
            return color
    return DEFAULT_CARRIER_COLOR


def resolve(mcc: int, mnc: int) -> CarrierIdentity:
    """
    Resolve an MCC/MNC pair to a carrier identity.

    Colour matching runs on the registry name only, so an unregistered
    pair always gets ``DEFAULT_CARRIER_COLOR`` even if its fallback code
    happened to contain a marker.

    Example:
        >>> resolve(311, 480).name
        'Verizon Wireless'
        >>> resolve(999, 999).name
        '999-999'
    """
    registered = CARRIER_NAMES.get(carrier_key(mcc, mnc))
    if registered is None:
        return CarrierIdentity(
            mcc=int(mcc),
            mnc=int(mnc),
            name=f"{int(mcc)}-{int(mnc)}",
            color=DEFAULT_CARRIER_COLOR,
            known=False,
        )
    return CarrierIdentity(
        mcc=int(mcc),
        mnc=int(mnc),
        name=registered,
        color=carrier_color(registered),
        known=True,
    )
