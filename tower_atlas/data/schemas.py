"""
Pydantic schemas for query parameters and fact records.

Bounds and Viewport validate map input coming from the UI. The record
schemas describe one row of each fact table and are used to screen
rows when loading from files.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

import pandas as pd
from pydantic import BaseModel, Field, field_validator, model_validator
from shapely.geometry import box, Polygon


class TowerType(str, Enum):
    """Site classification of a tower."""
    MACRO = "MACRO"
    MICRO = "MICRO"
    PICO = "PICO"
    DAS = "DAS"
    COW = "COW"
    DECOMMISSIONED = "DECOMMISSIONED"
    SMALL_CELL = "SMALL_CELL"
    INDOOR = "INDOOR"


KNOWN_RATS = ("LTE", "NR", "GSM", "CDMA", "UMTS")


def normalize_tower_type(value) -> Optional[str]:
    """Canonical tower type spelling: 'small-cell' and 'Small Cell' become 'SMALL_CELL'."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return str(value).strip().upper().replace('-', '_').replace(' ', '_') or None


def split_rats(value) -> List[str]:
    """
    Parse the tabular ``rat`` column ('LTE', 'LTE,NR', 'nr | lte') into
    a sorted list of distinct upper-case RAT names.
    """
    if value is None:
        return []
    try:
        if pd.isna(value):
            return []
    except (TypeError, ValueError):
        pass
    if isinstance(value, (list, tuple, set, frozenset)):
        parts = value
    else:
        parts = str(value).replace('|', ',').split(',')
    return sorted({str(p).strip().upper() for p in parts if str(p).strip()})


class Bounds(BaseModel):
    """
    Geographic bounding box in decimal degrees (edges inclusive).

    Example:
        >>> Bounds(min_lat=40.0, max_lat=41.0, min_lng=-75.0, max_lng=-73.0)
    """
    min_lat: float = Field(..., ge=-90, le=90, description="Southern edge")
    max_lat: float = Field(..., ge=-90, le=90, description="Northern edge")
    min_lng: float = Field(..., ge=-180, le=180, description="Western edge")
    max_lng: float = Field(..., ge=-180, le=180, description="Eastern edge")

    model_config = {"frozen": True}

    @model_validator(mode='after')
    def check_ordering(self):
        if self.min_lat > self.max_lat:
            raise ValueError(f"min_lat ({self.min_lat}) exceeds max_lat ({self.max_lat})")
        if self.min_lng > self.max_lng:
            raise ValueError(f"min_lng ({self.min_lng}) exceeds max_lng ({self.max_lng})")
        return self

    @classmethod
    def world(cls) -> 'Bounds':
        return cls(min_lat=-90.0, max_lat=90.0, min_lng=-180.0, max_lng=180.0)

    def extend_upper(self, lat_pad: float, lng_pad: float) -> 'Bounds':
        """Bounds grown northwards and eastwards, clamped to the globe."""
        return Bounds(
            min_lat=self.min_lat,
            max_lat=min(self.max_lat + lat_pad, 90.0),
            min_lng=self.min_lng,
            max_lng=min(self.max_lng + lng_pad, 180.0),
        )

    def contains_mask(self, lat: pd.Series, lng: pd.Series) -> pd.Series:
        """Boolean mask of points inside the box."""
        return (
            lat.between(self.min_lat, self.max_lat)
            & lng.between(self.min_lng, self.max_lng)
        )

    def to_polygon(self) -> Polygon:
        return box(self.min_lng, self.min_lat, self.max_lng, self.max_lat)


class Viewport(BaseModel):
    """Visible map region plus zoom index (larger is closer)."""
    bounds: Bounds
    zoom: float = Field(..., ge=0, le=30, description="Map zoom level")


class TowerRecord(BaseModel):
    """Schema for one row of the towers table."""
    tower_id: int = Field(..., ge=0)
    external_id: Optional[str] = None
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    tower_type: Optional[TowerType] = None
    rat: Optional[str] = Field(None, description="Comma-separated RATs served")
    endc_available: bool = False
    first_seen_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None

    @field_validator('tower_type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return normalize_tower_type(v)
        return v

    @property
    def rats(self) -> List[str]:
        return split_rats(self.rat)

    model_config = {"str_strip_whitespace": True}


class TowerProviderRecord(BaseModel):
    """Schema for one tower/carrier association."""
    tower_id: int = Field(..., ge=0)
    mcc: int = Field(..., ge=0, le=999, description="Mobile country code")
    mnc: int = Field(..., ge=0, le=999, description="Mobile network code")
    visible: bool = True


class CellRecord(BaseModel):
    """
    Schema for one radio cell (sector).

    Bearing and quality metrics are not range-checked here: out-of-range
    values are binned as Unknown or left out of averages downstream.
    """
    cell_id: Optional[int] = None
    tower_id: int = Field(..., ge=0)
    mcc: Optional[int] = Field(None, ge=0, le=999)
    mnc: Optional[int] = Field(None, ge=0, le=999)
    rat: Optional[str] = None
    pci: Optional[int] = Field(None, ge=0, le=1007, description="Physical cell ID (NR max 1007)")
    earfcn: Optional[int] = Field(None, ge=0)
    bearing: Optional[float] = None
    signal: Optional[float] = None
    snr: Optional[float] = None
    rsrq: Optional[float] = None
    max_speed_down_mbps: Optional[float] = Field(None, ge=0)
    avg_speed_down_mbps: Optional[float] = Field(None, ge=0)
    max_speed_up_mbps: Optional[float] = Field(None, ge=0)
    avg_speed_up_mbps: Optional[float] = Field(None, ge=0)


class BandRecord(BaseModel):
    """Schema for one band allocation on a tower."""
    tower_id: int = Field(..., ge=0)
    mcc: Optional[int] = Field(None, ge=0, le=999)
    mnc: Optional[int] = Field(None, ge=0, le=999)
    band_number: int = Field(..., ge=0)
    name: Optional[str] = None
    channel: Optional[int] = None
    bandwidth_mhz: Optional[float] = Field(None, ge=0)
    modulation: Optional[str] = None


RECORD_SCHEMAS = {
    'towers': TowerRecord,
    'tower_providers': TowerProviderRecord,
    'cells': CellRecord,
    'bands': BandRecord,
}
