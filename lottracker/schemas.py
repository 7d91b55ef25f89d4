# lottracker/schemas.py
"""Wire models for lots.

Field names are snake_case in Python and camelCase on the wire; consumers
depend on the camelCase names.
"""
from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SaleStatus(str, Enum):
    FUTURE = "FUTURE"
    UPCOMING = "UPCOMING"
    SOON_PLAYING = "SOON_PLAYING"
    NOW_PLAYING = "NOW_PLAYING"
    SOLD_RECENTLY = "SOLD_RECENTLY"
    SOLD = "SOLD"
    LIVE = "LIVE"
    UNKNOWN = "UNKNOWN"

    @property
    def description(self) -> str:
        return STATUS_DESCRIPTIONS[self]


STATUS_DESCRIPTIONS = {
    SaleStatus.FUTURE: "Future",
    SaleStatus.UPCOMING: "Upcoming",
    SaleStatus.SOON_PLAYING: "Soon Playing",
    SaleStatus.NOW_PLAYING: "Now Playing",
    SaleStatus.SOLD_RECENTLY: "Recently Sold",
    SaleStatus.SOLD: "Sold",
    SaleStatus.LIVE: "Live Now",
    SaleStatus.UNKNOWN: "Status Unknown",
}


class Bucket(str, Enum):
    SOON = "soon"
    FUTURE = "future"
    RECENT = "recent"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Odometer(CamelModel):
    value: float
    unit: Literal["mi", "km"]


class Listing(CamelModel):
    lot_number: str = Field(..., max_length=64)
    title: Optional[str] = None
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    vin: Optional[str] = None
    odometer: Optional[Odometer] = None
    primary_damage: Optional[str] = None
    secondary_damage: Optional[str] = None
    title_status: Optional[str] = None
    title_type: Optional[str] = None
    vehicle_type: Optional[str] = None
    drive: Optional[str] = None
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None
    color: Optional[str] = None
    image_url: Optional[str] = None
    location: Optional[str] = None
    current_bid: Optional[float] = None
    buy_it_now: Optional[float] = None
    has_buy_now: bool = False
    keys: bool = False
    start_code: Optional[str] = None
    highlights: List[str] = Field(default_factory=list)
    sale_date: Optional[str] = None
    sale_time: Optional[str] = None
    time_zone: str = "America/New_York"
    sale_status: SaleStatus = SaleStatus.UNKNOWN
    sale_status_description: str = STATUS_DESCRIPTIONS[SaleStatus.UNKNOWN]


class TrackedListing(Listing):
    """A listing as held by the tracking list, with user-owned fields."""

    is_favorite: bool = False
    notes: str = ""
    added_at: Optional[str] = None
    last_updated: Optional[str] = None


class DisplayedListing(TrackedListing):
    bucket: Bucket


class Dashboard(CamelModel):
    soon: List[DisplayedListing] = Field(default_factory=list)
    future: List[DisplayedListing] = Field(default_factory=list)
    recent: List[DisplayedListing] = Field(default_factory=list)


class LotAdd(BaseModel):
    lot: str = Field(..., min_length=1, max_length=255)


class LotUpdate(CamelModel):
    is_favorite: Optional[bool] = None
    notes: Optional[str] = None


class RefreshSummary(CamelModel):
    refreshed: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
