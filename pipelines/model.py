"""Canonical data model for weekly and monthly market statistics."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Region(str, Enum):
    """Geographic market areas with a published statistics feed."""

    KINGSTON = "Kingston"
    PRINCE_EDWARD_COUNTY = "Prince Edward County"
    FRONTENAC = "Frontenac"
    BELLEVILLE = "Belleville"
    HASTINGS = "Hastings"
    BROCKVILLE = "Brockville"
    NAPANEE = "Napanee"
    SMITHS_FALLS = "Smiths Falls"


class Granularity(str, Enum):
    """Reporting cadence of a feed."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"


class _MarketRecord(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        ..., description="Granularity tag, region and row index within the source feed."
    )
    region: Region = Field(
        ..., description="Region assigned from the feed configuration, never from row content."
    )
    avg_price: Optional[float] = Field(default=None, description="Average sale price.")
    med_price: Optional[float] = Field(default=None, description="Median sale price.")
    sales_volume: Optional[int] = Field(default=None, description="Number of sales.")
    active_listings: Optional[int] = Field(
        default=None, description="Active listings at period end."
    )
    months_of_inventory: Optional[float] = Field(
        default=None, description="Months of inventory (MOI)."
    )
    sold_to_list_ratio: Optional[float] = Field(
        default=None, description="Sold price to list price ratio, as a percentage."
    )


class WeeklyRecord(_MarketRecord):
    """One region's statistics for a single reporting week."""

    week_label: str = Field(..., description="Display label such as 'Nov 24 - Dec 1'.")
    week_end_date: dt.date = Field(..., description="Last day of the reporting week.")
    above_list_price_pct: Optional[float] = Field(
        default=None, description="Share of sales closing above list price."
    )


class MonthlyRecord(_MarketRecord):
    """One region's statistics for a calendar month."""

    year: int
    month: str = Field(..., description="Month name as published, e.g. 'January'.")
    date: dt.date = Field(..., description="First day of the month.")


MarketRecord = Union[WeeklyRecord, MonthlyRecord]


class MarketDataState(BaseModel):
    """Immutable snapshot of the merged store as seen by consumers."""

    model_config = ConfigDict(frozen=True)

    weekly: tuple[WeeklyRecord, ...] = ()
    monthly: tuple[MonthlyRecord, ...] = ()
    loading: bool = True
    error: Optional[str] = None

    def records(self, granularity: Granularity) -> tuple[MarketRecord, ...]:
        if granularity is Granularity.WEEKLY:
            return self.weekly
        return self.monthly


__all__ = [
    "Granularity",
    "MarketDataState",
    "MarketRecord",
    "MonthlyRecord",
    "Region",
    "WeeklyRecord",
]
