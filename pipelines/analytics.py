"""Derived analytics over merged market records.

Everything here is a pure function of the records passed in; consumers call
these on a store snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Literal, Optional, Sequence, TypeVar

from pipelines.model import MarketDataState, MarketRecord, Region, WeeklyRecord

WEEKLY_WINDOW = 52
MONTHLY_WINDOW = 24
NOT_AVAILABLE = "N/A"

R = TypeVar("R", bound=MarketRecord)

Trend = Literal["up", "down", "flat"]


def period_key(record: MarketRecord) -> date:
    if isinstance(record, WeeklyRecord):
        return record.week_end_date
    return record.date


def calculate_change(current: Optional[float], previous: Optional[float]) -> float:
    """Percent change from ``previous`` to ``current``; 0.0 when there is nothing to compare."""

    if current is None or previous is None or previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def trend_direction(current: Optional[float], previous: Optional[float]) -> Trend:
    if current is None or previous is None:
        return "flat"
    if current > previous:
        return "up"
    if current < previous:
        return "down"
    return "flat"


def sort_newest_first(records: Iterable[R]) -> list[R]:
    return sorted(records, key=period_key, reverse=True)


def latest_by_region(
    records_newest_first: Iterable[R], regions: Iterable[Region] = tuple(Region)
) -> list[R]:
    """Pick the first (newest) record seen for each region in ``regions``.

    ``records_newest_first`` must already be ordered newest first. The walk stops
    as soon as every region in ``regions`` has been captured.
    """

    wanted = set(regions)
    latest: dict[Region, R] = {}
    for record in records_newest_first:
        if record.region not in wanted:
            continue
        latest.setdefault(record.region, record)
        if len(latest) == len(wanted):
            break
    return list(latest.values())


def recent_window(records: Sequence[R], size: int) -> list[R]:
    """Keep records whose period is among the ``size`` most recent distinct periods.

    Periods are counted once however many regions report them. The result is
    ordered oldest to newest.
    """

    if size <= 0:
        return []
    ordered = sorted(records, key=period_key)
    distinct = list(dict.fromkeys(period_key(record) for record in ordered))
    keep = set(distinct[-size:])
    return [record for record in ordered if period_key(record) in keep]


def region_history(records: Iterable[R], region: Region) -> list[R]:
    """One region's records, newest first."""
    return sort_newest_first(record for record in records if record.region == region)


def current_and_previous(
    records: Iterable[R], region: Region
) -> tuple[Optional[R], Optional[R]]:
    history = region_history(records, region)
    current = history[0] if history else None
    previous = history[1] if len(history) > 1 else None
    return current, previous


@dataclass(frozen=True)
class MetricChange:
    metric: str
    label: str
    value: Optional[float]
    previous: Optional[float]
    change_pct: float
    trend: Trend


HEADLINE_METRICS: tuple[tuple[str, str], ...] = (
    ("avg_price", "Avg Price"),
    ("sales_volume", "Sales Vol"),
    ("months_of_inventory", "Inventory (MOI)"),
    ("sold_to_list_ratio", "SP/LP %"),
)


def market_summary(records: Iterable[MarketRecord], region: Region) -> list[MetricChange]:
    """Headline metrics for a region's latest period compared to the period before."""

    current, previous = current_and_previous(records, region)
    if current is None:
        return []
    summary = []
    for metric, label in HEADLINE_METRICS:
        value = getattr(current, metric)
        prior = getattr(previous, metric) if previous is not None else None
        summary.append(
            MetricChange(
                metric=metric,
                label=label,
                value=value,
                previous=prior,
                change_pct=calculate_change(value, prior),
                trend=trend_direction(value, prior),
            )
        )
    return summary


@dataclass(frozen=True)
class StatusBanner:
    severity: Literal["blocking", "warning"]
    message: str


def status_banner(state: MarketDataState) -> StatusBanner | None:
    """How an error should be surfaced given the data already published."""

    if not state.error:
        return None
    if state.weekly or state.monthly:
        return StatusBanner(severity="warning", message=state.error)
    return StatusBanner(severity="blocking", message=state.error)


def format_currency(value: Optional[float]) -> str:
    if value is None:
        return NOT_AVAILABLE
    sign = "-" if round(value) < 0 else ""
    return f"{sign}${abs(value):,.0f}"


def format_number(value: Optional[float]) -> str:
    if value is None:
        return NOT_AVAILABLE
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,}"


def format_percentage(value: Optional[float]) -> str:
    if value is None:
        return NOT_AVAILABLE
    if float(value).is_integer():
        return f"{int(value)}%"
    return f"{value}%"


__all__ = [
    "HEADLINE_METRICS",
    "MONTHLY_WINDOW",
    "MetricChange",
    "StatusBanner",
    "WEEKLY_WINDOW",
    "calculate_change",
    "current_and_previous",
    "format_currency",
    "format_number",
    "format_percentage",
    "latest_by_region",
    "market_summary",
    "period_key",
    "recent_window",
    "region_history",
    "sort_newest_first",
    "status_banner",
    "trend_direction",
]
