"""Builders turning tokenized feed rows into typed weekly and monthly records."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Mapping

from pipelines.cleaning import (
    FIELD_ALIASES,
    MONTHLY_FIELD_ALIASES,
    clean_and_parse_float,
    clean_and_parse_int,
    get_data_from_row,
)
from pipelines.model import MonthlyRecord, Region, WeeklyRecord

logger = logging.getLogger(__name__)

WEEK_LABEL_FALLBACK = "N/A"

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%b %d, %Y", "%B %d, %Y")
_MONTH_FORMATS = ("%B %d, %Y", "%b %d, %Y", "%m %d, %Y")


def parse_date(raw: str | None) -> date | None:
    """Parse a published date cell, returning ``None`` when it is not a calendar date."""

    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def format_range_date(value: date | None) -> str | None:
    if value is None:
        return None
    return f"{value:%b} {value.day}"


def first_of_month(month: str, year: int) -> date | None:
    """Resolve ``"{month} 1, {year}"`` into a date; month may be a name or a number."""

    text = f"{month} 1, {year}"
    for fmt in _MONTH_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _week_label(row: Mapping[str, str], end_date: date) -> str:
    label = get_data_from_row(row, FIELD_ALIASES["week_label"])
    if label:
        return label
    start = format_range_date(
        parse_date(get_data_from_row(row, FIELD_ALIASES["start_date"]))
    )
    end = format_range_date(end_date)
    if start and end:
        return f"{start} - {end}"
    return WEEK_LABEL_FALLBACK


def build_weekly_record(
    row: Mapping[str, str], region: Region, index: int
) -> WeeklyRecord | None:
    """Build a weekly record, or ``None`` when the row has no usable end date."""

    end_date = parse_date(get_data_from_row(row, FIELD_ALIASES["end_date"]))
    if end_date is None:
        logger.debug("Dropping weekly row %s for %s: no end date.", index, region.value)
        return None

    def field(name: str) -> str | None:
        return get_data_from_row(row, FIELD_ALIASES[name])

    return WeeklyRecord(
        id=f"w-{region.value}-{index}",
        week_label=_week_label(row, end_date),
        week_end_date=end_date,
        region=region,
        avg_price=clean_and_parse_float(field("avg_price")),
        med_price=clean_and_parse_float(field("med_price")),
        sales_volume=clean_and_parse_int(field("sales_volume")),
        active_listings=clean_and_parse_int(field("active_listings")),
        months_of_inventory=clean_and_parse_float(field("months_of_inventory")),
        sold_to_list_ratio=clean_and_parse_float(field("sold_to_list_ratio")),
        above_list_price_pct=clean_and_parse_float(field("above_list_price_pct")),
    )


def build_monthly_record(
    row: Mapping[str, str], region: Region, index: int
) -> MonthlyRecord | None:
    """Build a monthly record, or ``None`` when year/month do not resolve to a date."""

    def field(name: str) -> str | None:
        return get_data_from_row(row, MONTHLY_FIELD_ALIASES[name])

    year = clean_and_parse_int(field("year"))
    month = field("month")
    if not year or not month:
        logger.debug("Dropping monthly row %s for %s: missing year or month.", index, region.value)
        return None
    period = first_of_month(month, year)
    if period is None:
        logger.debug(
            "Dropping monthly row %s for %s: cannot parse %r %r.", index, region.value, month, year
        )
        return None

    return MonthlyRecord(
        id=f"m-{region.value}-{index}",
        year=year,
        month=month,
        date=period,
        region=region,
        avg_price=clean_and_parse_float(field("avg_price")),
        med_price=clean_and_parse_float(field("med_price")),
        sales_volume=clean_and_parse_int(field("sales_volume")),
        active_listings=clean_and_parse_int(field("active_listings")),
        months_of_inventory=clean_and_parse_float(field("months_of_inventory")),
        sold_to_list_ratio=clean_and_parse_float(field("sold_to_list_ratio")),
    )


def parse_weekly_rows(rows: Iterable[Mapping[str, str]], region: Region) -> list[WeeklyRecord]:
    records = (build_weekly_record(row, region, index) for index, row in enumerate(rows))
    return [record for record in records if record is not None]


def parse_monthly_rows(rows: Iterable[Mapping[str, str]], region: Region) -> list[MonthlyRecord]:
    records = (build_monthly_record(row, region, index) for index, row in enumerate(rows))
    return [record for record in records if record is not None]


__all__ = [
    "WEEK_LABEL_FALLBACK",
    "build_monthly_record",
    "build_weekly_record",
    "first_of_month",
    "format_range_date",
    "parse_date",
    "parse_monthly_rows",
    "parse_weekly_rows",
]
