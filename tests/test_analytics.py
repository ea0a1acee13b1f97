from datetime import date, timedelta

import pytest

from pipelines.analytics import (
    MONTHLY_WINDOW,
    WEEKLY_WINDOW,
    calculate_change,
    current_and_previous,
    format_currency,
    format_number,
    format_percentage,
    latest_by_region,
    market_summary,
    recent_window,
    sort_newest_first,
    status_banner,
    trend_direction,
)
from pipelines.model import MarketDataState, MonthlyRecord, Region, WeeklyRecord


def _weekly(region: Region, end: date, index: int = 0, **metrics) -> WeeklyRecord:
    return WeeklyRecord(
        id=f"w-{region.value}-{index}",
        week_label="N/A",
        week_end_date=end,
        region=region,
        **metrics,
    )


def _monthly(region: Region, year: int, month: int) -> MonthlyRecord:
    period = date(year, month, 1)
    return MonthlyRecord(
        id=f"m-{region.value}-{month}",
        year=year,
        month=period.strftime("%B"),
        date=period,
        region=region,
    )


def test_calculate_change():
    assert calculate_change(110, 100) == pytest.approx(10.0)
    assert calculate_change(90, 100) == pytest.approx(-10.0)
    assert calculate_change(5, 0) == 0
    assert calculate_change(5, None) == 0
    assert calculate_change(None, 5) == 0


def test_trend_direction():
    assert trend_direction(2, 1) == "up"
    assert trend_direction(1, 2) == "down"
    assert trend_direction(1, 1) == "flat"
    assert trend_direction(None, 1) == "flat"


def test_latest_by_region_returns_newest_record_per_region():
    start = date(2024, 1, 7)
    regions = [Region.KINGSTON, Region.NAPANEE, Region.HASTINGS]
    records = [
        _weekly(region, start + timedelta(weeks=week), index=week)
        for week in range(6)
        for region in regions
        if not (region is Region.HASTINGS and week > 3)
    ]

    latest = latest_by_region(sort_newest_first(records))

    by_region = {record.region: record for record in latest}
    assert len(latest) == 3
    assert set(by_region) == set(regions)
    assert by_region[Region.KINGSTON].week_end_date == start + timedelta(weeks=5)
    assert by_region[Region.NAPANEE].week_end_date == start + timedelta(weeks=5)
    assert by_region[Region.HASTINGS].week_end_date == start + timedelta(weeks=3)


def test_latest_by_region_stops_once_every_region_is_seen():
    consumed = []

    def newest_first():
        for record in [_weekly(Region.KINGSTON, date(2024, 2, 4)), _weekly(Region.NAPANEE, date(2024, 2, 4))]:
            consumed.append(record)
            yield record
        raise AssertionError("walked past the last region")

    latest = latest_by_region(newest_first(), regions=[Region.KINGSTON, Region.NAPANEE])

    assert len(latest) == 2
    assert len(consumed) == 2


def test_recent_window_counts_distinct_weeks_not_records():
    start = date(2023, 1, 1)
    weeks = [start + timedelta(weeks=offset) for offset in range(80)]
    records = [
        _weekly(region, end, index=offset)
        for offset, end in enumerate(weeks)
        for region in (Region.KINGSTON, Region.BELLEVILLE)
    ]

    window = recent_window(list(reversed(records)), WEEKLY_WINDOW)

    kept = sorted({record.week_end_date for record in window})
    assert kept == weeks[-52:]
    assert len(window) == 104
    assert window[0].week_end_date == weeks[28]
    assert window[-1].week_end_date == weeks[-1]


def test_recent_window_monthly():
    records = [_monthly(Region.KINGSTON, year, month) for year in (2022, 2023, 2024) for month in range(1, 13)]

    window = recent_window(records, MONTHLY_WINDOW)

    assert len(window) == 24
    assert window[0].date == date(2023, 1, 1)


def test_current_and_previous_and_summary():
    records = [
        _weekly(Region.KINGSTON, date(2024, 11, 24), avg_price=500000.0, sales_volume=40),
        _weekly(Region.KINGSTON, date(2024, 12, 1), avg_price=550000.0, sales_volume=30),
        _weekly(Region.NAPANEE, date(2024, 12, 8), avg_price=1.0),
    ]

    current, previous = current_and_previous(records, Region.KINGSTON)
    summary = {item.metric: item for item in market_summary(records, Region.KINGSTON)}

    assert current.week_end_date == date(2024, 12, 1)
    assert previous.week_end_date == date(2024, 11, 24)
    assert summary["avg_price"].change_pct == pytest.approx(10.0)
    assert summary["avg_price"].trend == "up"
    assert summary["sales_volume"].change_pct == pytest.approx(-25.0)
    assert summary["months_of_inventory"].change_pct == 0
    assert market_summary(records, Region.HASTINGS) == []


def test_status_banner():
    record = _weekly(Region.KINGSTON, date(2024, 12, 1))

    assert status_banner(MarketDataState(loading=False)) is None
    assert status_banner(MarketDataState(loading=False, error="boom")).severity == "blocking"
    assert status_banner(MarketDataState(weekly=(record,), loading=False, error="boom")).severity == "warning"


def test_formatting():
    assert format_currency(612500.4) == "$612,500"
    assert format_currency(None) == "N/A"
    assert format_number(1234) == "1,234"
    assert format_number(2.5) == "2.5"
    assert format_percentage(98.5) == "98.5%"
    assert format_percentage(None) == "N/A"


def test_latest_by_region_only_returns_requested_regions():
    newer, older = date(2024, 12, 8), date(2024, 12, 1)
    records = [
        _weekly(Region.FRONTENAC, newer),
        _weekly(Region.BELLEVILLE, newer),
        _weekly(Region.KINGSTON, older),
        _weekly(Region.NAPANEE, older),
        _weekly(Region.KINGSTON, date(2024, 11, 24), index=1),
    ]

    latest = latest_by_region(records, regions=[Region.KINGSTON, Region.NAPANEE])

    assert [record.region for record in latest] == [Region.KINGSTON, Region.NAPANEE]
    assert all(record.week_end_date == older for record in latest)


def test_format_percentage_keeps_full_precision():
    assert format_percentage(98.123456) == "98.123456%"
    assert format_percentage(1234567.5) == "1234567.5%"
    assert format_percentage(100.0) == "100%"


def test_format_currency_puts_sign_before_symbol():
    assert format_currency(-1500) == "-$1,500"
    assert format_currency(1500) == "$1,500"
