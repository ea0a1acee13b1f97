from datetime import date

import pytest
from pydantic import ValidationError

from pipelines.model import Granularity, MarketDataState, MonthlyRecord, Region, WeeklyRecord


def test_weekly_record_serialization():
    record = WeeklyRecord(
        id="w-Kingston-0",
        week_label="Nov 24 - Dec 1",
        week_end_date="2024-12-01",
        region="Kingston",
        avg_price=612500,
    )

    assert record.region is Region.KINGSTON
    assert record.week_end_date == date(2024, 12, 1)
    assert record.avg_price == pytest.approx(612500.0)

    serialized = record.model_dump(mode="json")
    assert serialized["week_end_date"] == "2024-12-01"
    assert serialized["region"] == "Kingston"
    assert serialized["above_list_price_pct"] is None


def test_records_are_immutable():
    record = MonthlyRecord(
        id="m-Kingston-0", year=2024, month="November", date=date(2024, 11, 1), region=Region.KINGSTON
    )

    with pytest.raises(ValidationError):
        record.avg_price = 1.0


def test_weekly_record_requires_a_date():
    with pytest.raises(ValueError):
        WeeklyRecord(id="w", week_label="N/A", week_end_date="not-a-date", region=Region.KINGSTON)


def test_state_records_by_granularity():
    state = MarketDataState()

    assert state.loading is True
    assert state.records(Granularity.WEEKLY) == ()
    assert state.records(Granularity.MONTHLY) == ()
