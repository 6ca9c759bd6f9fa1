"""Unit tests for the consumption aggregation logic."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from models.records import NOT_APPLICABLE, Defined, MonthlyConsumption, Reading
from services.aggregator import MeterReadingAggregator


def _reading(value: float, year: int, month: int, day: int, hour: int = 9) -> Reading:
    """Helper to build deterministic meter readings."""

    moment = datetime(year, month, day, hour, tzinfo=timezone.utc)
    return Reading(value=value, reading_date=moment, created_at=moment)


def _scenario() -> list[Reading]:
    # Deliberately out of chronological order.
    return [
        _reading(150, 2024, 1, 20),
        _reading(170, 2024, 2, 5),
        _reading(100, 2024, 1, 1),
    ]


def test_latest_reading_uses_reading_date_not_position() -> None:
    aggregator = MeterReadingAggregator()

    latest = aggregator.latest_reading(_scenario())

    assert latest is not None
    assert latest.value == 170


def test_latest_reading_of_empty_series_is_none() -> None:
    assert MeterReadingAggregator().latest_reading([]) is None


def test_with_consumption_pairs_each_reading_with_previous() -> None:
    aggregator = MeterReadingAggregator()

    rows = aggregator.with_consumption(_scenario(), unit_price=2800)

    assert [row.reading.value for row in rows] == [170, 150, 100]
    assert rows[0].consumption == Defined(amount=20, cost=56000)
    assert rows[1].consumption == Defined(amount=50, cost=140000)
    assert rows[2].consumption is NOT_APPLICABLE


def test_with_consumption_has_one_sentinel_per_series() -> None:
    aggregator = MeterReadingAggregator()
    readings = [_reading(10 * index, 2024, 3, index + 1) for index in range(6)]

    rows = aggregator.with_consumption(readings, unit_price=1.0)

    assert len(rows) == len(readings)
    defined = [row for row in rows if isinstance(row.consumption, Defined)]
    assert len(defined) == len(readings) - 1
    assert rows[-1].consumption is NOT_APPLICABLE


def test_with_consumption_clamps_decreasing_values() -> None:
    aggregator = MeterReadingAggregator()
    readings = [_reading(100, 2024, 1, 1), _reading(90, 2024, 1, 15)]

    rows = aggregator.with_consumption(readings, unit_price=5.0)

    assert rows[0].consumption == Defined(amount=0.0, cost=0.0)


def test_with_consumption_does_not_mutate_input() -> None:
    aggregator = MeterReadingAggregator()
    readings = _scenario()
    snapshot = list(readings)

    aggregator.with_consumption(readings, unit_price=1.0)

    assert readings == snapshot


def test_monthly_groups_by_calendar_month_newest_first() -> None:
    aggregator = MeterReadingAggregator()

    months = aggregator.monthly(_scenario(), unit_price=2800)

    assert [entry.year_month for entry in months] == ["2024-02", "2024-01"]

    february, january = months
    assert february.first_reading is february.last_reading
    assert february.first_reading.value == 170
    assert february.reading_count == 1
    assert february.consumption == 0
    assert february.cost == 0

    assert january.first_reading.value == 100
    assert january.last_reading.value == 150
    assert january.consumption == 50
    assert january.cost == 140000
    assert january.month_name == "January 2024"


def test_monthly_clamps_negative_month() -> None:
    aggregator = MeterReadingAggregator()
    readings = [_reading(100, 2024, 1, 1), _reading(90, 2024, 1, 15)]

    (january,) = aggregator.monthly(readings, unit_price=3.0)

    assert january.consumption == 0
    assert january.cost == 0


def test_monthly_omits_months_without_readings() -> None:
    aggregator = MeterReadingAggregator()
    readings = [_reading(10, 2024, 1, 3), _reading(40, 2024, 4, 3)]

    months = aggregator.monthly(readings, unit_price=1.0)

    assert [entry.year_month for entry in months] == ["2024-04", "2024-01"]
    assert all(entry.reading_count >= 1 for entry in months)


def test_monthly_filters_by_year_and_month() -> None:
    aggregator = MeterReadingAggregator()
    readings = _scenario() + [_reading(300, 2023, 1, 10), _reading(320, 2023, 1, 25)]

    assert [entry.year_month for entry in aggregator.monthly(readings, 1.0, year=2023)] == [
        "2023-01"
    ]
    assert [entry.year_month for entry in aggregator.monthly(readings, 1.0, month=1)] == [
        "2024-01",
        "2023-01",
    ]
    assert aggregator.monthly(readings, 1.0, year=2024, month=3) == []


def test_monthly_is_idempotent() -> None:
    aggregator = MeterReadingAggregator()
    readings = _scenario()

    assert aggregator.monthly(readings, 2800) == aggregator.monthly(readings, 2800)


def test_monthly_uses_configured_timezone_for_month_boundaries() -> None:
    readings = [
        _reading(100, 2024, 1, 15),
        # 2024-01-31 20:00 UTC is already February at UTC+7.
        Reading(
            value=130,
            reading_date=datetime(2024, 1, 31, 20, tzinfo=timezone.utc),
            created_at=datetime(2024, 1, 31, 20, tzinfo=timezone.utc),
        ),
    ]

    utc_months = MeterReadingAggregator().monthly(readings, 1.0)
    local_months = MeterReadingAggregator(tz=timezone(timedelta(hours=7))).monthly(readings, 1.0)

    assert [entry.year_month for entry in utc_months] == ["2024-01"]
    assert [entry.year_month for entry in local_months] == ["2024-02", "2024-01"]


def test_naive_dates_are_treated_as_utc() -> None:
    aggregator = MeterReadingAggregator()
    naive = Reading(value=5, reading_date=datetime(2024, 5, 1, 12), created_at=datetime(2024, 5, 1))
    aware = _reading(7, 2024, 5, 1, hour=13)

    assert aggregator.latest_reading([aware, naive]) is aware


def _month(year_month: str, cost: float) -> MonthlyConsumption:
    reading = _reading(1, int(year_month[:4]), int(year_month[5:]), 1)
    return MonthlyConsumption(
        year_month=year_month,
        year=reading.reading_date.year,
        month=reading.reading_date.month,
        month_name=year_month,
        first_reading=reading,
        last_reading=reading,
        reading_count=1,
        consumption=cost,
        cost=cost,
    )


def test_combine_monthly_handles_one_sided_months() -> None:
    aggregator = MeterReadingAggregator()
    electricity = [_month("2024-03", 300.0), _month("2024-01", 100.0)]
    water = [_month("2024-02", 20.0), _month("2024-01", 10.0)]

    rows = aggregator.combine_monthly(electricity, water)

    assert [row.year_month for row in rows] == ["2024-03", "2024-02", "2024-01"]
    march, february, january = rows
    assert march.water is None
    assert march.total_cost == 300.0
    assert february.electricity is None
    assert february.total_cost == 20.0
    assert january.total_cost == 110.0


def test_consumption_between_uses_first_and_last_in_window() -> None:
    aggregator = MeterReadingAggregator()
    start = datetime(2024, 1, 10, tzinfo=timezone.utc)
    end = start + timedelta(days=30)

    result = aggregator.consumption_between(_scenario(), 2.0, start=start, end=end)

    assert result.start_reading is not None and result.start_reading.value == 150
    assert result.end_reading is not None and result.end_reading.value == 170
    assert result.consumption == Defined(amount=20, cost=40.0)


def test_consumption_between_needs_two_readings() -> None:
    aggregator = MeterReadingAggregator()
    start = datetime(2024, 2, 1, tzinfo=timezone.utc)

    result = aggregator.consumption_between(_scenario(), 2.0, start=start)

    assert result.start_reading is None
    assert result.end_reading is None
    assert result.consumption is NOT_APPLICABLE
