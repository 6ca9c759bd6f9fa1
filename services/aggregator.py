"""Consumption and cost aggregation over meter reading series."""

from __future__ import annotations

import calendar
from datetime import datetime, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Tuple

from models.records import (
    NOT_APPLICABLE,
    CombinedMonthlyCost,
    Defined,
    MonthlyConsumption,
    RangeConsumption,
    Reading,
    ReadingWithConsumption,
)


def _clamped_delta(newer: Reading, older: Reading) -> float:
    delta = newer.value - older.value
    return delta if delta > 0 else 0.0


def format_year_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_name(year: int, month: int) -> str:
    return f"{calendar.month_name[month]} {year}"


class MeterReadingAggregator:
    """Pure aggregation component that can be unit tested in isolation.

    Every method works on the full series it is given and never mutates it;
    results are recomputed on each call.
    """

    def __init__(self, tz: Optional[tzinfo] = None) -> None:
        self.tz = tz or timezone.utc

    def _local(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.tz)

    def _sort_key(self, reading: Reading) -> datetime:
        return self._local(reading.reading_date)

    def sort_readings(
        self, readings: Iterable[Reading], newest_first: bool = False
    ) -> List[Reading]:
        return sorted(readings, key=self._sort_key, reverse=newest_first)

    def year_month_at(self, moment: datetime) -> Tuple[int, int]:
        local = self._local(moment)
        return local.year, local.month

    def year_month_of(self, reading: Reading) -> Tuple[int, int]:
        return self.year_month_at(reading.reading_date)

    def latest_reading(self, readings: Iterable[Reading]) -> Optional[Reading]:
        """Return the reading with the greatest ``reading_date``, if any."""
        latest: Optional[Reading] = None
        for reading in readings:
            if latest is None or self._sort_key(reading) > self._sort_key(latest):
                latest = reading
        return latest

    def with_consumption(
        self, readings: Iterable[Reading], unit_price: float
    ) -> List[ReadingWithConsumption]:
        """Pair each reading with the one immediately before it, newest first.

        The oldest reading has no predecessor and is reported as not applicable.
        """
        ordered = self.sort_readings(readings, newest_first=True)
        rows: List[ReadingWithConsumption] = []
        for index, reading in enumerate(ordered):
            if index + 1 < len(ordered):
                amount = _clamped_delta(reading, ordered[index + 1])
                consumption = Defined(amount=amount, cost=amount * unit_price)
                rows.append(ReadingWithConsumption(reading=reading, consumption=consumption))
            else:
                rows.append(ReadingWithConsumption(reading=reading, consumption=NOT_APPLICABLE))
        return rows

    def monthly(
        self,
        readings: Iterable[Reading],
        unit_price: float,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> List[MonthlyConsumption]:
        """Group readings by calendar month, most recent month first.

        A month with a single reading reports zero consumption; months without
        readings are omitted.
        """
        groups: Dict[Tuple[int, int], List[Reading]] = {}
        for reading in self.sort_readings(readings):
            reading_year, reading_month = self.year_month_of(reading)
            if year is not None and reading_year != year:
                continue
            if month is not None and reading_month != month:
                continue
            groups.setdefault((reading_year, reading_month), []).append(reading)

        entries: List[MonthlyConsumption] = []
        for (group_year, group_month), group in groups.items():
            month_readings = self.sort_readings(group)
            first_reading = month_readings[0]
            last_reading = month_readings[-1]
            amount = _clamped_delta(last_reading, first_reading)
            entries.append(
                MonthlyConsumption(
                    year_month=format_year_month(group_year, group_month),
                    year=group_year,
                    month=group_month,
                    month_name=month_name(group_year, group_month),
                    first_reading=first_reading,
                    last_reading=last_reading,
                    reading_count=len(month_readings),
                    consumption=amount,
                    cost=amount * unit_price,
                )
            )

        entries.sort(key=lambda entry: entry.year_month, reverse=True)
        return entries

    def combine_monthly(
        self,
        electricity: Iterable[MonthlyConsumption],
        water: Iterable[MonthlyConsumption],
    ) -> List[CombinedMonthlyCost]:
        """Join per-utility monthly entries by ``year_month``, newest first."""
        electricity_by_month = {entry.year_month: entry for entry in electricity}
        water_by_month = {entry.year_month: entry for entry in water}

        rows: List[CombinedMonthlyCost] = []
        for year_month in sorted(
            electricity_by_month.keys() | water_by_month.keys(), reverse=True
        ):
            electricity_entry = electricity_by_month.get(year_month)
            water_entry = water_by_month.get(year_month)
            present = [entry for entry in (electricity_entry, water_entry) if entry is not None]
            rows.append(
                CombinedMonthlyCost(
                    year_month=year_month,
                    month_name=present[0].month_name,
                    electricity=electricity_entry,
                    water=water_entry,
                    total_cost=sum(entry.cost for entry in present),
                )
            )
        return rows

    def consumption_between(
        self,
        readings: Iterable[Reading],
        unit_price: float,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> RangeConsumption:
        """Usage between the earliest and latest reading inside ``[start, end]``."""
        window = self.sort_readings(readings)
        if start is not None:
            lower = self._local(start)
            window = [reading for reading in window if self._sort_key(reading) >= lower]
        if end is not None:
            upper = self._local(end)
            window = [reading for reading in window if self._sort_key(reading) <= upper]

        if len(window) < 2:
            return RangeConsumption(start_reading=None, end_reading=None, consumption=NOT_APPLICABLE)

        start_reading = window[0]
        end_reading = window[-1]
        amount = _clamped_delta(end_reading, start_reading)
        return RangeConsumption(
            start_reading=start_reading,
            end_reading=end_reading,
            consumption=Defined(amount=amount, cost=amount * unit_price),
        )
