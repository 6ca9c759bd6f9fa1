"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

ROOM_SEPARATOR = "-room-"


class UtilityType(str, Enum):
    """Metered utilities tracked per billable unit."""

    electricity = "electricity"
    water = "water"

    @property
    def unit(self) -> str:
        return "kWh" if self is UtilityType.electricity else "m³"


@dataclass(slots=True)
class Reading:
    """A cumulative meter value taken at ``reading_date``."""

    value: float
    reading_date: datetime
    created_at: datetime
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Defined:
    """Consumption that could be measured between two readings."""

    amount: float
    cost: float


@dataclass(frozen=True, slots=True)
class NotApplicable:
    """No consumption can be derived, e.g. for the oldest reading of a series."""


NOT_APPLICABLE = NotApplicable()

Consumption = Union[Defined, NotApplicable]


@dataclass(frozen=True, slots=True)
class ReadingWithConsumption:
    reading: Reading
    consumption: Consumption


@dataclass(frozen=True, slots=True)
class MonthlyConsumption:
    """Usage between the first and last reading of one calendar month."""

    year_month: str
    year: int
    month: int
    month_name: str
    first_reading: Reading
    last_reading: Reading
    reading_count: int
    consumption: float
    cost: float


@dataclass(frozen=True, slots=True)
class CombinedMonthlyCost:
    """Electricity and water usage for one month; either side may be missing."""

    year_month: str
    month_name: str
    electricity: Optional[MonthlyConsumption]
    water: Optional[MonthlyConsumption]
    total_cost: float


@dataclass(frozen=True, slots=True)
class RangeConsumption:
    start_reading: Optional[Reading]
    end_reading: Optional[Reading]
    consumption: Consumption


@dataclass(frozen=True, slots=True)
class SeriesRef:
    """Address of a billable unit: an apartment, or a room in a boarding house."""

    space_id: str
    room_number: Optional[str] = None

    @classmethod
    def parse(cls, identifier: str) -> "SeriesRef":
        """Accept plain space ids and ``<houseId>-room-<roomNumber>`` composites."""
        if ROOM_SEPARATOR in identifier:
            space_id, room_number = identifier.split(ROOM_SEPARATOR, 1)
            if space_id and room_number:
                return cls(space_id=space_id, room_number=room_number)
        return cls(space_id=identifier)

    def __str__(self) -> str:
        if self.room_number is None:
            return self.space_id
        return f"{self.space_id}{ROOM_SEPARATOR}{self.room_number}"
