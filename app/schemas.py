"""Pydantic schemas for stored documents and the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt

from models.records import (
    CombinedMonthlyCost,
    Consumption,
    Defined,
    MonthlyConsumption,
    RangeConsumption,
    Reading,
    ReadingWithConsumption,
    UtilityType,
)


class SpaceKind(str, Enum):
    """Shapes of space documents kept in the store."""

    apartment = "apartment"
    boarding_house = "boarding_house"


class ReadingRecord(BaseModel):
    """A reading as persisted inside a space or room document."""

    value: float = Field(..., ge=0)
    reading_date: datetime
    created_at: datetime
    notes: Optional[str] = None

    @classmethod
    def from_domain(cls, reading: Reading) -> "ReadingRecord":
        return cls(
            value=reading.value,
            reading_date=reading.reading_date,
            created_at=reading.created_at,
            notes=reading.notes,
        )

    def to_domain(self) -> Reading:
        return Reading(
            value=self.value,
            reading_date=self.reading_date,
            created_at=self.created_at,
            notes=self.notes,
        )


class MeterReadings(BaseModel):
    electricity: List[ReadingRecord] = Field(default_factory=list)
    water: List[ReadingRecord] = Field(default_factory=list)

    def series(self, utility: UtilityType) -> List[ReadingRecord]:
        return getattr(self, utility.value)


class Room(BaseModel):
    """A billable room inside a boarding house; prices fall back to the house."""

    model_config = ConfigDict(extra="allow")

    room_number: str
    electricity_price: Optional[float] = Field(default=None, ge=0)
    water_price: Optional[float] = Field(default=None, ge=0)
    meter_readings: MeterReadings = Field(default_factory=MeterReadings)


class SpaceDocument(BaseModel):
    """Whole-document unit of storage for an apartment or boarding house.

    Fields the meter service does not know about (address, amenities, ...)
    are kept as extras and written back untouched.
    """

    model_config = ConfigDict(extra="allow")

    space_id: str
    name: str = ""
    kind: SpaceKind = SpaceKind.apartment
    electricity_price: float = Field(default=0.0, ge=0)
    water_price: float = Field(default=0.0, ge=0)
    meter_readings: MeterReadings = Field(default_factory=MeterReadings)
    rooms: List[Room] = Field(default_factory=list)
    version: int = Field(default=0, ge=0)
    updated_at: Optional[datetime] = None


class ReadingCreate(BaseModel):
    """Payload for submitting a new meter reading."""

    # Strict numbers so JSON booleans are rejected instead of coerced to 0/1.
    value: Union[StrictInt, StrictFloat, str] = Field(..., description="Cumulative meter value.")
    notes: Optional[str] = None
    reading_date: Optional[datetime] = Field(
        default=None, description="Defaults to the submission time."
    )


class ReadingOut(BaseModel):
    value: float
    reading_date: datetime
    created_at: datetime
    notes: Optional[str] = None

    @classmethod
    def from_domain(cls, reading: Reading) -> "ReadingOut":
        return cls(
            value=reading.value,
            reading_date=reading.reading_date,
            created_at=reading.created_at,
            notes=reading.notes,
        )


ConsumptionStatus = Literal["defined", "not_applicable"]


def _consumption_fields(consumption: Consumption) -> dict:
    if isinstance(consumption, Defined):
        return {
            "consumption": consumption.amount,
            "cost": consumption.cost,
            "consumption_status": "defined",
        }
    return {"consumption": None, "cost": None, "consumption_status": "not_applicable"}


class ReadingWithConsumptionOut(ReadingOut):
    consumption: Optional[float] = None
    cost: Optional[float] = None
    consumption_status: ConsumptionStatus

    @classmethod
    def from_row(cls, row: ReadingWithConsumption) -> "ReadingWithConsumptionOut":
        reading = row.reading
        return cls(
            value=reading.value,
            reading_date=reading.reading_date,
            created_at=reading.created_at,
            notes=reading.notes,
            **_consumption_fields(row.consumption),
        )


class ReadingHistory(BaseModel):
    """Readings newest first with the usage since the previous reading."""

    utility: UtilityType
    unit: str
    unit_price: float
    readings: List[ReadingWithConsumptionOut] = Field(default_factory=list)


class MonthlyConsumptionOut(BaseModel):
    year_month: str
    year: int
    month: int
    month_name: str
    first_reading: ReadingOut
    last_reading: ReadingOut
    reading_count: int = Field(..., ge=1)
    consumption: float = Field(..., ge=0)
    cost: float

    @classmethod
    def from_domain(cls, entry: MonthlyConsumption) -> "MonthlyConsumptionOut":
        return cls(
            year_month=entry.year_month,
            year=entry.year,
            month=entry.month,
            month_name=entry.month_name,
            first_reading=ReadingOut.from_domain(entry.first_reading),
            last_reading=ReadingOut.from_domain(entry.last_reading),
            reading_count=entry.reading_count,
            consumption=entry.consumption,
            cost=entry.cost,
        )


class MonthlyConsumptionList(BaseModel):
    utility: UtilityType
    unit: str
    unit_price: float
    months: List[MonthlyConsumptionOut] = Field(default_factory=list)


class RangeConsumptionOut(BaseModel):
    utility: UtilityType
    start_reading: Optional[ReadingOut] = None
    end_reading: Optional[ReadingOut] = None
    consumption: Optional[float] = None
    cost: Optional[float] = None
    consumption_status: ConsumptionStatus

    @classmethod
    def from_domain(
        cls, utility: UtilityType, result: RangeConsumption
    ) -> "RangeConsumptionOut":
        return cls(
            utility=utility,
            start_reading=(
                ReadingOut.from_domain(result.start_reading) if result.start_reading else None
            ),
            end_reading=(
                ReadingOut.from_domain(result.end_reading) if result.end_reading else None
            ),
            **_consumption_fields(result.consumption),
        )


class CombinedMonthOut(BaseModel):
    """One row of the combined electricity and water table; ``None`` means no data."""

    year_month: str
    month_name: str
    electricity_consumption: Optional[float] = None
    electricity_cost: Optional[float] = None
    water_consumption: Optional[float] = None
    water_cost: Optional[float] = None
    total_cost: float

    @classmethod
    def from_domain(cls, row: CombinedMonthlyCost) -> "CombinedMonthOut":
        return cls(
            year_month=row.year_month,
            month_name=row.month_name,
            electricity_consumption=row.electricity.consumption if row.electricity else None,
            electricity_cost=row.electricity.cost if row.electricity else None,
            water_consumption=row.water.consumption if row.water else None,
            water_cost=row.water.cost if row.water else None,
            total_cost=row.total_cost,
        )

