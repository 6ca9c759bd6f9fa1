"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status

from app.schemas import (
    CombinedMonthOut,
    MonthlyConsumptionList,
    MonthlyConsumptionOut,
    RangeConsumptionOut,
    ReadingCreate,
    ReadingHistory,
    ReadingOut,
    ReadingWithConsumptionOut,
    SpaceDocument,
)
from models.records import SeriesRef, UtilityType
from services.meter_readings import MeterReadingService, build_default_service

router = APIRouter()


def get_service() -> MeterReadingService:
    return build_default_service()


def series_ref(
    space_id: str = Path(..., description="Apartment or boarding house identifier."),
    room: Optional[str] = Query(
        default=None, description="Room number inside a boarding house."
    ),
) -> SeriesRef:
    if room is None:
        return SeriesRef.parse(space_id)
    return SeriesRef(space_id=space_id, room_number=room)


@router.get(
    "/spaces",
    response_model=List[SpaceDocument],
    summary="List stored space documents.",
)
async def list_spaces(
    service: MeterReadingService = Depends(get_service),
) -> List[SpaceDocument]:
    return service.list_spaces()


@router.get(
    "/spaces/{space_id}",
    response_model=SpaceDocument,
    summary="Fetch a space document.",
)
async def get_space(
    space_id: str,
    service: MeterReadingService = Depends(get_service),
) -> SpaceDocument:
    return service.fetch_space(space_id)


@router.put(
    "/spaces/{space_id}",
    response_model=SpaceDocument,
    summary="Create or replace a space document.",
)
async def put_space(
    space_id: str,
    document: SpaceDocument,
    service: MeterReadingService = Depends(get_service),
) -> SpaceDocument:
    if document.space_id != space_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="space_id in the body does not match the path.",
        )
    return service.save_space(document)


@router.delete(
    "/spaces/{space_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a space document together with its readings.",
)
async def delete_space(
    space_id: str,
    service: MeterReadingService = Depends(get_service),
) -> Response:
    service.delete_space(space_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/spaces/{space_id}/readings/{utility}",
    status_code=status.HTTP_201_CREATED,
    response_model=ReadingOut,
    summary="Record a new meter reading.",
)
async def record_reading(
    utility: UtilityType,
    payload: ReadingCreate,
    ref: SeriesRef = Depends(series_ref),
    service: MeterReadingService = Depends(get_service),
) -> ReadingOut:
    reading = service.record_reading(
        ref,
        utility,
        payload.value,
        notes=payload.notes,
        reading_date=payload.reading_date,
    )
    return ReadingOut.from_domain(reading)


@router.get(
    "/spaces/{space_id}/readings/{utility}",
    response_model=ReadingHistory,
    summary="List readings newest first with consumption since the previous one.",
)
async def list_readings(
    utility: UtilityType,
    price: Optional[float] = Query(default=None, ge=0, description="Override the stored unit price."),
    ref: SeriesRef = Depends(series_ref),
    service: MeterReadingService = Depends(get_service),
) -> ReadingHistory:
    unit_price, rows = service.list_readings_with_consumption(ref, utility, unit_price=price)
    return ReadingHistory(
        utility=utility,
        unit=utility.unit,
        unit_price=unit_price,
        readings=[ReadingWithConsumptionOut.from_row(row) for row in rows],
    )


@router.get(
    "/spaces/{space_id}/readings/{utility}/latest",
    response_model=Optional[ReadingOut],
    summary="Fetch the most recent reading; null when the series is empty.",
)
async def latest_reading(
    utility: UtilityType,
    ref: SeriesRef = Depends(series_ref),
    service: MeterReadingService = Depends(get_service),
) -> Optional[ReadingOut]:
    reading = service.get_latest_reading(ref, utility)
    if reading is None:
        return None
    return ReadingOut.from_domain(reading)


@router.get(
    "/spaces/{space_id}/readings/{utility}/monthly",
    response_model=MonthlyConsumptionList,
    summary="Monthly consumption and cost, most recent month first.",
)
async def monthly_consumption(
    utility: UtilityType,
    year: Optional[int] = Query(default=None, ge=1),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    price: Optional[float] = Query(default=None, ge=0, description="Override the stored unit price."),
    ref: SeriesRef = Depends(series_ref),
    service: MeterReadingService = Depends(get_service),
) -> MonthlyConsumptionList:
    unit_price, months = service.get_monthly_consumption(
        ref, utility, unit_price=price, year=year, month=month
    )
    return MonthlyConsumptionList(
        utility=utility,
        unit=utility.unit,
        unit_price=unit_price,
        months=[MonthlyConsumptionOut.from_domain(entry) for entry in months],
    )


@router.get(
    "/spaces/{space_id}/readings/{utility}/consumption",
    response_model=RangeConsumptionOut,
    summary="Consumption between the first and last reading inside a date range.",
)
async def range_consumption(
    utility: UtilityType,
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    price: Optional[float] = Query(default=None, ge=0, description="Override the stored unit price."),
    ref: SeriesRef = Depends(series_ref),
    service: MeterReadingService = Depends(get_service),
) -> RangeConsumptionOut:
    result = service.get_consumption_between(ref, utility, start=start, end=end, unit_price=price)
    return RangeConsumptionOut.from_domain(utility, result)


@router.get(
    "/spaces/{space_id}/utilities/monthly",
    response_model=List[CombinedMonthOut],
    summary="Combined electricity and water costs per month.",
)
async def combined_monthly(
    year: Optional[int] = Query(default=None, ge=1),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    ref: SeriesRef = Depends(series_ref),
    service: MeterReadingService = Depends(get_service),
) -> List[CombinedMonthOut]:
    rows = service.get_combined_monthly(ref, year=year, month=month)
    return [CombinedMonthOut.from_domain(row) for row in rows]


@router.get(
    "/spaces/{space_id}/utilities/current",
    response_model=CombinedMonthOut,
    summary="Electricity and water usage for the current month.",
)
async def current_month(
    ref: SeriesRef = Depends(series_ref),
    service: MeterReadingService = Depends(get_service),
) -> CombinedMonthOut:
    return CombinedMonthOut.from_domain(service.current_month_summary(ref))


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
