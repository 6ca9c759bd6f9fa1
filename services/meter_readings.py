"""Recording and querying meter readings stored in space documents."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from app.schemas import ReadingRecord, Room, SpaceDocument
from datastore.document_store import DocumentStore, build_default_store
from models.records import (
    CombinedMonthlyCost,
    MonthlyConsumption,
    RangeConsumption,
    Reading,
    ReadingWithConsumption,
    SeriesRef,
    UtilityType,
)
from services.aggregator import MeterReadingAggregator, format_year_month, month_name
from services.errors import (
    ConflictError,
    DuplicateReadingError,
    NotFoundError,
    ValidationError,
)
from settings import get_settings

logger = logging.getLogger(__name__)

Holder = Union[SpaceDocument, Room]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_utility(utility: Union[UtilityType, str]) -> UtilityType:
    if isinstance(utility, UtilityType):
        return utility
    try:
        return UtilityType(str(utility).strip().lower())
    except ValueError as exc:
        raise ValidationError("invalid utility type") from exc


def parse_value(raw: Any) -> float:
    """Coerce a submitted meter value into a finite, non-negative float."""
    if isinstance(raw, bool) or raw is None:
        raise ValidationError("invalid value")
    if isinstance(raw, str):
        raw = raw.strip()
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError("invalid value") from exc
    if not math.isfinite(value) or value < 0:
        raise ValidationError("invalid value")
    return value


class MeterReadingService:
    """Coordinates the document store and the aggregator for one billable unit."""

    def __init__(
        self,
        store: DocumentStore,
        aggregator: MeterReadingAggregator,
        max_attempts: int = 3,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.max_attempts = max(1, max_attempts)
        self.clock = clock

    # Space documents

    def list_spaces(self) -> List[SpaceDocument]:
        return sorted(self.store.scan(), key=lambda document: document.space_id)

    def fetch_space(self, space_id: str) -> SpaceDocument:
        document = self.store.get_document(space_id)
        if document is None:
            raise NotFoundError(f"Space {space_id!r} not found.")
        return document

    def save_space(self, document: SpaceDocument) -> SpaceDocument:
        """Replace a space document; its ``version`` must match the stored one.

        Version 0 creates a new document. A stale copy raises
        ``ConflictError`` instead of overwriting readings recorded since.
        """
        return self.store.put_document(document, expected_version=document.version)

    def delete_space(self, space_id: str) -> None:
        if not self.store.delete_document(space_id):
            raise NotFoundError(f"Space {space_id!r} not found.")

    # Readings

    def record_reading(
        self,
        ref: SeriesRef,
        utility: Union[UtilityType, str],
        value: Any,
        notes: Optional[str] = None,
        reading_date: Optional[datetime] = None,
    ) -> Reading:
        """Append a reading to a series using a versioned read-modify-write.

        The new value must exceed the value of the reading with the latest
        ``reading_date``. Concurrent writers are detected through the
        document version; the whole read-validate-write cycle is retried.
        """
        utility = parse_utility(utility)
        parsed_value = parse_value(value)
        created_at = self.clock()
        reading = Reading(
            value=parsed_value,
            reading_date=reading_date or created_at,
            created_at=created_at,
            notes=notes or None,
        )
        context = {
            "space_id": ref.space_id,
            "room_number": ref.room_number,
            "utility": utility.value,
            "value": parsed_value,
        }

        for attempt in range(1, self.max_attempts + 1):
            document = self.fetch_space(ref.space_id)
            holder = self._resolve_holder(document, ref)
            series = holder.meter_readings.series(utility)

            latest = self.aggregator.latest_reading(record.to_domain() for record in series)
            if latest is not None and parsed_value <= latest.value:
                reason = "duplicate" if parsed_value == latest.value else "not_increasing"
                logger.warning("Rejected meter reading", extra={**context, "reason": reason})
                if parsed_value == latest.value:
                    raise DuplicateReadingError("reading must exceed previous value", latest=latest)
                raise ValidationError("reading must exceed previous value")

            series.append(ReadingRecord.from_domain(reading))
            try:
                stored = self.store.put_document(document, expected_version=document.version)
            except ConflictError:
                logger.info(
                    "Space document changed while recording; retrying",
                    extra={**context, "attempt": attempt},
                )
                continue

            logger.info("Recorded meter reading", extra={**context, "version": stored.version})
            return reading

        raise ConflictError(
            f"Could not record reading for {ref} after {self.max_attempts} attempts."
        )

    def get_readings(
        self, ref: SeriesRef, utility: Union[UtilityType, str, None] = None
    ) -> Union[List[Reading], Dict[UtilityType, List[Reading]]]:
        """Return one series, or both series keyed by utility."""
        holder = self._load_holder(ref)
        if utility is None:
            return {
                kind: [record.to_domain() for record in holder.meter_readings.series(kind)]
                for kind in UtilityType
            }
        kind = parse_utility(utility)
        return [record.to_domain() for record in holder.meter_readings.series(kind)]

    def get_latest_reading(
        self, ref: SeriesRef, utility: Union[UtilityType, str]
    ) -> Optional[Reading]:
        readings, _ = self._load_series(ref, parse_utility(utility))
        return self.aggregator.latest_reading(readings)

    def list_readings_with_consumption(
        self,
        ref: SeriesRef,
        utility: Union[UtilityType, str],
        unit_price: Optional[float] = None,
    ) -> Tuple[float, List[ReadingWithConsumption]]:
        readings, price = self._series_and_price(ref, utility, unit_price)
        return price, self.aggregator.with_consumption(readings, price)

    def get_monthly_consumption(
        self,
        ref: SeriesRef,
        utility: Union[UtilityType, str],
        unit_price: Optional[float] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> Tuple[float, List[MonthlyConsumption]]:
        readings, price = self._series_and_price(ref, utility, unit_price)
        return price, self.aggregator.monthly(readings, price, year=year, month=month)

    def get_consumption_between(
        self,
        ref: SeriesRef,
        utility: Union[UtilityType, str],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        unit_price: Optional[float] = None,
    ) -> RangeConsumption:
        readings, price = self._series_and_price(ref, utility, unit_price)
        return self.aggregator.consumption_between(readings, price, start=start, end=end)

    def get_combined_monthly(
        self,
        ref: SeriesRef,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> List[CombinedMonthlyCost]:
        holder, document = self._load_holder_with_document(ref)
        monthly: Dict[UtilityType, List[MonthlyConsumption]] = {}
        for kind in UtilityType:
            readings = [record.to_domain() for record in holder.meter_readings.series(kind)]
            price = self._resolve_price(document, holder, kind)
            monthly[kind] = self.aggregator.monthly(readings, price, year=year, month=month)
        return self.aggregator.combine_monthly(
            monthly[UtilityType.electricity], monthly[UtilityType.water]
        )

    def current_month_summary(
        self, ref: SeriesRef, now: Optional[datetime] = None
    ) -> CombinedMonthlyCost:
        moment = now or self.clock()
        year, month = self.aggregator.year_month_at(moment)
        rows = self.get_combined_monthly(ref, year=year, month=month)
        if rows:
            return rows[0]
        return CombinedMonthlyCost(
            year_month=format_year_month(year, month),
            month_name=month_name(year, month),
            electricity=None,
            water=None,
            total_cost=0.0,
        )

    # Helpers

    def _series_and_price(
        self,
        ref: SeriesRef,
        utility: Union[UtilityType, str],
        unit_price: Optional[float],
    ) -> Tuple[List[Reading], float]:
        readings, price = self._load_series(ref, parse_utility(utility))
        if unit_price is not None:
            if unit_price < 0:
                raise ValidationError("invalid unit price")
            price = unit_price
        return readings, price

    def _load_series(
        self, ref: SeriesRef, utility: UtilityType
    ) -> Tuple[List[Reading], float]:
        holder, document = self._load_holder_with_document(ref)
        readings = [record.to_domain() for record in holder.meter_readings.series(utility)]
        return readings, self._resolve_price(document, holder, utility)

    def _load_holder(self, ref: SeriesRef) -> Holder:
        holder, _ = self._load_holder_with_document(ref)
        return holder

    def _load_holder_with_document(self, ref: SeriesRef) -> Tuple[Holder, SpaceDocument]:
        document = self.fetch_space(ref.space_id)
        return self._resolve_holder(document, ref), document

    @staticmethod
    def _resolve_holder(document: SpaceDocument, ref: SeriesRef) -> Holder:
        if ref.room_number is None:
            return document
        for room in document.rooms:
            if room.room_number == ref.room_number:
                return room
        raise NotFoundError(
            f"Room {ref.room_number!r} not found in boarding house {ref.space_id!r}."
        )

    @staticmethod
    def _resolve_price(document: SpaceDocument, holder: Holder, utility: UtilityType) -> float:
        field = f"{utility.value}_price"
        price = getattr(holder, field)
        if price is None:
            price = getattr(document, field)
        return float(price)


@lru_cache
def build_default_service() -> MeterReadingService:
    """Factory that wires the service with the configured store."""
    settings = get_settings()
    return MeterReadingService(
        store=build_default_store(),
        aggregator=MeterReadingAggregator(tz=settings.tzinfo),
        max_attempts=settings.record_max_attempts,
    )
