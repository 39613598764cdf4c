from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from workshop.models import Booking, BookingStatus, JobType
from workshop.schemas import (
    AdvisorSnapshot,
    BaySnapshot,
    BookingFilters,
    BookingResponse,
)


class BookingStore:
    """Persistence for Booking rows. All state changes go through the lifecycle service."""

    async def create_booking(
        self,
        vehicle_registration: str,
        checkin_date: date,
        promise_date: date,
        advisor: AdvisorSnapshot,
        bay: BaySnapshot,
        job_type: JobType,
    ) -> BookingResponse:
        inst = await Booking.create(
            vehicle_registration=vehicle_registration,
            checkin_date=checkin_date,
            promise_date=promise_date,
            service_advisor_id=advisor.id,
            service_advisor_name=advisor.name,
            bay_id=bay.id,
            bay_name=bay.display_name,
            job_type=job_type,
            status=BookingStatus.QUEUING,
        )
        return BookingResponse.model_validate(inst, from_attributes=True)

    async def get_booking(self, booking_id: UUID) -> BookingResponse | None:
        inst = await Booking.get_or_none(id=booking_id)
        if not inst:
            return None
        return BookingResponse.model_validate(inst, from_attributes=True)

    async def exists(self, booking_id: UUID) -> bool:
        return await Booking.filter(id=booking_id).exists()

    async def lock_booking(self, booking_id: UUID) -> BookingResponse | None:
        """Re-read a booking with a row lock. Call inside a transaction."""
        inst = await Booking.filter(id=booking_id).select_for_update().first()
        if not inst:
            return None
        return BookingResponse.model_validate(inst, from_attributes=True)

    async def list_bookings(self, filters: BookingFilters) -> list[BookingResponse]:
        qs = Booking.all()

        if filters.status is not None:
            qs = qs.filter(status=filters.status)
        if filters.vehicle_registration is not None:
            qs = qs.filter(
                vehicle_registration=filters.vehicle_registration.strip().upper()
            )
        if filters.bay_id is not None:
            qs = qs.filter(bay_id=filters.bay_id)

        offset = (filters.page - 1) * filters.page_size
        qs = qs.offset(offset).limit(filters.page_size)

        bookings = await qs
        return [
            BookingResponse.model_validate(b, from_attributes=True) for b in bookings
        ]

    async def write_booking(
        self, booking_id: UUID, expected_version: int, updates: dict[str, Any]
    ) -> bool:
        """
        Apply `updates` only if the row is still at `expected_version`.
        Returns False when another writer got there first.
        """
        updated = await Booking.filter(id=booking_id, version=expected_version).update(
            **updates,
            version=expected_version + 1,
            updated_at=datetime.now(timezone.utc),
        )
        return updated == 1

    async def delete_booking(self, booking_id: UUID) -> bool:
        deleted = await Booking.filter(id=booking_id).delete()
        return deleted > 0


booking_store = BookingStore()
