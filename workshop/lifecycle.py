"""
Booking lifecycle service: the only entry point that mutates booking state.

Every accepted update writes the booking row and, when status or bay moved,
one ProcessEvent, inside a single transaction. Rejected updates touch nothing.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol
from uuid import UUID

from loguru import logger
from tortoise.exceptions import (
    DBConnectionError,
    IntegrityError,
    OperationalError,
    TransactionManagementError,
)
from tortoise.transactions import in_transaction

from workshop.crud import BookingStore, booking_store
from workshop.errors import ConflictError, NotFoundError, StorageError, ValidationError
from workshop.ledger import ProcessLedger, process_ledger
from workshop.schemas import (
    AdvisorSnapshot,
    BaySnapshot,
    BookingChanges,
    BookingCreate,
    BookingFilters,
    BookingResponse,
    ProcessEventResponse,
)
from workshop.transitions import Rejected, evaluate_transition, is_bay_change


class BayDirectory(Protocol):
    async def resolve_bay(self, bay_id: int) -> BaySnapshot | None: ...


class AdvisorDirectory(Protocol):
    async def resolve_advisor(self, advisor_id: int) -> AdvisorSnapshot | None: ...


@asynccontextmanager
async def _storage_errors(action: str) -> AsyncIterator[None]:
    """Re-raise driver failures as StorageError."""
    try:
        yield
    except (
        IntegrityError,
        TransactionManagementError,
        OperationalError,
        DBConnectionError,
    ) as exc:
        logger.error("Storage failure while trying to {}: {}", action, exc)
        raise StorageError(f"could not {action}: {exc}") from exc


class BookingLifecycleService:
    def __init__(
        self,
        bays: BayDirectory,
        advisors: AdvisorDirectory,
        store: BookingStore = booking_store,
        ledger: ProcessLedger = process_ledger,
    ) -> None:
        self.bays = bays
        self.advisors = advisors
        self.store = store
        self.ledger = ledger

    async def _resolve_bay(self, bay_id: int) -> BaySnapshot:
        bay = await self.bays.resolve_bay(bay_id)
        if bay is None:
            raise NotFoundError("Bay", bay_id)
        return bay

    async def _resolve_advisor(self, advisor_id: int) -> AdvisorSnapshot:
        advisor = await self.advisors.resolve_advisor(advisor_id)
        if advisor is None:
            raise NotFoundError("Service advisor", advisor_id)
        return advisor

    async def _require(self, booking_id: UUID) -> BookingResponse:
        async with _storage_errors("load booking"):
            booking = await self.store.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, booking_id: UUID) -> BookingResponse:
        return await self._require(booking_id)

    async def list(self, filters: BookingFilters | None = None) -> list[BookingResponse]:
        async with _storage_errors("list bookings"):
            return await self.store.list_bookings(filters or BookingFilters())

    async def history(self, booking_id: UUID) -> list[ProcessEventResponse]:
        """All ledger entries of a booking, oldest first. Empty if it never moved."""
        async with _storage_errors("load booking history"):
            if not await self.store.exists(booking_id):
                raise NotFoundError("Booking", booking_id)
            events = await self.ledger.query_by_booking(booking_id)
        return [
            ProcessEventResponse.model_validate(e, from_attributes=True) for e in events
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, payload: BookingCreate) -> BookingResponse:
        advisor, bay = await asyncio.gather(
            self._resolve_advisor(payload.service_advisor_id),
            self._resolve_bay(payload.bay_id),
        )
        async with _storage_errors("create booking"):
            booking = await self.store.create_booking(
                vehicle_registration=payload.vehicle_registration,
                checkin_date=payload.checkin_date,
                promise_date=payload.promise_date,
                advisor=advisor,
                bay=bay,
                job_type=payload.job_type,
            )
        logger.info(
            "Booking created: id={} vehicle={} bay={} advisor={}",
            booking.id,
            booking.vehicle_registration,
            booking.bay_id,
            booking.service_advisor_id,
        )
        return booking

    async def update(self, booking_id: UUID, changes: BookingChanges) -> BookingResponse:
        current = await self._require(booking_id)

        new_bay = None
        if is_bay_change(current, changes):
            new_bay = await self._resolve_bay(changes.bay_id)

        decision = evaluate_transition(current, changes, new_bay)
        if isinstance(decision, Rejected):
            logger.warning(
                "Transition rejected: booking={} status={} requested={} reason={}",
                booking_id,
                current.status,
                changes.status,
                decision.reason,
            )
            raise ValidationError(decision.reason)

        if decision.is_noop:
            return current

        async with _storage_errors("update booking"), in_transaction():
            locked = await self.store.lock_booking(booking_id)
            if locked is None:
                raise NotFoundError("Booking", booking_id)
            if locked.version != current.version or not await self.store.write_booking(
                booking_id, current.version, decision.updates
            ):
                logger.warning(
                    "Concurrent modification: booking={} expected version={}",
                    booking_id,
                    current.version,
                )
                raise ConflictError(
                    f"Booking {booking_id} was modified concurrently; reload and retry"
                )
            if decision.event is not None:
                await self.ledger.append(booking_id, decision.event)
            updated = await self.store.get_booking(booking_id)

        if decision.event is not None:
            event = decision.event
            logger.info(
                "Booking transition: id={} status {} → {} bay {} → {}",
                booking_id,
                event.from_status,
                event.to_status,
                event.from_bay_id,
                event.to_bay_id,
            )
        return updated

    async def delete(self, booking_id: UUID) -> None:
        """Administrative hard delete; the booking's ledger entries go with it."""
        async with _storage_errors("delete booking"), in_transaction():
            purged = await self.ledger.purge_booking(booking_id)
            if not await self.store.delete_booking(booking_id):
                raise NotFoundError("Booking", booking_id)
        logger.info("Booking deleted: id={} ({} process events removed)", booking_id, purged)
