from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from uuid import UUID

from tortoise.queryset import QuerySet

from workshop.models import ProcessEvent
from workshop.transitions import EventDraft


def _to_utc(dt: datetime) -> datetime:
    """Ensure a datetime is UTC-aware, handling both aware and naive inputs."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class ProcessLedger:
    """
    Append-only store of ProcessEvent rows.

    append() must run inside the same transaction as the booking write, with
    the booking row locked, so that changed_at stays strictly increasing per
    booking.
    """

    async def latest(self, booking_id: UUID) -> ProcessEvent | None:
        return (
            await ProcessEvent.filter(booking_id=booking_id)
            .order_by("-changed_at", "-id")
            .first()
        )

    async def append(self, booking_id: UUID, draft: EventDraft) -> ProcessEvent:
        changed_at = datetime.now(timezone.utc)
        last = await self.latest(booking_id)
        if last is not None:
            floor = _to_utc(last.changed_at)
            if changed_at <= floor:
                changed_at = floor + timedelta(microseconds=1)

        return await ProcessEvent.create(
            booking_id=booking_id, changed_at=changed_at, **asdict(draft)
        )

    def query_by_booking(self, booking_id: UUID) -> QuerySet[ProcessEvent]:
        """Lazy query, oldest first. Each await runs it afresh."""
        return ProcessEvent.filter(booking_id=booking_id).order_by("changed_at", "id")

    async def purge_booking(self, booking_id: UUID) -> int:
        """Remove every event of a booking. Only the administrative booking delete calls this."""
        return await ProcessEvent.filter(booking_id=booking_id).delete()


process_ledger = ProcessLedger()
