from enum import StrEnum

from loguru import logger
from tortoise import fields
from tortoise.manager import Manager
from tortoise.models import Model
from tortoise.queryset import QuerySet

from workshop.errors import ImmutableRecordError


class BookingStatus(StrEnum):
    QUEUING = "QUEUING"  # vehicle checked in, waiting for a bay
    BAY_QUEUE = "BAY_QUEUE"  # assigned to a bay, waiting in its queue
    NEXT_JOB = "NEXT_JOB"  # next up on its bay
    ACTIVE_BOARD = "ACTIVE_BOARD"  # work in progress
    JOB_STOPPAGE = "JOB_STOPPAGE"  # work halted, see stoppage_reason
    REPAIR_COMPLETION = "REPAIR_COMPLETION"  # repair done


class JobType(StrEnum):
    LIGHT = "LIGHT"
    MEDIUM = "MEDIUM"
    HEAVY = "HEAVY"


class Booking(Model):
    id = fields.UUIDField(primary_key=True)

    vehicle_registration = fields.CharField(max_length=32, db_index=True)
    checkin_date = fields.DateField()
    promise_date = fields.DateField()

    # ids and display names are snapshots from the external directories
    service_advisor_id = fields.IntField()
    service_advisor_name = fields.CharField(max_length=255, null=True)
    bay_id = fields.IntField(null=True)
    bay_name = fields.CharField(max_length=255, null=True)

    job_type = fields.CharEnumField(JobType)
    status = fields.CharEnumField(BookingStatus, default=BookingStatus.QUEUING)

    job_start_time = fields.TimeField(null=True)
    job_end_time = fields.TimeField(null=True)
    stoppage_reason = fields.TextField(null=True)

    version = fields.IntField(default=1)  # bumped on every accepted update
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "bookings"
        ordering = ["-created_at"]


class AppendOnlyQuerySet(QuerySet):
    """Queryset that refuses bulk UPDATEs. Bulk DELETE stays available for purges."""

    def update(self, **kwargs):
        _log_violation("bulk UPDATE", None)
        raise ImmutableRecordError("ProcessEvent", "update", "*")

    def bulk_update(self, *args, **kwargs):
        _log_violation("bulk UPDATE", None)
        raise ImmutableRecordError("ProcessEvent", "update", "*")


class AppendOnlyManager(Manager):
    def get_queryset(self) -> AppendOnlyQuerySet:
        return AppendOnlyQuerySet(self._model)


class ProcessEvent(Model):
    """
    One accepted transition of a booking. Rows are insert-only: saving an
    already persisted row, deleting one, or a queryset UPDATE raises
    ImmutableRecordError.
    """

    id = fields.UUIDField(primary_key=True)
    booking = fields.ForeignKeyField(
        "models.Booking", related_name="process_events", on_delete=fields.CASCADE
    )

    # labels as they were at transition time, not re-derived from the enum
    from_status = fields.CharField(max_length=32)
    to_status = fields.CharField(max_length=32)

    from_bay_id = fields.IntField(null=True)
    from_bay_name = fields.CharField(max_length=255, null=True)
    to_bay_id = fields.IntField(null=True)
    to_bay_name = fields.CharField(max_length=255, null=True)

    changed_at = fields.DatetimeField(db_index=True)
    job_start_time = fields.TimeField(null=True)
    job_end_time = fields.TimeField(null=True)

    class Meta:  # type: ignore
        table = "booking_process_events"
        ordering = ["changed_at", "id"]
        manager = AppendOnlyManager()

    async def save(self, *args, **kwargs) -> None:
        if self._saved_in_db:
            _log_violation("UPDATE", self.pk)
            raise ImmutableRecordError("ProcessEvent", "update", str(self.pk))
        await super().save(*args, **kwargs)

    async def delete(self, *args, **kwargs) -> None:
        _log_violation("DELETE", self.pk)
        raise ImmutableRecordError("ProcessEvent", "delete", str(self.pk))


def _log_violation(operation: str, record_id) -> None:
    logger.error(
        "IMMUTABILITY_VIOLATION: attempted {} of ProcessEvent record_id={}",
        operation,
        record_id,
    )
