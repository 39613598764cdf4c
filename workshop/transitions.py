"""
Booking transition rules.

evaluate_transition() is a pure decision over a booking snapshot and the
requested changes: it never touches storage or the network. Callers resolve
any new bay beforehand and pass the snapshot in.

Any status may move to any other status. Only two situations carry
preconditions:
  - relocating a booking that is ACTIVE_BOARD needs both check-in and
    promise dates in the same request, as confirmation of the new timing
  - NEXT_JOB → ACTIVE_BOARD needs both job start and job end times
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Any

from workshop.models import BookingStatus
from workshop.schemas import BaySnapshot, BookingChanges, BookingResponse

MISSING_TIMING_CONFIRMATION = "missing timing confirmation for active-board bay change"
MISSING_JOB_TIMES = "missing job start/end time"
PARTIAL_JOB_TIMES = "job start and end time must be provided together"
ACTIVE_WITHOUT_BAY = "a booking without a bay cannot be on the active board"

# Plain field updates persisted as supplied, without a ledger entry.
_PASSTHROUGH_FIELDS = ("checkin_date", "promise_date", "stoppage_reason")


@dataclass(frozen=True)
class EventDraft:
    """Ledger entry to append for an accepted transition (changed_at is set on append)."""

    from_status: str
    to_status: str
    from_bay_id: int | None = None
    from_bay_name: str | None = None
    to_bay_id: int | None = None
    to_bay_name: str | None = None
    job_start_time: time | None = None
    job_end_time: time | None = None


@dataclass(frozen=True)
class Accepted:
    booking: BookingResponse  # snapshot with the changes applied
    updates: dict[str, Any]  # only the fields whose value actually changes
    event: EventDraft | None = None

    @property
    def is_noop(self) -> bool:
        return not self.updates


@dataclass(frozen=True)
class Rejected:
    reason: str


def is_bay_change(current: BookingResponse, changes: BookingChanges) -> bool:
    return changes.bay_id is not None and changes.bay_id != current.bay_id


def is_status_change(current: BookingResponse, changes: BookingChanges) -> bool:
    return changes.status is not None and changes.status != current.status


def evaluate_transition(
    current: BookingResponse,
    changes: BookingChanges,
    new_bay: BaySnapshot | None = None,
) -> Accepted | Rejected:
    bay_changed = is_bay_change(current, changes)
    status_changed = is_status_change(current, changes)

    if bay_changed and (new_bay is None or new_bay.id != changes.bay_id):
        raise ValueError(f"bay {changes.bay_id} must be resolved before evaluation")

    if (
        bay_changed
        and current.status == BookingStatus.ACTIVE_BOARD
        and (changes.checkin_date is None or changes.promise_date is None)
    ):
        return Rejected(MISSING_TIMING_CONFIRMATION)

    if (
        status_changed
        and current.status == BookingStatus.NEXT_JOB
        and changes.status == BookingStatus.ACTIVE_BOARD
        and (changes.job_start_time is None or changes.job_end_time is None)
    ):
        return Rejected(MISSING_JOB_TIMES)

    if (changes.job_start_time is None) != (changes.job_end_time is None):
        return Rejected(PARTIAL_JOB_TIMES)

    target_status = changes.status if status_changed else current.status
    target_bay_id = new_bay.id if bay_changed else current.bay_id
    if target_status == BookingStatus.ACTIVE_BOARD and target_bay_id is None:
        return Rejected(ACTIVE_WITHOUT_BAY)

    proposed: dict[str, Any] = {}
    if changes.job_start_time is not None:
        proposed["job_start_time"] = changes.job_start_time
        proposed["job_end_time"] = changes.job_end_time
    for name in _PASSTHROUGH_FIELDS:
        value = getattr(changes, name)
        if value is not None:
            proposed[name] = value
    if status_changed:
        proposed["status"] = target_status
    if bay_changed:
        proposed["bay_id"] = new_bay.id
        proposed["bay_name"] = new_bay.display_name

    updates = {k: v for k, v in proposed.items() if getattr(current, k) != v}
    updated = current.model_copy(update=updates)

    event = None
    if status_changed or bay_changed:
        event = EventDraft(
            from_status=current.status.value,
            to_status=target_status.value,
            from_bay_id=current.bay_id if bay_changed else None,
            from_bay_name=current.bay_name if bay_changed else None,
            to_bay_id=updated.bay_id if bay_changed else None,
            to_bay_name=updated.bay_name if bay_changed else None,
            job_start_time=updated.job_start_time,
            job_end_time=updated.job_end_time,
        )

    return Accepted(booking=updated, updates=updates, event=event)
