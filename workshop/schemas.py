from __future__ import annotations

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from workshop.models import BookingStatus, JobType


class BaySnapshot(BaseModel):
    """Bay as resolved from the bay directory at lookup time."""

    id: int
    display_name: str
    status: str | None = None


class AdvisorSnapshot(BaseModel):
    """Service advisor as resolved from the advisor directory at lookup time."""

    id: int
    name: str
    status: str | None = None


class BookingCreate(BaseModel):
    vehicle_registration: str = Field(min_length=1, max_length=32)
    checkin_date: date
    promise_date: date
    service_advisor_id: int
    bay_id: int
    job_type: JobType

    @field_validator("vehicle_registration", mode="after")
    @classmethod
    def normalise_registration(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("vehicle_registration must not be blank")
        return v


class BookingChanges(BaseModel):
    """
    Requested changes for an existing booking. Every field is optional;
    an omitted field means "leave as is".
    """

    status: BookingStatus | None = None
    bay_id: int | None = None
    job_start_time: time | None = None
    job_end_time: time | None = None
    checkin_date: date | None = None
    promise_date: date | None = None
    stoppage_reason: str | None = Field(default=None, max_length=1000)


class BookingResponse(BaseModel):
    id: UUID
    vehicle_registration: str
    checkin_date: date
    promise_date: date
    service_advisor_id: int
    service_advisor_name: str | None
    bay_id: int | None
    bay_name: str | None
    job_type: JobType
    status: BookingStatus
    job_start_time: time | None
    job_end_time: time | None
    stoppage_reason: str | None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProcessEventResponse(BaseModel):
    id: UUID
    booking_id: UUID
    from_status: str
    to_status: str
    from_bay_id: int | None
    from_bay_name: str | None
    to_bay_id: int | None
    to_bay_name: str | None
    changed_at: datetime
    job_start_time: time | None
    job_end_time: time | None

    model_config = ConfigDict(from_attributes=True)


class BookingFilters(BaseModel):
    """Bind to a FastAPI route via Depends(BookingFilters)."""

    status: BookingStatus | None = None
    vehicle_registration: str | None = None
    bay_id: int | None = None

    # Pagination
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
