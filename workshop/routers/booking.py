from uuid import UUID

from fastapi import APIRouter, Depends, status
from loguru import logger

from workshop.cache import (
    get_history_cache,
    invalidate_history_cache,
    mark_history_deleted,
    set_history_cache,
)
from workshop.deps import (
    AdvisorDirectoryClient,
    BayDirectoryClient,
    get_advisors_client,
    get_bays_client,
)
from workshop.lifecycle import BookingLifecycleService
from workshop.schemas import (
    BookingChanges,
    BookingCreate,
    BookingFilters,
    BookingResponse,
    ProcessEventResponse,
)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def get_lifecycle_service(
    bays: BayDirectoryClient = Depends(get_bays_client),
    advisors: AdvisorDirectoryClient = Depends(get_advisors_client),
) -> BookingLifecycleService:
    return BookingLifecycleService(bays=bays, advisors=advisors)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    filters: BookingFilters = Depends(),
    service: BookingLifecycleService = Depends(get_lifecycle_service),
) -> list[BookingResponse]:
    return await service.list(filters)


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    service: BookingLifecycleService = Depends(get_lifecycle_service),
) -> BookingResponse:
    return await service.create(payload)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    service: BookingLifecycleService = Depends(get_lifecycle_service),
) -> BookingResponse:
    return await service.get(booking_id)


@router.put("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: UUID,
    payload: BookingChanges,
    service: BookingLifecycleService = Depends(get_lifecycle_service),
) -> BookingResponse:
    updated = await service.update(booking_id, payload)
    await invalidate_history_cache(booking_id)
    return updated


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: UUID,
    service: BookingLifecycleService = Depends(get_lifecycle_service),
) -> None:
    await service.delete(booking_id)
    await mark_history_deleted(booking_id)


@router.get("/{booking_id}/history", response_model=list[ProcessEventResponse])
async def get_booking_history(
    booking_id: UUID,
    service: BookingLifecycleService = Depends(get_lifecycle_service),
) -> list[ProcessEventResponse]:
    cached = await get_history_cache(booking_id)
    if cached is not None:
        logger.debug("Cache hit for history: booking_id={}", booking_id)
        return [ProcessEventResponse(**e) for e in cached]

    logger.debug("Cache miss for history: booking_id={}", booking_id)
    events = await service.history(booking_id)
    await set_history_cache(booking_id, [e.model_dump(mode="json") for e in events])
    return events
