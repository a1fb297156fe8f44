import time
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from slotengine.availability.exceptions import (
    AvailabilityError,
    ComputationCancelled,
    DataSourceError,
    InvalidRangeError,
    NotFoundError,
    TimezoneResolutionError,
)
from slotengine.availability.schemas import AvailabilityResponse, SlotCheckResponse
from slotengine.availability.service import AvailabilityService
from slotengine.config import settings

router = APIRouter()


def get_availability_service() -> AvailabilityService:
    return AvailabilityService()


def _to_http_error(e: AvailabilityError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, InvalidRangeError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, DataSourceError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if isinstance(e, ComputationCancelled):
        return HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e))
    if isinstance(e, TimezoneResolutionError):
        logger.error(f"Storefront timezone misconfigured: {e}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("/{storefront_id}/availability", response_model=AvailabilityResponse)
def get_availability(
    storefront_id: int,
    service_id: int = Query(..., ge=1, description="Service to book"),
    start_date: date = Query(..., description="YYYY-MM-DD in the storefront timezone"),
    end_date: date = Query(..., description="YYYY-MM-DD in the storefront timezone, inclusive"),
    svc: AvailabilityService = Depends(get_availability_service),
):
    """Public: bookable slots for a service over a date range."""
    deadline = time.monotonic() + settings.availability.computation_timeout_seconds
    try:
        return svc.get_available_slots(
            storefront_id,
            service_id,
            start_date,
            end_date,
            deadline=deadline,
        )
    except AvailabilityError as e:
        raise _to_http_error(e) from e


@router.get("/{storefront_id}/availability/check", response_model=SlotCheckResponse)
def check_availability(
    storefront_id: int,
    service_id: int = Query(..., ge=1),
    start_datetime: str = Query(..., description="ISO-8601 instant"),
    end_datetime: str = Query(..., description="ISO-8601 instant"),
    svc: AvailabilityService = Depends(get_availability_service),
):
    """Re-check a single booking window (used before a reservation is written)."""
    try:
        return svc.check_slot(storefront_id, service_id, start_datetime, end_datetime)
    except AvailabilityError as e:
        raise _to_http_error(e) from e
