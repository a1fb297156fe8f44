from pydantic import BaseModel, Field


class AvailableSlot(BaseModel):
    start_datetime: str = Field(description="Booking start, ISO-8601 UTC")
    end_datetime: str = Field(description="Booking end (buffer excluded), ISO-8601 UTC")
    local_date: str = Field(description="Start date in the storefront timezone (YYYY-MM-DD)")
    local_start_time: str = Field(description="Start time in the storefront timezone (HH:MM)")
    local_end_time: str = Field(description="End time in the storefront timezone (HH:MM)")
    available_capacity: int = Field(ge=1, description="max_concurrent minus bookings already in the span")


class ServiceSummary(BaseModel):
    name: str
    duration_minutes: int
    buffer_time_minutes: int
    price: float | None = None


class AvailabilityResponse(BaseModel):
    storefront_id: int
    service_id: int
    timezone: str
    service: ServiceSummary
    slots: list[AvailableSlot]


class SlotCheckResponse(BaseModel):
    available: bool
    reason: str | None = None
    current_bookings: int | None = None
    max_concurrent: int | None = None
