from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from slotengine.clock import format_instant, parse_instant

AppointmentStatus = Literal["pending", "confirmed", "cancelled", "completed", "no_show", "declined"]

# Only these hold on to capacity; every other status is terminal or negative.
CAPACITY_STATUSES: tuple[AppointmentStatus, ...] = ("pending", "confirmed")


@dataclass(frozen=True)
class Appointment:
    id: int
    storefront_id: int
    service_id: int
    start_datetime: datetime
    end_datetime: datetime
    status: AppointmentStatus = "pending"

    @property
    def consumes_capacity(self) -> bool:
        return self.status in CAPACITY_STATUSES

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap: [a, b) and [c, d) overlap iff a < d and c < b."""
        return self.start_datetime < end and start < self.end_datetime

    def to_dynamo_item(self) -> dict:
        """Convert to a DynamoDB item dict."""
        start = format_instant(self.start_datetime)
        return {
            "PK": f"STOREFRONT#{self.storefront_id}",
            "SK": f"APPOINTMENT#{start}#{self.id}",
            "id": self.id,
            "storefront_id": self.storefront_id,
            "service_id": self.service_id,
            "start_datetime": start,
            "end_datetime": format_instant(self.end_datetime),
            "status": self.status,
        }

    @classmethod
    def from_dynamo_item(cls, item: dict) -> "Appointment":
        """Create an Appointment from a DynamoDB item dict."""
        return cls(
            id=int(item["id"]),
            storefront_id=int(item["storefront_id"]),
            service_id=int(item["service_id"]),
            start_datetime=parse_instant(item["start_datetime"]),
            end_datetime=parse_instant(item["end_datetime"]),
            status=item.get("status", "pending"),
        )
