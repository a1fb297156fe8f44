from dataclasses import dataclass

from slotengine.storefronts.schemas import BusinessHours


@dataclass
class Storefront:
    """A bookable business; every civil time on its rules is read in `timezone`."""

    id: int
    name: str
    timezone: str = "UTC"
    business_hours: BusinessHours | None = None
    is_active: bool = True

    def to_dynamo_item(self) -> dict:
        """Convert to a DynamoDB item dict."""
        item = {
            "PK": f"STOREFRONT#{self.id}",
            "SK": "PROFILE",
            "id": self.id,
            "name": self.name,
            "timezone": self.timezone,
            "is_active": self.is_active,
        }
        if self.business_hours is not None:
            item["business_hours"] = self.business_hours.model_dump()
        return item

    @classmethod
    def from_dynamo_item(cls, item: dict) -> "Storefront":
        """Create a Storefront from a DynamoDB item dict."""
        hours = item.get("business_hours")
        return cls(
            id=int(item["id"]),
            name=item.get("name", ""),
            timezone=item.get("timezone") or "UTC",
            business_hours=BusinessHours.model_validate(hours) if hours else None,
            is_active=item.get("is_active", True),
        )


@dataclass
class Service:
    """A bookable offering of a storefront. Buffer is dead time after each booking."""

    id: int
    storefront_id: int
    name: str
    duration_minutes: int
    buffer_time_minutes: int = 0
    price: float | None = None
    is_active: bool = True

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be positive, got {self.duration_minutes}")
        if self.buffer_time_minutes < 0:
            raise ValueError(f"buffer_time_minutes cannot be negative, got {self.buffer_time_minutes}")

    @property
    def step_minutes(self) -> int:
        return self.duration_minutes + self.buffer_time_minutes

    def to_dynamo_item(self) -> dict:
        """Convert to a DynamoDB item dict."""
        item = {
            "PK": f"SERVICE#{self.id}",
            "SK": "PROFILE",
            "id": self.id,
            "storefront_id": self.storefront_id,
            "name": self.name,
            "duration_minutes": self.duration_minutes,
            "buffer_time_minutes": self.buffer_time_minutes,
            "is_active": self.is_active,
        }
        if self.price is not None:
            # DynamoDB rejects floats
            item["price"] = str(self.price)
        return item

    @classmethod
    def from_dynamo_item(cls, item: dict) -> "Service":
        """Create a Service from a DynamoDB item dict."""
        price = item.get("price")
        return cls(
            id=int(item["id"]),
            storefront_id=int(item["storefront_id"]),
            name=item.get("name", ""),
            duration_minutes=int(item["duration_minutes"]),
            buffer_time_minutes=int(item.get("buffer_time_minutes", 0) or 0),
            price=float(price) if price is not None else None,
            is_active=item.get("is_active", True),
        )
