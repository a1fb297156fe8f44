from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, HttpUrl, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DynamoDBSettings(BaseModel):
    endpoint_url: HttpUrl | None = "http://localhost:8020"
    region: str = "us-east-1"
    table_name: str = "slotengine_bookings"
    aws_access_key_id: str = "local"
    aws_secret_access_key: SecretStr = "local"


class AvailabilitySettings(BaseModel):
    max_range_days: int = Field(default=31, ge=0, description="Widest allowed start_date..end_date span")
    min_notice_minutes: int = Field(default=0, ge=0, description="Slots starting sooner than this are hidden")
    drop_priority: int = 100
    daily_priority: int = 10
    monthly_priority: int = 5
    weekly_priority: int = 2
    # "storefront" counts every service's bookings against the window capacity
    capacity_scope: Literal["storefront", "service"] = "storefront"
    computation_timeout_seconds: float = Field(default=10.0, gt=0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        # Nested groups read from e.g. DB__TABLE_NAME or AVAILABILITY__MAX_RANGE_DAYS
        env_nested_delimiter="__",
        extra="ignore",
    )

    # App Metadata
    app_env: Literal["development", "testing", "production"] = "development"
    frontend_url: HttpUrl = "http://localhost:5173"

    # Nested Groups
    db: DynamoDBSettings = DynamoDBSettings()
    availability: AvailabilitySettings = AvailabilitySettings()

    @model_validator(mode="after")
    def production_must_use_real_dynamodb(self) -> "Settings":
        if self.app_env != "production" or self.db.endpoint_url is None:
            return self
        endpoint = str(self.db.endpoint_url)
        if "localhost" in endpoint or "127.0.0.1" in endpoint:
            raise ValueError(
                "In production, DB__ENDPOINT_URL must not point at a local DynamoDB. "
                "Unset it to use the regional AWS endpoint."
            )
        return self

    def print_env_summary(self) -> None:
        """Print loaded env summary (secrets masked)."""
        mask = "***"
        print("--- Config / env summary ---")
        print("App:")
        print(f"  app_env={self.app_env}")
        print(f"  frontend_url={self.frontend_url}")
        print("DB:")
        print(f"  endpoint_url={self.db.endpoint_url}")
        print(f"  region={self.db.region}")
        print(f"  table_name={self.db.table_name}")
        print(f"  aws_access_key_id={self.db.aws_access_key_id}")
        print(f"  aws_secret_access_key={mask}")
        print("Availability:")
        print(f"  max_range_days={self.availability.max_range_days}")
        print(f"  min_notice_minutes={self.availability.min_notice_minutes}")
        print(f"  drop_priority={self.availability.drop_priority}")
        print(f"  capacity_scope={self.availability.capacity_scope}")
        print(f"  computation_timeout_seconds={self.availability.computation_timeout_seconds}")
        print("---")


settings = Settings()
