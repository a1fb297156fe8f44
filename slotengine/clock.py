from datetime import date, datetime, timezone

MINUTES_PER_DAY = 24 * 60


def parse_clock(value: str) -> int:
    """Convert 'HH:MM' or 'HH:MM:SS' to minutes after midnight ('24:00' -> 1440)."""
    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"time must be HH:MM or HH:MM:SS, got {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    seconds = int(parts[2]) if len(parts) == 3 else 0
    if minutes > 59 or seconds > 59:
        raise ValueError(f"time out of range: {value!r}")
    total = hours * 60 + minutes
    if total > MINUTES_PER_DAY or (total == MINUTES_PER_DAY and seconds):
        raise ValueError(f"time out of range: {value!r}")
    return total


def format_clock(minutes: int) -> str:
    """Convert minutes after midnight back to 'HH:MM'."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value) -> date:
    """Accept a date or an ISO string (a time component, if any, is dropped)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    if len(text) > 10:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)


def parse_instant(value) -> datetime:
    """Parse an ISO-8601 instant; naive values are taken to be UTC."""
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_instant(value: datetime) -> str:
    """Render a UTC instant as ISO-8601 with a trailing 'Z'."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
