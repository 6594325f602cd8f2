import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime | None = None) -> str:
    """
    Format a UTC moment as ISO-8601 with millisecond precision and a "Z"
    suffix, e.g. "2024-05-01T12:30:00.123Z".
    """
    moment = moment or utc_now()
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


_started_at = time.monotonic()


def uptime_seconds() -> float:
    """Seconds since this process imported the relay."""
    return round(time.monotonic() - _started_at, 3)
