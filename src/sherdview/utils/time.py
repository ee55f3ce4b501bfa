"""Time utilities: UTC formatting and timestamp coercion."""

from datetime import datetime, timezone
from typing import Any

# Records without a creation timestamp sort after every dated record.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now_z() -> str:
    """
    Get current UTC time as ISO 8601 string with Z suffix.
    
    Returns:
        ISO 8601 UTC timestamp ending with 'Z' (e.g., '2025-12-23T00:27:07.804867Z')
    """
    return to_utc_z(datetime.now(timezone.utc))


def to_utc_z(dt: datetime) -> str:
    """
    Convert datetime to ISO 8601 UTC string with Z suffix.
    
    Args:
        dt: Datetime object (must be timezone-aware)
        
    Returns:
        ISO 8601 UTC timestamp ending with 'Z'
        
    Raises:
        ValueError: If datetime is naive (not timezone-aware)
    """
    if dt.tzinfo is None:
        raise ValueError(
            f"Naive datetime not allowed. Got {dt}. "
            "Use datetime.now(timezone.utc) or dt.replace(tzinfo=timezone.utc)"
        )
    
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.isoformat().replace('+00:00', 'Z')


def coerce_instant(value: Any) -> datetime:
    """
    Coerce a stored timestamp into a timezone-aware UTC datetime.
    
    Accepted representations:
    - datetime (naive values are taken as UTC)
    - ISO 8601 string, with or without a trailing 'Z'
    - int/float epoch seconds
    - dict with "seconds"/"nanoseconds" (or "_seconds"/"_nanoseconds"),
      the shape Firestore timestamps take once serialized to JSON
    
    Missing or empty values coerce to EPOCH.
    
    Args:
        value: Raw timestamp value from a stored document
        
    Returns:
        Timezone-aware datetime in UTC
        
    Raises:
        ValueError: If the value has an unrecognized shape or cannot be parsed
    """
    if value is None or value == "":
        return EPOCH
    
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    
    # bool is an int subclass; a flag is never a timestamp
    if isinstance(value, bool):
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    
    if isinstance(value, (int, float)):
        return _from_epoch_seconds(value)
    
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"Invalid timestamp string: {value!r}") from e
        return coerce_instant(parsed)
    
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", value.get("nanos", 0)))
        if seconds is None:
            raise ValueError(f"Timestamp mapping missing seconds: {value!r}")
        try:
            total = int(seconds) + int(nanos or 0) / 1e9
        except (TypeError, OverflowError) as e:
            raise ValueError(f"Invalid timestamp mapping: {value!r}") from e
        return _from_epoch_seconds(total)
    
    raise ValueError(f"Unsupported timestamp value: {value!r}")


def _from_epoch_seconds(seconds: float) -> datetime:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"Timestamp out of range: {seconds!r}") from e
