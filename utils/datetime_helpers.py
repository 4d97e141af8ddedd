from datetime import datetime, timezone
from typing import Optional

def ensure_utc(dt: datetime) -> datetime:
    """
    Return `dt` as a timezone-aware UTC datetime.

    SQLite hands back naive datetimes even for `DateTime(timezone=True)`
    columns; those are stored as UTC, so they are tagged rather than shifted.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def format_utc_datetime(dt: Optional[datetime]) -> Optional[str]:
    """
    ISO 8601 in UTC with a 'Z' suffix (e.g. 2025-03-03T09:00:00Z).

    Naive values are treated as UTC, see `ensure_utc`. Returns None for None,
    so optional columns such as a shift's clock-out time pass straight through.
    """
    if dt is None:
        return None

    iso_string = ensure_utc(dt).isoformat()
    if iso_string.endswith('+00:00'):
        return iso_string[:-len('+00:00')] + 'Z'
    return iso_string
