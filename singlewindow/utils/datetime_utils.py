# =============================================================================
# File: singlewindow/utils/datetime_utils.py
# Description: Datetime utilities (UTC normalization, tolerant parsing)
# =============================================================================

from datetime import datetime, timezone
from typing import Optional, Union


def ensure_utc(value: datetime) -> datetime:
    """
    Return `value` as an aware UTC datetime.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp_robust(
    timestamp: Union[str, datetime, None],
    fallback: Optional[datetime] = None
) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Handles:
    - ISO 8601 with offset or 'Z' suffix
    - Missing timezone (defaults to UTC)
    - Already datetime objects

    Examples:
        >>> parse_timestamp_robust("2025-11-25T00:54:40Z")
        datetime(2025, 11, 25, 0, 54, 40, tzinfo=timezone.utc)
    """
    if timestamp is None:
        return fallback

    if isinstance(timestamp, datetime):
        return ensure_utc(timestamp)

    if not isinstance(timestamp, str):
        return fallback

    ts = timestamp.strip().replace('Z', '+00:00')
    try:
        return ensure_utc(datetime.fromisoformat(ts))
    except ValueError:
        return fallback

# =============================================================================
# EOF
# =============================================================================
