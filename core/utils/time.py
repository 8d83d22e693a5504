"""
Time Utilities

This module provides utilities for handling timestamps from different exchanges.

Different exchanges return timestamps in different formats:
- Aster/EdgeX/Paradex: milliseconds since epoch (e.g., 1700000000000)
- Some endpoints: seconds since epoch (e.g., 1700000000)
- Some endpoints: ISO-8601 strings
- We need: timezone-aware UTC datetimes, and canonical ISO strings for the schemas

Canonical ISO format:
    "YYYY-MM-DDTHH:MM:SS.mmmZ" (always UTC, always millisecond precision).
    The format is fixed width, so comparing two canonical strings lexically
    gives the same answer as comparing the instants they represent.
"""

from datetime import datetime, timezone
from typing import Union

from dateutil import parser as dateparser

MILLISECONDS_THRESHOLD = 1e12


def to_utc_datetime(timestamp: Union[int, float]) -> datetime:
    """
    Convert a timestamp (seconds or milliseconds) to UTC datetime.

    Detection Logic:
        - If timestamp >= 1e12 (1 trillion): Assumed to be milliseconds
        - Otherwise: Assumed to be seconds

    Args:
        timestamp: Unix timestamp in seconds or milliseconds

    Returns:
        datetime: Timezone-aware datetime object in UTC

    Raises:
        ValueError: If timestamp is negative or invalid

    Examples:
        >>> to_utc_datetime(1700000000000)
        datetime.datetime(2023, 11, 14, 22, 13, 20, tzinfo=datetime.timezone.utc)

        >>> to_utc_datetime(1700000000)
        datetime.datetime(2023, 11, 14, 22, 13, 20, tzinfo=datetime.timezone.utc)

    Notes:
        - Seconds: ~1.7 billion (current time)
        - Milliseconds: ~1.7 trillion (current time)
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    if timestamp >= MILLISECONDS_THRESHOLD:
        timestamp = timestamp / 1000.0

    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")


def parse_iso_datetime(value: str) -> datetime:
    """
    Parse an ISO-8601 string into an aware UTC datetime.

    A trailing "Z" is accepted; strings without an offset are treated as UTC.

    Raises:
        ValueError: If the string is not ISO-8601
    """
    dt = dateparser.isoparse(value.strip())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso_string(dt: datetime) -> str:
    """
    Format a datetime in the canonical ISO form.

    Example:
        >>> to_iso_string(datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc))
        '2023-11-14T22:13:20.000Z'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def datetime_to_timestamp(dt: datetime, milliseconds: bool = False) -> int:
    """
    Convert a datetime object to Unix timestamp.

    Args:
        dt: Datetime object (can be naive or timezone-aware)
        milliseconds: If True, return milliseconds; if False, return seconds

    Examples:
        >>> dt = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        >>> datetime_to_timestamp(dt, milliseconds=True)
        1700000000000
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    if milliseconds:
        return int(dt.timestamp() * 1000)

    return int(dt.timestamp())


def current_utc_datetime() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def current_utc_iso() -> str:
    """Get the current time as a canonical ISO string."""
    return to_iso_string(current_utc_datetime())
