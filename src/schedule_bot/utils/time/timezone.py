"""
Timezone handling utilities for Schedule Bot.

Entry times are stored and compared as timezone-aware UTC datetimes; these
helpers keep that invariant in one place.
"""

from datetime import datetime, timezone
from typing import Literal

import discord


# Type alias for Discord timestamp styles
TimestampStyle = Literal["t", "T", "d", "D", "f", "F", "R"]


def utc_now() -> datetime:
    """
    Get the current time as a timezone-aware UTC datetime.

    Examples:
        >>> utc_now().tzinfo is timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_timezone_aware(dt: datetime) -> datetime:
    """
    Ensure a datetime object is timezone-aware.

    Naive datetimes are assumed to already be in UTC. Aware datetimes are
    converted to UTC.

    Args:
        dt: Datetime object that may be naive or timezone-aware

    Returns:
        Timezone-aware datetime in UTC

    Examples:
        >>> naive_dt = datetime(2025, 7, 25, 14, 30, 0)
        >>> ensure_timezone_aware(naive_dt).tzinfo is timezone.utc
        True
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_stored_datetime(value: object) -> datetime | None:
    """
    Convert a stored timestamp back into an aware datetime.

    The JSON store keeps ISO-8601 strings while the in-memory store keeps
    datetime objects, so both are accepted.

    Args:
        value: ISO-8601 string, datetime, or None

    Returns:
        Aware UTC datetime, or None for a missing value
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_timezone_aware(value)
    if isinstance(value, str):
        return ensure_timezone_aware(datetime.fromisoformat(value))
    raise TypeError(f"Unsupported timestamp value: {value!r}")


def format_for_discord(dt: datetime, style: TimestampStyle = "F") -> str:
    """
    Format a datetime object as a Discord timestamp.

    Args:
        dt: The datetime to format
        style: Discord timestamp style (default: 'F' for full date/time)

    Returns:
        Formatted Discord timestamp string

    Examples:
        >>> dt = datetime(2025, 7, 25, 23, 59, 0)
        >>> format_for_discord(dt).endswith(":F>")
        True
    """
    return discord.utils.format_dt(ensure_timezone_aware(dt), style=style)
