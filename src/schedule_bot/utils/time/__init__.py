"""
Time utilities for Schedule Bot.

This package provides consistent timezone handling and countdown formatting
across the application.
"""

from .timezone import (
    utc_now,
    ensure_timezone_aware,
    parse_stored_datetime,
    format_for_discord,
    TimestampStyle,
)
from .countdown import format_remaining, describe_countdown

__all__ = [
    "utc_now",
    "ensure_timezone_aware",
    "parse_stored_datetime",
    "format_for_discord",
    "TimestampStyle",
    "format_remaining",
    "describe_countdown",
]
