"""
Countdown formatting for entry displays.

The display refresh cascade re-renders entries at a cadence matching the
precision of the text produced here: days far out, hours within a day,
minutes within the last hour.
"""

from datetime import datetime, timedelta


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_remaining(remaining: timedelta) -> str:
    """
    Render a remaining duration at display granularity.

    Args:
        remaining: Time left until the event boundary

    Returns:
        Human readable duration such as "2 days", "5 hours" or "12 minutes"
    """
    total_seconds = int(remaining.total_seconds())
    if total_seconds <= 0:
        return "now"

    days, rest = divmod(total_seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60

    if days > 0:
        return _plural(days, "day")
    if hours > 0:
        return _plural(hours, "hour")
    # Round up so "0 minutes" is never shown while the event is pending
    return _plural(max(minutes, 1), "minute")


def describe_countdown(
    start: datetime, end: datetime, has_started: bool, now: datetime
) -> str:
    """
    Describe where an occurrence is relative to now.

    Args:
        start: Occurrence start
        end: Occurrence end
        has_started: Whether the start announcement already fired
        now: Reference time

    Returns:
        A short status line for the display message
    """
    if not has_started and now < start:
        return f"starts in {format_remaining(start - now)}"
    if now < end:
        return f"ends in {format_remaining(end - now)}"
    return "ended"
