"""
Rendering of entry displays and announcement texts.

The display is a single embed with a title block, a timing block and an
RSVP block. Announcement templates use ``str.format`` placeholders such as
``{title}`` and ``{start_relative}``; unknown placeholders are left as-is.
"""

import logging
from datetime import datetime

import discord

from .entry import ScheduleEntry
from ...config.schema import ChannelSettings
from ...utils.time import describe_countdown, format_for_discord

logger = logging.getLogger(__name__)

DEFAULT_COLOR = discord.Color.blurple()


class _KeepMissing(dict[str, str]):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def format_entry_id(entry_id: int | None) -> str:
    """Entry IDs are shown to users in hexadecimal."""
    return f"{entry_id:x}" if entry_id is not None else "?"


def _parse_color(value: str | None) -> discord.Color:
    if not value:
        return DEFAULT_COLOR
    try:
        return discord.Color.from_str(value)
    except ValueError:
        logger.debug(f"Ignoring invalid entry color {value!r}")
        return DEFAULT_COLOR


def render_announcement(template: str, entry: ScheduleEntry) -> str:
    """
    Fill an announcement template for an entry.

    Args:
        template: Message template with ``{placeholder}`` fields
        entry: Entry being announced

    Returns:
        The announcement text
    """
    values = _KeepMissing(
        title=entry.title,
        id=format_entry_id(entry.entry_id),
        url=entry.url or "",
        location=entry.location or "",
        description=entry.description or "",
        start=format_for_discord(entry.start, "F"),
        end=format_for_discord(entry.end, "F"),
        start_relative=format_for_discord(entry.start, "R"),
        end_relative=format_for_discord(entry.end, "R"),
    )
    try:
        return template.format_map(values)
    except (ValueError, IndexError, KeyError, AttributeError, TypeError) as e:
        logger.warning(f"Malformed announcement template {template!r}: {e}")
        return template


def build_display_embed(
    entry: ScheduleEntry, settings: ChannelSettings, now: datetime
) -> discord.Embed:
    """
    Render the display message of an entry.

    Args:
        entry: Entry to render
        settings: Settings of the entry's channel (RSVP emoji)
        now: Reference time for the countdown

    Returns:
        The embed shown in the schedule channel
    """
    embed = discord.Embed(
        title=entry.title,
        url=entry.url or None,
        description=entry.description or None,
        color=_parse_color(entry.color),
    )

    # Timing block
    timing = f"{format_for_discord(entry.start, 'F')} – {format_for_discord(entry.end, 't')}"
    if entry.recurrence.repeats:
        timing += "\nRepeats"
        if entry.recurrence.count is not None:
            timing += f" ({entry.recurrence.count} more)"
    _ = embed.add_field(name="When", value=timing, inline=False)
    _ = embed.add_field(
        name="Status",
        value=describe_countdown(entry.start, entry.end, entry.has_started, now),
        inline=True,
    )
    if entry.location:
        _ = embed.add_field(name="Where", value=entry.location, inline=True)
    for comment in entry.comments:
        _ = embed.add_field(name="\u200b", value=comment, inline=False)

    # RSVP block
    if entry.rsvp_members:
        emoji_for = {category: emoji for emoji, category in settings.rsvp_options.items()}
        for category, members in entry.rsvp_members.items():
            limit = entry.rsvp_limit(category)
            if limit == 0:
                continue
            header = f"{emoji_for.get(category, '')} {category}".strip()
            header += f" ({len(members)}/{limit})" if limit > 0 else f" ({len(members)})"
            value = ", ".join(f"<@{member}>" for member in members) or "nobody yet"
            _ = embed.add_field(name=header, value=value, inline=True)
        if entry.deadline is not None:
            _ = embed.add_field(
                name="RSVP closes",
                value=format_for_discord(entry.deadline, "R"),
                inline=False,
            )

    if entry.image:
        _ = embed.set_image(url=entry.image)
    if entry.thumbnail:
        _ = embed.set_thumbnail(url=entry.thumbnail)

    _ = embed.set_footer(text=f"ID: {format_entry_id(entry.entry_id)}")
    return embed
