"""
Test helper utilities for Schedule Bot tests.

This module provides factories for configuration objects, schedule
entries and a messaging gateway mock that keeps track of the messages it
"sent", so display and announcement behaviour can be asserted end to end
without a Discord connection.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import discord

from schedule_bot.bot.gateway import MessagingGateway
from schedule_bot.bot.scheduling import ScheduleEntry
from schedule_bot.config.schema import (
    ChannelSettings,
    ChannelsConfig,
    DiscordConfig,
    LimitsConfig,
    ScheduleBotConfig,
    ServicesConfig,
)

__all__ = [
    "WORKSPACE_ID",
    "CHANNEL_ID",
    "OTHER_CHANNEL_ID",
    "T0",
    "create_test_config",
    "create_mock_message",
    "create_mock_gateway",
    "make_entry",
]

WORKSPACE_ID = 111_000_111
CHANNEL_ID = 222_000_222
OTHER_CHANNEL_ID = 333_000_333

# A Monday evening
T0 = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)


def create_test_config(
    *,
    max_entries: int = 15,
    overrides: dict[int, ChannelSettings] | None = None,
    **channel_defaults: object,
) -> ScheduleBotConfig:
    """
    Create a validated configuration for tests.

    Args:
        max_entries: Per-workspace entry quota
        overrides: Per-channel settings
        **channel_defaults: Fields of the default ChannelSettings

    Returns:
        ScheduleBotConfig: Configuration with a dummy Discord token
    """
    return ScheduleBotConfig(
        services=ServicesConfig(discord=DiscordConfig(token="test_discord_token_1234567890")),
        limits=LimitsConfig(max_entries=max_entries),
        channels=ChannelsConfig(
            defaults=ChannelSettings.model_validate(channel_defaults),
            overrides=overrides or {},
        ),
    )


def create_mock_message(message_id: int) -> MagicMock:
    """Create a mock Discord message with the given ID."""
    message = MagicMock(spec=discord.Message)
    message.id = message_id
    return message


def create_mock_gateway(workspace_ids: set[int] | None = None) -> MagicMock:
    """
    Create a messaging gateway mock backed by an in-memory message board.

    Sent messages get increasing IDs and stay fetchable until deleted. The
    mock exposes ``messages`` (ID to message) and ``sent`` (a list of
    ``(channel_id, content, embed)`` tuples) for assertions.

    Args:
        workspace_ids: Guilds the client is connected to, defaults to WORKSPACE_ID

    Returns:
        MagicMock: Gateway mock with async message operations
    """
    gateway = MagicMock(spec=MessagingGateway)
    messages: dict[int, MagicMock] = {}
    sent: list[tuple[int, str | None, discord.Embed | None]] = []
    ids = itertools.count(1000)

    async def send(
        channel_id: int, *, content: str | None = None, embed: discord.Embed | None = None
    ) -> MagicMock:
        message = create_mock_message(next(ids))
        messages[message.id] = message
        sent.append((channel_id, content, embed))
        return message

    async def fetch_message(channel_id: int, message_id: int) -> MagicMock | None:
        return messages.get(message_id)

    async def edit(message: MagicMock, *, embed: discord.Embed) -> MagicMock | None:
        return message if message.id in messages else None

    async def delete(message: MagicMock) -> bool:
        _ = messages.pop(message.id, None)
        return True

    gateway.messages = messages
    gateway.sent = sent
    gateway.workspace_ids = MagicMock(return_value=workspace_ids or {WORKSPACE_ID})
    gateway.send = AsyncMock(side_effect=send)
    gateway.fetch_message = AsyncMock(side_effect=fetch_message)
    gateway.edit = AsyncMock(side_effect=edit)
    gateway.delete = AsyncMock(side_effect=delete)
    gateway.add_reaction = AsyncMock(return_value=True)
    gateway.clear_reactions = AsyncMock(return_value=True)
    return gateway


def make_entry(
    *,
    title: str = "Raid night",
    start: datetime = T0,
    duration: timedelta = timedelta(hours=1),
    workspace_id: int = WORKSPACE_ID,
    channel_id: int = CHANNEL_ID,
    **fields: object,
) -> ScheduleEntry:
    """Create a schedule entry; extra keyword arguments set entry fields."""
    return ScheduleEntry(
        title=title,
        start=start,
        end=start + duration,
        workspace_id=workspace_id,
        channel_id=channel_id,
        **fields,  # pyright: ignore[reportArgumentType]
    )
