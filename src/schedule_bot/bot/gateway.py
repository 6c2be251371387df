"""
Discord messaging gateway.

Wraps the discord.py client calls the engine needs (resolve channel,
fetch/send/edit/delete message, add/clear reactions, list guilds) and turns
platform failures into absent results so callers can report them as values.
"""

import asyncio
import logging

import discord

logger = logging.getLogger(__name__)

PlatformErrors = (discord.HTTPException, asyncio.TimeoutError)


class MessagingGateway:
    """Message operations against the Discord API."""

    def __init__(self, client: discord.Client) -> None:
        """
        Initialize the gateway.

        Args:
            client: Connected discord.py client (or bot)
        """
        self.client: discord.Client = client

    def workspace_ids(self) -> set[int]:
        """IDs of every guild this client is connected to."""
        return {guild.id for guild in self.client.guilds}

    async def resolve_channel(self, channel_id: int) -> discord.abc.Messageable | None:
        channel = self.client.get_channel(channel_id)
        if channel is not None:
            return channel  # pyright: ignore[reportReturnType]
        try:
            fetched = await self.client.fetch_channel(channel_id)
        except discord.NotFound:
            logger.debug(f"Channel {channel_id} no longer exists")
            return None
        except PlatformErrors as e:
            logger.warning(f"Failed to resolve channel {channel_id}: {e}")
            return None
        if isinstance(fetched, discord.abc.Messageable):
            return fetched
        return None

    async def fetch_message(self, channel_id: int, message_id: int) -> discord.Message | None:
        channel = await self.resolve_channel(channel_id)
        if channel is None:
            return None
        try:
            return await channel.fetch_message(message_id)
        except discord.NotFound:
            logger.debug(f"Message {message_id} not found in channel {channel_id}")
            return None
        except PlatformErrors as e:
            logger.warning(f"Failed to fetch message {message_id} in channel {channel_id}: {e}")
            return None

    async def send(
        self,
        channel_id: int,
        *,
        content: str | None = None,
        embed: discord.Embed | None = None,
    ) -> discord.Message | None:
        channel = await self.resolve_channel(channel_id)
        if channel is None:
            logger.warning(f"Cannot send to unresolvable channel {channel_id}")
            return None
        try:
            return await channel.send(content=content, embed=embed)
        except discord.Forbidden:
            logger.warning(f"Missing permission to send messages in channel {channel_id}")
            return None
        except PlatformErrors as e:
            logger.warning(f"Failed to send message to channel {channel_id}: {e}")
            return None

    async def edit(
        self, message: discord.Message, *, embed: discord.Embed
    ) -> discord.Message | None:
        try:
            return await message.edit(embed=embed)
        except discord.NotFound:
            logger.debug(f"Message {message.id} was deleted before it could be edited")
            return None
        except PlatformErrors as e:
            logger.warning(f"Failed to edit message {message.id}: {e}")
            return None

    async def delete(self, message: discord.Message) -> bool:
        try:
            await message.delete()
            return True
        except discord.NotFound:
            # Already gone is as good as deleted
            return True
        except PlatformErrors as e:
            logger.warning(f"Failed to delete message {message.id}: {e}")
            return False

    async def add_reaction(self, message: discord.Message, emoji: str) -> bool:
        """
        Add a reaction given either a unicode emoji or a custom emote ID.

        Custom emotes are looked up across every guild the client can see.
        """
        reaction: str | discord.Emoji = emoji
        if emoji.isdigit():
            emote = self.client.get_emoji(int(emoji))
            if emote is None:
                logger.warning(f"Custom emote {emoji} is not visible to the bot")
                return False
            reaction = emote
        try:
            await message.add_reaction(reaction)
            return True
        except PlatformErrors as e:
            logger.warning(f"Failed to add reaction {emoji} to message {message.id}: {e}")
            return False

    async def clear_reactions(self, message: discord.Message) -> bool:
        try:
            await message.clear_reactions()
            return True
        except PlatformErrors as e:
            logger.warning(f"Failed to clear reactions on message {message.id}: {e}")
            return False
