"""
RSVP reaction listener for Schedule Bot.

Members RSVP by reacting to an entry's display message with one of the
channel's RSVP emoji. Removing that reaction, or reacting with the clear
emoji, withdraws the RSVP.
"""

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from ...config.schema import ChannelSettings

if TYPE_CHECKING:
    from ..entry_manager import EntryManager

logger = logging.getLogger(__name__)


def emoji_key(emoji: discord.PartialEmoji) -> str:
    """Key of a reaction emoji in the RSVP options: custom emote ID or the unicode emoji."""
    if emoji.id is not None:
        return str(emoji.id)
    return emoji.name or ""


class RsvpCog(commands.Cog):
    """Cog translating reactions on display messages into RSVPs."""

    def __init__(self, bot: commands.Bot, manager: "EntryManager") -> None:
        self.bot: commands.Bot = bot
        self.manager: EntryManager = manager

    def _is_own(self, user_id: int) -> bool:
        return self.bot.user is not None and user_id == self.bot.user.id

    def _settings_for(self, channel_id: int) -> ChannelSettings | None:
        settings = self.manager.config.get_channel_settings(channel_id)
        return settings if settings.rsvp_enabled else None

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        if self._is_own(payload.user_id):
            return
        settings = self._settings_for(payload.channel_id)
        if settings is None:
            return

        entry = await self.manager.find_by_message(payload.channel_id, payload.message_id)
        if entry is None or entry.entry_id is None:
            return

        key = emoji_key(payload.emoji)
        if settings.rsvp_clear and key == settings.rsvp_clear:
            result = await self.manager.clear_rsvp(entry.entry_id, payload.user_id)
        elif key in settings.rsvp_options:
            result = await self.manager.rsvp(
                entry.entry_id, payload.user_id, settings.rsvp_options[key]
            )
        else:
            return

        if not result.success:
            logger.info(
                f"RSVP by {payload.user_id} on entry {entry.entry_id:x} not recorded: "
                f"{result.error_message or result.status.value}"
            )

    @commands.Cog.listener()
    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent) -> None:
        if self._is_own(payload.user_id):
            return
        settings = self._settings_for(payload.channel_id)
        if settings is None:
            return

        category = settings.rsvp_options.get(emoji_key(payload.emoji))
        if category is None:
            return
        entry = await self.manager.find_by_message(payload.channel_id, payload.message_id)
        if entry is None or entry.entry_id is None:
            return

        # Only withdraw if the member still holds the category of the removed reaction
        if entry.rsvp_category_of(payload.user_id) == category:
            _ = await self.manager.clear_rsvp(entry.entry_id, payload.user_id)


async def setup(bot: commands.Bot) -> None:
    """Add the cog to the bot."""
    manager: EntryManager = getattr(bot, "entry_manager")
    await bot.add_cog(RsvpCog(bot, manager))
