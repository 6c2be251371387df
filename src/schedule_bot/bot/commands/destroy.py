"""
Destroy command for Schedule Bot.

This module defines the /destroy slash command, which removes one entry
(by its hexadecimal ID) or every entry of the invoking server from the
schedule together with their display messages.
"""

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from ..scheduling import OperationResult, OperationStatus

if TYPE_CHECKING:
    from ..entry_manager import EntryManager

logger = logging.getLogger(__name__)

ALL_ENTRIES = "all"


def parse_entry_id(value: str) -> int | None:
    """Parse a hexadecimal entry ID as shown on display messages."""
    try:
        entry_id = int(value.strip().lower().removeprefix("0x"), 16)
    except ValueError:
        return None
    return entry_id if entry_id >= 0 else None


class DestroyCog(commands.Cog):
    """Cog for the /destroy command."""

    def __init__(self, bot: commands.Bot, manager: "EntryManager") -> None:
        self.bot: commands.Bot = bot
        self.manager: EntryManager = manager

    @app_commands.command(
        name="destroy", description="Remove an event (by ID) or all events from the schedule"
    )
    @app_commands.describe(target="Event ID as shown on the event, or 'all'")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_messages=True)
    async def destroy(self, interaction: discord.Interaction, target: str) -> None:
        """
        Remove entries from the schedule.

        Args:
            interaction: The Discord interaction
            target: Hexadecimal entry ID, or "all"
        """
        if interaction.guild is None:
            return

        _ = await interaction.response.defer(ephemeral=True, thinking=True)
        reply = await self.run_destroy(interaction.guild.id, target)
        _ = await interaction.followup.send(reply, ephemeral=True)

    async def run_destroy(self, workspace_id: int, target: str) -> str:
        """Execute a destroy request and return the reply for the invoker."""
        if target.strip().lower() == ALL_ENTRIES:
            removed = await self.manager.remove_all_from_workspace(workspace_id)
            if removed == 0:
                return "Your server has no entries on the schedule."
            return f"Removed {removed} entries from the schedule."

        entry_id = parse_entry_id(target)
        if entry_id is None:
            return f'"{target}" is not a valid event ID.'

        result: OperationResult = await self.manager.destroy_entry(entry_id, workspace_id)
        if result.status is OperationStatus.NOT_FOUND:
            return f"There is no event with ID {target}."
        if not result.success:
            logger.warning(f"Destroy of {target} in {workspace_id} failed: {result.status.value}")
        return result.user_message


async def setup(bot: commands.Bot) -> None:
    """Add the cog to the bot."""
    manager: EntryManager = getattr(bot, "entry_manager")
    await bot.add_cog(DestroyCog(bot, manager))
