"""
Display synchronizer.

Keeps each entry's display message in the schedule channel consistent with
its stored state: sends new displays, edits existing ones in place (so
reactions stay attached), deletes them, and reorders a channel's displays
when auto-sort is enabled.
"""

import logging
from datetime import datetime

import discord

from .entry import ScheduleEntry
from .rendering import build_display_embed
from .store import EntryStore
from ..gateway import MessagingGateway
from ...config.schema import ScheduleBotConfig
from ...utils.time import utc_now

logger = logging.getLogger(__name__)


class DisplaySynchronizer:
    """Renders entries and reconciles them with their Discord messages."""

    def __init__(
        self, gateway: MessagingGateway, store: EntryStore, config: ScheduleBotConfig
    ) -> None:
        self.gateway: MessagingGateway = gateway
        self.store: EntryStore = store
        self.config: ScheduleBotConfig = config

    def render(self, entry: ScheduleEntry, now: datetime | None = None) -> discord.Embed:
        settings = self.config.get_channel_settings(entry.channel_id)
        return build_display_embed(entry, settings, now or utc_now())

    async def resolve_message(self, entry: ScheduleEntry) -> discord.Message | None:
        """Fetch the live display message of an entry, if it still exists."""
        if entry.message_id is None:
            return None
        return await self.gateway.fetch_message(entry.channel_id, entry.message_id)

    async def publish(
        self, entry: ScheduleEntry, now: datetime | None = None
    ) -> discord.Message | None:
        """
        Send a new display message for an entry.

        RSVP reactions are added when RSVP is enabled for the channel.

        Returns:
            The sent message, or None if the platform rejected the send
        """
        message = await self.gateway.send(entry.channel_id, embed=self.render(entry, now))
        if message is None:
            return None

        settings = self.config.get_channel_settings(entry.channel_id)
        if settings.rsvp_enabled:
            await self.add_rsvp_reactions(message, entry)
        return message

    async def add_rsvp_reactions(self, message: discord.Message, entry: ScheduleEntry) -> None:
        """Add one reaction per open RSVP category plus the clear reaction."""
        settings = self.config.get_channel_settings(entry.channel_id)
        for emoji, category in settings.rsvp_options.items():
            # Categories limited to zero take no RSVPs
            if entry.rsvp_limit(category) == 0:
                continue
            _ = await self.gateway.add_reaction(message, emoji)
        if settings.rsvp_clear:
            _ = await self.gateway.add_reaction(message, settings.rsvp_clear)

    async def refresh(
        self,
        entry: ScheduleEntry,
        now: datetime | None = None,
        message: discord.Message | None = None,
    ) -> discord.Message | None:
        """
        Re-render an entry into its existing display message.

        Args:
            entry: Entry to render
            now: Reference time for the countdown
            message: Already resolved display message, fetched when omitted

        Returns:
            The edited message, or None if it could not be resolved or edited
        """
        if message is None:
            message = await self.resolve_message(entry)
        if message is None:
            logger.debug(f"Display message of entry {entry.entry_id} could not be resolved")
            return None
        return await self.gateway.edit(message, embed=self.render(entry, now))

    async def remove_message(self, entry: ScheduleEntry) -> bool:
        """Delete the display message of an entry; True if it is gone."""
        message = await self.resolve_message(entry)
        if message is None:
            return True
        return await self.gateway.delete(message)

    async def sort_channel(self, channel_id: int, descending: bool = False) -> int:
        """
        Reorder the displays of a channel by start time.

        The channel's existing display messages are reused in their posting
        order: the oldest message shows the first entry. Each moved entry is
        re-rendered into its new message and its record re-pointed to it.
        If any message cannot be edited or any record cannot be re-pointed,
        the edited messages are rendered back and no record moves.

        Args:
            channel_id: Schedule channel to sort
            descending: Latest start first instead of earliest

        Returns:
            Number of entries that moved to a different message
        """
        entries = await self.store.list_channel(channel_id)
        placed: list[tuple[ScheduleEntry, discord.Message]] = []
        for entry in entries:
            message = await self.resolve_message(entry)
            if message is not None:
                placed.append((entry, message))

        if len(placed) < 2:
            return 0

        # Discord snowflakes increase with creation time
        slots = sorted((message for _, message in placed), key=lambda m: m.id)
        ordered = sorted((entry for entry, _ in placed), key=lambda e: e.start, reverse=descending)
        owners = {message.id: entry for entry, message in placed}
        moves = [
            (entry, slot)
            for entry, slot in zip(ordered, slots)
            if entry.entry_id is not None and entry.message_id != slot.id
        ]
        if not moves:
            return 0
        now = utc_now()

        edited: list[discord.Message] = []
        for entry, slot in moves:
            if await self.gateway.edit(slot, embed=self.render(entry, now)) is None:
                logger.warning(f"Sorting channel {channel_id} abandoned: message {slot.id} not editable")
                await self._restore_slots(edited, owners, now)
                return 0
            edited.append(slot)

        repointed: list[ScheduleEntry] = []
        for entry, slot in moves:
            assert entry.entry_id is not None
            result = await self.store.update_fields(entry.entry_id, {"message_id": slot.id})
            if not result.ok:
                logger.warning(
                    f"Sorting channel {channel_id} abandoned: entry {entry.entry_id:x} "
                    f"could not be re-pointed to message {slot.id}"
                )
                for done in repointed:
                    assert done.entry_id is not None
                    _ = await self.store.update_fields(done.entry_id, {"message_id": done.message_id})
                await self._restore_slots(edited, owners, now)
                return 0
            repointed.append(entry)

        settings = self.config.get_channel_settings(channel_id)
        for entry, slot in moves:
            entry.message_id = slot.id
            if settings.rsvp_enabled:
                _ = await self.gateway.clear_reactions(slot)
                await self.add_rsvp_reactions(slot, entry)

        logger.info(f"Sorted channel {channel_id}: {len(moves)} entries moved")
        return len(moves)

    async def _restore_slots(
        self,
        slots: list[discord.Message],
        owners: dict[int, ScheduleEntry],
        now: datetime,
    ) -> None:
        """Render each slot's original entry back into it."""
        for slot in slots:
            if await self.gateway.edit(slot, embed=self.render(owners[slot.id], now)) is None:
                logger.error(f"Message {slot.id} could not be restored and shows a stale display")
