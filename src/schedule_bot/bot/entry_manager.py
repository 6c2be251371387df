"""
Entry lifecycle management for Schedule Bot.

This module provides the EntryManager class, the engine's public surface
for command handlers: creating, updating, starting, removing and reloading
entries, lookups, quota checks, RSVP changes and channel sorting. It also
owns the two timer lanes, one serializing the announcement FILL/EMPTY
passes and one serializing the three display refresh passes.

Create and update perform the Discord side effect first and persist only
once it succeeded, so a failed operation never leaves state that was not
shown to users.
"""

import asyncio
import logging
import random
from datetime import datetime

from .gateway import MessagingGateway
from .scheduling import (
    AnnouncementEngine,
    DisplayRefreshCascade,
    DisplaySynchronizer,
    DocumentCollection,
    EntryStore,
    IdAllocator,
    OperationResult,
    OperationStatus,
    ScheduleEntry,
    TimerKind,
    TimerLane,
    WriteResult,
)
from ..config.schema import ScheduleBotConfig
from ..utils.time import utc_now

logger = logging.getLogger(__name__)


def _write_status(result: WriteResult) -> OperationStatus:
    if not result.acknowledged:
        return OperationStatus.WRITE_NOT_ACKNOWLEDGED
    if result.matched_count == 0:
        return OperationStatus.NOT_FOUND
    return OperationStatus.SUCCESS


class EntryManager:
    """
    Manages every schedule entry known to the bot.

    Command handlers run concurrently; multi-step sequences that must not
    interleave (remove then delete the display, RSVP read-modify-write,
    channel sorting, announcement firing) run under ``schedule_lock``.
    """

    def __init__(
        self,
        gateway: MessagingGateway,
        config: ScheduleBotConfig,
        collection: DocumentCollection,
        generator: random.Random | None = None,
    ) -> None:
        """
        Initialize the entry manager.

        Args:
            gateway: Discord messaging gateway
            config: Bot configuration, passed explicitly to every component
            collection: Backing document collection of entries
            generator: Random source for entry IDs, seeded from the OS when omitted
        """
        self.config: ScheduleBotConfig = config
        self.gateway: MessagingGateway = gateway
        self.store: EntryStore = EntryStore(collection)
        self.allocator: IdAllocator = IdAllocator(self.store.exists, generator)
        self.display: DisplaySynchronizer = DisplaySynchronizer(gateway, self.store, config)
        self._schedule_lock: asyncio.Lock = asyncio.Lock()

        self.announcer: AnnouncementEngine = AnnouncementEngine(
            self.store, self.display, gateway, config, self._schedule_lock
        )
        self.refresher: DisplayRefreshCascade = DisplayRefreshCascade(
            self.store, self.display, gateway, config.timers
        )

        self.announcement_lane: TimerLane = TimerLane("announcements")
        self.display_lane: TimerLane = TimerLane("display")
        self._register_jobs()

    @property
    def schedule_lock(self) -> asyncio.Lock:
        """Lock for caller-side multi-step sequences on entries."""
        return self._schedule_lock

    def _register_jobs(self) -> None:
        timers = self.config.timers
        self.announcement_lane.add_job(
            TimerKind.FILL.value, self.announcer.fill, timers.fill_interval, timers.fill_initial_delay
        )
        self.announcement_lane.add_job(
            TimerKind.EMPTY.value, self.announcer.empty, timers.empty_interval, timers.empty_initial_delay
        )
        self.display_lane.add_job(
            TimerKind.UPDATE_COARSE.value,
            self.refresher.refresh_coarse,
            timers.coarse_interval,
            timers.coarse_interval,
        )
        self.display_lane.add_job(
            TimerKind.UPDATE_MEDIUM.value,
            self.refresher.refresh_medium,
            timers.medium_interval,
            timers.medium_interval,
        )
        self.display_lane.add_job(
            TimerKind.UPDATE_FINE.value,
            self.refresher.refresh_fine,
            timers.fine_interval,
            timers.fine_initial_delay,
        )

    async def start(self) -> None:
        """Start both timer lanes."""
        await self.announcement_lane.start()
        await self.display_lane.start()
        logger.info("Entry manager timers started")

    async def stop(self) -> None:
        """Stop both timer lanes, letting running passes finish."""
        await self.announcement_lane.stop()
        await self.display_lane.stop()
        logger.info("Entry manager timers stopped")

    # -- lifecycle -----------------------------------------------------

    async def new_entry(self, entry: ScheduleEntry, auto_sort: bool = False) -> OperationResult:
        """
        Create an entry: allocate an ID, post its display, then persist it.

        Reminders left empty are taken from the channel settings, and RSVP
        categories are initialized when RSVP is enabled on the channel. If
        the display cannot be posted nothing is stored; if the record cannot
        be stored the posted display is deleted again.

        Args:
            entry: The new entry; its ID and message ID are assigned here
            auto_sort: Resort the channel afterwards if its policy asks for it

        Returns:
            OperationResult carrying the new entry ID on success
        """
        try:
            settings = self.config.get_channel_settings(entry.channel_id)
            if not entry.reminders:
                entry.reminders = list(settings.reminders)
            if not entry.end_reminders:
                entry.end_reminders = list(settings.end_reminders)
            if settings.rsvp_enabled:
                for category in settings.rsvp_options.values():
                    _ = entry.rsvp_members.setdefault(category, [])

            entry.entry_id = await self.allocator.allocate()
            message = await self.display.publish(entry)
            if message is None:
                logger.warning(f"Display for new entry {entry.entry_id:x} could not be sent")
                return OperationResult(
                    OperationStatus.EXTERNAL_SEND_FAILURE,
                    error_message="display message could not be sent",
                )

            entry.message_id = message.id
            result = await self.store.insert(entry)
            if not result.ok:
                logger.error(f"New entry {entry.entry_id:x} was not stored, removing its display")
                _ = await self.gateway.delete(message)
                return OperationResult(
                    OperationStatus.WRITE_NOT_ACKNOWLEDGED,
                    error_message="entry could not be stored",
                )

            logger.info(
                f"Created entry {entry.entry_id:x} '{entry.title}' in channel {entry.channel_id}"
            )
            if auto_sort:
                await self.auto_sort(entry.channel_id)
            return OperationResult(
                OperationStatus.SUCCESS, entry_id=entry.entry_id, message_id=message.id
            )

        except Exception as e:
            logger.exception(f"Unexpected error creating entry '{entry.title}': {e}")
            return OperationResult(OperationStatus.UNEXPECTED, error_message=str(e))

    async def update_entry(self, entry: ScheduleEntry, auto_sort: bool = False) -> OperationResult:
        """
        Replace an entry with a new version.

        The display message must still exist; it is edited first and the
        record is replaced only after the edit succeeded.

        Args:
            entry: Complete new state; its ID must be unchanged
            auto_sort: Resort the channel afterwards if its policy asks for it
        """
        if entry.entry_id is None:
            return OperationResult(OperationStatus.NOT_FOUND, error_message="entry has no ID")
        try:
            message = await self.display.resolve_message(entry)
            if message is None:
                return OperationResult(
                    OperationStatus.NOT_FOUND,
                    entry_id=entry.entry_id,
                    error_message="display message no longer exists",
                )

            edited = await self.display.refresh(entry, message=message)
            if edited is None:
                return OperationResult(
                    OperationStatus.EXTERNAL_SEND_FAILURE,
                    entry_id=entry.entry_id,
                    error_message="display message could not be edited",
                )

            entry.message_id = edited.id
            status = _write_status(await self.store.replace(entry))
            if status is not OperationStatus.SUCCESS:
                logger.error(f"Update of entry {entry.entry_id:x} not stored: {status.value}")
                return OperationResult(status, entry_id=entry.entry_id)

            if auto_sort:
                await self.auto_sort(entry.channel_id)
            return OperationResult(
                OperationStatus.SUCCESS, entry_id=entry.entry_id, message_id=edited.id
            )

        except Exception as e:
            logger.exception(f"Unexpected error updating entry {entry.entry_id:x}: {e}")
            return OperationResult(
                OperationStatus.UNEXPECTED, entry_id=entry.entry_id, error_message=str(e)
            )

    async def start_event(self, entry: ScheduleEntry) -> OperationResult:
        """Flag an entry as started; the display is left to the refresh cascade."""
        if entry.entry_id is None:
            return OperationResult(OperationStatus.NOT_FOUND)
        status = _write_status(
            await self.store.update_fields(entry.entry_id, {"has_started": True})
        )
        return OperationResult(status, entry_id=entry.entry_id)

    async def remove_entry(self, entry_id: int) -> OperationResult:
        """
        Delete an entry record.

        The caller deletes the display message afterwards, normally while
        still holding ``schedule_lock`` (see destroy_entry).
        """
        status = _write_status(await self.store.delete(entry_id))
        if status is OperationStatus.SUCCESS:
            logger.info(f"Removed entry {entry_id:x}")
        return OperationResult(status, entry_id=entry_id)

    async def destroy_entry(self, entry_id: int, workspace_id: int | None = None) -> OperationResult:
        """
        Remove an entry and then its display message, under the schedule lock.

        Args:
            entry_id: Entry to destroy
            workspace_id: Restrict the lookup to this workspace when given
        """
        async with self._schedule_lock:
            if workspace_id is None:
                entry = await self.store.get(entry_id)
            else:
                entry = await self.store.get_from_workspace(entry_id, workspace_id)
            if entry is None:
                return OperationResult(OperationStatus.NOT_FOUND, entry_id=entry_id)

            result = await self.remove_entry(entry_id)
            if result.success and not await self.display.remove_message(entry):
                logger.warning(f"Display of removed entry {entry_id:x} could not be deleted")
            return result

    async def remove_all_from_workspace(self, workspace_id: int) -> int:
        """
        Destroy every entry of a workspace.

        Entries removed concurrently by someone else are skipped silently.

        Returns:
            Number of entries this call removed
        """
        removed = 0
        for entry in await self.store.list_workspace(workspace_id):
            assert entry.entry_id is not None
            async with self._schedule_lock:
                result = await self.remove_entry(entry.entry_id)
                if result.status is OperationStatus.NOT_FOUND:
                    continue
                if not result.success:
                    logger.warning(f"Entry {entry.entry_id:x} could not be removed: {result.status.value}")
                    continue
                if not await self.display.remove_message(entry):
                    logger.warning(f"Display of removed entry {entry.entry_id:x} could not be deleted")
                removed += 1

        logger.info(f"Removed {removed} entries from workspace {workspace_id}")
        return removed

    async def reload_entry(self, entry_id: int) -> OperationResult:
        """Re-render an entry's display from its stored state."""
        entry = await self.store.get(entry_id)
        if entry is None:
            return OperationResult(OperationStatus.NOT_FOUND, entry_id=entry_id)
        message = await self.display.refresh(entry)
        if message is None:
            return OperationResult(OperationStatus.EXTERNAL_SEND_FAILURE, entry_id=entry_id)
        return OperationResult(OperationStatus.SUCCESS, entry_id=entry_id, message_id=message.id)

    # -- lookups -------------------------------------------------------

    async def get_entry(self, entry_id: int) -> ScheduleEntry | None:
        return await self.store.get(entry_id)

    async def get_entry_from_workspace(self, entry_id: int, workspace_id: int) -> ScheduleEntry | None:
        return await self.store.get_from_workspace(entry_id, workspace_id)

    async def get_entries_from_workspace(self, workspace_id: int) -> list[ScheduleEntry]:
        return await self.store.list_workspace(workspace_id)

    async def get_entries_from_channel(self, channel_id: int) -> list[ScheduleEntry]:
        return await self.store.list_channel(channel_id)

    async def is_limit_reached(self, workspace_id: int) -> bool:
        """Whether a workspace holds more entries than its quota allows."""
        return await self.store.count_workspace(workspace_id) > self.config.limits.max_entries

    # -- RSVP ----------------------------------------------------------

    async def rsvp(
        self, entry_id: int, member_id: int, category: str, now: datetime | None = None
    ) -> OperationResult:
        """
        Record a member's RSVP.

        Refused with REJECTED when the category is closed or full, or when
        the RSVP deadline has passed.
        """
        now = now or utc_now()
        async with self._schedule_lock:
            entry = await self.store.get(entry_id)
            if entry is None:
                return OperationResult(OperationStatus.NOT_FOUND, entry_id=entry_id)
            if entry.deadline is not None and now > entry.deadline:
                return OperationResult(
                    OperationStatus.REJECTED, entry_id=entry_id, error_message="RSVP deadline has passed"
                )
            if not entry.add_rsvp(category, member_id):
                return OperationResult(
                    OperationStatus.REJECTED,
                    entry_id=entry_id,
                    error_message=f"RSVP category '{category}' is not open",
                )
            return await self.update_entry(entry)

    async def clear_rsvp(self, entry_id: int, member_id: int) -> OperationResult:
        """Remove a member from every RSVP category of an entry."""
        async with self._schedule_lock:
            entry = await self.store.get(entry_id)
            if entry is None:
                return OperationResult(OperationStatus.NOT_FOUND, entry_id=entry_id)
            if not entry.remove_rsvp(member_id):
                return OperationResult(OperationStatus.SUCCESS, entry_id=entry_id)
            return await self.update_entry(entry)

    async def find_by_message(self, channel_id: int, message_id: int) -> ScheduleEntry | None:
        """Entry whose display is the given message, if any."""
        for entry in await self.store.list_channel(channel_id):
            if entry.message_id == message_id:
                return entry
        return None

    # -- sorting -------------------------------------------------------

    async def auto_sort(self, channel_id: int) -> None:
        """Resort a channel if its sort policy asks for it."""
        policy = self.config.get_channel_settings(channel_id).auto_sort
        if policy == "none":
            return
        async with self._schedule_lock:
            _ = await self.display.sort_channel(channel_id, descending=policy == "descending")
