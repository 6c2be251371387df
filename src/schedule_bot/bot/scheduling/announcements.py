"""
Announcement timer engine.

Two periodic passes share one lane:

- FILL scans the store for announcement slots (start, end, reminders,
  custom announcements) firing within the look-ahead window and queues
  them in fire-time order.
- EMPTY pops every queued slot whose time has come, re-checks the stored
  entry, sends the announcement, records the slot as fired, and applies the
  state change the slot implies: START marks the entry started, END
  advances a recurring entry to its next occurrence or removes it.

A slot is delivered at most once per occurrence: FILL skips fired slots
and EMPTY re-reads the record and checks again before sending.
"""

import asyncio
import heapq
import logging
from datetime import datetime, timedelta

from .display import DisplaySynchronizer
from .entry import ScheduleEntry
from .rendering import render_announcement
from .store import EntryStore
from .types import AnnouncementJob, PassReport, TimerKind, Trigger, TriggerKind, trigger_rank
from ..gateway import MessagingGateway
from ...config.schema import ChannelSettings, ScheduleBotConfig
from ...utils.time import utc_now

logger = logging.getLogger(__name__)


class AnnouncementQueue:
    """Time-ordered queue of pending announcements without duplicates."""

    def __init__(self) -> None:
        self._heap: list[AnnouncementJob] = []
        self._queued: set[tuple[int, str, datetime | None]] = set()

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, job: AnnouncementJob) -> bool:
        return job.identity in self._queued

    def push(self, job: AnnouncementJob) -> bool:
        """Queue a job; False if the same slot is already queued."""
        if job.identity in self._queued:
            return False
        heapq.heappush(self._heap, job)
        self._queued.add(job.identity)
        return True

    def pop_due(self, now: datetime) -> list[AnnouncementJob]:
        """Remove and return every job due at ``now``, earliest first."""
        due: list[AnnouncementJob] = []
        while self._heap and self._heap[0].fire_at <= now:
            job = heapq.heappop(self._heap)
            self._queued.discard(job.identity)
            due.append(job)
        return due

    def peek(self) -> AnnouncementJob | None:
        return self._heap[0] if self._heap else None


class AnnouncementEngine:
    """Fills and drains the announcement queue."""

    def __init__(
        self,
        store: EntryStore,
        display: DisplaySynchronizer,
        gateway: MessagingGateway,
        config: ScheduleBotConfig,
        schedule_lock: asyncio.Lock,
    ) -> None:
        """
        Initialize the announcement engine.

        Args:
            store: Entry store
            display: Display synchronizer used after recurrence advances
            gateway: Messaging gateway used to send announcements
            config: Bot configuration (timers and channel settings)
            schedule_lock: Lock shared with command-side multi-step mutations
        """
        self.store: EntryStore = store
        self.display: DisplaySynchronizer = display
        self.gateway: MessagingGateway = gateway
        self.config: ScheduleBotConfig = config
        self.schedule_lock: asyncio.Lock = schedule_lock
        self.queue: AnnouncementQueue = AnnouncementQueue()

    @property
    def fill_window(self) -> timedelta:
        return timedelta(seconds=self.config.timers.fill_window)

    @property
    def stale_after(self) -> timedelta:
        return timedelta(seconds=self.config.timers.stale_after)

    async def _entries_on_this_client(self) -> list[ScheduleEntry]:
        entries = await self.store.list_all()
        workspaces = self.gateway.workspace_ids()
        return [entry for entry in entries if entry.workspace_id in workspaces]

    def _job_for(
        self, entry: ScheduleEntry, trigger: Trigger, settings: ChannelSettings
    ) -> AnnouncementJob:
        match trigger.kind:
            case TriggerKind.START:
                template = settings.start_message
            case TriggerKind.END:
                template = settings.end_message
            case TriggerKind.REMINDER:
                template = settings.reminder_message
            case TriggerKind.END_REMINDER:
                template = settings.end_reminder_message
            case _:
                template = trigger.template

        target = trigger.target_channel_id or settings.announce_channel_id or entry.channel_id
        return AnnouncementJob(
            fire_at=trigger.fire_at,
            entry_id=entry.entry_id or 0,
            key=trigger.key,
            kind=trigger.kind,
            template=template,
            target_channel_id=target,
            occurrence_start=entry.start,
            rank=trigger_rank(trigger.kind),
        )

    async def fill(self, now: datetime | None = None) -> PassReport:
        """
        Queue every unfired slot that fires before the end of the window.

        Args:
            now: Reference time, defaults to the current time

        Returns:
            Counters for the pass
        """
        now = now or utc_now()
        horizon = now + self.fill_window
        report = PassReport(kind=TimerKind.FILL)

        for entry in await self._entries_on_this_client():
            report.examined += 1
            try:
                settings = self.config.get_channel_settings(entry.channel_id)
                for trigger in entry.triggers():
                    if trigger.fire_at > horizon:
                        break
                    if entry.is_fired(trigger.key):
                        continue
                    if self.queue.push(self._job_for(entry, trigger, settings)):
                        report.processed += 1
            except Exception as e:
                report.failed += 1
                logger.exception(f"FILL failed for entry {entry.entry_id}: {e}")

        logger.debug(f"Announcement {report}, queued total={len(self.queue)}")
        return report

    async def empty(self, now: datetime | None = None) -> PassReport:
        """
        Fire every queued slot that is due.

        One failing slot never prevents the rest of the batch from firing.

        Args:
            now: Reference time, defaults to the current time

        Returns:
            Counters for the pass
        """
        now = now or utc_now()
        report = PassReport(kind=TimerKind.EMPTY)

        for job in self.queue.pop_due(now):
            report.examined += 1
            try:
                if await self._fire(job, now):
                    report.processed += 1
                else:
                    report.skipped += 1
            except Exception as e:
                report.failed += 1
                logger.exception(
                    f"EMPTY failed for entry {job.entry_id} slot {job.key}: {e}"
                )

        if report.examined:
            logger.info(f"Announcement {report}")
        return report

    async def _fire(self, job: AnnouncementJob, now: datetime) -> bool:
        """
        Deliver one slot and apply its state change.

        Returns:
            True if the slot was consumed, False if it was skipped
        """
        async with self.schedule_lock:
            entry = await self.store.get(job.entry_id)
            if entry is None:
                logger.debug(f"Entry {job.entry_id} vanished before {job.key} fired")
                return False
            if entry.start != job.occurrence_start:
                logger.debug(f"Entry {job.entry_id} moved since {job.key} was queued")
                return False
            if entry.is_fired(job.key):
                return False

            stale = now - job.fire_at > self.stale_after
            sent = True
            if stale:
                logger.info(
                    f"Not sending {job.key} for entry {entry.entry_id:x}: "
                    f"{now - job.fire_at} late"
                )
            elif not entry.is_quiet(job.kind) and job.template:
                text = render_announcement(job.template, entry)
                sent = await self.gateway.send(job.target_channel_id or entry.channel_id, content=text) is not None

            if job.kind is TriggerKind.END:
                return await self._finish_occurrence(entry, now)

            if not sent and job.kind is not TriggerKind.START:
                # Left unfired so the next FILL queues it again until it goes stale
                logger.warning(f"Announcement {job.key} for entry {entry.entry_id:x} not delivered")
                return False

            fields: dict[str, object] = {"announcements": entry.fired + [job.key]}
            if job.kind is TriggerKind.START:
                fields["has_started"] = True
            result = await self.store.update_fields(job.entry_id, fields)
            if not result.ok:
                logger.error(f"Could not record {job.key} as fired for entry {entry.entry_id:x}")
                return False
            return True

    async def _finish_occurrence(self, entry: ScheduleEntry, now: datetime) -> bool:
        """Advance a recurring entry or remove it with its display message."""
        assert entry.entry_id is not None

        if entry.advance_occurrence(now):
            result = await self.store.replace(entry)
            if not result.ok:
                logger.error(f"Could not advance entry {entry.entry_id:x} to its next occurrence")
                return False
            logger.info(f"Entry {entry.entry_id:x} advanced to {entry.start.isoformat()}")
            if await self.display.refresh(entry, now) is None:
                logger.warning(f"Display of entry {entry.entry_id:x} could not be refreshed")
            return True

        result = await self.store.delete(entry.entry_id)
        if not result.ok:
            logger.error(f"Could not remove finished entry {entry.entry_id:x}")
            return False
        logger.info(f"Entry {entry.entry_id:x} finished and was removed")
        if not await self.display.remove_message(entry):
            logger.warning(f"Display of finished entry {entry.entry_id:x} could not be deleted")
        return True
