"""
Display refresh cascade.

Three passes on one lane re-render displays whose countdown text changes at
their granularity: entries more than a day from their next boundary every
twelve hours, entries within a day every thirty minutes, and entries within
the last hour every few minutes. The passes only edit messages; they never
write to the store.
"""

import logging
from datetime import datetime, timedelta

from .display import DisplaySynchronizer
from .entry import ScheduleEntry
from .store import EntryStore
from .types import PassReport, TimerKind
from ..gateway import MessagingGateway
from ...config.schema import TimersConfig
from ...utils.time import utc_now

logger = logging.getLogger(__name__)

REFRESH_KINDS = (TimerKind.UPDATE_FINE, TimerKind.UPDATE_MEDIUM, TimerKind.UPDATE_COARSE)


class DisplayRefreshCascade:
    """Periodic re-rendering of entry displays by countdown granularity."""

    def __init__(
        self,
        store: EntryStore,
        display: DisplaySynchronizer,
        gateway: MessagingGateway,
        timers: TimersConfig,
    ) -> None:
        self.store: EntryStore = store
        self.display: DisplaySynchronizer = display
        self.gateway: MessagingGateway = gateway
        self.timers: TimersConfig = timers

    def band_of(self, entry: ScheduleEntry, now: datetime) -> TimerKind:
        """Which refresh pass is responsible for an entry at ``now``."""
        remaining = entry.next_boundary() - now
        if remaining <= timedelta(seconds=self.timers.fine_horizon):
            return TimerKind.UPDATE_FINE
        if remaining <= timedelta(seconds=self.timers.medium_horizon):
            return TimerKind.UPDATE_MEDIUM
        return TimerKind.UPDATE_COARSE

    async def run_pass(self, kind: TimerKind, now: datetime | None = None) -> PassReport:
        """
        Re-render every entry in the band of ``kind``.

        Args:
            kind: One of the UPDATE_* timer kinds
            now: Reference time, defaults to the current time

        Returns:
            Counters for the pass
        """
        if kind not in REFRESH_KINDS:
            raise ValueError(f"{kind} is not a display refresh pass")

        now = now or utc_now()
        report = PassReport(kind=kind)
        workspaces = self.gateway.workspace_ids()

        for entry in await self.store.list_all():
            if entry.workspace_id not in workspaces or self.band_of(entry, now) is not kind:
                continue
            report.examined += 1
            try:
                if await self.display.refresh(entry, now) is not None:
                    report.processed += 1
                else:
                    report.skipped += 1
            except Exception as e:
                report.failed += 1
                logger.exception(f"Refreshing display of entry {entry.entry_id} failed: {e}")

        logger.debug(f"Display {report}")
        return report

    async def refresh_fine(self) -> PassReport:
        return await self.run_pass(TimerKind.UPDATE_FINE)

    async def refresh_medium(self) -> PassReport:
        return await self.run_pass(TimerKind.UPDATE_MEDIUM)

    async def refresh_coarse(self) -> PassReport:
        return await self.run_pass(TimerKind.UPDATE_COARSE)
