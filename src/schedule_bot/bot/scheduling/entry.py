"""
In-memory representation of one scheduled event.

A ScheduleEntry is an ephemeral view built from a stored document and
discarded after use; the store stays the source of truth. The entry knows
how to derive the announcement triggers of its current occurrence, how to
advance to its next occurrence, and how to apply RSVP changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .types import Trigger, TriggerKind, trigger_rank
from ...utils.time import parse_stored_datetime

# Upper bound on occurrences skipped in one advance (missed while offline)
MAX_SKIPPED_OCCURRENCES = 1000

UNLIMITED = -1


@dataclass
class Recurrence:
    """
    Repeat rule of an entry.

    ``pattern`` encodes the rule: 0 means no repeat; bits 0-6 are a weekday
    mask (bit 0 is Monday); bit 7 switches to an interval of ``pattern >> 8``
    days. ``count`` is the number of further occurrences allowed, or None
    for no limit.
    """

    pattern: int = 0
    original_start: datetime | None = None
    count: int | None = None

    INTERVAL_FLAG = 0b1000_0000
    WEEKDAY_MASK = 0b0111_1111

    @classmethod
    def weekly(cls, *weekdays: int, original_start: datetime | None = None, count: int | None = None) -> Recurrence:
        """Repeat on the given weekdays (0 = Monday)."""
        mask = 0
        for day in weekdays:
            if not 0 <= day <= 6:
                raise ValueError(f"Invalid weekday: {day}")
            mask |= 1 << day
        return cls(pattern=mask, original_start=original_start, count=count)

    @classmethod
    def every(cls, days: int, original_start: datetime | None = None, count: int | None = None) -> Recurrence:
        """Repeat every ``days`` days."""
        if days < 1:
            raise ValueError("Interval must be at least one day")
        return cls(pattern=(days << 8) | cls.INTERVAL_FLAG, original_start=original_start, count=count)

    @property
    def repeats(self) -> bool:
        return self.pattern != 0

    @property
    def interval_days(self) -> int | None:
        if self.pattern & self.INTERVAL_FLAG:
            return self.pattern >> 8
        return None

    def next_start(self, current: datetime) -> datetime | None:
        """
        Compute the start of the occurrence following ``current``.

        Returns:
            The next start, or None when the rule does not repeat
        """
        if not self.repeats:
            return None

        interval = self.interval_days
        if interval is not None:
            return current + timedelta(days=max(interval, 1))

        weekdays = self.pattern & self.WEEKDAY_MASK
        for offset in range(1, 8):
            candidate = current + timedelta(days=offset)
            if weekdays & (1 << candidate.weekday()):
                return candidate
        return None

    def to_document(self) -> dict[str, object]:
        return {
            "pattern": self.pattern,
            "original_start": self.original_start,
            "count": self.count,
        }

    @classmethod
    def from_document(cls, data: object) -> Recurrence:
        if not isinstance(data, dict):
            return cls()
        count = data.get("count")
        return cls(
            pattern=int(data.get("pattern") or 0),
            original_start=parse_stored_datetime(data.get("original_start")),
            count=int(count) if count is not None else None,
        )


@dataclass
class CustomAnnouncement:
    """An extra announcement at a fixed offset (minutes, signed) from start."""

    offset_minutes: int
    message: str
    target_channel_id: int | None = None


@dataclass
class ScheduleEntry:
    """One scheduled event and its lifecycle state."""

    title: str
    start: datetime
    end: datetime
    workspace_id: int
    channel_id: int
    entry_id: int | None = None
    message_id: int | None = None
    comments: list[str] = field(default_factory=list)
    recurrence: Recurrence = field(default_factory=Recurrence)
    reminders: list[int] = field(default_factory=list)
    end_reminders: list[int] = field(default_factory=list)
    url: str | None = None
    has_started: bool = False
    external_calendar_id: str | None = None
    rsvp_members: dict[str, list[int]] = field(default_factory=dict)
    rsvp_limits: dict[str, int] = field(default_factory=dict)
    image: str | None = None
    thumbnail: str | None = None
    start_quiet: bool = False
    end_quiet: bool = False
    reminders_quiet: bool = False
    expire: datetime | None = None
    deadline: datetime | None = None
    location: str | None = None
    description: str | None = None
    color: str | None = None
    announcements: list[CustomAnnouncement] = field(default_factory=list)
    fired: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.recurrence.original_start is None:
            self.recurrence.original_start = self.start

    # -- announcements -------------------------------------------------

    def announcement_dates(self) -> list[datetime]:
        """Fire times of the custom announcements for the current occurrence."""
        return [
            self.start + timedelta(minutes=announcement.offset_minutes)
            for announcement in self.announcements
        ]

    def triggers(self) -> list[Trigger]:
        """
        All announcement slots of the current occurrence, ordered by fire time.

        Fired slots are included; callers check ``is_fired``.
        """
        triggers: list[Trigger] = [
            Trigger(key="start", kind=TriggerKind.START, fire_at=self.start, template=None),
            Trigger(key="end", kind=TriggerKind.END, fire_at=self.end, template=None),
        ]
        for minutes in self.reminders:
            triggers.append(
                Trigger(
                    key=f"reminder:{minutes}",
                    kind=TriggerKind.REMINDER,
                    fire_at=self.start - timedelta(minutes=minutes),
                    template=None,
                )
            )
        for minutes in self.end_reminders:
            triggers.append(
                Trigger(
                    key=f"end_reminder:{minutes}",
                    kind=TriggerKind.END_REMINDER,
                    fire_at=self.end - timedelta(minutes=minutes),
                    template=None,
                )
            )
        for index, (announcement, fire_at) in enumerate(
            zip(self.announcements, self.announcement_dates())
        ):
            triggers.append(
                Trigger(
                    key=f"custom:{index}",
                    kind=TriggerKind.CUSTOM,
                    fire_at=fire_at,
                    template=announcement.message,
                    target_channel_id=announcement.target_channel_id,
                )
            )
        triggers.sort(key=lambda trigger: (trigger.fire_at, trigger_rank(trigger.kind)))
        return triggers

    def is_fired(self, key: str) -> bool:
        return key in self.fired

    def is_quiet(self, kind: TriggerKind) -> bool:
        """Whether announcements of this kind are suppressed for the entry."""
        match kind:
            case TriggerKind.START:
                return self.start_quiet
            case TriggerKind.END:
                return self.end_quiet
            case TriggerKind.REMINDER | TriggerKind.END_REMINDER:
                return self.reminders_quiet
            case _:
                return False

    def next_boundary(self) -> datetime:
        """The next start or end the display counts down to."""
        return self.end if self.has_started else self.start

    # -- recurrence ----------------------------------------------------

    def advance_occurrence(self, now: datetime) -> bool:
        """
        Move the entry to its next occurrence.

        Occurrences that would already have ended by ``now`` are skipped,
        each consuming one unit of ``count``. Fired announcements and the
        started flag are reset for the new occurrence.

        Returns:
            False when the entry does not repeat, its count is exhausted, or
            the next occurrence would start after ``expire``
        """
        duration = self.end - self.start
        start = self.start
        count = self.recurrence.count

        for _ in range(MAX_SKIPPED_OCCURRENCES):
            if count is not None and count <= 0:
                return False
            next_start = self.recurrence.next_start(start)
            if next_start is None:
                return False
            if self.expire is not None and next_start > self.expire:
                return False
            start = next_start
            if count is not None:
                count -= 1
            if start + duration > now:
                break
        else:
            return False

        self.start = start
        self.end = start + duration
        self.recurrence.count = count
        self.has_started = False
        self.fired = []
        return True

    # -- RSVP ----------------------------------------------------------

    def rsvp_limit(self, category: str) -> int:
        """Limit for a category; -1 means unlimited, 0 disables the category."""
        return self.rsvp_limits.get(category, UNLIMITED)

    def rsvp_category_of(self, member_id: int) -> str | None:
        for category, members in self.rsvp_members.items():
            if member_id in members:
                return category
        return None

    def add_rsvp(self, category: str, member_id: int) -> bool:
        """
        Put a member into an RSVP category, leaving any other category.

        Returns:
            False if the category is unknown, disabled, or full
        """
        if category not in self.rsvp_members:
            return False
        members = self.rsvp_members[category]
        if member_id in members:
            return True

        limit = self.rsvp_limit(category)
        if limit == 0 or (limit > 0 and len(members) >= limit):
            return False

        self.remove_rsvp(member_id)
        members.append(member_id)
        return True

    def remove_rsvp(self, member_id: int) -> bool:
        """Remove a member from every category; True if they held one."""
        removed = False
        for members in self.rsvp_members.values():
            if member_id in members:
                members.remove(member_id)
                removed = True
        return removed

    # -- persistence ---------------------------------------------------

    def to_document(self) -> dict[str, object]:
        """Full stored representation; ``entry_id`` must be assigned."""
        if self.entry_id is None:
            raise ValueError("Entry has no ID assigned")
        return {
            "_id": self.entry_id,
            "title": self.title,
            "start": self.start,
            "end": self.end,
            "comments": list(self.comments),
            "recurrence": self.recurrence.to_document(),
            "reminders": list(self.reminders),
            "end_reminders": list(self.end_reminders),
            "url": self.url,
            "has_started": self.has_started,
            "message_id": self.message_id,
            "channel_id": self.channel_id,
            "external_calendar_id": self.external_calendar_id,
            "rsvp": {
                "members": {key: list(value) for key, value in self.rsvp_members.items()},
                "limits": dict(self.rsvp_limits),
            },
            "image": self.image,
            "thumbnail": self.thumbnail,
            "start_quiet": self.start_quiet,
            "end_quiet": self.end_quiet,
            "reminders_quiet": self.reminders_quiet,
            "expire": self.expire,
            "deadline": self.deadline,
            "workspace_id": self.workspace_id,
            "location": self.location,
            "description": self.description,
            "color": self.color,
            "announcements": list(self.fired),
            "announcement_dates": self.announcement_dates(),
            "announcement_times": [a.offset_minutes for a in self.announcements],
            "announcement_messages": [a.message for a in self.announcements],
            "announcement_targets": [a.target_channel_id for a in self.announcements],
        }

    @classmethod
    def from_document(cls, document: dict[str, object]) -> ScheduleEntry:
        """Rebuild an entry from its stored representation."""
        start = parse_stored_datetime(document["start"])
        end = parse_stored_datetime(document["end"])
        if start is None or end is None:
            raise ValueError(f"Entry {document.get('_id')} has no start or end")

        rsvp = document.get("rsvp")
        rsvp = rsvp if isinstance(rsvp, dict) else {}
        members = rsvp.get("members") or {}
        limits = rsvp.get("limits") or {}

        times = list(document.get("announcement_times") or [])
        messages = list(document.get("announcement_messages") or [])
        targets = list(document.get("announcement_targets") or [])
        announcements = [
            CustomAnnouncement(
                offset_minutes=int(offset),
                message=str(message),
                target_channel_id=int(target) if target is not None else None,
            )
            for offset, message, target in zip(
                times, messages, targets + [None] * (len(times) - len(targets))
            )
        ]

        message_id = document.get("message_id")
        return cls(
            entry_id=int(document["_id"]),
            title=str(document.get("title") or ""),
            start=start,
            end=end,
            workspace_id=int(document["workspace_id"]),
            channel_id=int(document["channel_id"]),
            message_id=int(message_id) if message_id is not None else None,
            comments=[str(c) for c in document.get("comments") or []],
            recurrence=Recurrence.from_document(document.get("recurrence")),
            reminders=[int(m) for m in document.get("reminders") or []],
            end_reminders=[int(m) for m in document.get("end_reminders") or []],
            url=document.get("url"),
            has_started=bool(document.get("has_started", False)),
            external_calendar_id=document.get("external_calendar_id"),
            rsvp_members={str(k): [int(m) for m in v] for k, v in dict(members).items()},
            rsvp_limits={str(k): int(v) for k, v in dict(limits).items()},
            image=document.get("image"),
            thumbnail=document.get("thumbnail"),
            start_quiet=bool(document.get("start_quiet", False)),
            end_quiet=bool(document.get("end_quiet", False)),
            reminders_quiet=bool(document.get("reminders_quiet", False)),
            expire=parse_stored_datetime(document.get("expire")),
            deadline=parse_stored_datetime(document.get("deadline")),
            location=document.get("location"),
            description=document.get("description"),
            color=document.get("color"),
            announcements=announcements,
            fired=[str(key) for key in document.get("announcements") or []],
        )
