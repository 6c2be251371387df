"""Configuration schema for Schedule Bot using nested Pydantic models."""

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator


class DiscordConfig(BaseModel):
    """Discord service configuration."""

    token: str = Field(
        ...,
        description="Discord bot token",
        min_length=1,
    )

    @field_validator("token")
    @classmethod
    def validate_discord_token(cls, v: str) -> str:
        """Validate Discord token format."""
        if len(v) < 10:
            raise ValueError("Discord token appears to be too short")
        return v


class ServicesConfig(BaseModel):
    """External services configuration."""

    discord: DiscordConfig


class StorageConfig(BaseModel):
    """Entry store configuration."""

    backend: Literal["json", "memory"] = Field(
        default="json",
        description="Document store backend; 'memory' keeps entries only for the process lifetime",
    )
    path: Path = Field(
        default=Path("entries.json"),
        description="Location of the JSON entry collection, relative to the data folder unless absolute",
    )


class LimitsConfig(BaseModel):
    """Per-workspace quotas."""

    max_entries: Annotated[int, Field(ge=1)] = Field(
        default=15,
        description="Maximum number of entries a workspace may hold",
    )


class TimersConfig(BaseModel):
    """Cadences of the announcement and display refresh lanes, in seconds."""

    fill_interval: Annotated[float, Field(gt=0)] = 30.0
    fill_initial_delay: Annotated[float, Field(ge=0)] = 30.0
    empty_interval: Annotated[float, Field(gt=0)] = 20.0
    empty_initial_delay: Annotated[float, Field(ge=0)] = 15.0
    fill_window: Annotated[float, Field(gt=0)] = Field(
        default=600.0,
        description="How far ahead FILL looks for due announcements",
    )
    stale_after: Annotated[float, Field(gt=0)] = Field(
        default=3600.0,
        description="Reminders later than this are consumed without being sent",
    )
    coarse_interval: Annotated[float, Field(gt=0)] = 12 * 60 * 60.0
    medium_interval: Annotated[float, Field(gt=0)] = 30 * 60.0
    fine_interval: Annotated[float, Field(gt=0)] = 3 * 60.0
    fine_initial_delay: Annotated[float, Field(ge=0)] = 4 * 60 + 30.0
    fine_horizon: Annotated[float, Field(gt=0)] = Field(
        default=60 * 60.0,
        description="Entries closer than this to their next boundary use the fine pass",
    )
    medium_horizon: Annotated[float, Field(gt=0)] = Field(
        default=24 * 60 * 60.0,
        description="Entries closer than this (and past the fine horizon) use the medium pass",
    )


def _default_rsvp_options() -> dict[str, str]:
    return {"✅": "Yes", "❌": "No"}


class ChannelSettings(BaseModel):
    """Schedule behaviour for one channel."""

    reminders: list[Annotated[int, Field(ge=0)]] = Field(
        default_factory=lambda: [10],
        description="Reminder offsets in minutes before an event starts",
    )
    end_reminders: list[Annotated[int, Field(ge=0)]] = Field(
        default_factory=list,
        description="Reminder offsets in minutes before an event ends",
    )
    rsvp_enabled: bool = False
    rsvp_options: dict[str, str] = Field(
        default_factory=_default_rsvp_options,
        description="Mapping of reaction emoji (or custom emote ID) to RSVP category",
    )
    rsvp_clear: str = Field(
        default="",
        description="Emoji used to clear an RSVP; empty disables it",
    )
    auto_sort: Literal["none", "ascending", "descending"] = "none"
    announce_channel_id: int | None = Field(
        default=None,
        description="Channel receiving announcements; defaults to the schedule channel",
    )
    start_message: str = "**{title}** has started!"
    end_message: str = "**{title}** has ended."
    reminder_message: str = "**{title}** starts {start_relative}."
    end_reminder_message: str = "**{title}** ends {end_relative}."

    @field_validator("reminders", "end_reminders")
    @classmethod
    def sort_offsets(cls, v: list[int]) -> list[int]:
        """Store offsets de-duplicated, furthest first."""
        return sorted(set(v), reverse=True)


class ChannelsConfig(BaseModel):
    """Channel defaults and per-channel overrides."""

    defaults: ChannelSettings = Field(default_factory=ChannelSettings)
    overrides: dict[int, ChannelSettings] = Field(default_factory=dict)


class ScheduleBotConfig(BaseModel):
    """Root configuration model."""

    services: ServicesConfig
    storage: StorageConfig = Field(default_factory=StorageConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    timers: TimersConfig = Field(default_factory=TimersConfig)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)

    def get_channel_settings(self, channel_id: int) -> ChannelSettings:
        """
        Resolve the effective settings for a schedule channel.

        Args:
            channel_id: Discord channel ID

        Returns:
            The channel override if one exists, otherwise the defaults
        """
        return self.channels.overrides.get(channel_id, self.channels.defaults)
