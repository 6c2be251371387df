"""Tests for the configuration schema."""

import pytest
from pydantic import ValidationError

from schedule_bot.config.schema import ChannelSettings, ScheduleBotConfig, TimersConfig

TOKEN = "test_discord_token_1234567890"


def _config(**sections: object) -> ScheduleBotConfig:
    return ScheduleBotConfig.model_validate(
        {"services": {"discord": {"token": TOKEN}}, **sections}
    )


class TestScheduleBotConfig:
    """Test validation and defaults of the root model."""

    def test_minimal_config_uses_defaults(self) -> None:
        config = _config()

        assert config.storage.backend == "json"
        assert config.limits.max_entries == 15
        assert config.channels.defaults.reminders == [10]
        assert config.channels.overrides == {}

    def test_short_token_rejected(self) -> None:
        with pytest.raises(ValidationError, match="too short"):
            _ = ScheduleBotConfig.model_validate({"services": {"discord": {"token": "abc"}}})

    def test_missing_services_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = ScheduleBotConfig.model_validate({})

    def test_max_entries_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            _ = _config(limits={"max_entries": 0})

    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = _config(storage={"backend": "mongodb"})


class TestTimersConfig:
    """Test the timer cadence defaults."""

    def test_defaults(self) -> None:
        timers = TimersConfig()

        assert (timers.fill_interval, timers.fill_initial_delay) == (30.0, 30.0)
        assert (timers.empty_interval, timers.empty_initial_delay) == (20.0, 15.0)
        assert timers.coarse_interval == 12 * 3600
        assert timers.medium_interval == 30 * 60
        assert (timers.fine_interval, timers.fine_initial_delay) == (180.0, 270.0)
        assert timers.stale_after == 3600.0

    def test_intervals_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            _ = TimersConfig(fill_interval=0)


class TestChannelSettings:
    """Test per-channel settings resolution."""

    def test_offsets_sorted_furthest_first_without_duplicates(self) -> None:
        settings = ChannelSettings(reminders=[5, 60, 5, 15], end_reminders=[1, 10])

        assert settings.reminders == [60, 15, 5]
        assert settings.end_reminders == [10, 1]

    def test_negative_offsets_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = ChannelSettings(reminders=[-5])

    def test_overrides_keyed_by_channel_id(self) -> None:
        config = _config(
            channels={
                "defaults": {"reminders": [30]},
                "overrides": {"12345": {"rsvp_enabled": True, "auto_sort": "descending"}},
            }
        )

        override = config.get_channel_settings(12345)
        assert override.rsvp_enabled is True
        assert override.auto_sort == "descending"
        assert config.get_channel_settings(999).reminders == [30]

    def test_invalid_sort_policy_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = ChannelSettings.model_validate({"auto_sort": "random"})
