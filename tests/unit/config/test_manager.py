"""Tests for configuration manager functionality."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from schedule_bot.config.manager import ConfigManager
from schedule_bot.config.schema import ScheduleBotConfig

from tests.utils.test_helpers import create_test_config


class TestConfigManager:
    """Test cases for ConfigManager functionality."""

    def test_load_config_success(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.yml"
        _ = config_path.write_text(
            yaml.safe_dump(
                {
                    "services": {"discord": {"token": "test_discord_token_1234567890"}},
                    "limits": {"max_entries": 3},
                    "channels": {"defaults": {"reminders": [5, 30]}},
                }
            ),
            encoding="utf-8",
        )

        config = ConfigManager.load_config(config_path)

        assert config.limits.max_entries == 3
        assert config.channels.defaults.reminders == [30, 5]

    def test_load_config_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            _ = ConfigManager.load_config(tmp_path / "nope.yml")

    def test_load_config_invalid_yaml(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.yml"
        _ = config_path.write_text("services: [unclosed", encoding="utf-8")

        with pytest.raises(yaml.YAMLError):
            _ = ConfigManager.load_config(config_path)

    def test_load_config_not_a_mapping(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.yml"
        _ = config_path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ValueError, match="YAML dictionary"):
            _ = ConfigManager.load_config(config_path)

    def test_load_config_empty_file_fails_validation(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.yml"
        _ = config_path.write_text("", encoding="utf-8")

        with pytest.raises(ValidationError):
            _ = ConfigManager.load_config(config_path)

    def test_sample_config_round_trips(self, tmp_path: Path) -> None:
        """The generated sample must itself be a valid configuration."""
        sample_path = tmp_path / "nested" / "config.yml"

        ConfigManager.create_sample_config(sample_path)
        config = ConfigManager.load_config(sample_path)

        assert sample_path.exists()
        assert config.services.discord.token == "your_discord_bot_token_here"
        assert config.channels.defaults.rsvp_options == {"✅": "Yes", "❌": "No"}

    def test_current_config(self) -> None:
        manager = ConfigManager()
        with pytest.raises(RuntimeError, match="No configuration has been set"):
            _ = manager.get_current_config()

        config: ScheduleBotConfig = create_test_config()
        manager.set_current_config(config)

        assert manager.get_current_config() is config
