"""Configuration loading and schema for Schedule Bot."""

from .manager import ConfigManager
from .schema import ChannelSettings, ScheduleBotConfig, TimersConfig

__all__ = ["ConfigManager", "ChannelSettings", "ScheduleBotConfig", "TimersConfig"]
