"""
Global test configuration fixtures for Schedule Bot tests.

Fixtures build the engine bottom-up from an in-memory document collection
and a gateway mock, so tests can pick the layer they exercise.
"""

from __future__ import annotations

import random
from unittest.mock import MagicMock

import pytest

from schedule_bot.bot.entry_manager import EntryManager
from schedule_bot.bot.scheduling import DisplaySynchronizer, EntryStore, MemoryCollection
from schedule_bot.config.schema import ScheduleBotConfig

from tests.utils.test_helpers import create_mock_gateway, create_test_config


@pytest.fixture
def config() -> ScheduleBotConfig:
    """Configuration with default channel settings."""
    return create_test_config()


@pytest.fixture
def rsvp_config() -> ScheduleBotConfig:
    """Configuration with RSVP enabled and a clear emoji."""
    return create_test_config(
        rsvp_enabled=True,
        rsvp_options={"✅": "Yes", "❔": "Maybe", "❌": "No"},
        rsvp_clear="🚫",
    )


@pytest.fixture
def collection() -> MemoryCollection:
    return MemoryCollection()


@pytest.fixture
def store(collection: MemoryCollection) -> EntryStore:
    return EntryStore(collection)


@pytest.fixture
def gateway() -> MagicMock:
    return create_mock_gateway()


@pytest.fixture
def display(gateway: MagicMock, store: EntryStore, config: ScheduleBotConfig) -> DisplaySynchronizer:
    return DisplaySynchronizer(gateway, store, config)


@pytest.fixture
def manager(
    gateway: MagicMock, config: ScheduleBotConfig, collection: MemoryCollection
) -> EntryManager:
    """Entry manager over the shared collection and gateway, with seeded IDs."""
    return EntryManager(gateway, config, collection, generator=random.Random(1234))
