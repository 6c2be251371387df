"""
Tests for the display synchronizer.

Displays are published through the gateway mock, whose message board lets
the tests check which messages exist and what reactions were added.
"""

from collections.abc import Mapping
from datetime import timedelta
from unittest.mock import MagicMock, patch

import discord
import pytest

from schedule_bot.bot.scheduling import DisplaySynchronizer, EntryStore, ScheduleEntry, WriteResult
from schedule_bot.config.schema import ScheduleBotConfig

from tests.utils.test_helpers import CHANNEL_ID, T0, create_test_config, make_entry


async def _publish_and_store(
    display: DisplaySynchronizer, store: EntryStore, entry: ScheduleEntry
) -> ScheduleEntry:
    message = await display.publish(entry)
    assert message is not None
    entry.message_id = message.id
    _ = await store.insert(entry)
    return entry


class TestPublish:
    """Test sending new displays."""

    @pytest.mark.asyncio
    async def test_publish_sends_embed_without_reactions(
        self, display: DisplaySynchronizer, gateway: MagicMock
    ) -> None:
        message = await display.publish(make_entry(entry_id=1))

        assert message is not None
        channel_id, content, embed = gateway.sent[0]
        assert channel_id == CHANNEL_ID
        assert content is None
        assert embed is not None and embed.title == "Raid night"
        gateway.add_reaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rsvp_reactions_skip_disabled_categories(
        self, gateway: MagicMock, store: EntryStore, rsvp_config: ScheduleBotConfig
    ) -> None:
        """Test that a category limited to zero gets no reaction but the clear emoji does."""
        display = DisplaySynchronizer(gateway, store, rsvp_config)
        entry = make_entry(
            entry_id=1,
            rsvp_members={"Yes": [], "Maybe": [], "No": []},
            rsvp_limits={"Maybe": 0},
        )

        message = await display.publish(entry)

        emojis = [call.args[1] for call in gateway.add_reaction.await_args_list]
        assert emojis == ["✅", "❌", "🚫"]
        assert all(call.args[0] is message for call in gateway.add_reaction.await_args_list)

    @pytest.mark.asyncio
    async def test_failed_send_returns_none(
        self, display: DisplaySynchronizer, gateway: MagicMock
    ) -> None:
        gateway.send.side_effect = None
        gateway.send.return_value = None

        assert await display.publish(make_entry(entry_id=1)) is None


class TestRefresh:
    """Test re-rendering existing displays."""

    @pytest.mark.asyncio
    async def test_refresh_edits_existing_message(
        self, display: DisplaySynchronizer, store: EntryStore, gateway: MagicMock
    ) -> None:
        entry = await _publish_and_store(display, store, make_entry(entry_id=1))

        edited = await display.refresh(entry, T0 - timedelta(minutes=5))

        assert edited is not None and edited.id == entry.message_id
        embed = gateway.edit.await_args.kwargs["embed"]
        assert {field.name: field.value for field in embed.fields}["Status"] == "starts in 5 minutes"

    @pytest.mark.asyncio
    async def test_refresh_of_deleted_message(
        self, display: DisplaySynchronizer, store: EntryStore, gateway: MagicMock
    ) -> None:
        entry = await _publish_and_store(display, store, make_entry(entry_id=1))
        gateway.messages.clear()

        assert await display.refresh(entry) is None
        gateway.edit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remove_message(
        self, display: DisplaySynchronizer, store: EntryStore, gateway: MagicMock
    ) -> None:
        entry = await _publish_and_store(display, store, make_entry(entry_id=1))

        assert await display.remove_message(entry)
        assert entry.message_id not in gateway.messages
        # Removing again is not an error
        assert await display.remove_message(entry)


class TestSortChannel:
    """Test reordering displays by start time."""

    @pytest.mark.asyncio
    async def test_sort_ascending_reuses_messages(
        self, display: DisplaySynchronizer, store: EntryStore
    ) -> None:
        # Posted latest-first, so message order is the reverse of start order
        for entry_id, days in ((1, 3), (2, 2), (3, 1)):
            _ = await _publish_and_store(
                display, store, make_entry(entry_id=entry_id, start=T0 + timedelta(days=days))
            )

        moved = await display.sort_channel(CHANNEL_ID)

        entries = sorted(await store.list_channel(CHANNEL_ID), key=lambda e: e.start)
        message_ids = [e.message_id for e in entries]
        assert message_ids == sorted(message_ids)
        assert moved == 2

    @pytest.mark.asyncio
    async def test_sort_descending(self, display: DisplaySynchronizer, store: EntryStore) -> None:
        for entry_id, days in ((1, 1), (2, 2)):
            _ = await _publish_and_store(
                display, store, make_entry(entry_id=entry_id, start=T0 + timedelta(days=days))
            )

        assert await display.sort_channel(CHANNEL_ID, descending=True) == 2

        first = await store.get(1)
        second = await store.get(2)
        assert first is not None and second is not None
        assert second.message_id is not None and first.message_id is not None
        assert second.message_id < first.message_id

    @pytest.mark.asyncio
    async def test_sorted_channel_is_left_alone(
        self, display: DisplaySynchronizer, store: EntryStore, gateway: MagicMock
    ) -> None:
        for entry_id, days in ((1, 1), (2, 2)):
            _ = await _publish_and_store(
                display, store, make_entry(entry_id=entry_id, start=T0 + timedelta(days=days))
            )

        assert await display.sort_channel(CHANNEL_ID) == 0
        gateway.edit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sort_readds_rsvp_reactions(self, gateway: MagicMock, store: EntryStore) -> None:
        display = DisplaySynchronizer(
            gateway, store, create_test_config(rsvp_enabled=True, rsvp_options={"✅": "Yes"})
        )
        for entry_id, days in ((1, 2), (2, 1)):
            _ = await _publish_and_store(
                display,
                store,
                make_entry(entry_id=entry_id, start=T0 + timedelta(days=days), rsvp_members={"Yes": []}),
            )
        gateway.add_reaction.reset_mock()

        _ = await display.sort_channel(CHANNEL_ID)

        assert gateway.clear_reactions.await_count == 2
        assert gateway.add_reaction.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_edit_leaves_every_entry_on_its_own_message(
        self, display: DisplaySynchronizer, store: EntryStore, gateway: MagicMock
    ) -> None:
        later = await _publish_and_store(
            display, store, make_entry(entry_id=1, title="Later", start=T0 + timedelta(days=2))
        )
        sooner = await _publish_and_store(
            display, store, make_entry(entry_id=2, title="Sooner", start=T0 + timedelta(days=1))
        )
        board_edit = gateway.edit.side_effect

        async def edit(message: MagicMock, *, embed: discord.Embed) -> MagicMock | None:
            if message.id == sooner.message_id:
                return None
            return await board_edit(message, embed=embed)

        gateway.edit.side_effect = edit

        assert await display.sort_channel(CHANNEL_ID) == 0

        stored = {e.entry_id: e.message_id for e in await store.list_channel(CHANNEL_ID)}
        assert stored == {1: later.message_id, 2: sooner.message_id}
        # The message already rewritten for "Sooner" shows "Later" again
        restored = gateway.edit.await_args_list[-1]
        assert restored.args[0].id == later.message_id
        assert restored.kwargs["embed"].title == "Later"

    @pytest.mark.asyncio
    async def test_failed_repoint_rolls_back_records_and_displays(
        self, display: DisplaySynchronizer, store: EntryStore, gateway: MagicMock
    ) -> None:
        later = await _publish_and_store(
            display, store, make_entry(entry_id=1, title="Later", start=T0 + timedelta(days=2))
        )
        sooner = await _publish_and_store(
            display, store, make_entry(entry_id=2, title="Sooner", start=T0 + timedelta(days=1))
        )
        update_fields = store.update_fields

        async def flaky_update(entry_id: int, fields: Mapping[str, object]) -> WriteResult:
            if entry_id == 1 and fields.get("message_id") == sooner.message_id:
                return WriteResult(acknowledged=False)
            return await update_fields(entry_id, fields)

        with patch.object(store, "update_fields", side_effect=flaky_update):
            assert await display.sort_channel(CHANNEL_ID) == 0

        stored = {e.entry_id: e.message_id for e in await store.list_channel(CHANNEL_ID)}
        assert stored == {1: later.message_id, 2: sooner.message_id}
        titles = {
            call.args[0].id: call.kwargs["embed"].title for call in gateway.edit.await_args_list[-2:]
        }
        assert titles == {later.message_id: "Later", sooner.message_id: "Sooner"}
