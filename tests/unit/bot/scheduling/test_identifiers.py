"""Tests for entry ID allocation."""

import random

import pytest

from schedule_bot.bot.scheduling.identifiers import MAX_ENTRY_ID, IdAllocator


class TestIdAllocator:
    """Test ID generation against a set of taken IDs."""

    @pytest.mark.asyncio
    async def test_allocated_ids_are_in_range(self) -> None:
        """Test that IDs are positive and fit in 32 bits."""
        async def exists(_: int) -> bool:
            return False

        allocator = IdAllocator(exists, random.Random(1))
        for _ in range(100):
            entry_id = await allocator.allocate()
            assert 1 <= entry_id <= MAX_ENTRY_ID

    @pytest.mark.asyncio
    async def test_taken_id_is_never_returned(self) -> None:
        """Test that a colliding draw is replaced by a fresh one."""
        first_draw = random.Random(7).randint(1, MAX_ENTRY_ID)
        taken = {first_draw}
        checked: list[int] = []

        async def exists(entry_id: int) -> bool:
            checked.append(entry_id)
            return entry_id in taken

        allocator = IdAllocator(exists, random.Random(7))
        entry_id = await allocator.allocate()

        assert entry_id != first_draw
        assert checked[0] == first_draw
        assert len(checked) == 2

    @pytest.mark.asyncio
    async def test_consecutive_allocations_are_distinct(self) -> None:
        """Test that IDs stay unique as they are taken."""
        taken: set[int] = set()

        async def exists(entry_id: int) -> bool:
            return entry_id in taken

        allocator = IdAllocator(exists, random.Random(99))
        for _ in range(200):
            entry_id = await allocator.allocate()
            assert entry_id not in taken
            taken.add(entry_id)

    @pytest.mark.asyncio
    async def test_default_generator_is_seeded_from_os(self) -> None:
        """Test that two unseeded allocators do not produce the same sequence."""
        async def exists(_: int) -> bool:
            return False

        first = [await IdAllocator(exists).allocate() for _ in range(3)]
        second = [await IdAllocator(exists).allocate() for _ in range(3)]
        assert first != second
