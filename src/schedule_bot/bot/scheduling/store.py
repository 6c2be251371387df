"""
Entry store adapter.

Thin CRUD layer translating between ScheduleEntry objects and the documents
of the backing collection. Lookups that find nothing return None; every
write reports whether the collection acknowledged it.
"""

import logging
from collections.abc import Mapping

from .entry import ScheduleEntry
from .persistence import DocumentCollection, Document
from .types import WriteResult

logger = logging.getLogger(__name__)


class EntryStore:
    """CRUD operations over the collection of entry documents."""

    def __init__(self, collection: DocumentCollection) -> None:
        """
        Initialize the entry store.

        Args:
            collection: Backing document collection
        """
        self.collection: DocumentCollection = collection

    def _to_entries(self, documents: list[Document]) -> list[ScheduleEntry]:
        entries: list[ScheduleEntry] = []
        for document in documents:
            try:
                entries.append(ScheduleEntry.from_document(document))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Skipping malformed entry document {document.get('_id')}: {e}")
        return entries

    async def exists(self, entry_id: int) -> bool:
        return await self.collection.find_one({"_id": entry_id}) is not None

    async def get(self, entry_id: int) -> ScheduleEntry | None:
        document = await self.collection.find_one({"_id": entry_id})
        if document is None:
            return None
        return ScheduleEntry.from_document(document)

    async def get_from_workspace(self, entry_id: int, workspace_id: int) -> ScheduleEntry | None:
        document = await self.collection.find_one(
            {"_id": entry_id, "workspace_id": workspace_id}
        )
        if document is None:
            return None
        return ScheduleEntry.from_document(document)

    async def list_workspace(self, workspace_id: int) -> list[ScheduleEntry]:
        return self._to_entries(await self.collection.find({"workspace_id": workspace_id}))

    async def list_channel(self, channel_id: int) -> list[ScheduleEntry]:
        return self._to_entries(await self.collection.find({"channel_id": channel_id}))

    async def list_all(self) -> list[ScheduleEntry]:
        return self._to_entries(await self.collection.find({}))

    async def count_workspace(self, workspace_id: int) -> int:
        return await self.collection.count({"workspace_id": workspace_id})

    async def insert(self, entry: ScheduleEntry) -> WriteResult:
        return await self.collection.insert_one(entry.to_document())

    async def replace(self, entry: ScheduleEntry) -> WriteResult:
        if entry.entry_id is None:
            raise ValueError("Cannot replace an entry without an ID")
        return await self.collection.replace_one({"_id": entry.entry_id}, entry.to_document())

    async def update_fields(self, entry_id: int, fields: Mapping[str, object]) -> WriteResult:
        return await self.collection.update_one({"_id": entry_id}, fields)

    async def delete(self, entry_id: int) -> WriteResult:
        return await self.collection.delete_one({"_id": entry_id})
