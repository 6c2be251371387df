"""
Document collection backends for the entry store.

The engine talks to a document-oriented collection through the
DocumentCollection protocol: equality/conjunction filters, insert, replace,
partial update, delete and count. Two backends are provided: an in-memory
collection and a JSON file collection that rewrites the whole file
atomically on every write.
"""

import asyncio
import copy
import json
import logging
import tempfile
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Protocol

from .types import WriteResult
from ...utils.core.exceptions import StorageError
from ...utils.time import utc_now

logger = logging.getLogger(__name__)

Document = dict[str, object]
Filter = Mapping[str, object]


class DocumentCollection(Protocol):
    """A single collection of documents keyed by ``_id``."""

    async def find_one(self, query: Filter) -> Document | None: ...

    async def find(self, query: Filter) -> list[Document]: ...

    async def count(self, query: Filter) -> int: ...

    async def insert_one(self, document: Document) -> WriteResult: ...

    async def replace_one(self, query: Filter, document: Document) -> WriteResult: ...

    async def update_one(self, query: Filter, fields: Mapping[str, object]) -> WriteResult: ...

    async def delete_one(self, query: Filter) -> WriteResult: ...


def matches(document: Mapping[str, object], query: Filter) -> bool:
    """Check that every field of the query equals the document's field."""
    return all(
        key in document and document[key] == value for key, value in query.items()
    )


class MemoryCollection:
    """
    In-memory document collection.

    Documents are copied on the way in and on the way out so callers never
    share mutable state with the collection.
    """

    def __init__(self, documents: list[Document] | None = None) -> None:
        self._documents: dict[object, Document] = {}
        self._lock: asyncio.Lock = asyncio.Lock()
        # Tests flip this to simulate a store that accepts but does not confirm writes
        self.acknowledge_writes: bool = True
        for document in documents or []:
            self._documents[document["_id"]] = copy.deepcopy(document)

    def snapshot(self) -> dict[object, Document]:
        """Copy of all stored documents keyed by ``_id``."""
        return copy.deepcopy(self._documents)

    def _select(self, documents: Mapping[object, Document], query: Filter) -> list[Document]:
        if set(query) == {"_id"}:
            found = documents.get(query["_id"])
            return [found] if found is not None else []
        return [doc for doc in documents.values() if matches(doc, query)]

    async def _commit(self, documents: dict[object, Document]) -> bool:
        """Make ``documents`` the new collection state; return acknowledgement."""
        if not self.acknowledge_writes:
            return False
        self._documents = documents
        return True

    async def find_one(self, query: Filter) -> Document | None:
        found = self._select(self._documents, query)
        return copy.deepcopy(found[0]) if found else None

    async def find(self, query: Filter) -> list[Document]:
        return [copy.deepcopy(doc) for doc in self._select(self._documents, query)]

    async def count(self, query: Filter) -> int:
        return len(self._select(self._documents, query))

    async def insert_one(self, document: Document) -> WriteResult:
        async with self._lock:
            if document["_id"] in self._documents:
                logger.warning(f"Refusing to insert duplicate document {document['_id']}")
                return WriteResult(acknowledged=True, matched_count=0)
            updated = dict(self._documents)
            updated[document["_id"]] = copy.deepcopy(document)
            acknowledged = await self._commit(updated)
            return WriteResult(acknowledged=acknowledged, matched_count=1 if acknowledged else 0)

    async def replace_one(self, query: Filter, document: Document) -> WriteResult:
        async with self._lock:
            found = self._select(self._documents, query)
            if not found:
                return WriteResult(acknowledged=True, matched_count=0)
            updated = dict(self._documents)
            replacement = copy.deepcopy(document)
            replacement["_id"] = found[0]["_id"]
            updated[found[0]["_id"]] = replacement
            acknowledged = await self._commit(updated)
            return WriteResult(acknowledged=acknowledged, matched_count=1 if acknowledged else 0)

    async def update_one(self, query: Filter, fields: Mapping[str, object]) -> WriteResult:
        async with self._lock:
            found = self._select(self._documents, query)
            if not found:
                return WriteResult(acknowledged=True, matched_count=0)
            updated = dict(self._documents)
            patched = copy.deepcopy(found[0])
            patched.update(copy.deepcopy(dict(fields)))
            updated[found[0]["_id"]] = patched
            acknowledged = await self._commit(updated)
            return WriteResult(acknowledged=acknowledged, matched_count=1 if acknowledged else 0)

    async def delete_one(self, query: Filter) -> WriteResult:
        async with self._lock:
            found = self._select(self._documents, query)
            if not found:
                return WriteResult(acknowledged=True, matched_count=0)
            updated = dict(self._documents)
            del updated[found[0]["_id"]]
            acknowledged = await self._commit(updated)
            return WriteResult(acknowledged=acknowledged, matched_count=1 if acknowledged else 0)


def _encode_value(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonFileCollection(MemoryCollection):
    """
    Document collection persisted to a JSON file.

    Every write rewrites the file through a temporary file and an atomic
    replace. A write whose flush fails is reported as unacknowledged and the
    in-memory state is left as it was before the write.
    """

    def __init__(self, file_path: Path) -> None:
        super().__init__()
        self.file_path: Path = file_path
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        self._documents = self._load()
        logger.debug(
            f"JsonFileCollection initialized with {len(self._documents)} documents from {self.file_path}"
        )

    def _load(self) -> dict[object, Document]:
        if not self.file_path.exists():
            logger.debug("No collection file found, starting empty")
            return {}

        try:
            with self.file_path.open("r", encoding="utf-8") as f:
                data: object = json.load(f)
            if not isinstance(data, list):
                raise ValueError("collection file must contain a JSON list")
            documents: dict[object, Document] = {}
            for document in data:
                if not isinstance(document, dict) or "_id" not in document:
                    raise ValueError(f"invalid document: {document!r}")
                documents[document["_id"]] = document
            logger.info(f"Loaded {len(documents)} entries from {self.file_path}")
            return documents

        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Failed to load collection file (corrupted): {e}")
            self._backup_corrupted_file()
            return {}

        except OSError as e:
            raise StorageError(
                f"Failed to read {self.file_path}: {e}",
                recoverable=not isinstance(e, PermissionError),
            ) from e

    def _backup_corrupted_file(self) -> None:
        """Move a corrupted collection file aside for debugging."""
        try:
            backup_path = self.file_path.with_suffix(
                f".corrupted.{utc_now().strftime('%Y%m%d_%H%M%S')}.json"
            )
            _ = self.file_path.rename(backup_path)
            logger.info(f"Corrupted collection file backed up to: {backup_path}")
        except OSError as e:
            logger.error(f"Failed to backup corrupted collection file: {e}")

    def _write_file(self, documents: list[Document]) -> None:
        temp_file = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.file_path.parent,
                prefix=f".{self.file_path.name}.",
                suffix=".tmp",
                delete=False,
            ) as temp_file:
                json.dump(documents, temp_file, indent=2, ensure_ascii=False, default=_encode_value)
                temp_file.flush()
                temp_path = Path(temp_file.name)

            # Atomic move
            _ = temp_path.replace(self.file_path)

        except Exception as e:
            if temp_file and Path(temp_file.name).exists():
                Path(temp_file.name).unlink(missing_ok=True)
            raise OSError(f"Failed to save collection to {self.file_path}: {e}") from e

    async def _commit(self, documents: dict[object, Document]) -> bool:
        if not self.acknowledge_writes:
            return False
        try:
            await asyncio.to_thread(self._write_file, list(documents.values()))
        except OSError as e:
            logger.error(f"Entry collection write not acknowledged: {e}")
            return False
        # Re-read through JSON so in-memory values match what a restart would load
        self._documents = {
            key: json.loads(json.dumps(doc, default=_encode_value))
            for key, doc in documents.items()
        }
        return True
